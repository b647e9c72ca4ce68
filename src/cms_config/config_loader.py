"""Configuration loading, merging and publishing.

ConfigLoader owns the single configuration slot of the application. A load
runs fetch → parse → merge → validate → default-fill and only publishes the
result when every step succeeded; a failed load leaves the previously
published configuration untouched. Loads are serialized through an AsyncLock
that connectors also wait on, so no backend operation starts while the
configuration is being replaced.

Example:
    >>> loader = ConfigLoader(base_url="https://example.com/admin/")
    >>> config = await loader.load()
    >>> config['collections'][0]['name']
    'posts'
"""

import copy
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

import yaml
from bs4 import BeautifulSoup

from src.backend_client.async_lock import AsyncLock
from src.backend_client.errors import TransportError
from src.backend_client.request_builder import (
    perform_request,
    pipe,
    with_default_headers,
    with_root,
    with_timestamp,
)

from .defaults import apply_defaults
from .errors import ConfigLoadError
from .schema import validate_config
from .tree import deep_merge

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = 'config.yml'
CONFIG_LINK_REL = 'cms-config-url'
YAML_LINK_TYPES = {'text/yaml', 'application/x-yaml'}


class ConfigState(str, Enum):
    """States of the configuration slot."""
    UNLOADED = 'unloaded'
    LOADING = 'loading'
    LOADED = 'loaded'
    FAILED = 'failed'


def get_config_url(document_html: Optional[str] = None) -> str:
    """Locate the configuration file URL.

    A ``<link rel="cms-config-url">`` element with a YAML media type in the
    host document overrides the default ``config.yml``.
    """
    if document_html:
        soup = BeautifulSoup(document_html, 'html.parser')
        for link in soup.find_all('link'):
            rels = link.get('rel') or []
            if isinstance(rels, str):
                rels = rels.split()
            href = link.get('href')
            if CONFIG_LINK_REL in rels and link.get('type') in YAML_LINK_TYPES and href:
                logger.info(f'Using config file path: "{href}"')
                return href
    return DEFAULT_CONFIG_FILE


def parse_config(text: str, environment: Optional[str] = None, url: Optional[str] = None) -> Dict[str, Any]:
    """Parse a YAML configuration document.

    When ``environment`` names a top-level mapping in the document, its keys
    are hoisted over the sibling top-level keys.

    Raises:
        ConfigLoadError: If the YAML is invalid or not a mapping
    """
    try:
        config = yaml.safe_load(text or '')
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML syntax: {str(e)}", url=url)

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigLoadError(
            f"Configuration must be a YAML dictionary, got {type(config).__name__}",
            url=url
        )

    overlay = config.get(environment) if environment else None
    if isinstance(overlay, Mapping):
        logger.debug(f"Applying '{environment}' environment overrides")
        for key, value in overlay.items():
            config[key] = value
    return config


class ConfigLoader:
    """Loads, validates and publishes the application configuration.

    Attributes:
        state: Current ConfigState of the slot
        error: Error of the last failed load, None otherwise
        lock: AsyncLock serializing loads; connectors wait on it too
    """

    def __init__(
        self,
        preloaded_config: Optional[Mapping[str, Any]] = None,
        injected_config: Optional[Mapping[str, Any]] = None,
        document_html: Optional[str] = None,
        config_url: Optional[str] = None,
        base_url: Optional[str] = None,
        environment: Optional[str] = None,
        cookies: Optional[Mapping[str, str]] = None,
        authenticate_user: Optional[Callable[[Dict[str, Any]], Any]] = None,
        lock: Optional[AsyncLock] = None,
    ):
        """Initialize the loader.

        Args:
            preloaded_config: Configuration supplied by the embedding page
            injected_config: Host-provided configuration; skips the fetch
            document_html: Host HTML document searched for a config link
            config_url: Explicit configuration URL, overrides discovery
            base_url: Root for relative configuration URLs
            environment: Overlay key name applied after parsing
            cookies: Same-origin cookies forwarded with the fetch
            authenticate_user: Called with the published configuration
            lock: Lock to serialize loads; a private one is created if omitted
        """
        self._preloaded = copy.deepcopy(dict(preloaded_config)) if preloaded_config else None
        self._injected = copy.deepcopy(dict(injected_config)) if injected_config is not None else None
        self._document_html = document_html
        self._config_url = config_url
        self._base_url = base_url
        self._environment = environment
        self._cookies = cookies
        self._authenticate_user = authenticate_user
        self._subscribers: List[Callable[[Dict[str, Any]], Any]] = []

        self.lock = lock or AsyncLock()
        self.state = ConfigState.UNLOADED
        self.error: Optional[Exception] = None
        self._config: Optional[Dict[str, Any]] = None

    @property
    def config(self) -> Optional[Dict[str, Any]]:
        """Snapshot of the published configuration, or None before the first load."""
        return copy.deepcopy(self._config) if self._config is not None else None

    def subscribe(self, callback: Callable[[Dict[str, Any]], Any]) -> None:
        """Register a callback invoked with every newly published configuration."""
        self._subscribers.append(callback)

    def _current_preload(self) -> Optional[Dict[str, Any]]:
        return self._config if self._config is not None else self._preloaded

    async def load(self) -> Dict[str, Any]:
        """Load, validate and publish the configuration.

        Returns:
            Snapshot of the published configuration

        Raises:
            ConfigLoadError: If the file could not be fetched or parsed
            ConfigValidationError: If the merged document is invalid
        """
        async with self.lock:
            self.state = ConfigState.LOADING
            try:
                loaded = await self._load_document(self._preloaded)
                merged = deep_merge(self._preloaded or {}, loaded)
                config = self._validate_and_fill(merged)
            except Exception as e:
                self.state = ConfigState.FAILED
                self.error = e
                logger.error(f"Error loading config: {e}")
                raise

            await self._publish(config)

        if self._authenticate_user is not None:
            result = self._authenticate_user(self.config)
            if inspect.isawaitable(result):
                await result
        return self.config

    async def merge_config(self, partial: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge ``partial`` into the published configuration and republish it.

        Raises:
            ConfigValidationError: If the merged document is invalid
        """
        async with self.lock:
            merged = deep_merge(self._current_preload() or {}, partial)
            config = self._validate_and_fill(merged)
            await self._publish(config)
        return self.config

    def _validate_and_fill(self, merged: Dict[str, Any]) -> Dict[str, Any]:
        validate_config(merged)
        return apply_defaults(merged)

    async def _publish(self, config: Dict[str, Any]) -> None:
        self._config = config
        self.state = ConfigState.LOADED
        self.error = None
        logger.info(f"Configuration loaded ({len(config.get('collections', []))} collections)")
        for callback in self._subscribers:
            result = callback(self.config)
            if inspect.isawaitable(result):
                await result

    async def _load_document(self, preloaded: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        if self._injected is not None:
            logger.debug("Using host-injected configuration")
            return copy.deepcopy(self._injected)

        if preloaded and preloaded.get('load_config_file') is False:
            return {}

        url = self._config_url or get_config_url(self._document_html)
        is_preloaded = bool(preloaded) and len(preloaded) > 1
        return await self._fetch_config(url, is_preloaded)

    async def _fetch_config(self, url: str, is_preloaded: bool) -> Dict[str, Any]:
        transformers = [with_default_headers({'Accept': 'text/yaml, application/x-yaml, */*'}),
                        with_timestamp]
        if self._base_url:
            transformers.insert(0, with_root(self._base_url))
        req = pipe(url, *transformers)

        try:
            response = await perform_request(req, cookies=self._cookies)
        except TransportError as e:
            if is_preloaded:
                logger.warning(f"Failed to load {url} ({e.reason}), using preloaded config")
                return {}
            raise ConfigLoadError(f"Failed to load config.yml ({e.reason})", url=req.url) from e

        if response.status_code != 200:
            if is_preloaded:
                logger.warning(
                    f"Failed to load {url} ({response.status_code}), using preloaded config"
                )
                return {}
            raise ConfigLoadError(
                f"Failed to load config.yml ({response.status_code})",
                url=req.url,
                status=response.status_code
            )

        content_type = response.headers.get('Content-Type') or 'Not-Found'
        if 'yaml' not in content_type:
            logger.info(f"Response for {url} was not yaml. (Content-Type: {content_type})")
            if is_preloaded:
                return {}

        return parse_config(response.text, self._environment, url=req.url)

"""Backend facade and connector registry.

resolve_backend() picks the connector class registered for
``backend.name`` in the published configuration and wraps it in a Backend.
The facade is what the rest of the application talks to: it waits for any
in-flight configuration reload before starting an operation, refuses
optional operations the connector does not support, and dispatches
collection listings to the folder or files variant.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from src.backend_client.async_lock import AsyncLock
from src.backend_client.cursor import Cursor
from src.backend_client.errors import BackendNotFoundError, UnsupportedCapabilityError

from .implementation import Capability, Implementation
from .models import (
    AssetProxy,
    DeployPreview,
    DisplayURL,
    Entry,
    EntryList,
    ImplementationEntry,
    MediaFile,
    PersistOptions,
    UnpublishedEntry,
    User,
)

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = 'md'

_registry: Dict[str, Type[Implementation]] = {}


def register_backend(name: str, implementation: Type[Implementation]) -> None:
    """Make ``implementation`` available under ``backend.name: <name>``."""
    _registry[name] = implementation


def get_backend_class(name: str) -> Type[Implementation]:
    try:
        return _registry[name]
    except KeyError:
        raise BackendNotFoundError(name)


def registered_backends() -> List[str]:
    return sorted(_registry)


class Backend:
    """Facade over one connector instance.

    Example:
        >>> backend = resolve_backend(loader.config, loader.lock)
        >>> entries = await backend.list_entries(collection)
    """

    def __init__(self, implementation: Implementation, config: Mapping[str, Any], lock: Optional[AsyncLock] = None):
        self.implementation = implementation
        self.config = config
        self._lock = lock

    @property
    def name(self) -> str:
        return self.implementation.name

    def supports(self, capability: Capability) -> bool:
        return self.implementation.supports(capability)

    async def _ready(self) -> None:
        """Wait until no configuration reload holds the lock."""
        if self._lock is None or not self._lock.locked:
            return
        logger.debug("Waiting for configuration reload before backend operation")
        await self._lock.acquire()
        self._lock.release()

    def _require(self, capability: Capability, operation: str) -> None:
        if not self.supports(capability):
            raise UnsupportedCapabilityError(self.name, operation)

    def collection(self, name: str) -> Mapping[str, Any]:
        for collection in self.config.get('collections', []):
            if collection.get('name') == name:
                return collection
        raise KeyError(f"Unknown collection: {name}")

    # Authentication

    async def authenticate(self, credentials: Any) -> User:
        await self._ready()
        return await self.implementation.authenticate(credentials)

    async def restore_user(self, user: User) -> User:
        await self._ready()
        return await self.implementation.restore_user(user)

    async def logout(self) -> None:
        await self.implementation.logout()

    async def get_token(self) -> Optional[str]:
        return await self.implementation.get_token()

    # Entries

    async def list_entries(self, collection: Mapping[str, Any]) -> EntryList:
        """First page of a folder collection, or all entries of a files collection."""
        await self._ready()
        extension = collection.get('extension', DEFAULT_EXTENSION)
        if collection.get('folder') is not None:
            return await self.implementation.entries_by_folder(collection, extension)
        return await self.implementation.entries_by_files(collection, extension)

    async def list_all_entries(self, collection: Mapping[str, Any]) -> EntryList:
        """Every entry of a collection, using native pagination for folders when available."""
        await self._ready()
        extension = collection.get('extension', DEFAULT_EXTENSION)
        if collection.get('folder') is None:
            return await self.implementation.entries_by_files(collection, extension)
        if self.supports(Capability.CURSOR_PAGINATION):
            return await self.implementation.all_entries_by_folder(collection, extension)
        return await self.implementation.entries_by_folder(collection, extension)

    async def traverse_cursor(self, cursor: Cursor, action: str) -> Tuple[EntryList, Cursor]:
        self._require(Capability.CURSOR_PAGINATION, 'traverse_cursor')
        await self._ready()
        return await self.implementation.traverse_cursor(cursor, action)

    async def get_entry(self, collection: Mapping[str, Any], slug: str, path: str) -> ImplementationEntry:
        await self._ready()
        return await self.implementation.get_entry(collection, slug, path)

    async def persist_entry(self, entry: Entry, assets: List[AssetProxy], options: PersistOptions) -> None:
        if options.use_workflow:
            self._require(Capability.EDITORIAL_WORKFLOW, 'editorial workflow')
        await self._ready()
        await self.implementation.persist_entry(entry, assets, options)

    async def delete_file(self, path: str, commit_message: str) -> None:
        await self._ready()
        await self.implementation.delete_file(path, commit_message)

    # Media

    async def get_media(self, folder: Optional[str] = None) -> List[MediaFile]:
        await self._ready()
        return await self.implementation.get_media(folder)

    async def get_media_file(self, path: str) -> MediaFile:
        await self._ready()
        return await self.implementation.get_media_file(path)

    async def persist_media(self, asset: AssetProxy, options: PersistOptions) -> MediaFile:
        await self._ready()
        return await self.implementation.persist_media(asset, options)

    async def get_media_display_url(self, display_url: DisplayURL) -> str:
        self._require(Capability.MEDIA_DISPLAY_URL, 'get_media_display_url')
        await self._ready()
        return await self.implementation.get_media_display_url(display_url)

    async def get_deploy_preview(self, collection_name: str, slug: str) -> Optional[DeployPreview]:
        self._require(Capability.DEPLOY_PREVIEW, 'get_deploy_preview')
        await self._ready()
        return await self.implementation.get_deploy_preview(collection_name, slug)

    # Editorial workflow

    async def unpublished_entry(self, collection: str, slug: str) -> UnpublishedEntry:
        self._require(Capability.EDITORIAL_WORKFLOW, 'unpublished_entry')
        await self._ready()
        return await self.implementation.unpublished_entry(collection, slug)

    async def unpublished_entries(self) -> List[UnpublishedEntry]:
        self._require(Capability.EDITORIAL_WORKFLOW, 'unpublished_entries')
        await self._ready()
        return await self.implementation.unpublished_entries()

    async def update_unpublished_entry_status(self, collection: str, slug: str, new_status: str) -> None:
        self._require(Capability.EDITORIAL_WORKFLOW, 'update_unpublished_entry_status')
        await self._ready()
        await self.implementation.update_unpublished_entry_status(collection, slug, new_status)

    async def publish_unpublished_entry(self, collection: str, slug: str) -> None:
        self._require(Capability.EDITORIAL_WORKFLOW, 'publish_unpublished_entry')
        await self._ready()
        await self.implementation.publish_unpublished_entry(collection, slug)

    async def delete_unpublished_entry(self, collection: str, slug: str) -> None:
        self._require(Capability.EDITORIAL_WORKFLOW, 'delete_unpublished_entry')
        await self._ready()
        await self.implementation.delete_unpublished_entry(collection, slug)


def resolve_backend(config: Mapping[str, Any], lock: Optional[AsyncLock] = None, **kwargs: Any) -> Backend:
    """Construct the Backend for ``config['backend']['name']``.

    Raises:
        BackendNotFoundError: If no connector is registered under that name
    """
    name = (config.get('backend') or {}).get('name', '')
    implementation_class = get_backend_class(name)
    logger.debug(f"Using backend '{name}'")
    return Backend(implementation_class(config, **kwargs), config, lock)

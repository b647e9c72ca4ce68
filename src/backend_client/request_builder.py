"""Immutable HTTP request composition.

Provider calls are described by a frozen RequestDescription and built up by
chaining small transformers left to right. Every transformer accepts either a
RequestDescription or a bare URL string and returns a new description, so a
sequence of transformers can be replayed safely for retries and tests.

Only perform_request touches the network.

Example:
    >>> req = pipe(
    ...     "projects/1/repository/tree",
    ...     with_root("https://gitlab.com/api/v4"),
    ...     with_default_headers({"Accept": "application/json"}),
    ...     with_params({"ref": "main"}),
    ... )
    >>> response = await perform_request(req)
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

import requests
from requests.exceptions import RequestException

from .errors import TransportError

logger = logging.getLogger(__name__)

CACHE_DEFAULT = "default"
CACHE_NO_STORE = "no-store"

DEFAULT_TIMEOUT = 30

# Methods whose params are sent as a form body when no explicit body is set
BODY_METHODS = {"POST", "PUT", "PATCH"}

_ABSOLUTE_URL = re.compile(r"^(?:[a-z][a-z0-9+.-]*:)?//", re.IGNORECASE)


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class RequestDescription:
    """Description of one HTTP call before it is sent.

    Attributes:
        url: Absolute or relative request URL
        method: HTTP method (upper case)
        headers: Request headers
        params: Query (or form) parameters
        body: Raw body: text, bytes, or a mapping of form fields
        cache: Cache policy, either "default" or "no-store"
    """
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] = field(default_factory=dict)
    body: Union[str, bytes, Mapping[str, Any], None] = None
    cache: str = CACHE_DEFAULT

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", _frozen(self.headers))
        object.__setattr__(self, "params", _frozen(self.params))
        if self.cache not in (CACHE_DEFAULT, CACHE_NO_STORE):
            raise ValueError(f"Unknown cache policy: {self.cache}")

    def __hash__(self):
        return hash((self.url, self.method, tuple(sorted(self.headers.items()))))


Request = Union[RequestDescription, str]
Transformer = Callable[[Request], RequestDescription]


def to_request(req: Request) -> RequestDescription:
    """Normalize a bare URL string into a RequestDescription."""
    if isinstance(req, RequestDescription):
        return req
    if isinstance(req, str):
        return RequestDescription(url=req)
    raise TypeError(f"Expected a URL or RequestDescription, got {type(req).__name__}")


def is_absolute_url(url: str) -> bool:
    """Return True for URLs with a scheme or protocol-relative URLs."""
    return bool(_ABSOLUTE_URL.match(url))


def pipe(req: Request, *transformers: Transformer) -> RequestDescription:
    """Apply transformers to ``req`` from left to right."""
    result = to_request(req)
    for transform in transformers:
        result = transform(result)
    return result


def with_default_headers(headers: Mapping[str, str]) -> Transformer:
    """Add headers only where the request does not already define them."""
    def transform(req: Request) -> RequestDescription:
        req = to_request(req)
        merged = dict(headers)
        merged.update(req.headers)
        return replace(req, headers=merged)
    return transform


def with_headers(headers: Mapping[str, str], req: Optional[Request] = None):
    """Add or overwrite headers.

    Curried when ``req`` is omitted, applied directly otherwise.
    """
    def transform(target: Request) -> RequestDescription:
        target = to_request(target)
        merged = dict(target.headers)
        merged.update(headers)
        return replace(target, headers=merged)

    if req is None:
        return transform
    return transform(req)


def with_timestamp(req: Request) -> RequestDescription:
    """Add a cache-busting ``ts`` parameter derived from the current time."""
    req = to_request(req)
    params = dict(req.params)
    params["ts"] = int(time.time() * 1000)
    return replace(req, params=params)


def with_root(base: str) -> Transformer:
    """Prefix relative URLs with ``base``; absolute URLs pass through."""
    def transform(req: Request) -> RequestDescription:
        req = to_request(req)
        if is_absolute_url(req.url):
            return req
        if not req.url:
            return replace(req, url=base)
        return replace(req, url=f"{base.rstrip('/')}/{req.url.lstrip('/')}")
    return transform


def with_method(method: str) -> Transformer:
    def transform(req: Request) -> RequestDescription:
        return replace(to_request(req), method=method)
    return transform


def with_body(body: Union[str, bytes, Mapping[str, Any], None]) -> Transformer:
    def transform(req: Request) -> RequestDescription:
        return replace(to_request(req), body=body)
    return transform


def with_params(params: Mapping[str, Any]) -> Transformer:
    def transform(req: Request) -> RequestDescription:
        return replace(to_request(req), params=params)
    return transform


def with_cache(policy: str) -> Transformer:
    def transform(req: Request) -> RequestDescription:
        return replace(to_request(req), cache=policy)
    return transform


def _request_kwargs(req: RequestDescription, timeout: float) -> dict:
    headers = dict(req.headers)
    if req.cache == CACHE_NO_STORE:
        headers.setdefault("Cache-Control", "no-store")

    kwargs: dict = {"headers": headers, "timeout": timeout}
    params = dict(req.params)
    if req.method in BODY_METHODS and req.body is None and params:
        kwargs["data"] = params
    else:
        if params:
            kwargs["params"] = params
        if req.body is not None:
            kwargs["data"] = dict(req.body) if isinstance(req.body, Mapping) else req.body
    return kwargs


async def perform_request(
    req: Request,
    timeout: float = DEFAULT_TIMEOUT,
    cookies: Optional[Mapping[str, str]] = None,
) -> requests.Response:
    """Send the request and return the raw response.

    HTTP status codes are not interpreted here; callers decide what a
    successful response is.

    Args:
        req: Request description or bare URL
        timeout: Seconds before the transport gives up
        cookies: Optional cookies forwarded with the request

    Returns:
        requests.Response: The unparsed response

    Raises:
        TransportError: If no response was received
    """
    req = to_request(req)
    kwargs = _request_kwargs(req, timeout)
    if cookies:
        kwargs["cookies"] = dict(cookies)

    logger.debug(f"{req.method} {req.url}")
    try:
        return await asyncio.to_thread(requests.request, req.method, req.url, **kwargs)
    except RequestException as e:
        raise TransportError(req.url, str(e) or type(e).__name__) from e

"""Pagination cursors.

A Cursor describes one page of a listing: the page payload (``data``),
pagination metadata (``meta``), the navigation verbs that can be followed
(``actions``), and a ``store`` holding the navigation targets plus any
bookkeeping shared between cursors of the same listing.

Two pagination schemes are understood:

- link-based: ``store["links"]`` maps verbs to URLs, typically parsed from a
  ``Link`` response header
- page-based: ``store["url"]`` plus ``meta["page"]``/``meta["page_count"]``;
  targets are the same URL with a ``page`` parameter

Cursors never change in place. Every operation returns a new Cursor, so two
holders of the same cursor can navigate independently.
"""

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .errors import CursorActionError
from .request_builder import RequestDescription, pipe, to_request, with_params

logger = logging.getLogger(__name__)

NAVIGATION_ACTIONS = ("first", "prev", "next", "last")

_LINK_PART = re.compile(r'^\s*<([^>]*)>\s*;(.*)$')
_REL_PARAM = re.compile(r'\brel\s*=\s*"?([^";]+)"?', re.IGNORECASE)


def parse_link_header(header: Optional[str]) -> Dict[str, str]:
    """Parse an RFC 5988 ``Link`` header into a mapping of relation to URL.

    Unknown relations are kept. Malformed parts are dropped rather than
    failing the whole parse.

    Example:
        >>> parse_link_header('<https://x/?page=2>; rel="next", <https://x/?page=9>; rel="last"')
        {'next': 'https://x/?page=2', 'last': 'https://x/?page=9'}
    """
    links: Dict[str, str] = {}
    if not header:
        return links

    for part in header.split(","):
        match = _LINK_PART.match(part)
        if not match:
            logger.debug(f"Dropping malformed Link header part: {part!r}")
            continue
        url, params = match.group(1).strip(), match.group(2)
        rel = _REL_PARAM.search(params)
        if not url or not rel:
            logger.debug(f"Dropping Link header part without url or rel: {part!r}")
            continue
        for name in rel.group(1).split():
            links[name.lower()] = url
    return links


def _freeze(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


def _freeze_data(data: Any) -> Any:
    if data is None or isinstance(data, Mapping):
        return _freeze(data)
    if isinstance(data, list):
        return tuple(data)
    return data


def _page_targets(meta: Mapping, store: Mapping) -> Dict[str, int]:
    """Page numbers reachable from a page-based cursor."""
    if not store.get("url"):
        return {}
    page = meta.get("page")
    page_count = meta.get("page_count")
    if not isinstance(page, int) or not isinstance(page_count, int):
        return {}

    targets = {}
    if page > 1:
        targets["first"] = 1
        targets["prev"] = page - 1
    if page < page_count:
        targets["next"] = page + 1
        targets["last"] = page_count
    return targets


def _resolvable(meta: Mapping, store: Mapping) -> Dict[str, Any]:
    targets: Dict[str, Any] = dict(_page_targets(meta, store))
    for rel, url in (store.get("links") or {}).items():
        if rel in NAVIGATION_ACTIONS and url:
            targets[rel] = url
    return targets


@dataclass(frozen=True)
class Cursor:
    """Immutable pagination position plus its available navigation actions.

    Attributes:
        actions: Verbs that resolve to a request (subset of NAVIGATION_ACTIONS)
        data: Opaque page payload, consumed once through unwrap_data();
            mappings are frozen and lists stored as tuples
        meta: Pagination metadata such as page, page_count, page_size, count
        store: Navigation targets ("links" or "url") and shared bookkeeping
    """
    actions: frozenset = frozenset()
    data: Any = field(default_factory=dict)
    meta: Mapping[str, Any] = field(default_factory=dict)
    store: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "data", _freeze_data(self.data))
        object.__setattr__(self, "meta", _freeze(self.meta))
        object.__setattr__(self, "store", _freeze(self.store))

        resolvable = _resolvable(self.meta, self.store)
        requested = frozenset(self.actions)
        dropped = requested - resolvable.keys()
        if dropped:
            logger.debug(f"Dropping unresolvable cursor actions: {sorted(dropped)}")
        object.__setattr__(self, "actions", requested & resolvable.keys())

    __hash__ = object.__hash__

    @classmethod
    def create(
        cls,
        data: Any = None,
        meta: Optional[Mapping[str, Any]] = None,
        actions: Optional[Iterable[str]] = None,
        store: Optional[Mapping[str, Any]] = None,
    ) -> "Cursor":
        """Build a cursor from an explicit data/meta/actions triple.

        When ``actions`` is omitted every resolvable verb is advertised.
        """
        meta = meta or {}
        store = store or {}
        if actions is None:
            actions = _resolvable(meta, store).keys()
        return cls(actions=frozenset(actions), data=data, meta=meta, store=store)

    @classmethod
    def from_link_header(
        cls,
        header: Optional[str],
        data: Any = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> "Cursor":
        """Build a link-based cursor from a ``Link`` response header."""
        links = parse_link_header(header)
        return cls.create(data=data, meta=meta, store={"links": links})

    @classmethod
    def for_page(
        cls,
        url: str,
        page: int,
        page_count: int,
        page_size: int,
        data: Any = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> "Cursor":
        """Build a page-based cursor whose targets add a ``page`` parameter to ``url``."""
        page_meta = dict(meta or {})
        page_meta.update({"page": page, "page_count": page_count, "page_size": page_size})
        return cls.create(data=data, meta=page_meta, store={"url": url})

    def update_store(self, **updates: Any) -> "Cursor":
        """Return a cursor with store-level bookkeeping merged in."""
        store = dict(self.store)
        store.update(updates)
        return Cursor(actions=self.actions, data=self.data, meta=self.meta, store=store)

    def merge_meta(self, **updates: Any) -> "Cursor":
        meta = dict(self.meta)
        meta.update(updates)
        return Cursor.create(data=self.data, meta=meta, store=self.store)

    def wrap_data(self, data: Any) -> "Cursor":
        return Cursor(actions=self.actions, data=data, meta=self.meta, store=self.store)

    def unwrap_data(self) -> Tuple[Any, "Cursor"]:
        """Split off the page payload.

        Returns:
            Tuple of (page data, successor cursor without data)
        """
        return self.data, Cursor(actions=self.actions, meta=self.meta, store=self.store)

    def resolve(self, action: str) -> RequestDescription:
        """Turn a navigation verb into the request that fetches its page.

        Raises:
            CursorActionError: If ``action`` is not advertised by this cursor
        """
        if action not in self.actions:
            raise CursorActionError(action, self.actions)

        target = _resolvable(self.meta, self.store)[action]
        if isinstance(target, int):
            req = to_request(self.store["url"])
            params = dict(req.params)
            params["page"] = target
            return pipe(req, with_params(params))
        return to_request(target)

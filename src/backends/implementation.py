"""Connector contract every provider backend satisfies.

Implementation declares the required operations as abstract methods. The
optional operations (editorial workflow, native pagination, deploy previews,
media display URLs) exist on every connector but only do something when the
class lists the matching Capability in ``capabilities``; callers check
``supports()`` before invoking them. Calling an unsupported optional
operation raises UnsupportedCapabilityError.

All operations that talk to the provider are coroutines.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from src.backend_client.cursor import Cursor
from src.backend_client.errors import UnsupportedCapabilityError

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


class Capability(str, Enum):
    """Optional feature groups a connector may implement."""
    EDITORIAL_WORKFLOW = 'editorial_workflow'
    CURSOR_PAGINATION = 'cursor_pagination'
    DEPLOY_PREVIEW = 'deploy_preview'
    MEDIA_DISPLAY_URL = 'media_display_url'


class Implementation(ABC):
    """Abstract provider connector.

    Subclasses set ``name`` and ``capabilities`` and receive the published
    configuration snapshot on construction. Constructing a connector must not
    perform network calls.
    """

    name: str = "implementation"
    capabilities: FrozenSet[Capability] = frozenset()

    def __init__(self, config: Mapping[str, Any]):
        self.config = config
        self.backend_config: Mapping[str, Any] = config.get('backend') or {}

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def _unsupported(self, operation: str) -> UnsupportedCapabilityError:
        return UnsupportedCapabilityError(self.name, operation)

    # Authentication

    @abstractmethod
    def auth_component(self) -> str:
        """Name of the login component the presentation layer should render."""

    @abstractmethod
    async def authenticate(self, credentials: Any) -> User:
        """Validate ``credentials`` with the provider and return the user."""

    async def restore_user(self, user: User) -> User:
        """Re-authenticate a previously stored user."""
        return await self.authenticate({'token': user.token})

    @abstractmethod
    async def logout(self) -> None:
        """Forget the current user's token."""

    @abstractmethod
    async def get_token(self) -> Optional[str]:
        """Token of the authenticated user, None when logged out."""

    # Entries

    @abstractmethod
    async def get_entry(self, collection: Mapping[str, Any], slug: str, path: str) -> ImplementationEntry:
        """Read one published entry."""

    @abstractmethod
    async def entries_by_folder(self, collection: Mapping[str, Any], extension: str) -> EntryList:
        """List the first page of entries in a folder collection."""

    @abstractmethod
    async def entries_by_files(self, collection: Mapping[str, Any], extension: str) -> EntryList:
        """Read the entries of a files collection."""

    # Media

    @abstractmethod
    async def get_media(self, folder: Optional[str] = None) -> List[MediaFile]:
        """List media files in ``folder`` (defaults to the configured media folder)."""

    @abstractmethod
    async def get_media_file(self, path: str) -> MediaFile:
        """Metadata of one media file."""

    # Persistence

    @abstractmethod
    async def persist_entry(self, entry: Entry, assets: List[AssetProxy], options: PersistOptions) -> None:
        """Store an entry and its assets atomically."""

    @abstractmethod
    async def persist_media(self, asset: AssetProxy, options: PersistOptions) -> MediaFile:
        """Store one media file."""

    @abstractmethod
    async def delete_file(self, path: str, commit_message: str) -> None:
        """Delete a published file."""

    # Editorial workflow (Capability.EDITORIAL_WORKFLOW)

    async def unpublished_entry(self, collection: str, slug: str) -> UnpublishedEntry:
        raise self._unsupported('unpublished_entry')

    async def unpublished_entries(self) -> List[UnpublishedEntry]:
        raise self._unsupported('unpublished_entries')

    async def update_unpublished_entry_status(self, collection: str, slug: str, new_status: str) -> None:
        raise self._unsupported('update_unpublished_entry_status')

    async def publish_unpublished_entry(self, collection: str, slug: str) -> None:
        raise self._unsupported('publish_unpublished_entry')

    async def delete_unpublished_entry(self, collection: str, slug: str) -> None:
        raise self._unsupported('delete_unpublished_entry')

    # Native pagination (Capability.CURSOR_PAGINATION)

    async def all_entries_by_folder(self, collection: Mapping[str, Any], extension: str) -> EntryList:
        raise self._unsupported('all_entries_by_folder')

    async def traverse_cursor(self, cursor: Cursor, action: str) -> Tuple[EntryList, Cursor]:
        raise self._unsupported('traverse_cursor')

    # Preview infrastructure

    async def get_deploy_preview(self, collection_name: str, slug: str) -> Optional[DeployPreview]:
        raise self._unsupported('get_deploy_preview')

    async def get_media_display_url(self, display_url: DisplayURL) -> str:
        raise self._unsupported('get_media_display_url')


def credential_token(credentials: Any) -> Optional[str]:
    """Extract a token from a mapping, a Credentials tuple or a bare string."""
    if credentials is None:
        return None
    if isinstance(credentials, str):
        return credentials
    if isinstance(credentials, Mapping):
        return credentials.get('token')
    return getattr(credentials, 'token', None)


def filter_by_extension(paths: List[Dict[str, Any]], extension: str, key: str = 'path') -> List[Dict[str, Any]]:
    """Keep the items whose ``key`` ends with ``.extension``."""
    suffix = f".{extension.lstrip('.')}"
    return [item for item in paths if str(item.get(key, '')).endswith(suffix)]

"""Data models shared by backend connectors.

All models use dataclasses. Content artifacts are owned by whichever
operation currently holds them; connectors copy what they keep.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from src.backend_client.cursor import Cursor


class WorkflowStatus(str, Enum):
    """Pre-publication states of an entry under editorial workflow.

    Publishing is not a status: publish_unpublished_entry() removes the
    workflow record and makes the content part of the published tree.
    """
    DRAFT = 'draft'
    PENDING_REVIEW = 'pending_review'
    PENDING_PUBLISH = 'pending_publish'


@dataclass
class User:
    """Authenticated backend user."""
    backend_name: str
    token: str
    login: str = ""
    name: str = ""
    avatar_url: Optional[str] = None


@dataclass
class Entry:
    """One unit of content about to be persisted.

    Attributes:
        path: Repository path of the entry file
        slug: Entry slug within its collection
        raw: Serialized file content
    """
    path: str
    slug: str
    raw: str


@dataclass
class AssetProxy:
    """Pending media upload.

    Either ``file_obj`` holds the binary payload or ``to_base64`` lazily
    produces its base64 encoding.
    """
    path: str
    file_obj: Optional[bytes] = None
    to_base64: Optional[Callable[[], Awaitable[str]]] = None

    async def base64(self) -> str:
        if self.to_base64 is not None:
            return await self.to_base64()
        if self.file_obj is None:
            raise ValueError(f"Asset {self.path} has no content")
        return base64.b64encode(self.file_obj).decode('ascii')

    async def content(self) -> bytes:
        if self.file_obj is not None:
            return self.file_obj
        return base64.b64decode(await self.base64())


@dataclass
class MediaFile:
    """Metadata of a persisted asset."""
    id: str
    name: str
    path: str
    size: Optional[int] = None
    url: Optional[str] = None
    display_url: Optional[str] = None
    draft: bool = False


@dataclass
class ImplementationEntry:
    """Entry as read from a backend.

    Attributes:
        data: Raw file content
        file: Descriptor with at least ``path``, optionally ``id`` and ``label``
        slug: Slug when the backend knows it
    """
    data: str
    file: Dict[str, Any]
    slug: Optional[str] = None

    @property
    def path(self) -> str:
        return self.file['path']


class EntryList(list):
    """List of ImplementationEntry carrying the cursor of the listing."""

    def __init__(self, entries=(), cursor: Optional[Cursor] = None):
        super().__init__(entries)
        self.cursor = cursor or Cursor.create()


@dataclass
class PersistOptions:
    """Options for persist_entry / persist_media.

    Attributes:
        commit_message: Message of the commit that stores the change
        new_entry: True when the entry does not exist yet
        use_workflow: Store as an unpublished entry under editorial workflow
        unpublished: The entry already has a workflow record
        status: Workflow status for new unpublished entries
        collection_name: Collection the entry belongs to
        parsed_data: Title/description used by some providers for PR metadata
    """
    commit_message: str
    new_entry: bool = False
    use_workflow: bool = False
    unpublished: bool = False
    status: Optional[str] = None
    collection_name: Optional[str] = None
    parsed_data: Optional[Dict[str, str]] = None


@dataclass
class DisplayURL:
    id: str
    path: str


@dataclass
class DeployPreview:
    url: str
    status: str


@dataclass
class UnpublishedEntry:
    """Workflow record of an entry that is not published yet."""
    collection: str
    slug: str
    status: WorkflowStatus
    entry: ImplementationEntry
    assets: List[MediaFile] = field(default_factory=list)

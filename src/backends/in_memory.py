"""In-memory connector registered as ``test-repo``.

Keeps published files and editorial workflow records in process memory. It
implements every optional capability and is used for local development,
demos and tests of code built on top of the connector contract.

Writes build a new file table and swap it in only once every asset has been
read, so a failing asset leaves the repository unchanged.
"""

import base64
import logging
import math
import posixpath
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from src.backend_client.cursor import Cursor
from src.backend_client.errors import APIError, EditorialWorkflowError, InvalidCredentialsError
from src.backend_client.request_builder import RequestDescription

from .implementation import Capability, Implementation, credential_token
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
    WorkflowStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
URL_SCHEME = 'memory://'

FileContent = Union[str, bytes]


class InMemoryBackend(Implementation):
    """Connector storing the repository in a dict of path -> content."""

    name = 'test-repo'
    capabilities = frozenset(Capability)

    def __init__(self, config: Mapping[str, Any], files: Optional[Mapping[str, FileContent]] = None):
        super().__init__(config)
        self._files: Dict[str, FileContent] = dict(files or {})
        self._unpublished: Dict[Tuple[str, str], UnpublishedEntry] = {}
        self._pending_assets: Dict[Tuple[str, str], Dict[str, bytes]] = {}
        self._token: Optional[str] = None
        self.page_size = int(self.backend_config.get('page_size', DEFAULT_PAGE_SIZE))

    @property
    def files(self) -> Dict[str, FileContent]:
        return dict(self._files)

    # Authentication

    def auth_component(self) -> str:
        return 'TestAuthenticationPage'

    async def authenticate(self, credentials: Any) -> User:
        token = credential_token(credentials)
        if token is not None and not token.strip():
            raise InvalidCredentialsError(self.name, "empty token")
        self._token = token or 'test-token'
        return User(backend_name=self.name, token=self._token, login='test', name='Test User')

    async def logout(self) -> None:
        self._token = None

    async def get_token(self) -> Optional[str]:
        return self._token

    # Entries

    def _read(self, path: str) -> FileContent:
        try:
            return self._files[path]
        except KeyError:
            raise APIError(f"File not found: {path}", 404, self.name)

    def _entry(self, path: str, slug: Optional[str] = None, label: Optional[str] = None) -> ImplementationEntry:
        content = self._read(path)
        data = content.decode('utf-8') if isinstance(content, bytes) else content
        file = {'path': path, 'id': path}
        if label:
            file['label'] = label
        return ImplementationEntry(data=data, file=file, slug=slug)

    def _folder_paths(self, folder: str, extension: str) -> List[str]:
        folder = folder.strip('/')
        suffix = f".{extension.lstrip('.')}"
        return sorted(
            path for path in self._files
            if posixpath.dirname(path) == folder and path.endswith(suffix)
        )

    def _folder_page(self, folder: str, extension: str, page: int) -> EntryList:
        paths = self._folder_paths(folder, extension)
        page_count = max(1, math.ceil(len(paths) / self.page_size))
        page = min(max(page, 1), page_count)
        start = (page - 1) * self.page_size
        entries = [self._entry(path) for path in paths[start:start + self.page_size]]

        listing = RequestDescription(
            url=f"{URL_SCHEME}{folder.strip('/')}",
            params={'extension': extension},
        )
        cursor = Cursor.for_page(
            listing, page, page_count, self.page_size, meta={'count': len(paths)}
        )
        return EntryList(entries, cursor)

    async def get_entry(self, collection: Mapping[str, Any], slug: str, path: str) -> ImplementationEntry:
        return self._entry(path, slug=slug)

    async def entries_by_folder(self, collection: Mapping[str, Any], extension: str) -> EntryList:
        return self._folder_page(collection['folder'], extension, 1)

    async def all_entries_by_folder(self, collection: Mapping[str, Any], extension: str) -> EntryList:
        paths = self._folder_paths(collection['folder'], extension)
        return EntryList([self._entry(path) for path in paths])

    async def traverse_cursor(self, cursor: Cursor, action: str) -> Tuple[EntryList, Cursor]:
        req = cursor.resolve(action)
        folder = req.url[len(URL_SCHEME):]
        entries = self._folder_page(folder, req.params['extension'], int(req.params['page']))
        return entries, entries.cursor

    async def entries_by_files(self, collection: Mapping[str, Any], extension: str) -> EntryList:
        entries = []
        for file in collection.get('files') or []:
            path = file['file']
            if path not in self._files:
                logger.warning(f"Skipping missing file {path} in collection {collection.get('name')}")
                continue
            entries.append(self._entry(path, slug=file.get('name'), label=file.get('label')))
        return EntryList(entries)

    # Media

    def _media_file(self, path: str, draft: bool = False) -> MediaFile:
        content = self._read(path)
        return MediaFile(
            id=path,
            name=posixpath.basename(path),
            path=path,
            size=len(content),
            url=path,
            display_url=path,
            draft=draft,
        )

    async def get_media(self, folder: Optional[str] = None) -> List[MediaFile]:
        folder = (folder if folder is not None else self.config.get('media_folder', '')).strip('/')
        return [
            self._media_file(path) for path in sorted(self._files)
            if posixpath.dirname(path) == folder
        ]

    async def get_media_file(self, path: str) -> MediaFile:
        return self._media_file(path)

    async def get_media_display_url(self, display_url: DisplayURL) -> str:
        content = self._read(display_url.path)
        raw = content.encode('utf-8') if isinstance(content, str) else content
        return f"data:application/octet-stream;base64,{base64.b64encode(raw).decode('ascii')}"

    # Persistence

    async def _read_assets(self, assets: List[AssetProxy]) -> Dict[str, bytes]:
        return {asset.path: await asset.content() for asset in assets}

    async def persist_entry(self, entry: Entry, assets: List[AssetProxy], options: PersistOptions) -> None:
        contents = await self._read_assets(assets)

        if options.use_workflow:
            self._persist_unpublished(entry, contents, options)
            return

        files = dict(self._files)
        files[entry.path] = entry.raw
        files.update(contents)
        self._files = files
        logger.info(f"Persisted {entry.path} with {len(contents)} assets: {options.commit_message}")

    def _persist_unpublished(self, entry: Entry, contents: Dict[str, bytes], options: PersistOptions) -> None:
        if not options.collection_name:
            raise ValueError("collection_name is required for editorial workflow entries")

        key = (options.collection_name, entry.slug)
        existing = self._unpublished.get(key)
        status = existing.status if existing else WorkflowStatus(options.status or WorkflowStatus.DRAFT)
        pending = dict(self._pending_assets.get(key, {}))
        pending.update(contents)

        assets = [
            MediaFile(id=path, name=posixpath.basename(path), path=path, size=len(data), draft=True)
            for path, data in sorted(pending.items())
        ]
        self._pending_assets[key] = pending
        self._unpublished[key] = UnpublishedEntry(
            collection=options.collection_name,
            slug=entry.slug,
            status=status,
            entry=ImplementationEntry(data=entry.raw, file={'path': entry.path, 'id': entry.path}, slug=entry.slug),
            assets=assets,
        )

    async def persist_media(self, asset: AssetProxy, options: PersistOptions) -> MediaFile:
        content = await asset.content()
        files = dict(self._files)
        files[asset.path] = content
        self._files = files
        return self._media_file(asset.path)

    async def delete_file(self, path: str, commit_message: str) -> None:
        self._read(path)
        files = dict(self._files)
        del files[path]
        self._files = files
        logger.info(f"Deleted {path}: {commit_message}")

    # Editorial workflow

    def _record(self, collection: str, slug: str) -> UnpublishedEntry:
        record = self._unpublished.get((collection, slug))
        if record is None:
            raise EditorialWorkflowError("content is not under editorial workflow", True)
        return record

    async def unpublished_entry(self, collection: str, slug: str) -> UnpublishedEntry:
        return self._record(collection, slug)

    async def unpublished_entries(self) -> List[UnpublishedEntry]:
        return list(self._unpublished.values())

    async def update_unpublished_entry_status(self, collection: str, slug: str, new_status: str) -> None:
        record = self._record(collection, slug)
        try:
            status = WorkflowStatus(new_status)
        except ValueError:
            raise EditorialWorkflowError(f"Invalid workflow status: {new_status}", False)
        self._unpublished[(collection, slug)] = replace(record, status=status)

    async def publish_unpublished_entry(self, collection: str, slug: str) -> None:
        record = self._record(collection, slug)
        key = (collection, slug)
        files = dict(self._files)
        files[record.entry.path] = record.entry.data
        files.update(self._pending_assets.get(key, {}))
        self._files = files
        del self._unpublished[key]
        self._pending_assets.pop(key, None)

    async def delete_unpublished_entry(self, collection: str, slug: str) -> None:
        self._record(collection, slug)
        del self._unpublished[(collection, slug)]
        self._pending_assets.pop((collection, slug), None)

    async def get_deploy_preview(self, collection_name: str, slug: str) -> Optional[DeployPreview]:
        site_url = self.config.get('site_url')
        if not site_url:
            return None
        return DeployPreview(url=f"{site_url.rstrip('/')}/{collection_name}/{slug}", status='READY')

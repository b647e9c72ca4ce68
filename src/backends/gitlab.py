"""GitLab connector registered as ``gitlab``.

Talks to the GitLab REST API v4 through the request builder. Repository
tree listings are paginated with ``Link`` headers and exposed as cursors.
Entries and their assets are written with a single multi-action commit, so
either all files land or none do.

Backend configuration:
    backend:
      name: gitlab
      repo: owner/site          # project path or numeric id
      branch: main              # defaults to master
      api_root: https://gitlab.example.com/api/v4
"""

import asyncio
import json
import logging
import posixpath
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

from src.backend_client.auth import sanitize_credentials
from src.backend_client.cursor import Cursor
from src.backend_client.errors import APIError, InvalidCredentialsError
from src.backend_client.request_builder import (
    Request,
    perform_request,
    pipe,
    with_body,
    with_default_headers,
    with_headers,
    with_method,
    with_params,
    with_root,
    with_timestamp,
)
from src.cms_config.errors import ConfigValidationError

from .implementation import Capability, Implementation, credential_token, filter_by_extension
from .models import (
    AssetProxy,
    Entry,
    EntryList,
    ImplementationEntry,
    MediaFile,
    PersistOptions,
    User,
)

logger = logging.getLogger(__name__)

DEFAULT_API_ROOT = 'https://gitlab.com/api/v4'
DEFAULT_BRANCH = 'master'
PAGE_SIZE = 100


def _int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    value = headers.get(name)
    try:
        return int(value) if value not in (None, '') else None
    except (TypeError, ValueError):
        return None


class GitLabBackend(Implementation):
    """Connector for repositories hosted on GitLab."""

    name = 'gitlab'
    display_name = 'GitLab'
    capabilities = frozenset({Capability.CURSOR_PAGINATION})

    def __init__(self, config: Mapping[str, Any]):
        super().__init__(config)
        repo = self.backend_config.get('repo')
        if not repo:
            raise ConfigValidationError(
                "Field 'repo' is required for the gitlab backend",
                'backend.repo'
            )
        self.repo = str(repo)
        self.branch = self.backend_config.get('branch', DEFAULT_BRANCH)
        self.api_root = self.backend_config.get('api_root', DEFAULT_API_ROOT)
        self._token: Optional[str] = None

    @property
    def project_url(self) -> str:
        return f"projects/{quote(self.repo, safe='')}"

    def _file_url(self, path: str, raw: bool = False) -> str:
        url = f"{self.project_url}/repository/files/{quote(path, safe='')}"
        return f"{url}/raw" if raw else url

    def _build_request(self, req: Request):
        headers = {'Accept': 'application/json'}
        if self._token:
            headers['Authorization'] = f"Bearer {self._token}"
        return pipe(
            req,
            with_root(self.api_root),
            with_default_headers(headers),
            with_timestamp,
        )

    async def _request(self, req: Request):
        """Send ``req`` and raise APIError for non-2xx responses."""
        req = self._build_request(req)
        response = await perform_request(req)
        if not response.ok:
            message = response.reason or 'Request failed'
            try:
                payload = response.json()
                if isinstance(payload, dict):
                    message = str(payload.get('message') or payload.get('error') or message)
            except ValueError:
                pass
            logger.error(
                f"GitLab request failed: {req.method} {sanitize_credentials(req.url)} "
                f"({response.status_code}) {sanitize_credentials(message)}"
            )
            raise APIError(message, response.status_code, self.display_name)
        return response

    async def _request_json(self, req: Request) -> Any:
        response = await self._request(req)
        try:
            return response.json()
        except ValueError:
            raise APIError("Response body is not valid JSON", response.status_code, self.display_name)

    # Authentication

    def auth_component(self) -> str:
        return 'GitLabAuthenticationPage'

    async def authenticate(self, credentials: Any) -> User:
        token = credential_token(credentials)
        if not token:
            raise InvalidCredentialsError(self.display_name, "a personal access token is required")
        api_root = getattr(credentials, 'api_root', None)
        if api_root:
            self.api_root = api_root

        self._token = token
        try:
            user = await self._request_json('user')
        except APIError as e:
            self._token = None
            if e.status == 401:
                raise InvalidCredentialsError(self.display_name, e.message) from e
            raise
        return User(
            backend_name=self.name,
            token=token,
            login=user.get('username', ''),
            name=user.get('name', ''),
            avatar_url=user.get('avatar_url'),
        )

    async def logout(self) -> None:
        self._token = None

    async def get_token(self) -> Optional[str]:
        return self._token

    # Reading

    async def _read_file(self, path: str) -> str:
        response = await self._request(
            pipe(self._file_url(path, raw=True), with_params({'ref': self.branch}))
        )
        return response.text

    async def _file_exists(self, path: str) -> bool:
        try:
            await self._request(
                pipe(self._file_url(path), with_method('HEAD'), with_params({'ref': self.branch}))
            )
        except APIError as e:
            if e.status == 404:
                return False
            raise
        return True

    def _tree_request(self, path: str):
        return pipe(
            f"{self.project_url}/repository/tree",
            with_params({'path': path.strip('/'), 'ref': self.branch, 'per_page': PAGE_SIZE}),
        )

    async def _tree_page(self, req: Request) -> Tuple[List[Dict[str, Any]], Cursor]:
        response = await self._request(req)
        try:
            items = response.json()
        except ValueError:
            raise APIError("Repository tree is not valid JSON", response.status_code, self.display_name)
        if not isinstance(items, list):
            raise APIError("Repository tree is not a list", response.status_code, self.display_name)

        headers = response.headers
        meta = {
            'page': _int_header(headers, 'X-Page'),
            'page_count': _int_header(headers, 'X-Total-Pages'),
            'page_size': _int_header(headers, 'X-Per-Page'),
            'count': _int_header(headers, 'X-Total'),
        }
        cursor = Cursor.from_link_header(
            headers.get('Link'),
            meta={k: v for k, v in meta.items() if v is not None},
        )
        blobs = [item for item in items if item.get('type') == 'blob']
        return blobs, cursor

    async def _read_entries(self, files: List[Dict[str, Any]]) -> List[ImplementationEntry]:
        contents = await asyncio.gather(*(self._read_file(f['path']) for f in files))
        return [
            ImplementationEntry(data=data, file={'path': f['path'], 'id': f.get('id')})
            for f, data in zip(files, contents)
        ]

    async def get_entry(self, collection: Mapping[str, Any], slug: str, path: str) -> ImplementationEntry:
        data = await self._read_file(path)
        return ImplementationEntry(data=data, file={'path': path}, slug=slug)

    async def entries_by_folder(self, collection: Mapping[str, Any], extension: str) -> EntryList:
        files, cursor = await self._tree_page(self._tree_request(collection['folder']))
        entries = await self._read_entries(filter_by_extension(files, extension))
        return EntryList(entries, cursor.update_store(extension=extension))

    async def traverse_cursor(self, cursor: Cursor, action: str) -> Tuple[EntryList, Cursor]:
        req = cursor.resolve(action)
        extension = cursor.store.get('extension', 'md')
        files, next_cursor = await self._tree_page(req)
        next_cursor = next_cursor.update_store(extension=extension)
        entries = await self._read_entries(filter_by_extension(files, extension))
        return EntryList(entries, next_cursor), next_cursor

    async def _all_blobs(self, folder: str) -> List[Dict[str, Any]]:
        files, cursor = await self._tree_page(self._tree_request(folder))
        while 'next' in cursor.actions:
            page, cursor = await self._tree_page(cursor.resolve('next'))
            files.extend(page)
        return files

    async def all_entries_by_folder(self, collection: Mapping[str, Any], extension: str) -> EntryList:
        files = await self._all_blobs(collection['folder'])
        return EntryList(await self._read_entries(filter_by_extension(files, extension)))

    async def entries_by_files(self, collection: Mapping[str, Any], extension: str) -> EntryList:
        entries = []
        for file in collection.get('files') or []:
            path = file['file']
            try:
                data = await self._read_file(path)
            except APIError as e:
                if e.status != 404:
                    raise
                logger.warning(f"Skipping missing file {path} in collection {collection.get('name')}")
                continue
            entries.append(ImplementationEntry(
                data=data,
                file={'path': path, 'label': file.get('label')},
                slug=file.get('name'),
            ))
        return EntryList(entries)

    # Media

    def _raw_url(self, path: str) -> str:
        return f"{self.api_root.rstrip('/')}/{self._file_url(path, raw=True)}?ref={quote(self.branch)}"

    async def get_media(self, folder: Optional[str] = None) -> List[MediaFile]:
        folder = folder if folder is not None else self.config.get('media_folder', '')
        files = await self._all_blobs(folder)
        return [
            MediaFile(
                id=f.get('id', f['path']),
                name=f.get('name') or posixpath.basename(f['path']),
                path=f['path'],
                url=self._raw_url(f['path']),
                display_url=self._raw_url(f['path']),
            )
            for f in files
        ]

    async def get_media_file(self, path: str) -> MediaFile:
        meta = await self._request_json(pipe(self._file_url(path), with_params({'ref': self.branch})))
        return MediaFile(
            id=meta.get('blob_id', path),
            name=meta.get('file_name') or posixpath.basename(path),
            path=meta.get('file_path', path),
            size=meta.get('size'),
            url=self._raw_url(path),
            display_url=self._raw_url(path),
        )

    # Writing

    async def _commit(self, message: str, actions: List[Dict[str, Any]]) -> Dict[str, Any]:
        body = json.dumps({
            'branch': self.branch,
            'commit_message': message,
            'actions': actions,
        })
        return await self._request_json(pipe(
            f"{self.project_url}/repository/commits",
            with_method('POST'),
            with_headers({'Content-Type': 'application/json'}),
            with_body(body),
        ))

    async def _upsert_action(self, path: str, content: str, encoding: str) -> Dict[str, Any]:
        exists = await self._file_exists(path)
        return {
            'action': 'update' if exists else 'create',
            'file_path': path,
            'content': content,
            'encoding': encoding,
        }

    async def persist_entry(self, entry: Entry, assets: List[AssetProxy], options: PersistOptions) -> None:
        if options.use_workflow:
            raise self._unsupported('editorial workflow')

        encoded = [await asset.base64() for asset in assets]
        actions = await asyncio.gather(
            self._upsert_action(entry.path, entry.raw, 'text'),
            *(self._upsert_action(a.path, data, 'base64') for a, data in zip(assets, encoded)),
        )
        await self._commit(options.commit_message, list(actions))
        logger.info(f"Committed {entry.path} with {len(assets)} assets")

    async def persist_media(self, asset: AssetProxy, options: PersistOptions) -> MediaFile:
        content = await asset.base64()
        action = await self._upsert_action(asset.path, content, 'base64')
        await self._commit(options.commit_message, [action])
        return MediaFile(
            id=asset.path,
            name=posixpath.basename(asset.path),
            path=asset.path,
            size=len(await asset.content()),
            url=self._raw_url(asset.path),
            display_url=self._raw_url(asset.path),
        )

    async def delete_file(self, path: str, commit_message: str) -> None:
        await self._commit(commit_message, [{'action': 'delete', 'file_path': path}])

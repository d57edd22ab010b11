# drive.py -- Blob store backed by the Google Drive application data folder
# Copyright (C) 2026 git-remote-drive contributors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# git-remote-drive is dual-licensed under the Apache License, Version 2.0 and
# the GNU General Public License as published by the Free Software Foundation;
# version 2.0 or (at your option) any later version. You can redistribute it
# and/or modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Blob store backed by the Google Drive application data folder.

Drive does not address files by path. Every file and folder has an
opaque id and lists the ids of its parents, so a logical path is
resolved one segment at a time by querying for a child with the right
name. Resolved ids are cached for the lifetime of the store.
"""

__all__ = [
    "APP_DATA_FOLDER",
    "DriveBlobStore",
    "DriveConnector",
    "FOLDER_MIME_TYPE",
    "default_urllib3_manager",
]

import json
import logging
import os
from collections.abc import Iterator
from typing import Any, BinaryIO
from urllib.parse import quote, urlencode

import urllib3
from urllib3.filepost import choose_boundary

from . import __version__
from .credentials import OAuthCredentials
from .errors import BackendError, HTTPUnauthorized, PathExists, PathNotFound
from .query import And, Datum, Expr, Test, Token, ident, string
from .store import FileEntry, split_path

logger = logging.getLogger(__name__)

DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"

APP_DATA_FOLDER = "appDataFolder"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

DEFAULT_TIMEOUT = 20.0
DEFAULT_PAGE_SIZE = 1000

_NOT_TRASHED = Test(ident("trashed"), Token.EQUALS, Datum(Token.FALSE, "false"))


def default_user_agent_string() -> str:
    """Return the default user agent string."""
    return "git-remote-drive/{}".format(".".join([str(x) for x in __version__]))


def default_urllib3_manager(
    timeout: float | None = None,
    pool_manager_cls: type | None = None,
    proxy_manager_cls: type | None = None,
) -> urllib3.PoolManager:
    """Return urllib3 connection pool manager.

    Honour proxy configuration from the https_proxy, http_proxy and
    all_proxy environment variables.

    Args:
      timeout: Timeout for HTTP requests in seconds
      pool_manager_cls: Pool manager class to use
      proxy_manager_cls: Proxy manager class to use
    """
    proxy_server = None
    for proxyname in ("https_proxy", "http_proxy", "all_proxy"):
        proxy_server = os.environ.get(proxyname)
        if proxy_server:
            break

    headers = {"User-agent": default_user_agent_string()}
    kwargs: dict[str, Any] = {"cert_reqs": "CERT_REQUIRED"}
    if timeout is not None:
        kwargs["timeout"] = timeout

    if proxy_server:
        if proxy_manager_cls is None:
            proxy_manager_cls = urllib3.ProxyManager
        return proxy_manager_cls(proxy_server, headers=headers, **kwargs)
    if pool_manager_cls is None:
        pool_manager_cls = urllib3.PoolManager
    return pool_manager_cls(headers=headers, **kwargs)


class DriveConnector:
    """A thin client for the Drive v3 files API."""

    def __init__(
        self,
        credentials: OAuthCredentials,
        pool_manager: urllib3.PoolManager | None = None,
        timeout: float | None = DEFAULT_TIMEOUT,
        spaces: str = APP_DATA_FOLDER,
    ) -> None:
        """Initialize a DriveConnector.

        Args:
          credentials: OAuth credentials to authenticate with
          pool_manager: urllib3 pool manager (default_urllib3_manager() if
            not given)
          timeout: Timeout for HTTP requests in seconds
          spaces: Drive space to list files in
        """
        self.credentials = credentials
        if pool_manager is None:
            pool_manager = default_urllib3_manager(timeout)
        self.pool_manager = pool_manager
        self.timeout = timeout
        self.spaces = spaces

    def _request(
        self,
        method: str,
        url: str,
        *,
        fields: dict[str, Any] | None = None,
        body: bytes | None = None,
        headers: dict[str, str] | None = None,
        preload_content: bool = True,
    ) -> Any:
        """Perform an authenticated request, refreshing the token once on 401.

        Raises:
          HTTPUnauthorized: if the request is still rejected after a refresh
          PathNotFound: on 404
          BackendError: on any other transport error or non-2xx status
        """
        refreshed = False
        while True:
            req_headers = dict(headers or {})
            req_headers.update(self.credentials.authorization_header())
            request_kwargs: dict[str, Any] = {
                "headers": req_headers,
                "preload_content": preload_content,
                "timeout": self.timeout,
            }
            if fields is not None:
                request_kwargs["fields"] = fields
            if body is not None:
                request_kwargs["body"] = body
            try:
                resp = self.pool_manager.request(method, url, **request_kwargs)
            except urllib3.exceptions.HTTPError as e:
                raise BackendError(f"{method} {url}: {e}") from e
            if resp.status == 401 and not refreshed:
                logger.debug("access token rejected, refreshing")
                resp.release_conn()
                self.credentials.refresh(self.pool_manager, self.timeout)
                refreshed = True
                continue
            break

        if resp.status == 401:
            raise HTTPUnauthorized(url)
        if resp.status == 404:
            raise PathNotFound(url, f"{method} {url}: not found")
        if resp.status < 200 or resp.status >= 300:
            raise BackendError(f"{method} request to {url} failed with status {resp.status}")
        return resp

    def list_page(
        self,
        q: str,
        fields: str = "nextPageToken, files(id, name, mimeType)",
        page_size: int = DEFAULT_PAGE_SIZE,
        page_token: str | None = None,
    ) -> dict[str, Any]:
        """Fetch one page of files.list results.

        Returns: The decoded response, with "files" and maybe "nextPageToken"
        """
        params = {
            "q": q,
            "spaces": self.spaces,
            "pageSize": str(page_size),
            "fields": fields,
        }
        if page_token is not None:
            params["pageToken"] = page_token
        resp = self._request("GET", f"{DRIVE_API_URL}/files", fields=params)
        return json.loads(resp.data)

    def iter_files(
        self, q: str, page_size: int = DEFAULT_PAGE_SIZE
    ) -> Iterator[dict[str, Any]]:
        """Iterate over every file matching a query, following pagination."""
        page_token = None
        while True:
            page = self.list_page(q, page_size=page_size, page_token=page_token)
            yield from page.get("files", [])
            page_token = page.get("nextPageToken")
            if not page_token:
                return

    def create_folder(self, name: str, parent_id: str) -> str:
        """Create a folder and return its id."""
        metadata = {"name": name, "parents": [parent_id], "mimeType": FOLDER_MIME_TYPE}
        resp = self._request(
            "POST",
            f"{DRIVE_API_URL}/files?{urlencode({'fields': 'id'})}",
            body=json.dumps(metadata).encode("utf-8"),
            headers={"Content-Type": "application/json; charset=UTF-8"},
        )
        return json.loads(resp.data)["id"]

    def create_file(self, name: str, parent_id: str, contents: bytes) -> str:
        """Upload a new file with a multipart/related request and return its id."""
        metadata = {"name": name, "parents": [parent_id]}
        boundary = choose_boundary()
        body = b"".join(
            [
                f"--{boundary}\r\n".encode("ascii"),
                b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
                json.dumps(metadata).encode("utf-8"),
                f"\r\n--{boundary}\r\n".encode("ascii"),
                b"Content-Type: application/octet-stream\r\n\r\n",
                contents,
                f"\r\n--{boundary}--\r\n".encode("ascii"),
            ]
        )
        resp = self._request(
            "POST",
            f"{DRIVE_UPLOAD_URL}/files?{urlencode({'uploadType': 'multipart', 'fields': 'id'})}",
            body=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
        return json.loads(resp.data)["id"]

    def download(self, file_id: str, sink: BinaryIO) -> None:
        """Stream the contents of a file into sink."""
        resp = self._request(
            "GET",
            f"{DRIVE_API_URL}/files/{quote(file_id, safe='')}",
            fields={"alt": "media"},
            preload_content=False,
        )
        try:
            for chunk in resp.stream(65536):
                sink.write(chunk)
        except urllib3.exceptions.HTTPError as e:
            raise BackendError(f"downloading {file_id}: {e}") from e
        finally:
            resp.release_conn()

    def update_file(self, file_id: str, contents: bytes) -> None:
        """Replace the contents of a file."""
        self._request(
            "PATCH",
            f"{DRIVE_UPLOAD_URL}/files/{quote(file_id, safe='')}?uploadType=media",
            body=contents,
            headers={"Content-Type": "application/octet-stream"},
        )

    def delete_file(self, file_id: str) -> None:
        """Permanently delete a file, bypassing the trash."""
        self._request("DELETE", f"{DRIVE_API_URL}/files/{quote(file_id, safe='')}")


class DriveBlobStore:
    """Blob store whose paths are resolved to Drive file ids."""

    def __init__(
        self,
        connector: DriveConnector,
        root_id: str = APP_DATA_FOLDER,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """Initialize a DriveBlobStore.

        Args:
          connector: DriveConnector (or compatible) to issue API calls with
          root_id: Id of the folder that "" resolves to
          page_size: Page size for directory listings
        """
        self.connector = connector
        self.root_id = root_id
        self.page_size = page_size
        self._ids: dict[tuple[str, str], str] = {}

    def __repr__(self) -> str:
        """Return string representation of DriveBlobStore."""
        return f"{type(self).__name__}({self.root_id!r})"

    def get_id(self, name: str, parent_id: str) -> str:
        """Return the id of the child of a folder with the given name.

        Raises:
          PathNotFound: if the folder has no such child
        """
        key = (name, parent_id)
        try:
            return self._ids[key]
        except KeyError:
            pass
        q = Expr(
            (
                And(
                    (
                        Test(ident("name"), Token.EQUALS, string(name)),
                        Test(string(parent_id), Token.IN, ident("parents")),
                        _NOT_TRASHED,
                    )
                ),
            )
        )
        page = self.connector.list_page(str(q), fields="files(id)", page_size=2)
        files = page.get("files", [])
        if not files:
            raise PathNotFound(name)
        if len(files) > 1:
            logger.warning('more than one "%s" in folder %s', name, parent_id)
        file_id = files[0]["id"]
        self._ids[key] = file_id
        return file_id

    def resolve(self, path: str) -> str:
        """Return the file id of a logical path.

        Raises:
          PathNotFound: if any segment of the path does not exist
        """
        file_id = self.root_id
        for segment in split_path(path):
            try:
                file_id = self.get_id(segment, file_id)
            except PathNotFound as exc:
                raise PathNotFound(path) from exc
        return file_id

    def mkdir_p(self, path: str) -> str:
        """Create a folder and any missing parents; return the folder's id."""
        folder_id = self.root_id
        for segment in split_path(path):
            try:
                folder_id = self.get_id(segment, folder_id)
            except PathNotFound:
                parent_id = folder_id
                folder_id = self.connector.create_folder(segment, parent_id)
                logger.debug("created folder %s in %s: %s", segment, parent_id, folder_id)
                self._ids[(segment, parent_id)] = folder_id
        return folder_id

    def _split(self, path: str) -> tuple[str, str]:
        segments = split_path(path)
        if not segments:
            raise PathExists(path)
        return "/".join(segments[:-1]), segments[-1]

    def create(self, path: str, contents: BinaryIO) -> None:
        """Upload a new file, creating missing parent folders."""
        parent_path, name = self._split(path)
        try:
            parent_id = self.resolve(parent_path)
        except PathNotFound:
            parent_id = self.mkdir_p(parent_path)
        else:
            try:
                self.get_id(name, parent_id)
            except PathNotFound:
                pass
            else:
                raise PathExists(path)
        file_id = self.connector.create_file(name, parent_id, contents.read())
        logger.debug("created %s: %s", path, file_id)
        self._ids[(name, parent_id)] = file_id

    def read(self, path: str, contents: BinaryIO) -> None:
        """Download a file into contents."""
        file_id = self.resolve(path)
        try:
            self.connector.download(file_id, contents)
        except PathNotFound as exc:
            raise PathNotFound(path) from exc

    def update(self, path: str, contents: BinaryIO) -> None:
        """Replace the contents of an existing file."""
        file_id = self.resolve(path)
        try:
            self.connector.update_file(file_id, contents.read())
        except PathNotFound as exc:
            raise PathNotFound(path) from exc

    def delete(self, path: str) -> None:
        """Delete a file and forget its id."""
        parent_path, name = self._split(path)
        parent_id = self.resolve(parent_path)
        try:
            file_id = self.get_id(name, parent_id)
            self.connector.delete_file(file_id)
        except PathNotFound as exc:
            raise PathNotFound(path) from exc
        finally:
            self._ids.pop((name, parent_id), None)

    def listdir(self, path: str) -> list[FileEntry]:
        """List the immediate children of a folder."""
        folder_id = self.resolve(path)
        q = Expr((And((Test(string(folder_id), Token.IN, ident("parents")), _NOT_TRASHED)),))
        entries = []
        for f in self.connector.iter_files(str(q), page_size=self.page_size):
            entries.append(FileEntry(f.get("mimeType") == FOLDER_MIME_TYPE, f["name"]))
            self._ids.setdefault((f["name"], folder_id), f["id"])
        return entries

    def exists(self, path: str) -> bool:
        """Check whether a path resolves to a file or folder."""
        try:
            self.resolve(path)
        except PathNotFound:
            return False
        return True

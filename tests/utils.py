# utils.py -- Test utilities for git-remote-drive
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

"""Utility functions common to git-remote-drive tests."""

import os
import shutil
import subprocess
from io import BytesIO
from typing import Any, BinaryIO

from driveremote.drive import APP_DATA_FOLDER, FOLDER_MIME_TYPE, DriveConnector
from driveremote.errors import PathNotFound
from driveremote.objects import legacy_object, object_sha
from driveremote.query import evaluate, parse
from driveremote.repo import BlobStoreRepo

from . import SkipTest

AUTHOR = b"Dan <dan@example.com> 1524238149 +0100"

# "hi\n" as a blob
HI_BLOB_SHA = "45b983be36b73c0788dc9cbcb76cbb80fc7bb057"


def make_object(type_name: str, content: bytes) -> tuple[str, bytes]:
    """Return the id and loose encoding of an object."""
    header = f"{type_name} {len(content)}\0".encode("ascii")
    return object_sha(header + content), legacy_object(type_name, content)


def tree_content(entries: list[tuple[int, bytes, str]]) -> bytes:
    """Serialize (mode, name, sha) entries as a binary tree."""
    return b"".join(
        b"%o %s\0%s" % (mode, name, bytes.fromhex(sha)) for mode, name, sha in entries
    )


def commit_content(tree: str, parents: list[str] | None = None, message: bytes = b"message\n") -> bytes:
    """Serialize a commit."""
    lines = [b"tree " + tree.encode("ascii")]
    for parent in parents or []:
        lines.append(b"parent " + parent.encode("ascii"))
    lines.append(b"author " + AUTHOR)
    lines.append(b"committer " + AUTHOR)
    return b"\n".join(lines) + b"\n\n" + message


def add_object(repo: BlobStoreRepo, type_name: str, content: bytes) -> str:
    """Store an object in a blob store repository and return its id."""
    sha, raw = make_object(type_name, content)
    path = repo.object_path(sha)
    if not repo.store.exists(path):
        repo.store.create(path, BytesIO(raw))
    return sha


def add_blob(repo: BlobStoreRepo, data: bytes) -> str:
    return add_object(repo, "blob", data)


def add_tree(repo: BlobStoreRepo, entries: list[tuple[int, bytes, str]]) -> str:
    return add_object(repo, "tree", tree_content(entries))


def add_commit(
    repo: BlobStoreRepo, tree: str, parents: list[str] | None = None, message: bytes = b"message\n"
) -> str:
    return add_object(repo, "commit", commit_content(tree, parents, message))


def object_paths(repo: BlobStoreRepo) -> list[str]:
    """Return the store paths of every object file in a repository."""
    result = []
    pending = [repo.object_path("0" * 40).rsplit("/", 2)[0]]
    while pending:
        directory = pending.pop()
        try:
            entries = repo.store.listdir(directory)
        except PathNotFound:
            continue
        for entry in entries:
            path = f"{directory}/{entry.name}"
            if entry.is_folder:
                pending.append(path)
            else:
                result.append(path)
    return sorted(result)


class FakeDriveConnector(DriveConnector):
    """In-memory Drive service that evaluates the queries it is sent."""

    def __init__(self, root_id: str = APP_DATA_FOLDER) -> None:
        self.root_id = root_id
        self.spaces = APP_DATA_FOLDER
        self.files: dict[str, dict[str, Any]] = {}
        self.contents: dict[str, bytes] = {}
        self.queries: list[str] = []
        self._next_id = 1

    def _new_id(self) -> str:
        file_id = str(self._next_id)
        self._next_id += 1
        return file_id

    def add(
        self,
        name: str,
        parent_id: str,
        contents: bytes | None = None,
        file_id: str | None = None,
        trashed: bool = False,
    ) -> str:
        """Add a file (or a folder, if contents is None) to the inventory."""
        if file_id is None:
            file_id = self._new_id()
        self.files[file_id] = {
            "id": file_id,
            "name": name,
            "parents": [parent_id],
            "mimeType": FOLDER_MIME_TYPE if contents is None else "application/octet-stream",
            "trashed": trashed,
        }
        if contents is not None:
            self.contents[file_id] = contents
        return file_id

    def list_page(
        self,
        q: str,
        fields: str = "nextPageToken, files(id, name, mimeType)",
        page_size: int = 1000,
        page_token: str | None = None,
    ) -> dict[str, Any]:
        self.queries.append(q)
        expr = parse(q)
        matches = [f for f in self.files.values() if evaluate(expr, f)]
        start = int(page_token or 0)
        result: dict[str, Any] = {
            "files": [dict(f) for f in matches[start : start + page_size]]
        }
        if start + page_size < len(matches):
            result["nextPageToken"] = str(start + page_size)
        return result

    def create_folder(self, name: str, parent_id: str) -> str:
        return self.add(name, parent_id)

    def create_file(self, name: str, parent_id: str, contents: bytes) -> str:
        return self.add(name, parent_id, contents)

    def download(self, file_id: str, sink: BinaryIO) -> None:
        try:
            sink.write(self.contents[file_id])
        except KeyError as exc:
            raise PathNotFound(file_id) from exc

    def update_file(self, file_id: str, contents: bytes) -> None:
        if file_id not in self.contents:
            raise PathNotFound(file_id)
        self.contents[file_id] = contents

    def delete_file(self, file_id: str) -> None:
        try:
            del self.files[file_id]
        except KeyError as exc:
            raise PathNotFound(file_id) from exc
        self.contents.pop(file_id, None)


def require_git() -> str:
    """Return the path of the git executable, or skip the test."""
    git = shutil.which("git")
    if git is None:
        raise SkipTest("git is not installed")
    return git


def run_git(cwd: str, *args: str) -> bytes:
    """Run git in a work tree with a fixed identity."""
    env = dict(os.environ)
    env.update(
        {
            "GIT_AUTHOR_NAME": "Dan",
            "GIT_AUTHOR_EMAIL": "dan@example.com",
            "GIT_COMMITTER_NAME": "Dan",
            "GIT_COMMITTER_EMAIL": "dan@example.com",
            "GIT_CONFIG_NOSYSTEM": "1",
        }
    )
    env.pop("GIT_DIR", None)
    return subprocess.run(
        ["git", *args], cwd=cwd, env=env, check=True, stdout=subprocess.PIPE
    ).stdout

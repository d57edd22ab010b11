# store.py -- Path-keyed blob stores
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

"""Path-keyed blob stores.

A blob store holds byte strings under logical, slash separated paths.
Paths are keys rather than OS paths: "" and "/" both name the root,
and listings only ever return the immediate children of a directory.
"""

__all__ = [
    "BlobStore",
    "FileEntry",
    "LocalBlobStore",
    "MemoryBlobStore",
    "join_path",
    "split_path",
]

import os
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO, NamedTuple, Protocol

from .errors import BackendError, PathExists, PathNotFound
from .file import FileLocked, GitFile, ensure_dir_exists


class FileEntry(NamedTuple):
    """An immediate child of a directory in a blob store."""

    is_folder: bool
    name: str


def split_path(path: str) -> list[str]:
    """Split a logical path into its segments.

    Empty segments and "." are dropped, so "", "/" and "." all yield [].
    """
    return [segment for segment in path.split("/") if segment not in ("", ".")]


def join_path(*parts: str) -> str:
    """Join logical path fragments into a normalized path without a leading "/"."""
    segments: list[str] = []
    for part in parts:
        segments.extend(split_path(part))
    return "/".join(segments)


class BlobStore(Protocol):
    """Interface shared by every blob store backend."""

    def create(self, path: str, contents: BinaryIO) -> None:
        """Store a new file, creating missing parent directories.

        Raises:
          PathExists: if something is already stored at path
        """
        ...

    def read(self, path: str, contents: BinaryIO) -> None:
        """Copy the bytes stored at path into contents.

        Raises:
          PathNotFound: if nothing is stored at path
        """
        ...

    def update(self, path: str, contents: BinaryIO) -> None:
        """Replace the contents of an existing file.

        Raises:
          PathNotFound: if nothing is stored at path
        """
        ...

    def delete(self, path: str) -> None:
        """Remove a file."""
        ...

    def listdir(self, path: str) -> list[FileEntry]:
        """List the immediate children of a directory.

        Raises:
          PathNotFound: if the directory does not exist
        """
        ...

    def exists(self, path: str) -> bool:
        """Check whether anything is stored at path."""
        ...


@contextmanager
def _translate_os_errors(path: str) -> Iterator[None]:
    try:
        yield
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise PathNotFound(path) from exc
    except FileExistsError as exc:
        raise PathExists(path) from exc
    except FileLocked as exc:
        raise BackendError(f"{path}: locked by {exc.lockfilename}") from exc
    except OSError as exc:
        raise BackendError(f"{path}: {exc}") from exc


class LocalBlobStore:
    """Blob store backed by a directory on the local filesystem."""

    def __init__(self, root: str) -> None:
        """Initialize a LocalBlobStore.

        Args:
          root: Directory that logical paths are resolved against
        """
        self.root = root

    def __repr__(self) -> str:
        """Return string representation of LocalBlobStore."""
        return f"{type(self).__name__}({self.root!r})"

    def _local_path(self, path: str) -> str:
        return os.path.join(self.root, *split_path(path))

    def create(self, path: str, contents: BinaryIO) -> None:
        """Store a new file, creating missing parent directories."""
        local_path = self._local_path(path)
        if os.path.lexists(local_path):
            raise PathExists(path)
        with _translate_os_errors(path):
            ensure_dir_exists(os.path.dirname(local_path))
            with GitFile(local_path, "wb") as f:
                shutil.copyfileobj(contents, f)

    def read(self, path: str, contents: BinaryIO) -> None:
        """Copy the bytes stored at path into contents."""
        local_path = self._local_path(path)
        if os.path.isdir(local_path):
            raise PathNotFound(path, f"{path}: is a directory")
        with _translate_os_errors(path):
            with open(local_path, "rb") as f:
                shutil.copyfileobj(f, contents)

    def update(self, path: str, contents: BinaryIO) -> None:
        """Replace the contents of an existing file atomically."""
        local_path = self._local_path(path)
        if not os.path.isfile(local_path):
            raise PathNotFound(path)
        with _translate_os_errors(path):
            with GitFile(local_path, "wb") as f:
                shutil.copyfileobj(contents, f)

    def delete(self, path: str) -> None:
        """Remove a file."""
        with _translate_os_errors(path):
            os.remove(self._local_path(path))

    def listdir(self, path: str) -> list[FileEntry]:
        """List the immediate children of a directory."""
        with _translate_os_errors(path):
            with os.scandir(self._local_path(path)) as it:
                return [
                    FileEntry(entry.is_dir(), entry.name)
                    for entry in it
                    # in-flight writes
                    if not entry.name.endswith(".lock")
                ]

    def exists(self, path: str) -> bool:
        """Check whether anything is stored at path."""
        return os.path.exists(self._local_path(path))


class MemoryBlobStore:
    """Blob store that keeps everything in a dictionary.

    Directories exist implicitly for as long as they have a descendant.
    """

    def __init__(self, files: dict[str, bytes] | None = None) -> None:
        """Initialize a MemoryBlobStore.

        Args:
          files: Optional initial contents, keyed by logical path
        """
        self.files: dict[str, bytes] = {}
        for path, data in (files or {}).items():
            self.files[join_path(path)] = data

    def __repr__(self) -> str:
        """Return string representation of MemoryBlobStore."""
        return f"{type(self).__name__}({sorted(self.files)!r})"

    def _is_dir(self, key: str) -> bool:
        if not key:
            return True
        prefix = key + "/"
        return any(name.startswith(prefix) for name in self.files)

    def create(self, path: str, contents: BinaryIO) -> None:
        """Store a new file."""
        key = join_path(path)
        if self.exists(key):
            raise PathExists(path)
        self.files[key] = contents.read()

    def read(self, path: str, contents: BinaryIO) -> None:
        """Copy the bytes stored at path into contents."""
        try:
            contents.write(self.files[join_path(path)])
        except KeyError as exc:
            raise PathNotFound(path) from exc

    def update(self, path: str, contents: BinaryIO) -> None:
        """Replace the contents of an existing file."""
        key = join_path(path)
        if key not in self.files:
            raise PathNotFound(path)
        self.files[key] = contents.read()

    def delete(self, path: str) -> None:
        """Remove a file."""
        try:
            del self.files[join_path(path)]
        except KeyError as exc:
            raise PathNotFound(path) from exc

    def listdir(self, path: str) -> list[FileEntry]:
        """List the immediate children of a directory."""
        key = join_path(path)
        if not self._is_dir(key):
            raise PathNotFound(path)
        prefix = key + "/" if key else ""
        children: dict[str, bool] = {}
        for name in self.files:
            if not name.startswith(prefix):
                continue
            child, sep, _ = name[len(prefix) :].partition("/")
            children[child] = children.get(child, False) or bool(sep)
        return [FileEntry(is_folder, name) for name, is_folder in children.items()]

    def exists(self, path: str) -> bool:
        """Check whether anything is stored at path."""
        key = join_path(path)
        return key in self.files or self._is_dir(key)

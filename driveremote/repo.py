# repo.py -- Repositories over blob stores and local git directories
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

"""Repositories: refs and raw objects on top of a blob store, or a local git dir.

A repository in a blob store is laid out like a bare git repository that
only ever contains loose objects::

    <base>/refs/heads/main           "<sha>\\n"
    <base>/objects/c5/d2d737af...    zlib("<type> <size>\\0<content>")
"""

__all__ = [
    "BlobStoreRepo",
    "LocalGitRepo",
    "ObjectSource",
    "Ref",
    "read_packed_refs",
]

import logging
import os
import shutil
import subprocess
from collections.abc import Iterator
from io import BytesIO
from typing import IO, BinaryIO, NamedTuple, Protocol

from .errors import (
    ChecksumMismatch,
    CorruptedAndUnrecoverable,
    DriveRemoteError,
    GitCommandError,
    ObjectFormatException,
    ObjectMissing,
    PackedRefsException,
    PathNotFound,
    SymrefLoop,
)
from .objects import (
    Commit,
    TreeEntry,
    check_hexsha,
    inflated_sha,
    legacy_object,
    object_path,
    parse_commit,
    parse_tree,
    pretty_tree,
    split_object,
    valid_hexsha,
)
from .store import BlobStore, join_path, split_path

logger = logging.getLogger(__name__)

SYMREF = "ref: "
MAX_SYMREF_DEPTH = 5


class Ref(NamedTuple):
    """A named pointer to an object."""

    name: str
    value: str


class ObjectSource(Protocol):
    """Anything that can answer questions about the object graph."""

    def object_type(self, sha: str) -> str:
        """Return the type name (commit, tree, blob or tag) of an object."""
        ...

    def get_commit(self, sha: str) -> Commit:
        """Return the tree and parents of a commit."""
        ...

    def get_tree(self, sha: str) -> list[TreeEntry]:
        """Return the entries of a tree."""
        ...


class BlobStoreRepo:
    """A repository stored as plain files in a blob store."""

    def __init__(self, base_path: str, store: BlobStore) -> None:
        """Initialize a BlobStoreRepo.

        Args:
          base_path: Path of the repository root within the store ("" for
            the store root)
          store: Blob store holding the repository
        """
        self.base_path = join_path(base_path)
        self.store = store

    def __repr__(self) -> str:
        """Return string representation of BlobStoreRepo."""
        return f"{type(self).__name__}({self.base_path!r}, {self.store!r})"

    def _path(self, name: str) -> str:
        return join_path(self.base_path, name)

    def _relative(self, path: str) -> str:
        segments = split_path(path)
        return "/".join(segments[len(split_path(self.base_path)) :])

    def list_refs(self) -> list[Ref]:
        """List every ref stored under refs/.

        A directory that disappears while walking counts as empty.

        Returns: Refs sorted by name
        """
        refs = []
        pending = [self._path("refs")]
        while pending:
            directory = pending.pop()
            logger.debug("walking %s", directory)
            try:
                entries = self.store.listdir(directory)
            except PathNotFound:
                continue
            for entry in entries:
                path = join_path(directory, entry.name)
                if entry.is_folder:
                    pending.append(path)
                    continue
                buf = BytesIO()
                self.store.read(path, buf)
                value = buf.getvalue().decode("utf-8").rstrip()
                refs.append(Ref(self._relative(path), value))
        return sorted(refs)

    def read_ref(self, name: str) -> str:
        """Read the object id a ref points at.

        Raises:
          PathNotFound: if the ref does not exist
        """
        buf = BytesIO()
        self.store.read(self._path(name), buf)
        return buf.getvalue().decode("utf-8").rstrip("\n")

    def write_ref(self, ref: Ref) -> None:
        """Point a ref at an object, creating the ref file if needed."""
        path = self._path(ref.name)
        contents = BytesIO((ref.value + "\n").encode("utf-8"))
        if self.store.exists(path):
            self.store.update(path, contents)
        else:
            self.store.create(path, contents)
        logger.info("updated %s to %s", ref.name, ref.value)

    def object_path(self, sha: str) -> str:
        """Return the store path of an object.

        Raises:
          InvalidHash: if sha is not a hex object id
        """
        return object_path(self.base_path, sha)

    def read_raw(self, sha: str, sink: BinaryIO) -> None:
        """Copy the compressed loose form of an object into sink.

        Raises:
          ObjectMissing: if the object is not stored
        """
        try:
            self.store.read(self.object_path(sha), sink)
        except PathNotFound as exc:
            raise ObjectMissing(sha) from exc

    def verify_object(self, sha: str) -> None:
        """Check that a stored object decompresses to content with the right id.

        Raises:
          ChecksumMismatch: if the stored bytes have a different id
        """
        logger.debug("verifying object %s", sha)
        buf = BytesIO()
        self.read_raw(sha, buf)
        try:
            actual = inflated_sha(buf.getvalue())
        except ObjectFormatException as exc:
            raise ChecksumMismatch(sha, "(undecodable)", str(exc)) from exc
        if actual != sha:
            raise ChecksumMismatch(
                sha, actual, f"compressed size is {len(buf.getvalue())} bytes"
            )

    def write_raw(self, sha: str, source: BinaryIO) -> bool:
        """Store the compressed loose form of an object unless already present.

        An object that is already stored is verified; if it turns out to be
        corrupt it is deleted and written again from source.

        Returns: True if anything was uploaded
        Raises:
          CorruptedAndUnrecoverable: if a corrupt copy could not be deleted
        """
        path = self.object_path(sha)
        if not self.store.exists(path):
            self.store.create(path, source)
            return True
        try:
            self.verify_object(sha)
        except ChecksumMismatch as exc:
            logger.warning("replacing invalid object: %s", exc)
            try:
                self.store.delete(path)
            except DriveRemoteError as delete_exc:
                raise CorruptedAndUnrecoverable(sha, exc.got, delete_exc) from delete_exc
            self.store.create(path, source)
            return True
        logger.debug("object %s already present", sha)
        return False

    def _read_object(self, sha: str) -> tuple[str, bytes]:
        buf = BytesIO()
        self.read_raw(sha, buf)
        return split_object(buf.getvalue())

    def object_type(self, sha: str) -> str:
        """Return the type name of a stored object."""
        type_name, _ = self._read_object(sha)
        return type_name

    def get_commit(self, sha: str) -> Commit:
        """Parse a stored commit.

        Raises:
          ObjectFormatException: if the object is not a well-formed commit
        """
        type_name, content = self._read_object(sha)
        if type_name != "commit":
            raise ObjectFormatException(f"{sha} is a {type_name}, not a commit")
        return parse_commit(content)

    def get_tree(self, sha: str) -> list[TreeEntry]:
        """Parse a stored tree.

        Raises:
          ObjectFormatException: if the object is not a well-formed tree
        """
        type_name, content = self._read_object(sha)
        if type_name != "tree":
            raise ObjectFormatException(f"{sha} is a {type_name}, not a tree")
        return parse_tree(pretty_tree(content))


def read_packed_refs(f: IO[bytes]) -> Iterator[tuple[str, str]]:
    """Read a packed-refs file.

    Peeled lines (``^<sha>``) are skipped; they always describe the ref
    on the line before.

    Args:
      f: file-like object to read from
    Returns: Iterator over (sha, name) tuples
    """
    last = None
    for line in f:
        if line.startswith(b"#"):
            continue
        line = line.rstrip(b"\r\n")
        if line.startswith(b"^"):
            if last is None:
                raise PackedRefsException("unexpected peeled ref line")
            continue
        fields = line.split(b" ")
        if len(fields) != 2:
            raise PackedRefsException(f"invalid ref line {line!r}")
        sha, name = (field.decode("utf-8") for field in fields)
        if not valid_hexsha(sha):
            raise PackedRefsException(f"Invalid hex sha {sha!r}")
        last = name
        yield sha, name


class LocalGitRepo:
    """Read-only access to a local git repository.

    Refs and loose objects are read straight from the git directory; all
    object parsing and packed objects go through the git executable.
    """

    def __init__(self, git_dir: str, git_executable: str = "git") -> None:
        """Initialize a LocalGitRepo.

        Args:
          git_dir: Path of the .git directory (or of a bare repository)
          git_executable: git binary to invoke
        """
        self.git_dir = git_dir
        self.git_executable = git_executable

    def __repr__(self) -> str:
        """Return string representation of LocalGitRepo."""
        return f"{type(self).__name__}({self.git_dir!r})"

    def _git(self, *args: str, ok_returncodes: tuple[int, ...] = (0,)) -> bytes:
        cmd = [self.git_executable, f"--git-dir={self.git_dir}", *args]
        logger.debug("running %s", " ".join(cmd))
        res = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        if res.returncode not in ok_returncodes:
            raise GitCommandError(cmd, res.returncode, res.stderr)
        return res.stdout

    def list_refs(self) -> list[Ref]:
        """List the refs git show-ref reports (HEAD is not included)."""
        # show-ref exits with status 1 when there are no refs at all
        out = self._git("show-ref", ok_returncodes=(0, 1))
        refs = []
        for line in out.decode("utf-8").splitlines():
            value, sep, name = line.partition(" ")
            if not sep or not valid_hexsha(value):
                raise GitCommandError(
                    ["git", "show-ref"], 0, f"unexpected output: {line!r}".encode()
                )
            refs.append(Ref(name, value))
        return refs

    def read_loose_ref(self, name: str) -> str | None:
        """Read the contents of a loose ref file, or None if there is none."""
        path = os.path.join(self.git_dir, *split_path(name))
        try:
            with open(path, "rb") as f:
                return f.read().decode("utf-8").rstrip("\r\n")
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None

    def get_packed_refs(self) -> dict[str, str]:
        """Return the refs in packed-refs, keyed by name."""
        try:
            with open(os.path.join(self.git_dir, "packed-refs"), "rb") as f:
                return {name: sha for sha, name in read_packed_refs(f)}
        except FileNotFoundError:
            return {}

    def read_ref(self, name: str) -> str:
        """Resolve a ref, following symbolic refs, to an object id.

        Raises:
          PathNotFound: if the ref (or a ref it points to) does not exist
          SymrefLoop: if symbolic refs nest too deeply
        """
        refname = name
        for _ in range(MAX_SYMREF_DEPTH + 1):
            contents = self.read_loose_ref(refname)
            if contents is None:
                contents = self.get_packed_refs().get(refname)
            if contents is None:
                raise PathNotFound(refname, f"{refname}: no such ref")
            if not contents.startswith(SYMREF):
                return contents
            refname = contents[len(SYMREF) :]
        raise SymrefLoop(name, MAX_SYMREF_DEPTH)

    def object_type(self, sha: str) -> str:
        """Return the type name of an object, as git cat-file -t does."""
        check_hexsha(sha)
        return self._git("cat-file", "-t", sha).decode("ascii").strip()

    def read_object(self, sha: str) -> bytes:
        """Return the pretty-printed form of an object, as git cat-file -p does."""
        check_hexsha(sha)
        return self._git("cat-file", "-p", sha)

    def get_commit(self, sha: str) -> Commit:
        """Parse a commit."""
        return parse_commit(self.read_object(sha))

    def get_tree(self, sha: str) -> list[TreeEntry]:
        """Parse a tree."""
        return parse_tree(self.read_object(sha))

    def read_raw(self, sha: str, sink: BinaryIO) -> None:
        """Copy the compressed loose form of an object into sink.

        Objects that only exist in a pack are re-encoded as loose objects.
        """
        check_hexsha(sha)
        path = os.path.join(self.git_dir, "objects", sha[:2], sha[2:])
        try:
            with open(path, "rb") as f:
                shutil.copyfileobj(f, sink)
                return
        except FileNotFoundError:
            pass
        self._read_packed(sha, sink)

    def _read_packed(self, sha: str, sink: BinaryIO) -> None:
        type_name = self.object_type(sha)
        content = self._git("cat-file", type_name, sha)
        logger.debug("re-encoding packed %s %s", type_name, sha)
        sink.write(legacy_object(type_name, content))

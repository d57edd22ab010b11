# objects.py -- Object ids, loose object encoding and commit/tree parsing
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

"""Object ids, loose object encoding and commit/tree parsing.

Objects travel between repositories in git's loose object format: the
zlib-compressed bytes ``<type> <size>\\0<content>``. The id of an object
is the SHA-1 of the uncompressed form, in lowercase hex.
"""

__all__ = [
    "Commit",
    "TreeEntry",
    "check_hexsha",
    "inflate",
    "inflated_sha",
    "legacy_object",
    "object_path",
    "object_sha",
    "parse_commit",
    "parse_tree",
    "pretty_tree",
    "split_object",
    "valid_hexsha",
]

import hashlib
import stat
import zlib
from typing import NamedTuple

from .errors import InvalidHash, ObjectFormatException
from .store import join_path

HEXSHA_LENGTH = 40
_HEXDIGITS = frozenset("0123456789abcdef")

OBJECT_TYPES = ("commit", "tree", "blob", "tag")

# Tree entry kinds a commit's history may reach
TREE_ENTRY_KINDS = ("blob", "tree")

S_IFGITLINK = 0o160000


class Commit(NamedTuple):
    """The parts of a commit that matter for reachability."""

    tree: str
    parents: list[str]


class TreeEntry(NamedTuple):
    """A single entry of a tree."""

    kind: str
    sha: str
    name: bytes = b""
    mode: int = 0


def valid_hexsha(hex: str) -> bool:
    """Check if a string is a valid hex object id."""
    return len(hex) == HEXSHA_LENGTH and _HEXDIGITS.issuperset(hex)


def check_hexsha(hex: str) -> None:
    """Check if a string is a valid hex object id.

    Raises:
      InvalidHash: if it is not 40 lowercase hex characters
    """
    if not valid_hexsha(hex):
        raise InvalidHash(hex)


def object_path(base_path: str, sha: str) -> str:
    """Return the blob store path of an object.

    Args:
      base_path: Root of the repository in the blob store
      sha: Hex object id
    Returns: ``<base_path>/objects/<first 2 hex digits>/<remaining 38>``
    """
    check_hexsha(sha)
    return join_path(base_path, "objects", sha[:2], sha[2:])


def object_sha(uncompressed: bytes) -> str:
    """Return the id of an object given its uncompressed loose form."""
    return hashlib.sha1(uncompressed).hexdigest()


def legacy_object(type_name: str, content: bytes) -> bytes:
    """Encode an object in the loose object format.

    Args:
      type_name: One of commit, tree, blob or tag
      content: Object contents as git cat-file prints them for blobs
    Returns: zlib-compressed ``<type> <size>\\0<content>``
    """
    header = f"{type_name} {len(content)}\0".encode("ascii")
    return zlib.compress(header + content)


def inflate(data: bytes) -> bytes:
    """Decompress a loose object.

    Raises:
      ObjectFormatException: if the data is not a zlib stream
    """
    try:
        return zlib.decompress(data)
    except zlib.error as exc:
        raise ObjectFormatException(f"invalid compressed object: {exc}") from exc


def inflated_sha(data: bytes) -> str:
    """Return the id that a stored loose object actually has."""
    return object_sha(inflate(data))


def split_object(data: bytes) -> tuple[str, bytes]:
    """Decode a loose object into its type and content.

    Raises:
      ObjectFormatException: if the header is missing or inconsistent
    """
    uncompressed = inflate(data)
    header, sep, content = uncompressed.partition(b"\0")
    if not sep:
        raise ObjectFormatException("object header is not terminated")
    try:
        type_name, size = header.decode("ascii").split(" ")
        length = int(size)
    except ValueError as exc:
        raise ObjectFormatException(f"invalid object header: {header!r}") from exc
    if type_name not in OBJECT_TYPES:
        raise ObjectFormatException(f"unknown object type: {type_name}")
    if length != len(content):
        raise ObjectFormatException(
            f"object length {len(content)} does not match header {length}"
        )
    return type_name, content


def _parse_sha(value: bytes, what: str) -> str:
    sha = value.decode("ascii", "replace")
    if not valid_hexsha(sha):
        raise ObjectFormatException(f"invalid {what}: {value!r}")
    return sha


def parse_commit(text: bytes) -> Commit:
    """Parse the pretty-printed form of a commit.

    Only the headers before the first blank line are examined; the
    message is ignored.

    Raises:
      ObjectFormatException: on an unknown header or a missing or
        repeated tree
    """
    tree = None
    parents = []
    for line in text.split(b"\n"):
        if not line:
            break
        key, _, value = line.partition(b" ")
        if key == b"tree":
            if tree is not None:
                raise ObjectFormatException("commit has more than one tree")
            tree = _parse_sha(value, "tree")
        elif key == b"parent":
            parents.append(_parse_sha(value, "parent"))
        elif key in (b"author", b"committer"):
            continue
        else:
            raise ObjectFormatException(f"unexpected commit header: {key!r}")
    if tree is None:
        raise ObjectFormatException("commit has no tree")
    return Commit(tree, parents)


def parse_tree(text: bytes) -> list[TreeEntry]:
    """Parse the pretty-printed form of a tree.

    Each line reads ``<mode> <kind> <sha>\\t<name>``.

    Raises:
      ObjectFormatException: on a malformed line or an entry that is
        neither a blob nor a tree
    """
    entries = []
    for line in text.split(b"\n"):
        if not line:
            continue
        meta, sep, name = line.partition(b"\t")
        fields = meta.split(b" ")
        if not sep or len(fields) != 3:
            raise ObjectFormatException(f"invalid tree line: {line!r}")
        mode, kind, sha = fields
        kind_name = kind.decode("ascii", "replace")
        if kind_name not in TREE_ENTRY_KINDS:
            raise ObjectFormatException(f"unsupported tree entry kind: {kind_name}")
        try:
            mode_bits = int(mode, 8)
        except ValueError as exc:
            raise ObjectFormatException(f"invalid tree entry mode: {mode!r}") from exc
        entries.append(TreeEntry(kind_name, _parse_sha(sha, "tree entry"), name, mode_bits))
    return entries


def _entry_kind(mode: int) -> bytes:
    if stat.S_ISDIR(mode):
        return b"tree"
    if mode & 0o170000 == S_IFGITLINK:
        return b"commit"
    return b"blob"


def pretty_tree(content: bytes) -> bytes:
    """Render the canonical binary form of a tree the way git cat-file -p does.

    Args:
      content: Serialized tree, a sequence of ``<mode> <name>\\0<20 byte sha>``
    Returns: One ``<mode> <kind> <sha>\\t<name>`` line per entry
    """
    lines = []
    count = 0
    length = len(content)
    try:
        while count < length:
            mode_end = content.index(b" ", count)
            mode = int(content[count:mode_end], 8)
            name_end = content.index(b"\0", mode_end)
            name = content[mode_end + 1 : name_end]
            count = name_end + 21
            sha = content[name_end + 1 : count]
            if len(sha) != 20:
                raise ObjectFormatException("truncated tree entry")
            lines.append(
                b"%06o %s %s\t%s\n" % (mode, _entry_kind(mode), sha.hex().encode("ascii"), name)
            )
    except ValueError as exc:
        raise ObjectFormatException(f"invalid tree: {exc}") from exc
    return b"".join(lines)

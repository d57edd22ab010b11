# errors.py -- errors for git-remote-drive
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

"""Exception classes shared by the stores, the repository and the helper."""

# Please keep errors that only one module raises close to that module
# (see query.QuerySyntaxError and credentials.CredentialNotFoundError).

from collections.abc import Mapping


class DriveRemoteError(Exception):
    """Base class for errors the helper reports back to git."""


class PathNotFound(DriveRemoteError):
    """A path, ref or object does not exist in a store."""

    def __init__(self, path: str, message: str | None = None) -> None:
        """Initialize a PathNotFound exception.

        Args:
            path: Logical path that could not be found.
            message: Optional replacement for the default message.
        """
        self.path = path
        super().__init__(message or f"{path}: no such file or directory")


class ObjectMissing(PathNotFound):
    """Indicates that a requested object is missing."""

    def __init__(self, sha: str) -> None:
        """Initialize an ObjectMissing exception.

        Args:
            sha: Hex SHA of the missing object.
        """
        super().__init__(sha, f"{sha} is not in the object store")
        self.sha = sha


class PathExists(DriveRemoteError):
    """A create was attempted where a file already exists."""

    def __init__(self, path: str) -> None:
        """Initialize a PathExists exception.

        Args:
            path: Logical path that already exists.
        """
        self.path = path
        super().__init__(f"{path}: file exists")


class InvalidHash(DriveRemoteError, ValueError):
    """An object id is not 40 lowercase hex characters."""

    def __init__(self, sha: str) -> None:
        """Initialize an InvalidHash exception.

        Args:
            sha: The rejected identifier.
        """
        self.sha = sha
        super().__init__(f'invalid sha: "{sha}"')


class ChecksumMismatch(DriveRemoteError):
    """A checksum didn't match the expected contents."""

    def __init__(self, expected: str, got: str, extra: str | None = None) -> None:
        """Initialize a ChecksumMismatch exception.

        Args:
            expected: The expected hex SHA.
            got: The hex SHA of the actual contents.
            extra: Optional additional error information.
        """
        self.expected = expected
        self.got = got
        self.extra = extra
        message = f"Checksum mismatch: Expected {expected}, got {got}"
        if extra is not None:
            message += f"; {extra}"
        super().__init__(message)


class CorruptedAndUnrecoverable(ChecksumMismatch):
    """A stored object failed verification and could not be replaced."""

    def __init__(self, expected: str, got: str, cause: BaseException) -> None:
        """Initialize a CorruptedAndUnrecoverable exception.

        Args:
            expected: The id the object is stored under.
            got: The hex SHA of what is actually stored.
            cause: The error raised while deleting the stored copy.
        """
        super().__init__(
            expected, got, f"object contains invalid data, but cannot be deleted: {cause}"
        )
        self.cause = cause


class FileFormatException(DriveRemoteError):
    """Base class for exceptions relating to reading git file formats."""


class ObjectFormatException(FileFormatException):
    """Indicates an error parsing a commit or tree object."""


class PackedRefsException(FileFormatException):
    """Indicates an error parsing a packed-refs file."""


class UnsupportedRefTarget(DriveRemoteError):
    """A ref points at something other than a commit."""

    def __init__(self, sha: str, type_name: str) -> None:
        """Initialize an UnsupportedRefTarget exception.

        Args:
            sha: Object the ref points at.
            type_name: The type git reports for that object.
        """
        self.sha = sha
        self.type_name = type_name
        super().__init__(f"unsupported object type: {type_name}")


class SymrefLoop(DriveRemoteError):
    """There is a loop between one or more symrefs."""

    def __init__(self, ref: str, depth: int) -> None:
        """Initialize SymrefLoop exception."""
        self.ref = ref
        self.depth = depth
        super().__init__(f"symbolic ref {ref} nested deeper than {depth}")


class BackendError(DriveRemoteError):
    """An I/O or HTTP error bubbled up from a storage backend."""


class HTTPUnauthorized(BackendError):
    """Raised when the backend rejects our credentials."""

    def __init__(self, url: str) -> None:
        """Initialize HTTPUnauthorized exception.

        Args:
            url: URL that returned 401
        """
        self.url = url
        super().__init__(f"No valid credentials provided for {url}")


class GitCommandError(DriveRemoteError):
    """A local git subprocess exited unsuccessfully."""

    def __init__(self, args: list[str], returncode: int, stderr: bytes) -> None:
        """Initialize a GitCommandError.

        Args:
            args: The command line that was run.
            returncode: Its exit status.
            stderr: Whatever it wrote to standard error.
        """
        self.command = args
        self.returncode = returncode
        self.stderr = stderr
        message = stderr.decode("utf-8", "replace").strip()
        super().__init__(
            f"{' '.join(args)} exited with status {returncode}: {message}"
        )


class PushError(DriveRemoteError):
    """A push failed after the object transfer phase started."""

    message = "push failed"

    def __init__(
        self, ref: str, errors: Mapping[str, BaseException] | None = None
    ) -> None:
        """Initialize a PushError.

        Args:
            ref: Name of the local ref being pushed.
            errors: Per-object errors collected during the transfer.
        """
        self.ref = ref
        self.errors = dict(errors or {})
        super().__init__(self.message)


class LocalReadFailure(PushError):
    """One or more local objects could not be read."""

    message = "error reading local objects"


class RemoteWriteFailure(PushError):
    """One or more objects could not be written to the remote."""

    message = "error writing remote objects"


class RemoteRefUpdateFailure(PushError):
    """All objects were sent but the remote ref could not be updated."""

    message = "error updating remote reference"

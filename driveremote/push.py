# push.py -- Sending a ref and its history to a remote repository
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

"""Sending a ref and the objects it needs to a remote repository.

Objects are always uploaded before the remote ref is moved, so a remote
ref never points at history the remote does not have. Uploads are
verify-or-write, which makes an interrupted push safe to simply run
again.
"""

__all__ = [
    "LocalRepository",
    "PushResult",
    "RemoteRepository",
    "push_ref",
]

import logging
from io import BytesIO
from typing import BinaryIO, NamedTuple, Protocol

from .errors import (
    DriveRemoteError,
    HTTPUnauthorized,
    LocalReadFailure,
    PathNotFound,
    RemoteRefUpdateFailure,
    RemoteWriteFailure,
    UnsupportedRefTarget,
)
from .repo import ObjectSource, Ref
from .walk import reachable

logger = logging.getLogger(__name__)


class LocalRepository(ObjectSource, Protocol):
    """The side of a push that objects are read from."""

    def read_ref(self, name: str) -> str: ...

    def read_raw(self, sha: str, sink: BinaryIO) -> None: ...


class RemoteRepository(Protocol):
    """The side of a push that objects are written to."""

    def list_refs(self) -> list[Ref]: ...

    def read_ref(self, name: str) -> str: ...

    def write_ref(self, ref: Ref) -> None: ...

    def write_raw(self, sha: str, source: BinaryIO) -> bool: ...


class PushResult(NamedTuple):
    """Outcome of a successful push."""

    remote_ref: str
    old_head: str | None
    new_head: str
    uploaded: list[str]


def _check_commit(local: ObjectSource, sha: str) -> None:
    type_name = local.object_type(sha)
    if type_name != "commit":
        raise UnsupportedRefTarget(sha, type_name)


def push_ref(
    local: LocalRepository,
    remote: RemoteRepository,
    local_ref_name: str,
    remote_ref_name: str,
) -> PushResult:
    """Push one local ref to a remote ref.

    Both histories are walked on the local side, which is expected to
    have every object the remote has.

    Args:
      local: Repository to read the ref and objects from
      remote: Repository to write them to
      local_ref_name: e.g. refs/heads/main
      remote_ref_name: Ref to update on the remote
    Returns: A PushResult
    Raises:
      UnsupportedRefTarget: if either head is not a commit
      HTTPUnauthorized: as soon as the remote rejects our credentials
      LocalReadFailure: if any object could not be read
      RemoteWriteFailure: if any object could not be written
      RemoteRefUpdateFailure: if all objects were sent but the remote
        ref could not be updated
    """
    local_head = local.read_ref(local_ref_name)
    try:
        remote_head: str | None = remote.read_ref(remote_ref_name)
    except PathNotFound:
        remote_head = None
    if not remote_head:
        remote_head = None

    _check_commit(local, local_head)
    already_there: set[str] = set()
    if remote_head is not None:
        _check_commit(local, remote_head)
        already_there = reachable(local, remote_head) | {remote_head}

    to_send = reachable(local, local_head, exclude=already_there)
    if local_head not in already_there:
        to_send.add(local_head)
    logger.info(
        "pushing %s to %s: %d objects to send", local_ref_name, remote_ref_name, len(to_send)
    )

    read_errors: dict[str, BaseException] = {}
    write_errors: dict[str, BaseException] = {}
    uploaded = []
    for sha in sorted(to_send):
        buf = BytesIO()
        try:
            local.read_raw(sha, buf)
        except (DriveRemoteError, OSError) as exc:
            logger.error("error reading object %s: %s", sha, exc)
            read_errors[sha] = exc
            continue
        buf.seek(0)
        try:
            if remote.write_raw(sha, buf):
                uploaded.append(sha)
        except HTTPUnauthorized:
            raise
        except (DriveRemoteError, OSError) as exc:
            logger.error("error writing object %s: %s", sha, exc)
            write_errors[sha] = exc

    if read_errors:
        raise LocalReadFailure(local_ref_name, read_errors)
    if write_errors:
        raise RemoteWriteFailure(local_ref_name, write_errors)

    try:
        remote.write_ref(Ref(remote_ref_name, local_head))
    except HTTPUnauthorized:
        raise
    except (DriveRemoteError, OSError) as exc:
        logger.error("error updating %s: %s", remote_ref_name, exc)
        raise RemoteRefUpdateFailure(local_ref_name, {remote_ref_name: exc}) from exc
    logger.info("uploaded %d of %d objects", len(uploaded), len(to_send))
    return PushResult(remote_ref_name, remote_head, local_head, uploaded)

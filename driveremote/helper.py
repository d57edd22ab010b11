# helper.py -- The git remote helper protocol front end
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

"""The git remote helper protocol front end.

git runs the helper for ``drive::<path>`` and ``drive://<path>`` URLs as::

    git-remote-drive <remote> drive://<path>
    git-remote-drive <remote> <path>

and talks to it over stdin and stdout, one command per line. See
gitremote-helpers(7).
"""

__all__ = [
    "RemoteHelper",
    "main",
    "open_store",
    "strip_url",
]

import argparse
import logging
import os
import signal
import sys
from collections.abc import Iterable, Sequence
from configparser import ConfigParser
from typing import TextIO

from .config import SECTION, ConfigError, load_conf
from .credentials import CredentialNotFoundError, OAuthCredentials
from .drive import DriveBlobStore, DriveConnector
from .errors import DriveRemoteError, HTTPUnauthorized
from .log_utils import default_logging_config, set_verbosity
from .push import LocalRepository, RemoteRepository, push_ref
from .repo import BlobStoreRepo, LocalGitRepo
from .store import BlobStore, LocalBlobStore

logger = logging.getLogger(__name__)

URL_PREFIX = "drive://"
CAPABILITIES = ("push", "fetch", "option")
BATCH_COMMANDS = ("push", "fetch")


def strip_url(url: str) -> str:
    """Return the repository path a remote URL names."""
    if url.startswith(URL_PREFIX):
        return url[len(URL_PREFIX) :]
    return url


def _protocol_message(exc: BaseException) -> str:
    # status lines are single-line and the message is double-quoted
    return " ".join(str(exc).split()).replace('"', "'")


class RemoteHelper:
    """State and command handlers for one helper session."""

    def __init__(self, remote: RemoteRepository, local: LocalRepository) -> None:
        """Initialize a RemoteHelper.

        Args:
          remote: Repository the remote URL points at
          local: The local git repository
        """
        self.remote = remote
        self.local = local
        self.verbosity = 1
        self.followtags = False
        self.done = False
        self._batch: list[list[str]] = []
        self._commands = {
            "capabilities": self.cmd_capabilities,
            "list": self.cmd_list,
            "option": self.cmd_option,
        }

    def dispatch(self, line: str, out: TextIO) -> None:
        """Handle one line of input, writing any response to out."""
        logger.debug("< %s", line)
        fields = line.split()
        if not fields:
            if self._batch:
                self._finish_batch(out)
            else:
                self.done = True
            return
        command = fields[0]
        if command in BATCH_COMMANDS:
            if self._batch and self._batch[0][0] != command:
                self._finish_batch(out)
            self._batch.append(fields)
            return
        try:
            handler = self._commands[command]
        except KeyError:
            logger.warning("unsupported command: %s", command)
            out.write("unsupported\n")
            return
        handler(fields, out)

    def run(self, stdin: Iterable[str], out: TextIO) -> None:
        """Handle commands until a terminating blank line or end of input."""
        for line in stdin:
            self.dispatch(line.rstrip("\r\n"), out)
            out.flush()
            if self.done:
                break

    def cmd_capabilities(self, fields: list[str], out: TextIO) -> None:
        for capability in CAPABILITIES:
            out.write(capability + "\n")
        out.write("\n")

    def cmd_list(self, fields: list[str], out: TextIO) -> None:
        # "list" and "list for-push" get the same answer
        refs = self.remote.list_refs()
        if not refs:
            logger.info("no remote refs found")
        for ref in refs:
            out.write(f"{ref.value} {ref.name}\n")
        out.write("\n")

    def cmd_option(self, fields: list[str], out: TextIO) -> None:
        if len(fields) < 3:
            out.write("err invalid option command\n")
            return
        name, value = fields[1], fields[2]
        if name == "verbosity":
            try:
                verbosity = int(value)
            except ValueError:
                logger.error('error reading verbosity value "%s"', value)
                out.write("err invalid verbosity\n")
                return
            self.verbosity = verbosity
            set_verbosity(verbosity)
            out.write("ok\n")
        elif name == "followtags":
            if value not in ("true", "false"):
                out.write("err invalid followtags\n")
                return
            self.followtags = value == "true"
            out.write("ok\n")
        else:
            out.write("unsupported\n")

    def _finish_batch(self, out: TextIO) -> None:
        batch, self._batch = self._batch, []
        if batch[0][0] == "push":
            for fields in batch:
                out.write(self._push_one(fields[1] if len(fields) > 1 else "") + "\n")
        else:
            # fetching is not supported; acknowledge the batch so git carries on
            logger.warning("fetch is not supported, ignoring %d refs", len(batch))
        out.write("\n")

    def _push_one(self, refspec: str) -> str:
        src, sep, dst = refspec.partition(":")
        if not sep or not dst:
            return f'error {refspec} "invalid refspec"'
        # forced and normal pushes are handled alike
        src = src.lstrip("+")
        if not src:
            return f'error {dst} "deleting remote refs is not supported"'
        try:
            result = push_ref(self.local, self.remote, src, dst)
        except HTTPUnauthorized:
            raise
        except DriveRemoteError as exc:
            logger.error("pushing %s to %s failed: %s", src, dst, exc)
            return f'error {dst} "{_protocol_message(exc)}"'
        logger.info("%s: %s -> %s", dst, result.old_head, result.new_head)
        return f"ok {dst}"


def open_store(conf: ConfigParser) -> BlobStore:
    """Create the blob store the configuration selects.

    Raises:
      CredentialNotFoundError: if the Drive credentials cannot be loaded
    """
    section = conf[SECTION]
    if section["backend"] == "local":
        return LocalBlobStore(os.path.expanduser(section["local_root"]))
    credentials = OAuthCredentials.from_files(section["secret_path"], section["token_path"])
    connector = DriveConnector(
        credentials,
        timeout=conf.getfloat(SECTION, "http_timeout"),
        spaces=section["spaces"],
    )
    return DriveBlobStore(
        connector, root_id=section["root_id"], page_size=conf.getint(SECTION, "page_size")
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the remote helper.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = argparse.ArgumentParser(
        prog="git-remote-drive",
        description="git remote helper for repositories stored in Google Drive",
    )
    parser.add_argument("--config", help="Path to the configuration file")
    parser.add_argument("remote", help="Name of the remote, or its URL")
    parser.add_argument("url", help="drive://<path> or <path>")
    args = parser.parse_args(argv)

    default_logging_config()
    set_verbosity(1)

    try:
        conf = load_conf(args.config)
        store = open_store(conf)
    except (ConfigError, CredentialNotFoundError) as exc:
        logging.fatal("%s", exc)
        return 1

    remote = BlobStoreRepo(strip_url(args.url), store)
    local = LocalGitRepo(os.environ.get("GIT_DIR", ".git"))
    helper = RemoteHelper(remote, local)
    try:
        helper.run(sys.stdin, sys.stdout)
    except (DriveRemoteError, CredentialNotFoundError) as exc:
        logging.fatal("%s", exc)
        return 1
    logger.debug("exiting gracefully")
    return 0


def _main() -> None:
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    sys.exit(main())


if __name__ == "__main__":
    _main()

# log_utils.py -- Logging utilities for git-remote-drive
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

"""Logging utilities for git-remote-drive.

The package is importable as a library, so the ``driveremote`` logger
carries a null handler until the helper entry point calls
default_logging_config(). Standard output belongs to the remote helper
protocol; log output only ever goes to standard error, a file descriptor
or a file named by GIT_TRACE.
"""

import logging
import os
import sys

getLogger = logging.getLogger


class _NullHandler(logging.Handler):
    """No-op logging handler to avoid unexpected logging warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        pass


_NULL_HANDLER = _NullHandler()
_DRIVEREMOTE_LOGGER = getLogger("driveremote")
_DRIVEREMOTE_LOGGER.addHandler(_NULL_HANDLER)

# git's "option verbosity" values mapped onto logging levels
_VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def _get_trace_target() -> str | int | None:
    """Get the trace target from GIT_TRACE environment variable.

    Returns:
        - None if tracing is disabled
        - 2 for stderr output (values "1", "2", "true")
        - int (3-9) for file descriptor
        - str for file path (absolute paths or directories)
    """
    trace_value = os.environ.get("GIT_TRACE", "")

    if not trace_value or trace_value.lower() in ("0", "false"):
        return None

    if trace_value.lower() in ("1", "2", "true"):
        return 2

    try:
        fd = int(trace_value)
        if 3 <= fd <= 9:
            return fd
    except ValueError:
        pass

    if os.path.isabs(trace_value):
        return trace_value

    return None


def _trace_handler(trace_target: str | int) -> logging.Handler | None:
    """Build the handler trace records are written to.

    Returns None, after a warning on standard error, if the target named
    by GIT_TRACE cannot be opened.
    """
    if trace_target == 2:
        return logging.StreamHandler(sys.stderr)
    try:
        if isinstance(trace_target, int):
            return logging.StreamHandler(os.fdopen(trace_target, "w", buffering=1))
        if os.path.isdir(trace_target):
            trace_target = os.path.join(trace_target, f"trace.{os.getpid()}")
        return logging.FileHandler(trace_target, mode="a")
    except OSError as e:
        sys.stderr.write(f"Warning: Failed to open GIT_TRACE target {trace_target}: {e}\n")
        return None


def default_logging_config() -> None:
    """Set up the default loggers for the helper process.

    GIT_TRACE selects where debug output goes: "1", "2" or "true" for
    standard error, 3-9 for that file descriptor, an absolute path for a
    file, or a directory for one file per process. Without it, or if the
    target cannot be opened, INFO and above go to standard error.
    """
    remove_null_handler()

    trace_target = _get_trace_target()
    handler = _trace_handler(trace_target) if trace_target is not None else None
    if handler is not None:
        logging.basicConfig(
            level=logging.DEBUG,
            handlers=[handler],
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            stream=sys.stderr,
            format="%(levelname)s: %(message)s",
        )


def remove_null_handler() -> None:
    """Remove the null handler from the driveremote loggers."""
    _DRIVEREMOTE_LOGGER.removeHandler(_NULL_HANDLER)


def set_verbosity(verbosity: int) -> None:
    """Adjust the package log level for a git ``option verbosity`` value.

    While GIT_TRACE is set the package logs at DEBUG whatever git asks for.

    Args:
        verbosity: 0 for quiet, 1 for the default, 2 or more for debug output
    """
    if _get_trace_target() is not None:
        level = logging.DEBUG
    else:
        level = _VERBOSITY_LEVELS.get(max(verbosity, 0), logging.DEBUG)
    _DRIVEREMOTE_LOGGER.setLevel(level)

# config.py -- Configuration for git-remote-drive
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

"""Configuration for git-remote-drive.

An optional INI file with a single ``[drive]`` section::

    [drive]
    # drive (default) or local
    backend = drive
    # directory used by the local backend
    local_root = /srv/git-drive
    token_path = ~/.git-remote-drive.json
    secret_path = ~/.git-remote-drive.secret
    root_id = appDataFolder
    spaces = appDataFolder
    http_timeout = 20
    page_size = 1000
"""

__all__ = [
    "BACKENDS",
    "CONFIG_ENV",
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "DEFAULTS",
    "SECTION",
    "load_conf",
]

import os
from configparser import ConfigParser
from typing import IO

from .credentials import DEFAULT_SECRET_PATH, DEFAULT_TOKEN_PATH
from .drive import APP_DATA_FOLDER, DEFAULT_PAGE_SIZE, DEFAULT_TIMEOUT
from .errors import DriveRemoteError

CONFIG_ENV = "GIT_REMOTE_DRIVE_CFG"
DEFAULT_CONFIG_PATH = "~/.git-remote-drive.cfg"
SECTION = "drive"
BACKENDS = ("drive", "local")

DEFAULTS = {
    "backend": "drive",
    "local_root": "",
    "token_path": DEFAULT_TOKEN_PATH,
    "secret_path": DEFAULT_SECRET_PATH,
    "root_id": APP_DATA_FOLDER,
    "spaces": APP_DATA_FOLDER,
    "http_timeout": str(DEFAULT_TIMEOUT),
    "page_size": str(DEFAULT_PAGE_SIZE),
}


class ConfigError(DriveRemoteError):
    """The configuration file is missing or invalid."""


def load_conf(path: str | None = None, file: IO[str] | None = None) -> ConfigParser:
    """Load the configuration.

    The file named by path, else by $GIT_REMOTE_DRIVE_CFG, else
    ~/.git-remote-drive.cfg is read if it exists. Missing settings take
    their defaults.

    Args:
      path: The path to the configuration file
      file: If provided read instead the file like object
    Raises:
      ConfigError: if an explicitly named file does not exist or a
        setting is invalid
    """
    conf = ConfigParser()
    conf.read_dict({SECTION: DEFAULTS})
    if file:
        conf.read_file(file, path)
    else:
        confpath = path or os.environ.get(CONFIG_ENV)
        if confpath:
            if not os.path.isfile(confpath):
                raise ConfigError(f"Unable to read configuration file {confpath}")
            conf.read(confpath)
        else:
            default_path = os.path.expanduser(DEFAULT_CONFIG_PATH)
            if os.path.isfile(default_path):
                conf.read(default_path)

    backend = conf.get(SECTION, "backend")
    if backend not in BACKENDS:
        raise ConfigError(f"unknown backend {backend!r}, expected one of {BACKENDS}")
    if backend == "local" and not conf.get(SECTION, "local_root"):
        raise ConfigError("the local backend needs local_root to be set")
    try:
        conf.getfloat(SECTION, "http_timeout")
        conf.getint(SECTION, "page_size")
    except ValueError as exc:
        raise ConfigError(f"invalid setting in [{SECTION}]: {exc}") from exc
    return conf

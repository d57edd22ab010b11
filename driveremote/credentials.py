# credentials.py -- OAuth credentials for the Drive API
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

"""OAuth credentials for the Drive API.

Two files are involved: the client secret downloaded from the Google API
console (``~/.git-remote-drive.secret``) and the token obtained by
consenting to the drive.appdata scope (``~/.git-remote-drive.json``).
Both are only ever read; a refreshed access token is kept in memory.
"""

__all__ = [
    "ClientSecret",
    "CredentialNotFoundError",
    "DEFAULT_SECRET_PATH",
    "DEFAULT_TOKEN_PATH",
    "OAuthCredentials",
    "load_client_secret",
]

import json
import logging
import os
from typing import TYPE_CHECKING, Any, NamedTuple

from .errors import HTTPUnauthorized

if TYPE_CHECKING:
    import urllib3

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_PATH = "~/.git-remote-drive.json"
DEFAULT_SECRET_PATH = "~/.git-remote-drive.secret"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
DRIVE_APPDATA_SCOPE = "https://www.googleapis.com/auth/drive.appdata"


class CredentialNotFoundError(Exception):
    """The credentials needed to talk to Drive are missing or unusable."""


class ClientSecret(NamedTuple):
    """The OAuth client this helper authenticates as."""

    client_id: str
    client_secret: str
    token_uri: str


def _load_json(path: str, what: str) -> dict[str, Any]:
    path = os.path.expanduser(path)
    try:
        with open(path, "rb") as f:
            data = json.load(f)
    except FileNotFoundError as exc:
        raise CredentialNotFoundError(f"{what} file {path} not found") from exc
    except (OSError, ValueError) as exc:
        raise CredentialNotFoundError(f"unable to read {what} file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CredentialNotFoundError(f"{what} file {path} is not a JSON object")
    return data


def load_client_secret(path: str = DEFAULT_SECRET_PATH) -> ClientSecret:
    """Read a client secret file.

    Both "installed" and "web" application secrets are accepted.

    Raises:
      CredentialNotFoundError: if the file is missing or lacks a client id
    """
    data = _load_json(path, "client secret")
    section = data.get("installed") or data.get("web")
    if not isinstance(section, dict) or "client_id" not in section:
        raise CredentialNotFoundError(
            f"client secret file {path} has no installed or web client"
        )
    return ClientSecret(
        section["client_id"],
        section.get("client_secret", ""),
        section.get("token_uri", DEFAULT_TOKEN_URI),
    )


class OAuthCredentials:
    """A bearer token and what is needed to refresh it."""

    def __init__(
        self,
        client: ClientSecret,
        access_token: str,
        refresh_token: str | None = None,
    ) -> None:
        """Initialize OAuthCredentials.

        Args:
          client: Client the token was issued to
          access_token: Current bearer token
          refresh_token: Long-lived token used to obtain new access tokens
        """
        self.client = client
        self.access_token = access_token
        self.refresh_token = refresh_token

    @classmethod
    def from_files(
        cls, secret_path: str = DEFAULT_SECRET_PATH, token_path: str = DEFAULT_TOKEN_PATH
    ) -> "OAuthCredentials":
        """Load credentials from a client secret file and a token file.

        Raises:
          CredentialNotFoundError: if either file is missing or unusable
        """
        client = load_client_secret(secret_path)
        token = _load_json(token_path, "token")
        if not token.get("access_token") and not token.get("refresh_token"):
            raise CredentialNotFoundError(f"token file {token_path} holds no token")
        return cls(client, token.get("access_token", ""), token.get("refresh_token"))

    def authorization_header(self) -> dict[str, str]:
        """Return the headers that authenticate a request."""
        return {"Authorization": f"Bearer {self.access_token}"}

    def refresh(
        self, pool_manager: "urllib3.PoolManager", timeout: float | None = None
    ) -> None:
        """Exchange the refresh token for a new access token.

        Raises:
          CredentialNotFoundError: if there is no refresh token
          HTTPUnauthorized: if the token endpoint rejects the request
        """
        if not self.refresh_token:
            raise CredentialNotFoundError("access token expired and no refresh token")
        logger.debug("refreshing access token at %s", self.client.token_uri)
        resp = pool_manager.request(
            "POST",
            self.client.token_uri,
            fields={
                "grant_type": "refresh_token",
                "refresh_token": self.refresh_token,
                "client_id": self.client.client_id,
                "client_secret": self.client.client_secret,
            },
            encode_multipart=False,
            timeout=timeout,
        )
        if resp.status != 200:
            raise HTTPUnauthorized(self.client.token_uri)
        data = json.loads(resp.data)
        self.access_token = data["access_token"]
        if data.get("refresh_token"):
            self.refresh_token = data["refresh_token"]

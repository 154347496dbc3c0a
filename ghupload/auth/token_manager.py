# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""API token resolution for ghupload.

Every authenticated call needs exactly one token. TokenManager works out
which one, in this order:

1. An explicit ``--token`` override is used as-is.
2. With ``--reset-token``, or when nothing is cached, a new token is minted
   from a username and password (prompting for whatever is missing) and
   written to the cache.
3. A username without a password, or the reverse, is an error.
4. A username and password together mint a one-off token that is NOT
   cached.
5. Otherwise the cached token is used without any network call.

Minting is a Basic-authenticated ``POST /authorizations`` asking for the
``repo`` scope. Tokens are never written to any log.

Example:
    ```python
    from ghupload.auth import (
        ConsolePrompter,
        Credentials,
        GitConfigTokenCache,
        TokenManager,
    )
    from ghupload.io import HttpTransport

    manager = TokenManager(
        Credentials(),
        transport=HttpTransport(),
        cache=GitConfigTokenCache(),
        prompter=ConsolePrompter(),
    )
    token = manager.resolve()
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
import enum
import getpass
import json
from typing import Protocol

from ghupload.auth.token_cache import TokenCache
from ghupload.exceptions import AuthenticationError, InvalidInvocationError
from ghupload.io.transport import HttpTransport, StatusClass
from ghupload.logging import Logger, get_global_logger

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TOKEN_NOTE = "github-upload"
TOKEN_SCOPES = ["repo"]


@dataclass(frozen=True)
class Credentials:
    """Authentication inputs collected from the command line.

    Attributes:
        token: Explicit token override.
        username: Account name for minting a token.
        password: Account password for minting a token.
        reset_token: Mint and cache a new token even if one is cached.
        skip_tls_verification: Disable certificate checks on every call.
    """

    token: str | None = None
    username: str | None = None
    password: str | None = None
    reset_token: bool = False
    skip_tls_verification: bool = False

    def __repr__(self) -> str:
        return (
            f"Credentials(token={'***' if self.token else None}, "
            f"username={self.username!r}, "
            f"password={'***' if self.password else None}, "
            f"reset_token={self.reset_token}, "
            f"skip_tls_verification={self.skip_tls_verification})"
        )


class TokenState(enum.Enum):
    NO_TOKEN = "no_token"
    RESOLVING = "resolving"
    RESOLVED = "resolved"
    FAILED = "failed"


class CredentialPrompter(Protocol):
    """Source of interactively entered credentials."""

    def prompt_username(self) -> str:
        ...

    def prompt_password(self) -> str:
        ...


class ConsolePrompter:
    """Prompt on the terminal; the password is read without echo."""

    def prompt_username(self) -> str:
        try:
            return input("Username: ").strip()
        except (EOFError, KeyboardInterrupt) as err:
            raise InvalidInvocationError("No username entered") from err

    def prompt_password(self) -> str:
        try:
            return getpass.getpass("Password: ")
        except (EOFError, KeyboardInterrupt) as err:
            raise InvalidInvocationError("No password entered") from err


class TokenManager:
    """Resolves the API token for one run.

    Args:
        credentials: Overrides and flags from the command line.
        transport: Transport used for the mint call.
        cache: Persistent token cache.
        prompter: Asked for a username/password when minting needs them.
        api_url: Base URL of the hosting API.
        note: Label attached to newly minted tokens.
        logger: Logger; defaults to the global logger.

    Attributes:
        state: Current TokenState. RESOLVED and FAILED are terminal.
    """

    def __init__(
        self,
        credentials: Credentials,
        transport: HttpTransport,
        cache: TokenCache,
        prompter: CredentialPrompter,
        api_url: str = DEFAULT_API_URL,
        note: str = DEFAULT_TOKEN_NOTE,
        logger: Logger | None = None,
    ) -> None:
        self.credentials = credentials
        self.transport = transport
        self.cache = cache
        self.prompter = prompter
        self.api_url = api_url.rstrip("/")
        self.note = note
        self.state = TokenState.NO_TOKEN
        self._logger = logger or get_global_logger()
        self._token: str | None = None

    def resolve(self) -> str:
        """Return the token for this run, minting one if needed.

        Returns:
            The resolved token. Repeated calls return the same token.

        Raises:
            AuthenticationError: Minting was refused (401 means bad
                username or password).
            InvalidInvocationError: Only one of username/password given.
            TransportError: The mint call could not be made.
        """
        if self.state is TokenState.RESOLVED and self._token is not None:
            return self._token

        self.state = TokenState.RESOLVING
        try:
            token = self._resolve()
        except Exception:
            self.state = TokenState.FAILED
            raise

        self._token = token
        self.state = TokenState.RESOLVED
        return token

    def _resolve(self) -> str:
        creds = self.credentials

        if creds.token:
            self._logger.verbose("AUTH", "Using token given on the command line")
            return creds.token

        cached = None if creds.reset_token else self.cache.load()

        if creds.reset_token or not cached:
            if creds.reset_token:
                self._logger.verbose("AUTH", "Token reset requested")
            else:
                self._logger.verbose("AUTH", "No cached token found")
            username = creds.username or self.prompter.prompt_username()
            password = creds.password or self.prompter.prompt_password()
            token = self._mint(username, password)
            self.cache.store(token)
            self._logger.verbose("AUTH", "Token saved to cache")
            return token

        if bool(creds.username) != bool(creds.password):
            raise InvalidInvocationError(
                "Username and password must be given together"
            )

        if creds.username and creds.password:
            self._logger.verbose("AUTH", "Minting a one-off token (not cached)")
            return self._mint(creds.username, creds.password)

        self._logger.verbose("AUTH", "Using cached token")
        return cached

    def _mint(self, username: str, password: str) -> str:
        url = f"{self.api_url}/authorizations"
        payload = json.dumps({"note": self.note, "scopes": TOKEN_SCOPES})

        self._logger.verbose("AUTH", f"Requesting a new token for {username}")
        resp = self.transport.post(
            url,
            payload,
            headers={"Content-Type": "application/json"},
            basic_auth=(username, password),
        )

        if resp.status_code == 401:
            raise AuthenticationError("Invalid username or password")
        if resp.status_class is not StatusClass.SUCCESS:
            raise AuthenticationError(
                f"Token request failed: {resp.status_code} {resp.reason}"
            )

        try:
            token = resp.json()["token"]
        except (ValueError, KeyError, TypeError) as err:
            raise AuthenticationError(
                "Token response did not contain a token"
            ) from err

        if not token:
            raise AuthenticationError("Token response did not contain a token")

        self._logger.verbose("AUTH", "Token created")
        return token

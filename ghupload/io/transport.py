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

"""HTTPS transport for ghupload.

This module wraps a requests.Session with the few behaviors the upload
protocol needs and nothing more.

Key Features:

- **HTTPS only** - Plain http:// URLs are refused before any connection.
- **Per-request auth** - Either an ``Authorization: token <value>`` header or
  HTTP Basic credentials, never both on the same call.
- **No retries** - The session adapters are mounted with ``Retry(total=0)``;
  the first connection or TLS failure is raised as TransportError.
- **Explicit status classes** - Responses carry a StatusClass computed from
  the status code range, so callers branch on SUCCESS / CLIENT_ERROR /
  SERVER_ERROR instead of on exception types.
- **Opt-in insecure mode** - ``skip_tls_verification=True`` turns off
  certificate checks for the whole session. It is never the default.

Example:
    ```python
    from ghupload.io import HttpTransport, StatusClass

    transport = HttpTransport()
    resp = transport.get("https://api.github.com/repos/acme/tools/downloads", token)
    if resp.status_class is StatusClass.SUCCESS:
        downloads = resp.json()
    ```
"""

from __future__ import annotations

from dataclasses import dataclass, field
import enum
import json
from typing import Any
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from requests.auth import AuthBase
from urllib3.util.retry import Retry

from ghupload.exceptions import TransportError
from ghupload.logging import Logger, get_global_logger

USER_AGENT = "ghupload/0.1"


class TokenAuth(AuthBase):
    """Sets ``Authorization: token <value>``, or leaves the request bare.

    Every request passes one as ``auth=``, so requests never applies
    ~/.netrc credentials on top of it.
    """

    def __init__(self, token: str | None = None) -> None:
        self.token = token

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        if self.token:
            r.headers["Authorization"] = f"token {self.token}"
        return r


class StatusClass(enum.Enum):
    """Coarse classification of an HTTP status code."""

    SUCCESS = "success"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    UNEXPECTED = "unexpected"


def classify_status(status_code: int) -> StatusClass:
    """Map a status code to its StatusClass by range.

    Example:
        ```python
        classify_status(201)  # StatusClass.SUCCESS
        classify_status(422)  # StatusClass.CLIENT_ERROR
        classify_status(302)  # StatusClass.UNEXPECTED
        ```
    """
    if 200 <= status_code < 300:
        return StatusClass.SUCCESS
    if 400 <= status_code < 500:
        return StatusClass.CLIENT_ERROR
    if 500 <= status_code < 600:
        return StatusClass.SERVER_ERROR
    return StatusClass.UNEXPECTED


@dataclass(frozen=True)
class Response:
    """Fully read HTTP response.

    Attributes:
        status_code: HTTP status code.
        reason: HTTP reason phrase.
        body: Raw response body.
        headers: Response headers.
    """

    status_code: int
    reason: str
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def status_class(self) -> StatusClass:
        return classify_status(self.status_code)

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


def make_session(skip_tls_verification: bool = False) -> requests.Session:
    """Create a requests.Session for API and storage calls.

    - Mounts adapters with retries disabled; failures are terminal.
    - Sets a User-Agent identifying ghupload.
    - Disables certificate verification only when asked to.
    """
    s = requests.Session()
    no_retries = Retry(total=0, raise_on_status=False)
    s.headers.update({"User-Agent": USER_AGENT})
    s.mount("http://", HTTPAdapter(max_retries=no_retries))
    s.mount("https://", HTTPAdapter(max_retries=no_retries))
    if skip_tls_verification:
        s.verify = False
    return s


class HttpTransport:
    """Blocking HTTPS client used by the token manager and the orchestrator.

    Args:
        skip_tls_verification: Disable certificate verification. Reduces
            trust in the remote end; only for self-signed test servers.
        timeout: Per-request timeout in seconds. None leaves the requests
            default (wait indefinitely).
        session: Pre-built session, mainly for tests.
        logger: Logger for request tracing. Defaults to the global logger.
    """

    def __init__(
        self,
        skip_tls_verification: bool = False,
        timeout: float | None = None,
        session: requests.Session | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._logger = logger or get_global_logger()
        self._timeout = timeout
        self._session = session or make_session(skip_tls_verification)
        self.skip_tls_verification = skip_tls_verification

        if skip_tls_verification:
            self._logger.verbose(
                "HTTP", "WARNING: TLS certificate verification is disabled"
            )

    def get(self, url: str, token: str | None = None) -> Response:
        return self._request("GET", url, token=token)

    def post(
        self,
        url: str,
        body: bytes | str,
        headers: dict[str, str] | None = None,
        token: str | None = None,
        basic_auth: tuple[str, str] | None = None,
    ) -> Response:
        """POST body to url.

        Args:
            url: HTTPS URL.
            body: Request payload, sent as-is.
            headers: Extra request headers (e.g., Content-Type).
            token: API token for the Authorization header.
            basic_auth: (username, password) for HTTP Basic.

        Raises:
            ValueError: If both token and basic_auth are given.
            TransportError: On non-HTTPS URLs or connection failures.
        """
        if token and basic_auth:
            raise ValueError("token and basic_auth are mutually exclusive")
        return self._request(
            "POST",
            url,
            token=token,
            basic_auth=basic_auth,
            body=body,
            headers=headers,
        )

    def delete(self, url: str, token: str | None = None) -> Response:
        return self._request("DELETE", url, token=token)

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        url: str,
        *,
        token: str | None = None,
        basic_auth: tuple[str, str] | None = None,
        body: bytes | str | None = None,
        headers: dict[str, str] | None = None,
    ) -> Response:
        if urlparse(url).scheme != "https":
            raise TransportError(f"Refusing non-HTTPS URL: {url}")

        auth: AuthBase | tuple[str, str] = basic_auth or TokenAuth(token)

        self._logger.debug("HTTP", f"{method} {url}")
        if body is not None:
            self._logger.debug("HTTP", f"Request body: {len(body)} bytes")

        try:
            resp = self._session.request(
                method,
                url,
                data=body,
                headers=dict(headers or {}),
                auth=auth,
                timeout=self._timeout,
            )
        except requests.exceptions.SSLError as err:
            raise TransportError(f"TLS failure talking to {url}: {err}") from err
        except requests.exceptions.RequestException as err:
            raise TransportError(f"{method} {url} failed: {err}") from err

        self._logger.debug("HTTP", f"Response: {resp.status_code} {resp.reason}")

        return Response(
            status_code=resp.status_code,
            reason=resp.reason or "",
            body=resp.content,
            headers=dict(resp.headers),
        )

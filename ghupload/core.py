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

"""Core orchestration for ghupload.

This module drives a complete upload to a repository's downloads area.

Two-Phase Upload:

- **Register** - ``POST /repos/{repo}/downloads`` with the file's name,
    size, description and content type. The API answers 201 with a
    pre-signed object-store target: the bucket URL plus the storage key,
    ACL, access key id, policy and signature to send along.

- **Push** - ``POST`` the file as multipart/form-data straight to the
    bucket URL, with the signed fields first and the file last. No API token
    is sent to the object store; the signed policy is the authorization.

A forced upload first lists the repository's downloads and deletes every
entry whose name matches exactly. Registration still treats an existing
name as fatal afterwards.

Design Principles:

- Steps run strictly in order and the first failure aborts the upload
- Nothing is retried
- Collaborators (transport, token manager, content type detection) are
  passed in, so tests can replace each of them
- Errors are exceptions; the CLI layer formats them for the user

Example:
    Programmatic usage:
        ```python
        from pathlib import Path
        from ghupload.auth import Credentials
        from ghupload.core import UploadRequest, upload_file

        request = UploadRequest.create(Path("dist/tool-1.0.zip"), "acme/tools")
        result = upload_file(request, Credentials())
        print(result.url)
        ```

"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import json
import os
from pathlib import Path
from typing import Any

from ghupload.auth import (
    ConsolePrompter,
    CredentialPrompter,
    Credentials,
    GitConfigTokenCache,
    TokenCache,
    TokenManager,
)
from ghupload.config import UploadConfig, load_effective_config
from ghupload.exceptions import (
    InvalidInvocationError,
    RemoteConflictError,
    StorageRejectedError,
)
from ghupload.io import (
    FileField,
    HttpTransport,
    MultipartEncoder,
    MultipartField,
    StatusClass,
    TextField,
    detect_content_type,
)
from ghupload.io.content_type import strip_parameters
from ghupload.logging import Logger, get_global_logger
from ghupload.results import UploadResult

SUCCESS_ACTION_STATUS = 201


@dataclass(frozen=True)
class UploadRequest:
    """What to upload and where.

    Attributes:
        file_path: Local file to upload.
        repository: Target repository in "owner/name" form.
        display_name: Name the file gets on the remote side.
        description: Free-text description shown next to the download.
        force_overwrite: Delete remote files with the same name first.
    """

    file_path: Path | None
    repository: str
    display_name: str
    description: str = ""
    force_overwrite: bool = False

    @classmethod
    def create(
        cls,
        file_path: Path | None,
        repository: str,
        *,
        display_name: str | None = None,
        description: str = "",
        force_overwrite: bool = False,
    ) -> UploadRequest:
        """Build a request, naming the remote file after the local one by default."""
        if display_name is None:
            display_name = Path(file_path).name if file_path else ""
        return cls(
            file_path=Path(file_path) if file_path else None,
            repository=repository,
            display_name=display_name,
            description=description,
            force_overwrite=force_overwrite,
        )


@dataclass(frozen=True)
class RemoteFile:
    """One entry of a repository's downloads listing."""

    id: str
    name: str


@dataclass(frozen=True)
class UploadTicket:
    """Pre-signed upload target returned by the registration call.

    Attributes:
        upload_target_url: Object store URL to POST the file to (s3_url).
        storage_key: Object key inside the bucket (path).
        access_control: Canned ACL (acl).
        access_key_id: Storage access key id (accesskeyid).
        signed_policy: Base64 upload policy (policy).
        signature: Policy signature (signature).
        mime_type: Content type the store will serve (mime_type).
        remote_name: Registered file name (name).
    """

    upload_target_url: str
    storage_key: str
    access_control: str
    access_key_id: str
    signed_policy: str
    signature: str
    mime_type: str
    remote_name: str

    _RESPONSE_KEYS = {
        "upload_target_url": "s3_url",
        "storage_key": "path",
        "access_control": "acl",
        "access_key_id": "accesskeyid",
        "signed_policy": "policy",
        "signature": "signature",
        "mime_type": "mime_type",
        "remote_name": "name",
    }

    @classmethod
    def from_response(cls, data: Any) -> UploadTicket:
        """Build a ticket from the registration response JSON.

        Raises:
            RemoteConflictError: If the response is not an object or lacks
                any of the upload fields.
        """
        if not isinstance(data, dict):
            raise RemoteConflictError("Unexpected registration response")

        missing = [
            key for key in cls._RESPONSE_KEYS.values() if data.get(key) is None
        ]
        if missing:
            raise RemoteConflictError(
                f"Unexpected registration response, missing: {', '.join(missing)}"
            )

        return cls(
            **{attr: str(data[key]) for attr, key in cls._RESPONSE_KEYS.items()}
        )

    @property
    def public_url(self) -> str:
        return f"{self.upload_target_url}{self.storage_key}"


def build_storage_fields(
    ticket: UploadTicket, file_field: FileField
) -> list[MultipartField]:
    """Form fields for the object-store POST, file last."""
    return [
        TextField("key", ticket.storage_key),
        TextField("acl", ticket.access_control),
        TextField("success_action_status", SUCCESS_ACTION_STATUS),
        TextField("Filename", ticket.remote_name),
        TextField("AWSAccessKeyId", ticket.access_key_id),
        TextField("Policy", ticket.signed_policy),
        TextField("signature", ticket.signature),
        TextField("Content-Type", ticket.mime_type),
        file_field,
    ]


class UploadOrchestrator:
    """Runs the upload steps for one UploadRequest.

    Args:
        config: Effective configuration (API URL, timeouts).
        transport: HTTPS transport for every call.
        token_manager: Resolves the API token.
        content_type_detector: Returns the MIME type of a local file.
        encoder: Multipart encoder for the storage push.
        logger: Logger; defaults to the global logger.
    """

    def __init__(
        self,
        config: UploadConfig,
        transport: HttpTransport,
        token_manager: TokenManager,
        content_type_detector: Callable[[Path], str] = detect_content_type,
        encoder: MultipartEncoder | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.config = config
        self.transport = transport
        self.token_manager = token_manager
        self.content_type_detector = content_type_detector
        self.encoder = encoder or MultipartEncoder()
        self._logger = logger or get_global_logger()

    def upload(self, request: UploadRequest) -> UploadResult:
        """Upload request.file_path and return where it ended up.

        Raises:
            InvalidInvocationError: Missing or unreadable file.
            AuthenticationError: Token could not be minted.
            RemoteConflictError: Name taken, registration refused, or a
                forced delete failed.
            StorageRejectedError: The object store did not return 201.
            TransportError: Network or TLS failure on any call.
        """
        logger = self._logger
        total = 5 if request.force_overwrite else 4
        step = 1

        logger.step(step, total, "Checking file...")
        file_path = self._validate_file(request)
        size = file_path.stat().st_size
        mime_type = strip_parameters(self.content_type_detector(file_path))
        logger.verbose("UPLOAD", f"File: {file_path} ({size} bytes, {mime_type})")
        logger.verbose("UPLOAD", f"Repository: {request.repository}")
        logger.verbose("UPLOAD", f"Remote name: {request.display_name}")

        step += 1
        logger.step(step, total, "Authenticating...")
        token = self.token_manager.resolve()

        deleted_ids: list[str] = []
        if request.force_overwrite:
            step += 1
            logger.step(step, total, "Removing existing remote file...")
            deleted_ids = self._delete_existing(request, token)

        step += 1
        logger.step(step, total, "Registering download...")
        ticket = self._register(request, token, size, mime_type)

        step += 1
        logger.step(step, total, "Uploading to storage...")
        file_field = FileField.from_path("file", file_path, mime_type)
        self._push(ticket, file_field)

        return UploadResult(
            url=ticket.public_url,
            repository=request.repository,
            remote_name=ticket.remote_name,
            size=size,
            mime_type=mime_type,
            deleted_ids=deleted_ids,
        )

    def list_remote_files(self, repository: str, token: str) -> list[RemoteFile]:
        url = self.config.downloads_url(repository)
        resp = self.transport.get(url, token)
        if resp.status_class is not StatusClass.SUCCESS:
            raise RemoteConflictError(
                f"Could not list downloads for {repository}: "
                f"{resp.status_code} {resp.reason}"
            )

        try:
            entries = resp.json()
        except ValueError as err:
            raise RemoteConflictError(
                f"Downloads listing for {repository} is not valid JSON"
            ) from err
        if not isinstance(entries, list):
            raise RemoteConflictError(
                f"Downloads listing for {repository} is not a list"
            )

        return [
            RemoteFile(id=str(entry["id"]), name=str(entry.get("name", "")))
            for entry in entries
            if isinstance(entry, dict) and entry.get("id") not in (None, "")
        ]

    def _validate_file(self, request: UploadRequest) -> Path:
        if not request.file_path or not str(request.file_path).strip():
            raise InvalidInvocationError("No file to upload was given")

        file_path = Path(request.file_path)
        if not file_path.exists():
            raise InvalidInvocationError(f"File not found: {file_path}")
        if not file_path.is_file():
            raise InvalidInvocationError(f"Not a regular file: {file_path}")
        if not os.access(file_path, os.R_OK):
            raise InvalidInvocationError(f"File is not readable: {file_path}")
        if not request.display_name:
            raise InvalidInvocationError("Remote file name cannot be empty")
        return file_path

    def _delete_existing(self, request: UploadRequest, token: str) -> list[str]:
        deleted: list[str] = []
        for remote in self.list_remote_files(request.repository, token):
            if remote.name != request.display_name:
                continue

            self._logger.info("UPLOAD", f"Deleting existing file '{remote.name}'")
            url = f"{self.config.downloads_url(request.repository)}/{remote.id}"
            resp = self.transport.delete(url, token)

            if resp.status_code == 404:
                self._logger.verbose(
                    "UPLOAD", f"'{remote.name}' (id {remote.id}) was already gone"
                )
                continue
            if resp.status_class is not StatusClass.SUCCESS:
                raise RemoteConflictError(
                    f"Could not delete existing file '{remote.name}' "
                    f"(id {remote.id}): {resp.status_code} {resp.reason}"
                )
            deleted.append(remote.id)

        if not deleted:
            self._logger.verbose("UPLOAD", "No remote file with that name")
        return deleted

    def _register(
        self, request: UploadRequest, token: str, size: int, mime_type: str
    ) -> UploadTicket:
        payload = {
            "name": request.display_name,
            "size": str(size),
            "description": request.description,
            "content_type": mime_type,
        }
        body = json.dumps(payload, separators=(",", ":"))
        resp = self.transport.post(
            self.config.downloads_url(request.repository),
            body,
            headers={"Content-Type": "application/json"},
            token=token,
        )

        if resp.status_class is StatusClass.CLIENT_ERROR:
            raise RemoteConflictError(
                f"File already exists named '{request.display_name}'."
            )
        if resp.status_code != 201:
            raise RemoteConflictError(
                f"The downloads API refused the upload: "
                f"{resp.status_code} {resp.reason}"
            )

        try:
            data = resp.json()
        except ValueError as err:
            raise RemoteConflictError(
                "Registration response is not valid JSON"
            ) from err

        ticket = UploadTicket.from_response(data)
        self._logger.verbose("UPLOAD", f"Upload target: {ticket.upload_target_url}")
        self._logger.debug("UPLOAD", f"Storage key: {ticket.storage_key}")
        return ticket

    def _push(self, ticket: UploadTicket, file_field: FileField) -> None:
        body, headers = self.encoder.encode(build_storage_fields(ticket, file_field))
        self._logger.debug("MULTIPART", f"Body: {len(body)} bytes")

        resp = self.transport.post(ticket.upload_target_url, body, headers=headers)
        if resp.status_code != 201:
            raise StorageRejectedError(
                f"Storage rejected the upload: {resp.status_code} {resp.reason}"
            )


def upload_file(
    request: UploadRequest,
    credentials: Credentials,
    *,
    config: UploadConfig | None = None,
    prompter: CredentialPrompter | None = None,
    cache: TokenCache | None = None,
    transport: HttpTransport | None = None,
    content_type_detector: Callable[[Path], str] = detect_content_type,
) -> UploadResult:
    """Upload a file with the default collaborators wired together.

    Args:
        request: What to upload and where.
        credentials: Token override, username/password and flags.
        config: Effective configuration. Loaded from the environment if None.
        prompter: Credential prompter. Defaults to the terminal.
        cache: Token cache. Defaults to the user-global git config.
        transport: HTTPS transport. Built from config if None (and closed
            afterwards).
        content_type_detector: MIME type detector for the file.

    Returns:
        Upload result with the public URL of the file.

    Raises:
        GHUploadError: Any of its subclasses; see UploadOrchestrator.upload.
    """
    if config is None:
        config = load_effective_config()

    owns_transport = transport is None
    if transport is None:
        transport = HttpTransport(
            skip_tls_verification=(
                credentials.skip_tls_verification or config.skip_tls_verification
            ),
            timeout=config.timeout,
        )

    try:
        token_manager = TokenManager(
            credentials,
            transport=transport,
            cache=cache or GitConfigTokenCache(config.token_cache_key),
            prompter=prompter or ConsolePrompter(),
            api_url=config.api_url,
            note=config.token_note,
        )
        orchestrator = UploadOrchestrator(
            config,
            transport=transport,
            token_manager=token_manager,
            content_type_detector=content_type_detector,
        )
        return orchestrator.upload(request)
    finally:
        if owns_transport:
            transport.close()

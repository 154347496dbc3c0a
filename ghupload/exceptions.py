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

"""Exception hierarchy for ghupload.

This module defines a custom exception hierarchy that allows library users
to tell apart the different ways an upload can fail:

- InvalidInvocationError: Bad input (missing file, unpaired credentials)
- AuthenticationError: Token minting failed (bad username or password)
- RemoteConflictError: The downloads API refused the file
- TransportError: Network or TLS level failure
- StorageRejectedError: The object store did not accept the file
- ConfigError: Configuration file or token cache problems

All exceptions inherit from GHUploadError, so callers can catch every
ghupload failure with a single except clause. None of them are retried;
the CLI maps each one to a message and a non-zero exit status.

Example:
    Catching specific error types:
        ```python
        from ghupload.core import upload_file
        from ghupload.exceptions import AuthenticationError, RemoteConflictError

        try:
            result = upload_file(request, credentials)
        except AuthenticationError as e:
            print(f"Login failed: {e}")
        except RemoteConflictError as e:
            print(f"Upload refused: {e}")
        ```

    Catching all ghupload errors:
        ```python
        from ghupload.exceptions import GHUploadError

        try:
            result = upload_file(request, credentials)
        except GHUploadError as e:
            print(f"Error: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "GHUploadError",
    "InvalidInvocationError",
    "AuthenticationError",
    "RemoteConflictError",
    "TransportError",
    "StorageRejectedError",
    "ConfigError",
]


class GHUploadError(Exception):
    """Base exception for all ghupload errors."""

    pass


class InvalidInvocationError(GHUploadError):
    """Raised when the upload was requested with unusable input.

    This exception is raised when:

    - No file path was given, or the file is missing or unreadable
    - Only one of username and password was supplied
    - The target repository could not be determined
    """

    pass


class AuthenticationError(GHUploadError):
    """Raised when a new API token could not be minted.

    A 401 from the authorizations endpoint means the username or password
    is wrong. Other failures carry the HTTP status in the message.
    """

    pass


class RemoteConflictError(GHUploadError):
    """Raised when the downloads API refuses the request.

    This exception is raised when:

    - A file with the same name already exists remotely
    - The registration call returned anything other than 201 Created
    - Listing or deleting existing downloads failed
    - The registration response is missing upload fields
    """

    pass


class TransportError(GHUploadError):
    """Raised for network-level failures.

    Connection errors, TLS verification failures and timeouts all end up
    here, chained to the underlying requests exception. Non-HTTPS URLs are
    rejected with this error before any connection is made.
    """

    pass


class StorageRejectedError(GHUploadError):
    """Raised when the object store did not answer the final push with 201."""

    pass


class ConfigError(GHUploadError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - Reading or parsing the YAML configuration file
    - Unknown or invalid configuration values
    - Writing the token to the git config cache

    Example:
        Catching configuration errors:
            ```python
            from ghupload.config import load_effective_config
            from ghupload.exceptions import ConfigError

            try:
                config = load_effective_config(Path("ghupload.yaml"))
            except ConfigError as e:
                print(f"Config error: {e}")
            ```
    """

    pass

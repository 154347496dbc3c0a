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

"""ghupload - upload files to a GitHub repository's downloads

A small CLI and library that registers a file with the downloads API and
pushes it straight to the pre-signed object-store target it hands back.

ghupload provides:

- Token handling: explicit token, cached token (git config), or a token
  minted from username and password
- Optional replacement of an existing remote file with the same name
- A byte-exact multipart/form-data builder for the storage push
- Layered configuration (defaults, YAML file, environment)

Quick Start:
Upload a file to the current checkout's repository:

    $ ghupload dist/tool-1.0.zip

Upload to a given repository, replacing any file with the same name:

    $ ghupload dist/tool-1.0.zip acme/tools --force

For full CLI documentation:

    $ ghupload --help

For more details, see the individual module docstrings.
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "Upload files to GitHub repository downloads"

# Re-export commonly used functions for convenience
from ghupload.auth import Credentials, TokenManager
from ghupload.config import UploadConfig, load_effective_config
from ghupload.core import UploadOrchestrator, UploadRequest, upload_file
from ghupload.exceptions import (
    AuthenticationError,
    ConfigError,
    GHUploadError,
    InvalidInvocationError,
    RemoteConflictError,
    StorageRejectedError,
    TransportError,
)
from ghupload.io import encode_multipart
from ghupload.results import UploadResult

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "Credentials",
    "TokenManager",
    "UploadConfig",
    "load_effective_config",
    "UploadOrchestrator",
    "UploadRequest",
    "upload_file",
    "encode_multipart",
    "UploadResult",
    "GHUploadError",
    "InvalidInvocationError",
    "AuthenticationError",
    "RemoteConflictError",
    "TransportError",
    "StorageRejectedError",
    "ConfigError",
]

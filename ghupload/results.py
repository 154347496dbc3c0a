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

"""Public API return types for ghupload.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Note:
    Only public API return types belong in this module. Domain types
    (like UploadTicket or RemoteFile) stay next to the code that builds them.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class UploadResult:
    """Result from uploading a file.

    Attributes:
        url: Public URL of the uploaded file (storage URL + storage key).
        repository: Target repository in "owner/name" form.
        remote_name: Name the file was registered under.
        size: Uploaded size in bytes.
        mime_type: Content type sent at registration.
        deleted_ids: IDs of remote files removed by a forced upload.
        status: Always "success" for a completed upload.
    """

    url: str
    repository: str
    remote_name: str
    size: int
    mime_type: str
    deleted_ids: list[str] = field(default_factory=list)
    status: str = "success"

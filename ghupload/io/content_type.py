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

"""Content type detection for files being uploaded.

The downloads API wants a MIME type at registration time. It is sniffed from
the file's bytes with the ``file`` utility. When ``file`` is not installed
(e.g., on Windows) the extension is used via mimetypes, and anything still
unknown is sent as application/octet-stream.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path
import subprocess

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def strip_parameters(content_type: str) -> str:
    """Drop everything after the first ';' (charset and friends)."""
    return content_type.split(";", 1)[0].strip()


def detect_content_type(path: Path) -> str:
    """Return the MIME type of a local file.

    Args:
        path: File to inspect.

    Returns:
        A bare MIME type such as "application/pdf", without parameters.

    Example:
        ```python
        detect_content_type(Path("report.pdf"))  # 'application/pdf'
        ```
    """
    path = Path(path)
    try:
        result = subprocess.run(
            ["file", "-b", "--mime-type", str(path.resolve())],
            capture_output=True,
            text=True,
            check=True,
            timeout=30,
        )
    except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired):
        result = None

    if result is not None:
        sniffed = strip_parameters(result.stdout)
        if sniffed:
            return sniffed

    guessed, _ = mimetypes.guess_type(path.name)
    return strip_parameters(guessed) if guessed else DEFAULT_CONTENT_TYPE

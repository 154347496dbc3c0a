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

"""multipart/form-data body builder for ghupload.

The object store behind the downloads API expects a plain HTML-form style
POST: the signed policy fields first, the file last. This module builds that
body by hand so the exact byte layout, the field order and the field name
encoding are under our control.

Body Layout:

    --<boundary>\\r\\n
    Content-Disposition: form-data; name="key"\\r\\n
    \\r\\n
    <value>\\r\\n
    --<boundary>\\r\\n
    Content-Disposition: form-data; name="file"; filename="report.pdf"\\r\\n
    Content-Type: application/pdf\\r\\n
    Content-Length: 1024\\r\\n
    Content-Transfer-Encoding: binary\\r\\n
    \\r\\n
    <raw bytes>\\r\\n
    --<boundary>--

Field Order:

Fields are written in exactly the order the caller passes them. The encoder
never sorts or moves a field. Callers must put FileField entries last; some
storage services treat whatever follows the file as out of band.

Name Encoding:

Field names keep [A-Za-z0-9_.-] and every other byte of their UTF-8 form
becomes %xx with lowercase hex. This is narrower than urllib.parse.quote and
has to match byte for byte.

Example:
    ```python
    from ghupload.io.multipart import FileField, TextField, encode_multipart

    body, headers = encode_multipart([
        TextField("key", "downloads/acme/tools/report.pdf"),
        TextField("success_action_status", 201),
        FileField.from_path("file", Path("report.pdf"), "application/pdf"),
    ])
    requests.post(s3_url, data=body, headers=headers)
    ```
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
import random
import re
from typing import Any, Union

CRLF = b"\r\n"

_UNSAFE_NAME_BYTES = re.compile(rb"[^A-Za-z0-9_.\-]")


@dataclass(frozen=True)
class TextField:
    """A plain form value. Non-string values are rendered with str()."""

    name: str
    value: Any


@dataclass(frozen=True)
class FileField:
    """A file attachment. Content is held fully in memory.

    Attributes:
        name: Form field name.
        file_name: Value of the filename parameter (basename only).
        mime_type: Value for the part's Content-Type header.
        content: Raw file bytes.
    """

    name: str
    file_name: str
    mime_type: str
    content: bytes

    @property
    def byte_length(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, name: str, path: Path, mime_type: str) -> FileField:
        """Read a file into a FileField named after the file's basename."""
        path = Path(path)
        return cls(
            name=name,
            file_name=path.name,
            mime_type=mime_type,
            content=path.read_bytes(),
        )


MultipartField = Union[TextField, FileField]


def encode_field_name(name: str) -> str:
    """Percent-encode a form field name.

    Args:
        name: Field name as given by the caller.

    Returns:
        The name with every byte outside [A-Za-z0-9_.-] replaced by %xx
            (lowercase hex).

    Example:
        ```python
        encode_field_name("a b.txt")      # 'a%20b.txt'
        encode_field_name("field_1-x.y")  # 'field_1-x.y'
        ```
    """
    raw = name.encode("utf-8")
    encoded = _UNSAFE_NAME_BYTES.sub(lambda m: b"%%%02x" % m.group(0)[0], raw)
    return encoded.decode("ascii")


def generate_boundary() -> str:
    """Return a boundary built from two random numbers.

    Collisions with field content are not guarded against; the random parts
    only need to make one unlikely.
    """
    return f"{random.randrange(1000000)}-ghupload-boundary-{random.randrange(1000000)}"


def _encode_part(field: MultipartField) -> bytes:
    name = encode_field_name(field.name)

    if isinstance(field, FileField):
        header_lines = [
            f'Content-Disposition: form-data; name="{name}"; '
            f'filename="{Path(field.file_name).name}"',
            f"Content-Type: {field.mime_type}",
            f"Content-Length: {field.byte_length}",
            "Content-Transfer-Encoding: binary",
        ]
        value = field.content
    else:
        header_lines = [f'Content-Disposition: form-data; name="{name}"']
        value = str(field.value).encode("utf-8")

    headers = CRLF.join(line.encode("utf-8") for line in header_lines)
    return headers + CRLF + CRLF + value + CRLF


def encode_multipart(
    fields: Iterable[MultipartField], boundary: str | None = None
) -> tuple[bytes, dict[str, str]]:
    """Serialize fields into a multipart/form-data body.

    Args:
        fields: Fields in the order they must appear on the wire.
        boundary: Boundary to use. A random one is generated if omitted.

    Returns:
        A tuple (body, headers), where headers holds the matching
            Content-Type with the boundary parameter.

    Note:
        An empty field list produces a body holding only the closing
        boundary.
    """
    if boundary is None:
        boundary = generate_boundary()

    delimiter = f"--{boundary}".encode("ascii")
    chunks: list[bytes] = []
    for field in fields:
        chunks.append(delimiter + CRLF)
        chunks.append(_encode_part(field))
    chunks.append(delimiter + b"--")

    headers = {"Content-Type": f"multipart/form-data; boundary={boundary}"}
    return b"".join(chunks), headers


class MultipartEncoder:
    """Encoder object with an injectable boundary factory.

    Example:
        ```python
        encoder = MultipartEncoder(boundary_factory=lambda: "fixed")
        body, headers = encoder.encode(fields)
        ```
    """

    def __init__(self, boundary_factory: Callable[[], str] | None = None) -> None:
        self._boundary_factory = boundary_factory or generate_boundary

    def encode(self, fields: Iterable[MultipartField]) -> tuple[bytes, dict[str, str]]:
        return encode_multipart(fields, boundary=self._boundary_factory())

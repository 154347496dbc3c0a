"""Input/Output operations for ghupload.

This package holds the wire-level pieces of an upload: the HTTPS transport,
the multipart/form-data builder and the content type sniffer.

Modules:

transport : module
    HTTPS requests with per-call token or Basic auth, no retries.
multipart : module
    multipart/form-data body builder that preserves field order.
content_type : module
    MIME type detection for local files.

Example:
    from ghupload.io import HttpTransport, TextField, encode_multipart

    body, headers = encode_multipart([TextField("key", "path/on/s3")])
    resp = HttpTransport().post("https://bucket.s3.amazonaws.com/", body, headers)

"""

from .content_type import detect_content_type
from .multipart import (
    FileField,
    MultipartEncoder,
    MultipartField,
    TextField,
    encode_field_name,
    encode_multipart,
)
from .transport import HttpTransport, Response, StatusClass, classify_status

__all__ = [
    "detect_content_type",
    "FileField",
    "MultipartEncoder",
    "MultipartField",
    "TextField",
    "encode_field_name",
    "encode_multipart",
    "HttpTransport",
    "Response",
    "StatusClass",
    "classify_status",
]

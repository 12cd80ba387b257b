"""
Checks applied to documents and photos before they are uploaded.

A failed check aborts the upload with a message meant for the user.
"""

import mimetypes
import os
from typing import Optional

DEFAULT_MAX_BYTES = 10 * 1024 * 1024

# Accept lists per application document type
DOCUMENT_ACCEPT = {
    "id": "image/*,.pdf",
    "guardian-id": "image/*,.pdf",
    "income": "image/*,.pdf",
    "video": "video/*",
}
IMAGE_ACCEPT = "image/*"


class ValidationError(ValueError):
    """Bad input caught before anything was sent."""


def format_file_size(size: int) -> str:
    """1536 -> '1.5 KB'."""
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = 0
    value = float(size)
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def guess_mime_type(path: str) -> str:
    return mimetypes.guess_type(path)[0] or "application/octet-stream"


def is_accepted(filename: str, mime_type: str, accept: str) -> bool:
    """Match against an accept list of '.ext', 'type/*' or exact MIME entries."""
    ext = os.path.splitext(filename)[1].lower()
    for entry in (e.strip() for e in accept.split(",")):
        if not entry:
            continue
        if entry.startswith("."):
            if entry.lower() == ext:
                return True
        elif entry.endswith("/*"):
            if mime_type.startswith(entry[:-1]):
                return True
        elif entry == mime_type:
            return True
    return False


def validate_upload(
    path: str,
    accept: Optional[str] = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> str:
    """Raise ValidationError if the file can't be uploaded; return its MIME type."""
    if not os.path.isfile(path):
        raise ValidationError(f"File not found: {path}")

    size = os.path.getsize(path)
    if size > max_bytes:
        raise ValidationError(f"File size must be less than {format_file_size(max_bytes)}")

    mime_type = guess_mime_type(path)
    if accept and not is_accepted(os.path.basename(path), mime_type, accept):
        raise ValidationError(f"File type not accepted. Accepted types: {accept}")
    return mime_type

from __future__ import annotations

import mimetypes
import tempfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import BinaryIO

from fastapi import UploadFile

from docstore.core.errors import ValidationFailed

READ_CHUNK = 1024 * 1024
SPOOL_IN_MEMORY_BYTES = 5 * 1024 * 1024

# Magic byte signatures for known binary file types.
_MAGIC_SIGNATURES: dict[str, list[bytes]] = {
    ".pdf": [b"%PDF"],
    ".png": [b"\x89PNG\r\n\x1a\n"],
    ".jpg": [b"\xff\xd8\xff"],
    ".jpeg": [b"\xff\xd8\xff"],
    ".gif": [b"GIF87a", b"GIF89a"],
    ".webp": [b"RIFF"],
    ".docx": [b"PK\x03\x04", b"PK\x05\x06"],
    ".xlsx": [b"PK\x03\x04", b"PK\x05\x06"],
    ".zip": [b"PK\x03\x04", b"PK\x05\x06"],
}

# Extensions whose content can execute scripts when rendered in a browser.
_DANGEROUS_EXTENSIONS = {".html", ".htm", ".svg", ".xhtml", ".js", ".mjs", ".xml"}


@dataclass(slots=True)
class SpooledUpload:
    stream: BinaryIO
    original_name: str
    extension: str
    content_type: str
    size_bytes: int

    def close(self) -> None:
        self.stream.close()


def _validate_content(header_bytes: bytes, ext: str) -> None:
    if ext in _DANGEROUS_EXTENSIONS:
        raise ValidationFailed(
            f"File type '{ext}' is not allowed because it may contain executable content",
            errors={"file": [f"File type '{ext}' is not allowed"]},
        )
    signatures = _MAGIC_SIGNATURES.get(ext)
    if signatures is None:
        return
    if not any(header_bytes.startswith(sig) for sig in signatures):
        raise ValidationFailed(
            f"File content does not match the expected format for '{ext}'",
            errors={"file": ["File content does not match its extension"]},
        )


def display_name(filename: str | None, fallback: str = "upload.bin") -> str:
    if not filename:
        return fallback
    return PurePosixPath(filename.replace("\\", "/")).name or fallback


def guess_content_type(filename: str, declared: str | None) -> str:
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or declared or "application/octet-stream"


async def spool_upload(file: UploadFile, *, max_size_bytes: int = 0) -> SpooledUpload:
    """Copy an incoming upload into a rewindable spool, enforcing size and content checks.

    The spool is what drivers read from, so a driver never sees a partially
    validated stream.
    """
    original_name = display_name(file.filename)
    ext = PurePosixPath(original_name).suffix.lower()
    spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_IN_MEMORY_BYTES)
    size = 0
    try:
        first = True
        while True:
            chunk = await file.read(READ_CHUNK)
            if not chunk:
                break
            if first:
                _validate_content(chunk, ext)
                first = False
            size += len(chunk)
            if max_size_bytes and size > max_size_bytes:
                raise ValidationFailed(
                    f"File exceeds maximum allowed size of {max_size_bytes // (1024 * 1024)} MB",
                    errors={"file": ["File is too large"]},
                )
            spool.write(chunk)
        if first:
            _validate_content(b"", ext)
        if size == 0:
            raise ValidationFailed("Uploaded file is empty", errors={"file": ["File is empty"]})
    except BaseException:
        spool.close()
        raise
    finally:
        await file.close()

    spool.seek(0)
    return SpooledUpload(
        stream=spool,
        original_name=original_name,
        extension=ext.lstrip("."),
        content_type=guess_content_type(original_name, file.content_type),
        size_bytes=size,
    )


def format_size(size_bytes: int | None) -> str:
    if size_bytes is None:
        return "0 B"
    if size_bytes < 1024:
        return f"{size_bytes} B"
    value = float(size_bytes)
    for unit in ("KB", "MB", "GB"):
        value /= 1024
        if value < 1024:
            break
    return f"{value:.2f} {unit}"

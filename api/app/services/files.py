from __future__ import annotations

import logging
from pathlib import Path
from uuid import uuid4

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "pdf": {"application/pdf"},
    "doc": {"application/msword"},
    "docx": {"application/vnd.openxmlformats-officedocument.wordprocessingml.document"},
}
REFERENCE_PREFIX = "/uploads/"


class FileRejectedError(Exception):
    """Raised when an upload is not an accepted resume document."""


class FileTooLargeError(FileRejectedError):
    """Raised when an upload exceeds the configured size limit."""


class LocalFileStore:
    def __init__(self, upload_dir: str | Path, *, max_bytes: int = 5 * 1024 * 1024) -> None:
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    def validate(self, filename: str | None, content_type: str | None) -> str:
        extension = Path(filename or "").suffix.lower().lstrip(".")
        allowed_types = ALLOWED_CONTENT_TYPES.get(extension)
        if not allowed_types:
            raise FileRejectedError("only pdf, doc and docx files are allowed")
        if (content_type or "").split(";")[0].strip().lower() not in allowed_types:
            raise FileRejectedError("only pdf, doc and docx files are allowed")
        return extension

    def store(self, filename: str | None, content_type: str | None, data: bytes) -> str:
        extension = self.validate(filename, content_type)
        if not data:
            raise FileRejectedError("file is empty")
        if len(data) > self.max_bytes:
            raise FileTooLargeError(f"file exceeds {self.max_bytes} bytes")

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        name = f"{uuid4()}.{extension}"
        (self.upload_dir / name).write_bytes(data)
        logger.info("resume stored name=%s bytes=%s", name, len(data))
        return f"{REFERENCE_PREFIX}{name}"

    def resolve(self, reference: str) -> Path | None:
        if not reference.startswith(REFERENCE_PREFIX):
            return None
        name = reference[len(REFERENCE_PREFIX) :]
        # Only bare file names written by store() are resolvable.
        if not name or Path(name).name != name or name.startswith("."):
            return None
        path = self.upload_dir / name
        return path if path.is_file() else None

    def discard(self, reference: str) -> None:
        path = self.resolve(reference)
        if path is not None:
            path.unlink(missing_ok=True)

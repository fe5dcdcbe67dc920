# retailer_api/uploads.py
"""
File Reference Resolver for logo and profile image uploads.

Uploaded files are written under UPLOAD_DIR with a generated name; the
name is the stable reference stored on the retailer row.
"""

from __future__ import annotations

import uuid
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from retailer_api.accounts.errors import StorageError, ValidationError

log = logging.getLogger("retailer.uploads")

ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})
MAX_UPLOAD_BYTES = 5 * 1024 * 1024


class FileReferenceResolver(ABC):
    @abstractmethod
    async def resolve(self, upload: Optional[UploadFile], prefix: str) -> Optional[str]:
        """Store the upload and return its reference, or None if nothing was sent."""
        pass


class LocalUploadResolver(FileReferenceResolver):
    """Writes uploads to a local directory."""

    def __init__(self, upload_dir: str | Path, max_bytes: int = MAX_UPLOAD_BYTES):
        self.upload_dir = Path(upload_dir).resolve()
        self.max_bytes = max_bytes

    async def resolve(self, upload: Optional[UploadFile], prefix: str) -> Optional[str]:
        if upload is None or not upload.filename:
            return None

        ext = Path(upload.filename).suffix.lower()
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise ValidationError(
                f"{prefix} must be an image ({', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))})"
            )

        content = await upload.read()
        if len(content) > self.max_bytes:
            raise ValidationError(f"{prefix} exceeds {self.max_bytes // (1024 * 1024)} MB")

        name = f"{prefix}-{uuid.uuid4().hex}{ext}"
        try:
            await run_in_threadpool(self._write, name, content)
        except OSError as e:
            log.error("Failed to store upload %s: %s", name, e)
            raise StorageError("Failed to store uploaded file") from e

        log.info("Stored upload %s (%d bytes)", name, len(content))
        return name

    def _write(self, name: str, content: bytes) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        (self.upload_dir / name).write_bytes(content)

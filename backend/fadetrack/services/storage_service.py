"""
Fadetrack Backend: Object Storage Service
=========================================

What:  Validates image uploads and stores them in the public
       `portfolio-images` bucket on the local storage volume.
How:   All checks run on the in-memory upload before anything touches the
       disk; the write itself uses aiofiles so the event loop never blocks.

Validation order (cheapest first):
    1. Declared content type is JPEG, PNG, WebP or GIF
    2. Declared Content-Length, then actual byte count, is ≤ 5MB
    3. Folder name is a plain relative path (no "..", no absolute paths)
    4. Content sniffing with libmagic, when available, agrees it is an image

Layout:
    <storage_root>/<bucket>/<folder>/<epoch-ms>-<random>.<ext>
    served at <public_base_url>/storage/<bucket>/<folder>/<name>
"""

import logging
import re
import secrets
import time
from pathlib import Path
from typing import Dict, Optional

import aiofiles

from fadetrack.config import settings
from fadetrack.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES: Dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

_FOLDER_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+$")


class StorageService:
    """
    Stores validated images and resolves stored paths for serving.

    `storage_root` and `bucket` can be overridden per instance (tests use a
    temporary directory).
    """

    def __init__(
        self,
        storage_root: Optional[str] = None,
        bucket: Optional[str] = None,
        max_size: Optional[int] = None,
    ):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.bucket = bucket or settings.storage_bucket
        self.max_size = max_size or settings.max_upload_size

    @property
    def bucket_root(self) -> Path:
        return self.storage_root / self.bucket

    # ── Validation ────────────────────────────────────────────────────────

    def validate_content_type(self, content_type: Optional[str]) -> str:
        """Return the file extension for an allowed MIME type."""
        mime = (content_type or "").split(";", 1)[0].strip().lower()
        if mime not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message="Invalid file type. Only JPEG, PNG, WebP, and GIF images are allowed.",
                field="file",
                context={"content_type": mime or None, "allowed": sorted(set(ALLOWED_MIME_TYPES))},
            )
        return ALLOWED_MIME_TYPES[mime]

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        max_mb = self.max_size / (1024 * 1024)
        for size in (content_length, actual_size):
            if size and size > self.max_size:
                raise ValidationError(
                    message=f"File too large. Maximum size is {max_mb:.0f}MB.",
                    field="file",
                    context={"max_size": self.max_size, "size": size},
                )
        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty", field="file")

    def validate_folder(self, folder: Optional[str]) -> str:
        """Normalize a caller-chosen folder; reject anything that could escape the bucket."""
        if not folder:
            return ""
        segments = [s for s in folder.strip().strip("/").split("/") if s]
        if not all(_FOLDER_SEGMENT.match(s) for s in segments):
            raise ValidationError(
                message="Invalid folder name. Use letters, numbers, '-' and '_' only.",
                field="folder",
                context={"folder": folder},
            )
        return "/".join(segments)

    def sniff_content(self, content: bytes) -> None:
        """
        Confirm the bytes really are an allowed image.

        Skipped, with a warning, when libmagic is not installed; the declared
        content type has already been checked by then.
        """
        try:
            import magic
        except ImportError:
            logger.warning("python-magic not available; skipping content sniffing")
            return

        try:
            detected = magic.from_buffer(content[:2048], mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", e)
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if detected not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message="Invalid file type. Only JPEG, PNG, WebP, and GIF images are allowed.",
                field="file",
                context={"detected_mime": detected},
            )

    # ── Storage ───────────────────────────────────────────────────────────

    def public_url(self, relative_path: str) -> str:
        base = settings.public_base_url.rstrip("/")
        return f"{base}/storage/{self.bucket}/{relative_path}"

    async def save_image(
        self,
        content: bytes,
        content_type: Optional[str],
        folder: Optional[str] = None,
        content_length: Optional[int] = None,
    ) -> Dict[str, str]:
        """
        Validate and store an image.

        Returns:
            {"url": public URL, "path": path relative to the bucket}

        Raises:
            ValidationError:  wrong type, too large, empty, bad folder
            FileStorageError: the write failed
        """
        extension = self.validate_content_type(content_type)
        self.validate_size(content_length, len(content))
        folder = self.validate_folder(folder)
        self.sniff_content(content)

        name = f"{int(time.time() * 1000)}-{secrets.token_hex(4)}.{extension}"
        relative_path = f"{folder}/{name}" if folder else name
        absolute_path = self.bucket_root / relative_path

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store upload at %s: %s", absolute_path, e)
            raise FileStorageError(
                message=f"Failed to upload image: {e}",
                context={"path": relative_path},
            )

        logger.info("Stored %s (%d bytes)", relative_path, len(content))
        return {"url": self.public_url(relative_path), "path": relative_path}

    def resolve(self, bucket: str, relative_path: str) -> Path:
        """Absolute path of a stored object, refusing anything outside the bucket."""
        if bucket != self.bucket:
            raise NotFoundError(resource="bucket", resource_id=bucket)

        root = self.bucket_root.resolve()
        full_path = (root / relative_path).resolve()
        if not full_path.is_relative_to(root):
            raise ValidationError(message="Invalid file path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path


storage_service = StorageService()

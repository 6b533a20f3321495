"""Image validation and storage for post attachments."""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from ..config import get_settings
from ..constants import ALLOWED_IMAGE_CONTENT_TYPES, ALLOWED_IMAGE_EXTENSIONS
from ..errors import UnexpectedError, ValidationError

logger = logging.getLogger(__name__)

_GENERIC_CONTENT_TYPES = {"", "application/octet-stream"}
_EXTENSION_CONTENT_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
}


@dataclass(frozen=True)
class ImageUpload:
    """An upload that passed the allow-list and size checks."""

    filename: str
    extension: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class StoredImage:
    url: str
    key: str


class ImageStorage(Protocol):
    async def save(self, image: ImageUpload) -> StoredImage: ...

    def delete(self, key: str) -> None: ...


def upload_is_present(file: UploadFile | None) -> bool:
    """Browsers submit an empty, nameless part when no file was picked."""

    return file is not None and bool((file.filename or "").strip())


async def validate_image_upload(file: UploadFile, *, max_bytes: int | None = None) -> ImageUpload:
    """Check extension, MIME type and size before anything is stored."""

    limit = max_bytes if max_bytes is not None else get_settings().max_image_bytes
    filename = (file.filename or "").strip()
    extension = Path(filename).suffix.lower()
    if extension not in ALLOWED_IMAGE_EXTENSIONS:
        allowed = ", ".join(sorted(ext.lstrip(".") for ext in ALLOWED_IMAGE_EXTENSIONS))
        raise ValidationError(f"Only image files are allowed ({allowed})")

    declared = (file.content_type or "").split(";")[0].strip().lower()
    if declared not in ALLOWED_IMAGE_CONTENT_TYPES and declared not in _GENERIC_CONTENT_TYPES:
        raise ValidationError("Only image files are allowed")

    data = await file.read(limit + 1)
    if not data:
        raise ValidationError("Uploaded image is empty")
    if len(data) > limit:
        raise ValidationError(f"Image exceeds the maximum size of {limit} bytes")

    content_type = declared if declared in ALLOWED_IMAGE_CONTENT_TYPES else _EXTENSION_CONTENT_TYPES[extension]
    return ImageUpload(filename=filename, extension=extension, content_type=content_type, data=data)


def validate_image_url(url: str | None) -> str | None:
    """Normalise an externally hosted image reference."""

    candidate = (url or "").strip()
    if not candidate:
        return None
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValidationError("image_url must be an http(s) URL")
    return candidate


def object_key(extension: str, folder: str = "posts") -> str:
    """Generate a unique key anchored within ``folder``."""

    safe_folder = re.sub(r"[^A-Za-z0-9._-]", "-", folder).strip("-._") or "uploads"
    return f"{safe_folder}/{uuid.uuid4().hex}{extension}"


class LocalImageStorage:
    """Writes images under ``root`` and serves them from ``url_prefix``."""

    def __init__(self, root: Path, url_prefix: str = "/media") -> None:
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def _path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise ValidationError("Invalid media key")
        return path

    async def save(self, image: ImageUpload) -> StoredImage:
        key = object_key(image.extension)
        path = self._path_for(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(image.data)

        try:
            await run_in_threadpool(_write)
        except OSError as exc:
            logger.exception("Failed to write image %s", key)
            raise UnexpectedError("Unable to store image") from exc

        logger.info("Stored image %s (%d bytes)", key, len(image.data))
        return StoredImage(url=f"{self.url_prefix}/{key}", key=key)

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        path.unlink(missing_ok=True)
        logger.info("Deleted image %s", key)


@lru_cache(maxsize=1)
def get_image_storage() -> ImageStorage:
    """Return the storage backend selected by ``IMAGE_STORAGE``."""

    settings = get_settings()
    backend = settings.image_storage.strip().lower()
    if backend == "spaces":
        from .spaces_service import SpacesImageStorage

        return SpacesImageStorage()
    if backend != "local":
        raise RuntimeError(f"Unknown IMAGE_STORAGE backend: {settings.image_storage}")
    return LocalImageStorage(settings.media_root, settings.media_url_prefix)


__all__ = [
    "ImageUpload",
    "StoredImage",
    "ImageStorage",
    "LocalImageStorage",
    "upload_is_present",
    "validate_image_upload",
    "validate_image_url",
    "object_key",
    "get_image_storage",
]

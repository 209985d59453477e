# catalog_api/core/storage_utils.py
"""
Image storage for catalog uploads.

Services only need "store bytes, return a path" and "forget a path";
two backends are provided:

  - LocalImageStorage    : writes under UPLOAD_DIR, returns "/uploads/<folder>/<file>"
  - SupabaseImageStorage : uploads to a Supabase bucket, returns the public URL

The active backend is chosen by STORAGE_BACKEND and handed to routers
through the `get_image_storage` dependency.
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from fastapi import UploadFile

from catalog_api.core.config import get_settings
from catalog_api.core.errors import ValidationError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5MB per image

ALLOWED_IMAGE_CONTENT_TYPES: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


@dataclass(frozen=True)
class ImageUpload:
    """An uploaded file already read into memory."""

    content_type: str | None
    data: bytes
    filename: str | None = None


class ImageStorage(Protocol):
    def save(self, folder: str, upload: ImageUpload) -> str:
        ...

    def delete(self, path: str) -> None:
        ...


def validate_image(upload: ImageUpload) -> str:
    """
    Check content type + size and return the file extension to use.

    Raises:
        ValidationError: unsupported type or file too large.
    """
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        raise ValidationError("Only images allowed (JPEG, PNG, WEBP, GIF).")
    if len(upload.data) > MAX_IMAGE_BYTES:
        raise ValidationError("Image too large (max 5MB).")
    return ALLOWED_IMAGE_CONTENT_TYPES[content_type]


def generate_filename(ext: str) -> str:
    """
    Generate a random filename using UUID4.

    Args:
        ext: File extension without dot (e.g. "png", "jpg")

    Returns:
        A filename like "<uuid4>.png"
    """
    return f"{uuid.uuid4()}.{ext}"


class LocalImageStorage:
    """
    Stores files on local disk; paths are served by the /uploads static mount.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def save(self, folder: str, upload: ImageUpload) -> str:
        ext = validate_image(upload)
        filename = generate_filename(ext)
        target_dir = self.root / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / filename).write_bytes(upload.data)
        return f"/uploads/{folder}/{filename}"

    def delete(self, path: str) -> None:
        prefix = "/uploads/"
        if not path.startswith(prefix):
            return
        target = self.root / path[len(prefix):]
        target.unlink(missing_ok=True)


class SupabaseImageStorage:
    """
    Stores files in a Supabase Storage bucket and returns public URLs.
    """

    def __init__(self, bucket: str):
        from catalog_api.core.supabase_client import supabase_admin

        self.bucket = bucket
        self.client = supabase_admin()

    def save(self, folder: str, upload: ImageUpload) -> str:
        ext = validate_image(upload)
        path = f"{folder}/{generate_filename(ext)}"
        self.client.storage.from_(self.bucket).upload(
            path,
            upload.data,
            {"content-type": upload.content_type, "upsert": "true"},
        )
        return self.client.storage.from_(self.bucket).get_public_url(path)

    def extract_path_from_public_url(self, url: str) -> str | None:
        """
        Given a public URL, extract the object path relative to the bucket.

        Example:
            https://<proj>.supabase.co/storage/v1/object/public/assets/products/a.png
            -> 'products/a.png'
        """
        marker = f"/storage/v1/object/public/{self.bucket}/"
        idx = url.find(marker)
        if idx == -1:
            return None
        return url[idx + len(marker) :]

    def delete(self, path: str) -> None:
        object_path = self.extract_path_from_public_url(path)
        if object_path:
            self.client.storage.from_(self.bucket).remove([object_path])


def get_image_storage() -> ImageStorage:
    """
    FastAPI dependency returning the configured storage backend.
    """
    settings = get_settings()
    if settings.STORAGE_BACKEND == "supabase":
        return SupabaseImageStorage(settings.SUPABASE_BUCKET)
    return LocalImageStorage(settings.UPLOAD_DIR)


def resolve_image_url(path: str | None) -> str | None:
    """
    Turn a stored path into the URL clients should use.

    - absolute URLs (Supabase public URLs) are returned unchanged
    - in production, relative paths get PUBLIC_PATH_PREFIX ("/backend")
    - otherwise the path is returned as stored
    """
    if not path:
        return path
    if path.startswith(("http://", "https://")):
        return path
    settings = get_settings()
    if settings.is_production:
        return f"{settings.PUBLIC_PATH_PREFIX.rstrip('/')}{path}"
    return path


def delete_quietly(storage: ImageStorage, paths: list[str]) -> None:
    """
    Best-effort cleanup of stored files after their rows are gone.
    """
    for path in paths:
        try:
            storage.delete(path)
        except Exception:
            logger.warning("Could not remove stored image %s", path, exc_info=True)


def read_upload(file: UploadFile | None) -> ImageUpload | None:
    """
    Read a multipart file field into memory; empty file inputs count as absent.
    """
    if file is None or not file.filename:
        return None
    return ImageUpload(
        content_type=file.content_type,
        data=file.file.read(),
        filename=file.filename,
    )


def read_uploads(files: list[UploadFile] | None) -> list[ImageUpload]:
    uploads = [read_upload(f) for f in files or []]
    return [u for u in uploads if u is not None]

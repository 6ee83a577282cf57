import base64
import binascii
import logging
import os
import re
import uuid
from typing import Optional

from fastapi import Depends, UploadFile

from config import Settings, get_settings
from errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png"}
ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png"}
DATA_URI_PREFIX = re.compile(r"^data:image/\w+;base64,")


class ImageStore:
    """Local image storage served under /uploads."""

    def __init__(self, root: str, max_bytes: int, url_prefix: str = "/uploads"):
        self.root = root
        self.max_bytes = max_bytes
        self.url_prefix = url_prefix.rstrip("/")

    def save_upload(self, upload: UploadFile, folder: str, prefix: str) -> str:
        ext = os.path.splitext(upload.filename or "")[1].lower()
        if ext not in ALLOWED_EXTENSIONS or (upload.content_type and upload.content_type not in ALLOWED_MIME_TYPES):
            raise ValidationError("Only JPEG, JPG, PNG files are allowed.")
        data = upload.file.read()
        return self._write(data, folder, prefix, ext)

    def save_base64(self, image: str, folder: str, prefix: str) -> str:
        try:
            data = base64.b64decode(DATA_URI_PREFIX.sub("", image), validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Image data is not valid base64.")
        return self._write(data, folder, prefix, ".png")

    def _write(self, data: bytes, folder: str, prefix: str, ext: str) -> str:
        if not data:
            raise ValidationError("Uploaded image is empty.")
        if len(data) > self.max_bytes:
            raise ValidationError("File size is too large. Maximum filesize is 5MB per image.")
        fname = f"{prefix}_{uuid.uuid4().hex}{ext}"
        try:
            dest_dir = os.path.join(self.root, folder)
            os.makedirs(dest_dir, exist_ok=True)
            with open(os.path.join(dest_dir, fname), "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error("Image write to %s failed: %s", folder, e)
            raise UpstreamError("Image upload failed.")
        return f"{self.url_prefix}/{folder}/{fname}"


def get_image_store(settings: Settings = Depends(get_settings)) -> ImageStore:
    return ImageStore(settings.upload_dir, settings.max_image_bytes)


def has_file(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)

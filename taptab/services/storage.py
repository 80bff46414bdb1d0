"""
Image storage for dish and hero images.

Uploads are validated (type, size, decodable), downscaled with Pillow and
written under ``<upload_directory>/<bucket>/``; the returned public URL
is served by the ``/static`` mount.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from taptab.core.config import get_settings

logger = logging.getLogger(__name__)

BUCKETS = ("dish-images", "hero-images")

# content type -> (Pillow format, file extension)
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ("JPEG", "jpg"),
    "image/jpg": ("JPEG", "jpg"),
    "image/png": ("PNG", "png"),
    "image/webp": ("WEBP", "webp"),
    "image/gif": ("GIF", "gif"),
}
JPEG_QUALITY = 85


class StorageError(ValueError):
    """Rejected upload; the message is safe to show to the owner."""


@dataclass
class StoredImage:
    url: str
    path: Path
    width: int
    height: int
    size_bytes: int


def get_resize_width_height(width: int, height: int, max_width: int) -> tuple[int, int]:
    if width <= max_width:
        return width, height
    ratio = max_width / width
    return max_width, max(1, int(height * ratio))


def optimize_image(data: bytes, content_type: str, max_width: int) -> tuple[bytes, int, int]:
    """
    Downscale to ``max_width`` and re-encode.

    GIFs are stored untouched so animations survive.

    Raises:
        StorageError: If the bytes are not a readable image
    """
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise StorageError("File is not a valid image") from e

    image_format, _ = ALLOWED_IMAGE_TYPES[content_type]
    if image_format == "GIF":
        return data, image.width, image.height

    if image_format == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    new_size = get_resize_width_height(image.width, image.height, max_width)
    if new_size != image.size:
        logger.info(f"Image resized: {image.width}x{image.height} -> {new_size[0]}x{new_size[1]}")
        image = image.resize(new_size, Image.Resampling.LANCZOS)

    output = BytesIO()
    if image_format == "JPEG":
        image.save(output, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    elif image_format == "WEBP":
        image.save(output, format="WEBP", quality=JPEG_QUALITY)
    else:
        image.save(output, format="PNG", optimize=True)
    return output.getvalue(), image.width, image.height


class LocalImageStorage:
    def __init__(
        self,
        upload_directory: str,
        max_bytes: int,
        max_width: int,
        public_prefix: str = "/static/uploads",
    ):
        self.root = Path(upload_directory)
        self.max_bytes = max_bytes
        self.max_width = max_width
        self.public_prefix = public_prefix.rstrip("/")

    def save(
        self,
        bucket: str,
        data: bytes,
        content_type: Optional[str],
        folder: Optional[str] = None,
    ) -> StoredImage:
        """
        Validate, optimize and store an upload.

        Raises:
            StorageError: Unknown bucket, unsupported type, too large or unreadable
        """
        if bucket not in BUCKETS:
            raise StorageError(f"Unknown bucket: {bucket}")
        content_type = (content_type or "").lower()
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise StorageError("Please upload a valid image file (JPEG, PNG, WebP, or GIF)")
        if len(data) > self.max_bytes:
            raise StorageError(f"Image must be smaller than {self.max_bytes // (1024 * 1024)}MB")

        content, width, height = optimize_image(data, content_type, self.max_width)

        _, extension = ALLOWED_IMAGE_TYPES[content_type]
        folder = re.sub(r"[^a-zA-Z0-9_-]", "", folder or "")
        name = f"{uuid.uuid4().hex}.{extension}"
        relative = Path(bucket, folder, name) if folder else Path(bucket, name)
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

        logger.info(f"Stored {bucket} image {relative} ({len(content)} bytes)")
        return StoredImage(
            url=f"{self.public_prefix}/{relative.as_posix()}",
            path=path,
            width=width,
            height=height,
            size_bytes=len(content),
        )


def get_image_storage() -> LocalImageStorage:
    settings = get_settings()
    return LocalImageStorage(
        settings.upload_directory,
        max_bytes=settings.max_upload_mb * 1024 * 1024,
        max_width=settings.max_image_width,
    )

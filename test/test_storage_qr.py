from io import BytesIO

import pytest
from PIL import Image

from taptab.services.qr import make_qr_png
from taptab.services.storage import (
    LocalImageStorage,
    StorageError,
    get_resize_width_height,
)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def image_bytes(width, height, image_format="PNG", mode="RGB"):
    buffer = BytesIO()
    Image.new(mode, (width, height), color=(200, 80, 40) if mode == "RGB" else 128).save(
        buffer, format=image_format
    )
    return buffer.getvalue()


@pytest.fixture
def storage(tmp_path):
    return LocalImageStorage(str(tmp_path), max_bytes=1024 * 1024, max_width=400)


def test_resize_keeps_aspect_ratio():
    assert get_resize_width_height(800, 600, 400) == (400, 300)
    assert get_resize_width_height(300, 200, 400) == (300, 200)


def test_save_downscales_wide_images(storage, tmp_path):
    stored = storage.save("dish-images", image_bytes(800, 400), "image/png", folder="rest-1")

    assert (stored.width, stored.height) == (400, 200)
    assert stored.url.startswith("/static/uploads/dish-images/rest-1/")
    assert stored.url.endswith(".png")
    assert stored.path.is_file()
    assert stored.path.is_relative_to(tmp_path)
    with Image.open(stored.path) as saved:
        assert saved.size == (400, 200)


def test_save_converts_jpeg_with_alpha(storage):
    data = image_bytes(50, 50, image_format="PNG", mode="RGBA")

    stored = storage.save("hero-images", data, "image/jpeg")

    with Image.open(stored.path) as saved:
        assert saved.format == "JPEG"
        assert saved.mode == "RGB"


def test_folder_is_sanitized(storage):
    stored = storage.save("dish-images", image_bytes(10, 10), "image/png", folder="../../etc")

    assert "/dish-images/etc/" in stored.url


@pytest.mark.parametrize("bucket, data, content_type, message", [
    ("avatars", b"x", "image/png", "Unknown bucket"),
    ("dish-images", b"x", "application/pdf", "valid image file"),
    ("dish-images", b"x" * (1024 * 1024 + 1), "image/png", "smaller than 1MB"),
    ("dish-images", b"not an image", "image/png", "not a valid image"),
])
def test_rejected_uploads(storage, bucket, data, content_type, message):
    with pytest.raises(StorageError, match=message):
        storage.save(bucket, data, content_type)


def test_qr_code_is_a_png():
    png = make_qr_png("https://taptab.menu/m/abc123def456/k3j9x2")

    assert png.startswith(PNG_SIGNATURE)
    with Image.open(BytesIO(png)) as image:
        assert image.width == image.height

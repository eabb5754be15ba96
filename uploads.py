"""Profile and project image uploads."""

import io
import logging
import os
import time
import uuid
from typing import Optional

from fastapi import UploadFile
from PIL import Image

import config
from errors import InvalidInput

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"

# stored extension comes from the decoded format, never from the client
IMAGE_EXTENSIONS = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "GIF": ".gif",
    "WEBP": ".webp",
    "BMP": ".bmp",
}


def unique_filename(ext: str) -> str:
    """``<epoch-ms>-<random><ext>`` keeps names collision-resistant."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"


def detect_image_extension(contents: bytes) -> str:
    """Decode *contents* with Pillow and return the extension for its format."""
    try:
        with Image.open(io.BytesIO(contents)) as img:
            fmt = img.format
            img.verify()
    except Exception as e:
        logger.info("Rejected upload that is not a readable image: %s", e)
        raise InvalidInput("Only image files are allowed")

    ext = IMAGE_EXTENSIONS.get(fmt or "")
    if ext is None:
        raise InvalidInput(f"Unsupported image format: {fmt}")
    return ext


async def save_image(
    file: Optional[UploadFile],
    upload_dir: str = config.UPLOAD_DIR,
    max_size_mb: int = config.MAX_UPLOAD_SIZE_MB,
) -> str:
    """Persist an uploaded image and return its server-relative URL."""
    if file is None or not file.filename:
        raise InvalidInput("No file uploaded")
    if not (file.content_type or "").startswith("image/"):
        raise InvalidInput("Only image files are allowed")

    contents = await file.read()
    size_mb = len(contents) / (1024 * 1024)
    if size_mb > max_size_mb:
        raise InvalidInput(f"File exceeds {max_size_mb}MB limit")

    ext = detect_image_extension(contents)

    os.makedirs(upload_dir, exist_ok=True)
    filename = unique_filename(ext)
    with open(os.path.join(upload_dir, filename), "wb") as f:
        f.write(contents)

    logger.info("Saved upload %s (%.2f MB)", filename, size_mb)
    return f"{URL_PREFIX}/{filename}"

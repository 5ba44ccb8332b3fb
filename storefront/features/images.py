# images.py
import uuid
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from storefront.models import DEFAULT_IMAGE
from storefront.utils.logging_config import get_logger

logger = get_logger(__name__)

IMAGE_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/bmp",
    "image/svg+xml",
    "image/webp",
}


class UploadedImage(BaseModel):
    filename: str
    content_type: str
    content: bytes


def is_image(upload: UploadedImage) -> bool:
    return upload.content_type in IMAGE_MIME_TYPES


def store_image(
    upload: Optional[UploadedImage],
    root: str | Path,
    directory: str = "uploads",
    default_path: str = DEFAULT_IMAGE,
) -> str:
    """Save an uploaded image under `root/directory` and return its relative path.

    Anything that isn't a non-empty image upload gets `default_path` instead.
    """
    if upload is None or not upload.content or not is_image(upload):
        if upload is not None:
            logger.warning(
                f"Rejected upload {upload.filename} ({upload.content_type}), using {default_path}"
            )
        return default_path

    extension = Path(upload.filename).suffix.lstrip(".").lower()
    filename = f"{uuid.uuid4().hex}.{extension}" if extension else uuid.uuid4().hex

    target_dir = Path(root) / directory
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / filename).write_bytes(upload.content)

    return f"{directory}/{filename}"

"""Image handling for house logos and student photos.

Images are stored inside the document as ``data:`` URLs.
"""

import base64
import mimetypes
from pathlib import Path

from app.core.config import settings
from app.core.exceptions import ValidationError


def image_to_data_url(content: bytes, content_type: str) -> str:
    """
    Validate an image and encode it as a data URL.

    - Validates file type and size against the settings
    - Returns ``data:<type>;base64,<payload>``
    """
    if content_type not in settings.ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            f"Invalid file type. Allowed types: {', '.join(settings.ALLOWED_IMAGE_TYPES)}"
        )

    if not content:
        raise ValidationError("Image file is empty")

    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationError(
            f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
        )

    payload = base64.b64encode(content).decode("ascii")
    return f"data:{content_type};base64,{payload}"


def read_image_file(path: Path) -> str:
    """Read an image from disk into a data URL; the type is taken from the extension."""
    content_type, _ = mimetypes.guess_type(path.name)
    if not path.is_file():
        raise ValidationError(f"No such file: {path}")
    return image_to_data_url(path.read_bytes(), content_type or "application/octet-stream")

"""
Upload validation for image fields.
Rejects wrong types, oversized files and undecodable images before any
service sees them.
"""
import io
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from clinic_cms.config import settings
from clinic_cms.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    """Validated upload handed to the attachment manager."""
    content: bytes
    filename: str
    content_type: str


async def read_image_upload(
    upload: Optional[UploadFile],
    max_size: int = None,
    allowed_types: Optional[list] = None,
) -> Optional[IncomingFile]:
    """
    Read and validate an uploaded image.

    Args:
        upload: Multipart file field, None or empty when no file was sent
        max_size: Size limit in bytes (default: settings.MAX_UPLOAD_SIZE)
        allowed_types: Accepted MIME types (default: settings.ALLOWED_IMAGE_TYPES)

    Returns:
        IncomingFile or None when no file was provided

    Raises:
        InvalidInputError: Wrong MIME type, too large, empty or not an image
    """
    if upload is None or not getattr(upload, "filename", None):
        return None

    max_size = max_size or settings.MAX_UPLOAD_SIZE
    allowed_types = allowed_types or settings.ALLOWED_IMAGE_TYPES

    content_type = (upload.content_type or "").lower()
    if content_type not in allowed_types:
        raise InvalidInputError(
            "Invalid file type",
            f"File '{upload.filename}' has type '{content_type}'; allowed: {', '.join(allowed_types)}",
        )

    content = await upload.read(max_size + 1)
    if len(content) > max_size:
        raise InvalidInputError(
            "File too large",
            f"File '{upload.filename}' exceeds the {max_size:,} byte limit",
        )
    if not content:
        raise InvalidInputError("Empty file", f"File '{upload.filename}' is empty")

    try:
        with Image.open(io.BytesIO(content)) as image:
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.warning(f"Rejected upload {upload.filename}: {str(e)}")
        raise InvalidInputError(
            "Invalid image",
            f"File '{upload.filename}' is not a valid image file",
        )

    return IncomingFile(content=content, filename=upload.filename, content_type=content_type)

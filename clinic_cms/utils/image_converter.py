"""
Image conversion for served uploads.
Transcodes stored images on request (?format=webp&width=480) so the frontend
can ask for lighter variants without storing them.
"""
import io
import logging
from typing import Optional, Tuple
from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_QUALITY = 80
MAX_WIDTH = 3840

# Requested format -> (Pillow format, content type)
OUTPUT_FORMATS = {
    "webp": ("WEBP", "image/webp"),
    "jpeg": ("JPEG", "image/jpeg"),
    "jpg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
}


def is_supported_format(requested_format: Optional[str]) -> bool:
    return bool(requested_format) and requested_format.lower() in OUTPUT_FORMATS


def transcode_image(
    image_bytes: bytes,
    requested_format: str,
    width: Optional[int] = None,
    quality: int = DEFAULT_QUALITY,
) -> Tuple[bytes, str]:
    """
    Re-encode an image, optionally downscaling it to a width.

    Args:
        image_bytes: Original image file bytes
        requested_format: One of webp, jpeg, jpg, png
        width: Target width in pixels; aspect ratio is kept and images are
            never upscaled
        quality: Encoder quality (0-100) for lossy formats

    Returns:
        Tuple[bytes, str]: Encoded bytes and their content type

    Raises:
        ValueError: Unsupported format
        PIL.UnidentifiedImageError: Bytes are not an image
    """
    if not is_supported_format(requested_format):
        raise ValueError(f"Unsupported image format: {requested_format}")
    pil_format, content_type = OUTPUT_FORMATS[requested_format.lower()]

    image = Image.open(io.BytesIO(image_bytes))

    if width:
        width = min(width, MAX_WIDTH)
        original_width, original_height = image.size
        if width < original_width:
            height = max(1, int(original_height * (width / original_width)))
            image = image.resize((width, height), Image.Resampling.LANCZOS)

    # JPEG has no alpha channel; other formats keep transparency
    if pil_format == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    elif pil_format == "WEBP" and image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA" if "A" in image.mode or image.mode == "P" else "RGB")

    save_kwargs = {"format": pil_format}
    if pil_format in ("JPEG", "WEBP"):
        save_kwargs["quality"] = quality
    else:
        save_kwargs["optimize"] = True

    buffer = io.BytesIO()
    image.save(buffer, **save_kwargs)
    output = buffer.getvalue()

    logger.debug(
        f"Transcoded image to {pil_format}"
        f"{f' at width {width}' if width else ''}: "
        f"{len(image_bytes):,} bytes → {len(output):,} bytes"
    )
    return output, content_type

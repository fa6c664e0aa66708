"""
Serves stored uploads at their public URL.
Optional ?format=webp&width=480 query parameters return a transcoded variant.
"""
from fastapi import APIRouter, Query, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse
from PIL import UnidentifiedImageError
from typing import Optional
import logging

from clinic_cms.config import settings
from clinic_cms.exceptions import InvalidInputError, NotFoundError
from clinic_cms.services.file_storage import get_storage
from clinic_cms.utils.image_converter import OUTPUT_FORMATS, is_supported_format, transcode_image

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=604800"  # one week

router = APIRouter(prefix=settings.UPLOADS_URL_PREFIX.rstrip("/"), tags=["uploads"])


@router.get("/{filename}")
async def serve_upload(
    filename: str,
    format: Optional[str] = Query(None, description="Output format: webp, jpeg, jpg or png"),
    width: Optional[int] = Query(None, ge=1, description="Target width in pixels"),
):
    """
    Return a stored file, transcoding it when a format or width is requested.

    Raises:
        NotFoundError: No such file under the storage root
        InvalidInputError: Unsupported output format, or the file is not an image
    """
    path = get_storage().path_for(filename)
    if path is None or not path.is_file():
        raise NotFoundError("File not found", f"No upload named {filename}")

    if format is None and width is None:
        return FileResponse(path, headers={"Cache-Control": CACHE_CONTROL})

    if format is not None and not is_supported_format(format):
        raise InvalidInputError(
            "Unsupported image format",
            f"format must be one of: {', '.join(OUTPUT_FORMATS)}",
        )
    output_format = format or path.suffix.lstrip(".").lower()
    if not is_supported_format(output_format):
        # Width-only request on a format we cannot re-encode (e.g. gif)
        output_format = "webp"

    content = await run_in_threadpool(path.read_bytes)
    try:
        output, content_type = await run_in_threadpool(transcode_image, content, output_format, width)
    except UnidentifiedImageError:
        raise InvalidInputError("File is not an image", f"{filename} cannot be transcoded")

    logger.info(f"Served {filename} as {output_format}{f' ({width}px)' if width else ''}")
    return Response(content=output, media_type=content_type, headers={"Cache-Control": CACHE_CONTROL})

"""Tests for on-request image transcoding."""
import io

import pytest
from PIL import Image

from clinic_cms.utils.image_converter import is_supported_format, transcode_image


def encode(mode="RGB", size=(100, 50), fmt="PNG"):
    buffer = io.BytesIO()
    Image.new(mode, size).save(buffer, format=fmt)
    return buffer.getvalue()


def decode(data):
    return Image.open(io.BytesIO(data))


@pytest.mark.parametrize("fmt, content_type, pil_format", [
    ("webp", "image/webp", "WEBP"),
    ("JPEG", "image/jpeg", "JPEG"),
    ("jpg", "image/jpeg", "JPEG"),
    ("png", "image/png", "PNG"),
])
def test_transcodes_to_requested_format(fmt, content_type, pil_format):
    output, returned_type = transcode_image(encode(), fmt)

    assert returned_type == content_type
    assert decode(output).format == pil_format


def test_downscales_keeping_aspect_ratio():
    output, _ = transcode_image(encode(size=(100, 50)), "png", width=40)
    assert decode(output).size == (40, 20)


def test_never_upscales():
    output, _ = transcode_image(encode(size=(100, 50)), "png", width=400)
    assert decode(output).size == (100, 50)


def test_alpha_dropped_for_jpeg():
    output, _ = transcode_image(encode(mode="RGBA"), "jpeg")
    assert decode(output).mode == "RGB"


def test_unsupported_format():
    assert not is_supported_format("bmp")
    assert not is_supported_format(None)
    with pytest.raises(ValueError):
        transcode_image(encode(), "bmp")

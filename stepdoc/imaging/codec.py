"""
Data URI codec.

Screenshots travel as ``data:image/...;base64,`` strings; these helpers
turn them into Pillow images and back.
"""

import base64
import binascii
import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from ..exceptions import ImageDecodeError

MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/bmp": "bmp",
}

_FORMAT_MIME = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


def decode_data_uri(data_url: str) -> Tuple[str, bytes]:
    """
    Split a data URI into its MIME type and decoded payload.

    Bare base64 (no ``data:`` prefix) is accepted and reported as PNG.

    Raises:
        ImageDecodeError: if the string is empty or not valid base64
    """
    if not data_url or not isinstance(data_url, str):
        raise ImageDecodeError("Empty image data")

    mime = "image/png"
    payload = data_url
    if data_url.startswith("data:"):
        header, sep, payload = data_url.partition(",")
        if not sep:
            raise ImageDecodeError("Malformed data URI: no payload")
        mime = header[5:].split(";", 1)[0] or mime
        if ";base64" not in header:
            raise ImageDecodeError("Only base64 data URIs are supported", {"mime": mime})

    try:
        return mime, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 image data: {e}")


def decode_image(data_url: str) -> Image.Image:
    """
    Decode a data URI into a fully loaded Pillow image.

    Raises:
        ImageDecodeError: on a bad URI or unreadable raster
    """
    _, raw = decode_data_uri(data_url)
    try:
        image = Image.open(io.BytesIO(raw))
        image.load()
    except Image.DecompressionBombError as e:
        raise ImageDecodeError(f"Image too large to decode: {e}")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Cannot decode image: {e}")
    return image


def flatten(image: Image.Image, background=(255, 255, 255)) -> Image.Image:
    """RGB copy with any transparency composited onto ``background``"""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        base = Image.new("RGB", rgba.size, background)
        base.paste(rgba, mask=rgba.split()[3])
        return base
    return image.convert("RGB")


def image_to_bytes(image: Image.Image, fmt: str = "JPEG", quality: int = 92) -> bytes:
    buf = io.BytesIO()
    fmt = fmt.upper()
    if fmt == "JPEG":
        flatten(image).save(buf, format="JPEG", quality=quality, optimize=True)
    else:
        image.save(buf, format=fmt)
    return buf.getvalue()


def encode_image(image: Image.Image, fmt: str = "JPEG", quality: int = 92) -> str:
    """Encode a Pillow image as a data URI"""
    fmt = fmt.upper()
    payload = base64.b64encode(image_to_bytes(image, fmt, quality)).decode("ascii")
    return f"data:{_FORMAT_MIME.get(fmt, 'image/png')};base64,{payload}"


def bytes_to_data_uri(raw: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def extension_for(data_url: str) -> str:
    """File extension for a data URI's MIME type (``png`` when unknown)"""
    if data_url and data_url.startswith("data:"):
        mime = data_url[5:].split(";", 1)[0].split(",", 1)[0]
        return MIME_EXTENSIONS.get(mime.lower(), "png")
    return "png"

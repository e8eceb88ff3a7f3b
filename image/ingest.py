"""Turn user-supplied image files into base64 payloads the model accepts."""
import base64
import binascii
import re
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image

from image.errors import DecodeError
from image.models import EncodedImage, to_data_url
from utils.logger import get_logger

logger = get_logger("image.ingest")

DATA_URL_PATTERN = re.compile(r"^data:(.+);base64,(.+)$", re.DOTALL)

# Pillow formats whose own MIME type the model does not accept.
# MPO is the multi-picture JPEG many phone cameras write.
FORMAT_MIME_OVERRIDES = {
    "MPO": "image/jpeg",
}


def detect_image_mime_type(raw: bytes) -> str:
    """
    Identify the image format of raw bytes with Pillow.

    Raises:
        DecodeError: if Pillow cannot recognise the bytes as an image
    """
    try:
        with Image.open(BytesIO(raw)) as img:
            fmt = img.format
            img.verify()
    except Exception as e:
        logger.warning(f"Rejected upload that is not a readable image: {e}")
        raise DecodeError() from e

    mime_type = FORMAT_MIME_OVERRIDES.get(fmt) or Image.MIME.get(fmt or "")
    if not mime_type or not mime_type.startswith("image/"):
        raise DecodeError()
    return mime_type


def parse_data_url(data_url: str) -> Tuple[str, str]:
    """
    Split a ``data:<mime>;base64,<payload>`` URL into (mime_type, payload).

    Raises:
        DecodeError: when the framing is missing or the payload is not base64
    """
    match = DATA_URL_PATTERN.match(data_url or "")
    if not match:
        raise DecodeError()
    mime_type, payload = match.group(1), re.sub(r"\s+", "", match.group(2))
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError() from e
    return mime_type, payload


def encode_image(raw: bytes, declared_mime: Optional[str] = None, filename: Optional[str] = None) -> EncodedImage:
    """
    Validate raw image bytes and wrap them as an EncodedImage.

    The format Pillow detects takes precedence over ``declared_mime`` so the
    payload always decodes to an image of the stated type.
    """
    if not raw:
        raise DecodeError()

    mime_type = detect_image_mime_type(raw)
    if declared_mime and declared_mime != mime_type:
        logger.debug(f"Declared type {declared_mime} differs from detected {mime_type}; using detected")

    preview_url = to_data_url(base64.b64encode(raw).decode("ascii"), mime_type)
    mime_type, payload = parse_data_url(preview_url)

    return EncodedImage(
        mime_type=mime_type,
        data=payload,
        preview_url=preview_url,
        filename=filename,
        size_bytes=len(raw),
    )


def ingest_data_url(data_url: str, filename: Optional[str] = None) -> EncodedImage:
    """Ingest an image that arrived already framed as a data URL."""
    declared_mime, payload = parse_data_url(data_url)
    return encode_image(base64.b64decode(payload), declared_mime=declared_mime, filename=filename)


async def process_file(upload) -> EncodedImage:
    """
    Read an uploaded file fully and encode it.

    Args:
        upload: object with an async ``read()`` plus ``content_type`` and
                ``filename`` attributes (FastAPI's UploadFile)

    Returns:
        EncodedImage for the file

    Raises:
        DecodeError: if the file cannot be read or is not an image
    """
    try:
        raw = await upload.read()
    except Exception as e:
        logger.error(f"Failed to read uploaded file: {e}")
        raise DecodeError() from e

    filename = getattr(upload, "filename", None)
    image = encode_image(raw, declared_mime=getattr(upload, "content_type", None), filename=filename)
    logger.info(f"Ingested {filename or 'upload'} ({image.mime_type}, {image.size_bytes} bytes)")
    return image

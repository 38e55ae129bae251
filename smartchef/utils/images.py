"""Photo handling for ingredient detection and generated images.

Core Functions:
- decode_data_uri(): Split a base64 data URI into bytes
- to_data_uri(): Build a self-contained data URI from bytes
- validate_image_format(): Check JPEG/PNG/WebP from magic bytes
- validate_image_size(): Check MAX_IMAGE_SIZE_MB limit
- compress_image(): Shrink large photos before upload (Pillow)
"""

import base64
import binascii
from io import BytesIO
from typing import Optional

import filetype
from PIL import Image

from smartchef.utils.config import config
from smartchef.utils.errors import ValidationFailure, safe_execute_sync
from smartchef.utils.logger import logger


SUPPORTED_EXTENSIONS = ("jpg", "jpeg", "png", "webp")


def decode_data_uri(data_uri: str, field: str = "photo_data_uri") -> tuple[str, bytes]:
    """Decode ``data:<mimetype>;base64,<data>`` into (mime_type, bytes).

    Args:
        data_uri: Data URI with a MIME type and base64 payload.
        field: Field name reported in the validation failure.

    Returns:
        Tuple of declared MIME type and decoded bytes.

    Raises:
        ValidationFailure: If the string is not a base64 data URI or the payload is empty/corrupt.
    """
    if not isinstance(data_uri, str) or not data_uri.startswith("data:"):
        raise ValidationFailure(field, "expected a data URI ('data:<mimetype>;base64,<data>')")

    header, sep, encoded = data_uri.partition(",")
    if not sep or not header.endswith(";base64"):
        raise ValidationFailure(field, "data URI must be base64 encoded")

    mime_type = header[len("data:"):-len(";base64")] or "application/octet-stream"
    try:
        payload = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationFailure(field, f"invalid base64 payload ({e})") from e
    if not payload:
        raise ValidationFailure(field, "image payload is empty")
    return mime_type, payload


def to_data_uri(image_bytes: bytes, mime_type: str) -> str:
    """Encode raw image bytes as a data URI."""
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> Optional[str]:
    """Return the MIME type detected from magic bytes, if it is a supported photo format."""
    kind = filetype.guess(image_bytes)
    if kind is None or kind.extension not in SUPPORTED_EXTENSIONS:
        return None
    return kind.mime


def validate_image_format(image_bytes: bytes) -> bool:
    """Validate image format (JPEG, PNG or WebP).

    Uses filetype to detect the actual format from magic bytes, not from the
    declared MIME type.
    """
    if detect_mime_type(image_bytes) is None:
        logger.warning(f"Invalid image format: {filetype.guess(image_bytes)}. Only JPEG, PNG and WebP supported.")
        return False
    return True


def validate_image_size(image_bytes: bytes) -> bool:
    """Validate image size against MAX_IMAGE_SIZE_MB."""
    size_mb = len(image_bytes) / (1024 * 1024)
    if size_mb > config.MAX_IMAGE_SIZE_MB:
        logger.warning(f"Image size {size_mb:.2f}MB exceeds limit of {config.MAX_IMAGE_SIZE_MB}MB")
        return False
    return True


def compress_image(image_bytes: bytes, max_width: int = 1024) -> bytes:
    """Compress a photo for API transmission using Pillow.

    JPEG quality=85 + optimize + progressive, resizing oversized images and
    converting palette/alpha modes to RGB. Photos below COMPRESS_IMG_THRESHOLD_KB
    are returned untouched; any Pillow failure falls back to the original bytes.

    Args:
        image_bytes: Raw image bytes to compress.
        max_width: Maximum image width in pixels.

    Returns:
        Compressed JPEG bytes, or the original bytes.
    """
    size_kb = len(image_bytes) / 1024
    if size_kb < config.COMPRESS_IMG_THRESHOLD_KB:
        logger.debug(
            f"Image size {size_kb:.1f}KB below compression threshold "
            f"({config.COMPRESS_IMG_THRESHOLD_KB}KB), skipping compression"
        )
        return image_bytes

    def _compress():
        img = Image.open(BytesIO(image_bytes))

        if img.mode in ("RGBA", "LA", "P"):
            if img.mode == "P":
                img = img.convert("RGBA")
            rgb_img = Image.new("RGB", img.size, (255, 255, 255))
            rgb_img.paste(img, mask=img.split()[-1])
            img = rgb_img
        elif img.mode != "RGB":
            img = img.convert("RGB")

        if img.width > max_width:
            ratio = max_width / img.width
            img = img.resize((max_width, int(img.height * ratio)), Image.Resampling.LANCZOS)

        output = BytesIO()
        img.save(output, format="JPEG", quality=85, optimize=True, progressive=True)
        compressed_bytes = output.getvalue()

        logger.debug(
            f"Image compressed: {size_kb:.1f}KB → {len(compressed_bytes) / 1024:.1f}KB"
        )
        return compressed_bytes

    return safe_execute_sync(_compress, "Image compression", log_level="warning", default_return=image_bytes)


def prepare_photo(data_uri: str) -> tuple[str, bytes]:
    """Validate a photo data URI and return (mime_type, bytes) ready for upload.

    Pipeline: decode → format check → size check → optional compression.

    Raises:
        ValidationFailure: For undecodable, unsupported or oversized photos.
    """
    _, image_bytes = decode_data_uri(data_uri)

    if not validate_image_format(image_bytes):
        raise ValidationFailure("photo_data_uri", "only JPEG, PNG and WebP images are supported")
    if not validate_image_size(image_bytes):
        raise ValidationFailure("photo_data_uri", f"image too large, maximum size is {config.MAX_IMAGE_SIZE_MB}MB")

    if config.COMPRESS_IMG:
        image_bytes = compress_image(image_bytes)

    return detect_mime_type(image_bytes) or "image/jpeg", image_bytes

import base64
import binascii
import logging
import mimetypes
from dataclasses import dataclass
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)


class ImageEncodingError(ValueError):
    """Raised when an uploaded image cannot be turned into a request payload."""


@dataclass(frozen=True)
class ImagePayload:
    mime_type: str
    data: str

    def decode(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ImageEncodingError("Image payload is not valid base64.") from exc


def sniff_image_type(data: bytes) -> Optional[str]:
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def _resolve_media_type(data: bytes, media_type: Optional[str], filename: Optional[str]) -> Optional[str]:
    if media_type:
        media_type = media_type.split(";")[0].strip().lower()
    if media_type and media_type != "application/octet-stream":
        return media_type
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return sniff_image_type(data)


def encode_image(source: BinaryIO, media_type: Optional[str] = None, filename: Optional[str] = None) -> ImagePayload:
    """Read an image from ``source`` and return its media type and base64 data.

    The media type comes from ``media_type`` when given, then from the file
    name, then from the leading magic bytes.
    """
    try:
        data = source.read()
    except (OSError, ValueError) as exc:
        logger.exception("Unable to read image source %s", filename or "<stream>")
        raise ImageEncodingError("The selected image could not be read.") from exc

    if not data:
        raise ImageEncodingError("The selected image is empty.")

    resolved = _resolve_media_type(data, media_type, filename)
    if not resolved or not resolved.startswith("image/"):
        raise ImageEncodingError(f"Unsupported file type {resolved or 'unknown'}; please choose an image.")

    return ImagePayload(mime_type=resolved, data=base64.b64encode(data).decode("ascii"))

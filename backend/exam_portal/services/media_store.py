import base64
import binascii
import logging
import re
from pathlib import Path
from typing import Protocol

from exam_portal.core.errors import InvalidPayload, PayloadTooLarge, UploadError

logger = logging.getLogger(__name__)

IMAGE_TYPES = {"image/png": "png", "image/jpeg": "jpg", "image/jpg": "jpg", "image/webp": "webp"}

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.*)$", re.DOTALL)
_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


class BlobStore(Protocol):
    def put(self, data: bytes, folder: str, filename: str) -> str:
        """Store ``data`` under ``folder`` and return a stable URL for it."""


def safe_email(email: str) -> str:
    # '@' and '.' included; keeps the email usable as a single path segment
    return _UNSAFE.sub("_", email)


def decode_image_data_url(value: str | None, max_bytes: int) -> tuple[bytes, str]:
    """Decode a ``data:image/...;base64,`` URL into (bytes, file extension)."""
    if not value:
        raise InvalidPayload("Image is required")

    m = _DATA_URL.match(value.strip())
    if not m:
        raise InvalidPayload("Image must be a base64 data URL")

    ext = IMAGE_TYPES.get(m.group("mime").lower())
    if ext is None:
        raise InvalidPayload(f"Unsupported image type: {m.group('mime')}")

    # the encoded form is ~4/3 of the decoded size
    if len(m.group("payload")) > (max_bytes * 4) // 3 + 4:
        raise PayloadTooLarge(f"Image exceeds {max_bytes} bytes")

    try:
        data = base64.b64decode(m.group("payload"), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidPayload("Image is not valid base64")

    if not data:
        raise InvalidPayload("Image is empty")
    if len(data) > max_bytes:
        raise PayloadTooLarge(f"Image exceeds {max_bytes} bytes")
    return data, ext


def ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


class LocalBlobStore:
    """Blob store on the local filesystem, served by the app under ``/media``."""

    def __init__(self, media_root: str, public_base_url: str):
        self.root = Path(media_root).resolve()
        self.public_base_url = public_base_url.rstrip("/")

    def _target(self, folder: str, filename: str) -> Path:
        parts = [p for p in folder.split("/") if p]
        if any(p in (".", "..") for p in parts) or "/" in filename or filename in ("", ".", ".."):
            raise UploadError(f"Refusing to store blob at {folder}/{filename}")
        return self.root.joinpath(*parts, filename)

    def put(self, data: bytes, folder: str, filename: str) -> str:
        path = self._target(folder, filename)
        try:
            ensure_dir(path.parent)
            path.write_bytes(data)
        except OSError as e:
            logger.error("Blob write failed for %s: %s", path, e)
            raise UploadError("Failed to store media", error=str(e)) from e

        rel = path.relative_to(self.root).as_posix()
        return f"{self.public_base_url}/media/{rel}"

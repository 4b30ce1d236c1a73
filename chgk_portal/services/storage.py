"""
Image storage — uploads land under MEDIA_ROOT/<user_id>/ and are served
from MEDIA_URL. Anonymous uploads are refused.
"""

import logging
import os
import re
import time
from pathlib import Path
from typing import Optional

from chgk_portal.config import settings

logger = logging.getLogger(__name__)


class UploadRejected(ValueError):
    """The file's type or size is not accepted."""


def sanitize_filename(name: str) -> str:
    """Drop non-ASCII characters and replace anything else unsafe with '_'."""
    base = os.path.basename(name or "")
    stem, ext = os.path.splitext(base)
    stem = stem.encode("ascii", "ignore").decode("ascii")
    stem = re.sub(r"[^a-zA-Z0-9]", "_", stem).strip("_") or "image"
    ext = re.sub(r"[^a-zA-Z0-9]", "", ext.encode("ascii", "ignore").decode("ascii")).lower()
    return f"{stem}.{ext}" if ext else stem


def storage_path(user_id: int, filename: str, now: Optional[float] = None) -> str:
    """Relative path namespaced by uploader so users never overwrite each other."""
    stamp = int((now if now is not None else time.time()) * 1000)
    return f"{user_id}/{stamp}_{sanitize_filename(filename)}"


def public_url(path: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}{settings.MEDIA_URL.rstrip('/')}/{path}"


def validate_upload(content_type: Optional[str], size: int) -> None:
    if content_type not in settings.ALLOWED_IMAGE_TYPES:
        raise UploadRejected(f"Unsupported file type: {content_type or 'unknown'}")
    if size <= 0:
        raise UploadRejected("Empty file")
    if size > settings.MAX_UPLOAD_BYTES:
        raise UploadRejected(f"File is larger than {settings.MAX_UPLOAD_BYTES} bytes")


def upload(
    user_id: Optional[int],
    filename: str,
    content_type: Optional[str],
    data: bytes,
    media_root: Optional[str] = None,
) -> Optional[str]:
    """
    Store an image for an authenticated user and return its public URL.
    Returns None without an identity or when writing fails; raises
    UploadRejected for a disallowed type or size.
    """
    if not user_id:
        logger.warning("Upload refused: no authenticated identity")
        return None

    validate_upload(content_type, len(data))

    rel_path = storage_path(user_id, filename)
    target = Path(media_root or settings.MEDIA_ROOT) / rel_path
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
    except OSError as e:
        logger.error(f"Failed to store upload {rel_path}: {e}")
        return None

    logger.info(f"Stored upload {rel_path} ({len(data)} bytes)")
    return public_url(rel_path)

"""Profile photo storage on local disk, served under /media."""
import logging
import time
from pathlib import Path
from typing import Optional

from pharmadesk.core.config import settings
from pharmadesk.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

AVATAR_BUCKET = "avatars"
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}


def avatar_filename(user_id: int, timestamp_ms: Optional[int] = None) -> str:
    timestamp_ms = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return f"profile_{user_id}_{timestamp_ms}.jpg"


def public_url(bucket: str, filename: str) -> str:
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}/media/{bucket}/{filename}"


def save_avatar(user_id: int, content: bytes, content_type: Optional[str], media_dir: Optional[str] = None) -> str:
    """Store the photo (overwriting a same-named file) and return its public URL."""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Profile photo must be a JPEG, PNG or WebP image")
    if not content:
        raise ValidationError("Profile photo is empty")
    if len(content) > settings.MAX_AVATAR_BYTES:
        raise ValidationError("Profile photo is too large")

    folder = Path(media_dir or settings.MEDIA_DIR) / AVATAR_BUCKET
    folder.mkdir(parents=True, exist_ok=True)
    filename = avatar_filename(user_id)
    (folder / filename).write_bytes(content)

    logger.info(f"[STORAGE] Saved avatar for user {user_id}: {filename} ({len(content)} bytes)")
    return public_url(AVATAR_BUCKET, filename)

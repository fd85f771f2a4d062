"""Avatar files uploaded at registration, stored under UPLOAD_DIR/user-<id>/avatars/."""

from __future__ import annotations

import time
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from starlette.datastructures import UploadFile

from imagegen.core.errors import PayloadTooLargeError, UnsupportedMediaTypeError

if TYPE_CHECKING:
    from imagegen.core.config import Settings

ALLOWED_AVATAR_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}


async def read_avatar(upload: UploadFile, settings: Settings) -> tuple[bytes, str]:
    """Read and validate an uploaded avatar. Returns (content, extension)."""
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_AVATAR_TYPES:
        raise UnsupportedMediaTypeError(
            "Unsupported file type; upload a JPG, PNG, GIF, WEBP or SVG image."
        )
    content = await upload.read(settings.AVATAR_MAX_BYTES + 1)
    if len(content) > settings.AVATAR_MAX_BYTES:
        raise PayloadTooLargeError(
            f"Avatar must not exceed {settings.AVATAR_MAX_BYTES // (1024 * 1024)} MB."
        )
    suffix = PurePath(upload.filename or "").suffix.lower()
    if suffix not in ALLOWED_AVATAR_TYPES.values():
        suffix = ALLOWED_AVATAR_TYPES[content_type]
    return content, suffix


def store_avatar(user_id: int, content: bytes, suffix: str, settings: Settings) -> str:
    """Write the avatar to disk and return its public URL under /uploads."""
    avatar_dir = Path(settings.UPLOAD_DIR) / f"user-{user_id}" / "avatars"
    avatar_dir.mkdir(parents=True, exist_ok=True)
    filename = f"avatar-{int(time.time() * 1000)}{suffix}"
    (avatar_dir / filename).write_bytes(content)
    return f"/uploads/user-{user_id}/avatars/{filename}"

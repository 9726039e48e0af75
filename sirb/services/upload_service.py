"""
sirb/services/upload_service.py
Upload slot issuance for canvas attachments.

The service validates the request and hands back the object key the
storage gateway should presign. Bytes never pass through this process.
"""
import logging
import re
import uuid
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from sirb.config import settings
from sirb.errors import BadRequestError, RateLimitError
from sirb.services.content_lifecycle_service import CONTENT_KINDS, get_live_unit
from sirb.services.permission_guards import require_manager
from sirb.services.rate_limiter import RateLimiterBackend
from sirb import messages

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "image/png",
    "image/jpeg",
    "image/gif",
})

UPLOAD_WINDOW_SECONDS = 60

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9؀-ۿ_-]")


def sanitize_filename(filename: str) -> str:
    """Replace anything outside ASCII alphanumerics, Arabic letters, '_' and '-' with '_'. A plain extension is kept."""
    dot = filename.rfind(".")
    if dot > -1 and filename[dot + 1:].isascii() and filename[dot + 1:].isalnum():
        name, ext = filename[:dot], filename[dot:]
    else:
        name, ext = filename, ""
    return _UNSAFE_CHARS.sub("_", name) + ext


def build_object_key(canvas_id: int, filename: str) -> str:
    return f"canvas-files/{canvas_id}/{uuid.uuid4()}-{sanitize_filename(filename)}"


async def issue_upload_slot(
    db: AsyncSession,
    limiter: RateLimiterBackend,
    user_id: int,
    canvas_id: int,
    filename: str,
    content_type: str,
    size: int,
) -> Dict[str, Any]:
    result = await limiter.hit(f"upload:{user_id}", settings.UPLOAD_RATE_LIMIT, UPLOAD_WINDOW_SECONDS)
    if not result.allowed:
        logger.warning(f"Upload rate limit hit for user {user_id}")
        raise RateLimitError(messages.UPLOAD_RATE_LIMITED, retry_after=result.reset_seconds or UPLOAD_WINDOW_SECONDS)

    if content_type not in ALLOWED_MIME_TYPES:
        raise BadRequestError(messages.FILE_TYPE_NOT_ALLOWED)
    if size > settings.MAX_UPLOAD_BYTES:
        raise BadRequestError(messages.FILE_TOO_LARGE)

    canvas = await get_live_unit(db, CONTENT_KINDS["canvas"], canvas_id)
    await require_manager(db, user_id, canvas)

    key = build_object_key(canvas_id, filename)
    logger.info(f"Upload slot issued for canvas {canvas_id} to user {user_id}: {key}")
    return {"success": True, "key": key, "content_type": content_type, "size": size}

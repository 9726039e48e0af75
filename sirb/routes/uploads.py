"""
sirb/routes/uploads.py
Upload slot issuance for canvas attachments.

Two limits apply: a per-IP request throttle (slowapi) and a per-user
slot limit from the shared upload limiter.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.config import settings
from sirb.database import get_db
from sirb.orm.user import User
from sirb.rbac import get_current_user
from sirb.schemas.content import UploadSlotRequest
from sirb.services.rate_limiter import RateLimiterBackend, get_upload_rate_limiter, ip_limiter
from sirb.services.upload_service import issue_upload_slot

router = APIRouter(prefix="/api/uploads", tags=["uploads"])


@router.post("/canvas-file")
@ip_limiter.limit(settings.UPLOAD_IP_RATE_LIMIT)
async def canvas_file_slot(
    request: Request,
    body: UploadSlotRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    limiter: RateLimiterBackend = Depends(get_upload_rate_limiter)
):
    return await issue_upload_slot(
        db, limiter, current_user.id, body.canvas_id,
        filename=body.filename, content_type=body.content_type, size=body.size
    )

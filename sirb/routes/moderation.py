"""
sirb/routes/moderation.py
Moderator endpoints: review queue, approve/reject, report resolution and
chapter ordering. Every operation checks the moderator grant of the
subject the target belongs to (admins pass everywhere).
"""
from typing import Literal

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.database import get_db
from sirb.orm.user import User
from sirb.rbac import get_current_user
from sirb.schemas.community import ResolveReportRequest
from sirb.schemas.content import RejectRequest, ReorderRequest
from sirb.services import content_lifecycle_service as lifecycle
from sirb.services.notifications import NotificationDispatcher, get_notification_dispatcher
from sirb.services.reorder_service import SequenceUpdate, reorder_chapter_items
from sirb.services.report_service import resolve_report

router = APIRouter(prefix="/api/moderation", tags=["moderation"])

ContentKindParam = Literal["canvas", "quiz"]


@router.get("/subjects/{subject_id}/queue")
async def moderation_queue(
    subject_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await lifecycle.get_moderation_queue(db, current_user.id, subject_id)


@router.post("/reports/{report_id}/resolve")
async def resolve(
    report_id: int,
    body: ResolveReportRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    return await resolve_report(
        db, current_user.id, report_id, body.resolution,
        notes=body.notes, dispatcher=dispatcher
    )


@router.put("/chapters/{chapter_id}/{kind}/order")
async def reorder(
    chapter_id: int,
    kind: ContentKindParam,
    body: ReorderRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    updates = [SequenceUpdate(item_id=u.id, sequence=u.sequence) for u in body.updates]
    return await reorder_chapter_items(db, current_user.id, chapter_id, kind, updates)


@router.post("/{kind}/{unit_id}/approve")
async def approve(
    kind: ContentKindParam,
    unit_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    return await lifecycle.approve_content(db, kind, current_user.id, unit_id, dispatcher=dispatcher)


@router.post("/{kind}/{unit_id}/reject")
async def reject(
    kind: ContentKindParam,
    unit_id: int,
    body: RejectRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    return await lifecycle.reject_content(db, kind, current_user.id, unit_id, body.reason, dispatcher=dispatcher)

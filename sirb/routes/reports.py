"""
sirb/routes/reports.py
Reporting content and comments.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.database import get_db
from sirb.orm.user import User
from sirb.rbac import get_current_user
from sirb.schemas.community import ReportRequest
from sirb.services.notifications import NotificationDispatcher, get_notification_dispatcher
from sirb.services.report_service import report_content

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("", status_code=201)
async def create_report(
    body: ReportRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
):
    return await report_content(
        db, current_user.id, body.kind, body.target_id, body.reason,
        description=body.description, dispatcher=dispatcher
    )

"""
sirb/services/report_service.py
Reporting content and comments, and resolving reports.

A user holds at most one active (PENDING or RESOLVED) report per target;
a DISMISSED report does not block reporting the same target again.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.config import settings
from sirb.errors import BadRequestError, NotFoundError, ConflictError, InvalidStateError, ErrorCode
from sirb.orm.base import utcnow
from sirb.orm.canvas import Canvas
from sirb.orm.quiz import Quiz
from sirb.orm.comment import Comment, QuizComment
from sirb.orm.report import Report, ReportReason, ReportStatus, ACTIVE_REPORT_STATUSES, TARGET_COLUMNS
from sirb.orm.subject import Subject
from sirb.orm.user import User
from sirb.orm.user_points import PointsReason
from sirb.services.permission_guards import require_moderator, resolve_subject_id
from sirb.services.points_service import POINT_VALUES, award_points
from sirb.services.rate_limiter import check_rate_limit
from sirb.services.notifications import Notice, NoticeType, NotificationDispatcher, notify
from sirb import messages

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 500

REPORTABLE = {
    "canvas": (Canvas, messages.CANVAS_NOT_FOUND),
    "quiz": (Quiz, messages.QUIZ_NOT_FOUND),
    "comment": (Comment, messages.COMMENT_NOT_FOUND),
    "quiz_comment": (QuizComment, messages.COMMENT_NOT_FOUND),
}


def _target_label(target) -> Optional[str]:
    if isinstance(target, (Canvas, Quiz)):
        return target.title
    text = getattr(target, "text", None)
    return text[:100] if text else None


async def _load_target(db: AsyncSession, kind: str, target_id: int):
    model, not_found = REPORTABLE[kind]
    target = await db.get(model, target_id)
    if target is None or target.is_deleted:
        raise NotFoundError(not_found)
    return target


# =============================================================================
# A) report_content()
# =============================================================================

async def report_content(
    db: AsyncSession,
    user_id: int,
    kind: str,
    target_id: int,
    reason: ReportReason,
    description: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Dict[str, Any]:
    """
    File a report against a canvas, quiz, comment or quiz comment.

    Raises:
        BadRequestError: description longer than 500 characters
        RateLimitError: too many reports in the trailing window
        NotFoundError: target missing
        ConflictError: an active report by this user already exists
    """
    description = (description or "").strip() or None
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        raise BadRequestError(messages.DESCRIPTION_TOO_LONG)

    await check_rate_limit(db, user_id, "report", settings.REPORT_RATE_LIMIT)
    target = await _load_target(db, kind, target_id)

    column = getattr(Report, TARGET_COLUMNS[kind])
    result = await db.execute(
        select(Report.id).where(
            Report.reporter_user_id == user_id,
            column == target_id,
            Report.status.in_(ACTIVE_REPORT_STATUSES)
        )
    )
    if result.first() is not None:
        raise ConflictError(messages.ALREADY_REPORTED, code=ErrorCode.ALREADY_REPORTED)

    report = Report(
        reporter_user_id=user_id,
        reason=ReportReason(reason),
        description=description,
        status=ReportStatus.PENDING,
        **{TARGET_COLUMNS[kind]: target_id},
    )
    db.add(report)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Concurrent duplicate report: user={user_id} {kind}={target_id}")
        raise ConflictError(messages.ALREADY_REPORTED, code=ErrorCode.ALREADY_REPORTED)
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Report {report.id} filed by user {user_id} against {kind} {target_id} ({report.reason.value})")

    subject_id = await resolve_subject_id(db, kind, target_id)
    subject_name = (await db.execute(select(Subject.name).where(Subject.id == subject_id))).scalar_one_or_none()
    reporter_name = (await db.execute(select(User.name).where(User.id == user_id))).scalar_one_or_none()
    notify(dispatcher, Notice(
        type=NoticeType.REPORT_SUBMITTED,
        subject_id=subject_id,
        content_type=kind.upper(),
        content_id=target_id,
        payload={
            "subject_name": subject_name,
            "reporter_name": reporter_name,
            "report_reason": report.reason.value,
            "report_description": description,
            "reported_content_type": kind.upper(),
            "reported_content_title": _target_label(target),
        },
    ))

    return {"success": True, "report_id": report.id}


# =============================================================================
# B) resolve_report()
# =============================================================================

async def resolve_report(
    db: AsyncSession,
    user_id: int,
    report_id: int,
    resolution: ReportStatus,
    notes: Optional[str] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Dict[str, Any]:
    """
    PENDING -> RESOLVED | DISMISSED, by a moderator of the target's subject.

    The moderator earns REPORT_RESOLVED points either way; the reporter
    earns VALID_REPORT points only when the report is RESOLVED.
    """
    resolution = ReportStatus(resolution)
    if resolution == ReportStatus.PENDING:
        raise BadRequestError(messages.INVALID_INPUT)

    report = await db.get(Report, report_id)
    if report is None:
        raise NotFoundError(messages.REPORT_NOT_FOUND)
    if report.status != ReportStatus.PENDING:
        raise InvalidStateError(messages.REPORT_ALREADY_RESOLVED, code=ErrorCode.ALREADY_PROCESSED)

    kind = report.target_kind
    subject_id = await resolve_subject_id(db, kind, report.target_id)
    await require_moderator(db, user_id, subject_id)

    notes = (notes or "").strip() or None
    try:
        result = await db.execute(
            update(Report)
            .where(Report.id == report_id, Report.status == ReportStatus.PENDING)
            .values(
                status=resolution,
                resolution_notes=notes,
                resolved_at=utcnow(),
                resolved_by_id=user_id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidStateError(messages.REPORT_ALREADY_RESOLVED, code=ErrorCode.ALREADY_PROCESSED)

        await award_points(
            db, user_id, POINT_VALUES["REPORT_RESOLVED"], PointsReason.REPORT_RESOLVED,
            subject_id, {"report_id": report_id, "resolution": resolution.value}
        )
        if resolution == ReportStatus.RESOLVED:
            await award_points(
                db, report.reporter_user_id, POINT_VALUES["VALID_REPORT"], PointsReason.VALID_REPORT,
                subject_id, {"report_id": report_id}
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(report)
    logger.info(f"Report {report_id} marked {resolution.value} by user {user_id}")

    notify(dispatcher, Notice(
        type=NoticeType.REPORT_RESOLVED,
        subject_id=subject_id,
        content_type=kind.upper(),
        content_id=report.target_id,
        recipient_user_id=report.reporter_user_id,
        payload={"resolution": resolution.value, "reported_content_type": kind.upper()},
    ))

    return {"success": True, "report": report.to_dict()}

"""
sirb/services/content_lifecycle_service.py
Content lifecycle and moderation workflow for canvases and quizzes.

State machine:

    DRAFT --submit--> PENDING --approve--> APPROVED
                        |  ^  +--reject--> REJECTED
               cancel   |  |                  |
                        v  +-----submit-------+
                      DRAFT

Rules:
- create/update/submit/cancel/delete need ownership or the ADMIN role
- approve/reject need ADMIN or a SubjectModerator grant on the subject
- APPROVED units are immutable here; deleting one is a soft delete
- deleting any other unit removes it with its children
- a quiz needs at least one question before it can be submitted

Notifications are dispatched after commit and never affect the result.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.errors import NotFoundError, InvalidStateError, ConflictError, BadRequestError, ErrorCode
from sirb.orm.canvas import Canvas
from sirb.orm.quiz import Quiz, Question
from sirb.orm.content_unit import ContentStatus
from sirb.orm.subject import Subject, Chapter
from sirb.orm.user import User
from sirb.orm.report import Report, ReportStatus
from sirb.orm.comment import Comment, QuizComment
from sirb.orm.user_points import PointsReason
from sirb.services.permission_guards import require_manager, require_moderator, subject_id_for_chapter
from sirb.services.points_service import POINT_VALUES, award_points
from sirb.services.notifications import Notice, NoticeType, NotificationDispatcher, notify
from sirb import messages

logger = logging.getLogger(__name__)

REJECTION_REASON_MIN_LENGTH = 5
REJECTION_REASON_MAX_LENGTH = 1000


@dataclass(frozen=True)
class ContentKind:
    kind: str
    model: type
    label: str
    not_found_message: str
    approved_points: int
    approved_reason: str
    requires_questions: bool


CONTENT_KINDS = {
    "canvas": ContentKind(
        kind="canvas",
        model=Canvas,
        label="CANVAS",
        not_found_message=messages.CANVAS_NOT_FOUND,
        approved_points=POINT_VALUES["CANVAS_APPROVED"],
        approved_reason=PointsReason.CANVAS_APPROVED,
        requires_questions=False,
    ),
    "quiz": ContentKind(
        kind="quiz",
        model=Quiz,
        label="QUIZ",
        not_found_message=messages.QUIZ_NOT_FOUND,
        approved_points=POINT_VALUES["QUIZ_APPROVED"],
        approved_reason=PointsReason.QUIZ_APPROVED,
        requires_questions=True,
    ),
}


def serialize_unit(unit) -> Dict[str, Any]:
    data = {
        "id": unit.id,
        "title": unit.title,
        "description": unit.description,
        "chapter_id": unit.chapter_id,
        "contributor_id": unit.contributor_id,
        "sequence": unit.sequence,
        "status": unit.status.value if unit.status else None,
        "is_deleted": unit.is_deleted,
        "rejection_reason": unit.rejection_reason,
        "upvotes_count": unit.upvotes_count,
        "downvotes_count": unit.downvotes_count,
        "net_score": unit.net_score,
        "created_at": unit.created_at.isoformat() if unit.created_at else None,
    }
    if isinstance(unit, Canvas):
        data["image_url"] = unit.image_url
    if isinstance(unit, Quiz):
        data["attempt_count"] = unit.attempt_count
    return data


# =============================================================================
# Private helpers
# =============================================================================

async def get_live_unit(db: AsyncSession, kind_info: ContentKind, unit_id: int, lock: bool = False):
    """Load a unit that is not soft-deleted, or raise NotFoundError."""
    stmt = select(kind_info.model).where(kind_info.model.id == unit_id)
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    unit = result.scalar_one_or_none()
    if unit is None or unit.is_deleted:
        raise NotFoundError(kind_info.not_found_message)
    return unit


async def _next_sequence(db: AsyncSession, model, chapter_id: int) -> int:
    result = await db.execute(
        select(func.max(model.sequence)).where(
            model.chapter_id == chapter_id,
            model.is_deleted == False  # noqa: E712
        )
    )
    return (result.scalar() or 0) + 1


async def _count_questions(db: AsyncSession, quiz_id: int) -> int:
    result = await db.execute(select(func.count(Question.id)).where(Question.quiz_id == quiz_id))
    return result.scalar() or 0


async def _notice_context(db: AsyncSession, unit) -> Dict[str, Any]:
    """Subject, chapter and contributor details used in notice payloads."""
    result = await db.execute(
        select(Subject.id, Subject.name, Chapter.title, User.name)
        .join(Chapter, Chapter.subject_id == Subject.id)
        .join(User, User.id == unit.contributor_id)
        .where(Chapter.id == unit.chapter_id)
    )
    row = result.first()
    if row is None:
        return {}
    return {
        "subject_id": row[0],
        "subject_name": row[1],
        "chapter_title": row[2],
        "contributor_name": row[3],
    }


def ensure_editable(unit) -> None:
    if unit.status == ContentStatus.APPROVED:
        raise InvalidStateError(messages.APPROVED_IS_LOCKED)


# =============================================================================
# A) create_content()
# =============================================================================

async def create_content(
    db: AsyncSession,
    kind: str,
    user_id: int,
    chapter_id: int,
    title: str,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a DRAFT unit at the end of its chapter.

    The new sequence is 1 + the highest live sibling sequence (1 when the
    chapter is empty).
    """
    kind_info = CONTENT_KINDS[kind]

    if await subject_id_for_chapter(db, chapter_id) is None:
        raise NotFoundError(messages.CHAPTER_NOT_FOUND)

    try:
        sequence = await _next_sequence(db, kind_info.model, chapter_id)
        unit = kind_info.model(
            title=title,
            description=description,
            chapter_id=chapter_id,
            contributor_id=user_id,
            sequence=sequence,
            status=ContentStatus.DRAFT,
        )
        if image_url is not None and kind == "canvas":
            unit.image_url = image_url
        db.add(unit)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(messages.SEQUENCE_CONFLICT)
    except Exception:
        await db.rollback()
        raise

    logger.info(f"{kind_info.label} {unit.id} created by user {user_id} in chapter {chapter_id} (seq {sequence})")
    return {"success": True, f"{kind}_id": unit.id, kind: serialize_unit(unit)}


# =============================================================================
# B) update_content()
# =============================================================================

async def update_content(
    db: AsyncSession,
    kind: str,
    user_id: int,
    unit_id: int,
    title: Optional[str] = None,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Owner or admin; APPROVED units cannot be edited."""
    kind_info = CONTENT_KINDS[kind]
    unit = await get_live_unit(db, kind_info, unit_id)
    await require_manager(db, user_id, unit)
    ensure_editable(unit)

    if title is not None:
        unit.title = title
    if description is not None:
        unit.description = description
    if image_url is not None and kind == "canvas":
        unit.image_url = image_url

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"{kind_info.label} {unit_id} updated by user {user_id}")
    return {"success": True, kind: serialize_unit(unit)}


# =============================================================================
# C) submit_content()
# =============================================================================

async def submit_content(
    db: AsyncSession,
    kind: str,
    user_id: int,
    unit_id: int,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Dict[str, Any]:
    """
    DRAFT | REJECTED -> PENDING.

    Flow:
    1. Ownership or admin
    2. Status guard
    3. Quiz needs at least one question
    4. Commit
    5. Notify subject moderators (detached)
    """
    kind_info = CONTENT_KINDS[kind]
    unit = await get_live_unit(db, kind_info, unit_id, lock=True)
    await require_manager(db, user_id, unit)

    if unit.status not in (ContentStatus.DRAFT, ContentStatus.REJECTED):
        raise InvalidStateError(messages.CANNOT_SUBMIT, code=ErrorCode.STATE_TRANSITION_INVALID)

    if kind_info.requires_questions and await _count_questions(db, unit.id) == 0:
        raise InvalidStateError(messages.QUIZ_NEEDS_QUESTION)

    previous = unit.status
    unit.status = ContentStatus.PENDING
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"{kind_info.label} {unit_id} submitted by user {user_id} ({previous.value} -> PENDING)")

    context = await _notice_context(db, unit)
    notify(dispatcher, Notice(
        type=NoticeType.SUBMISSION_PENDING,
        subject_id=context.get("subject_id"),
        content_type=kind_info.label,
        content_id=unit.id,
        payload={**context, "content_type": kind_info.label, "content_id": unit.id, "content_title": unit.title},
    ))

    return {"success": True, kind: serialize_unit(unit)}


# =============================================================================
# D) cancel_submission()
# =============================================================================

async def cancel_submission(db: AsyncSession, kind: str, user_id: int, unit_id: int) -> Dict[str, Any]:
    """PENDING -> DRAFT."""
    kind_info = CONTENT_KINDS[kind]
    unit = await get_live_unit(db, kind_info, unit_id, lock=True)
    await require_manager(db, user_id, unit)

    if unit.status != ContentStatus.PENDING:
        raise InvalidStateError(messages.NOT_PENDING, code=ErrorCode.STATE_TRANSITION_INVALID)

    unit.status = ContentStatus.DRAFT
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"{kind_info.label} {unit_id} submission cancelled by user {user_id}")
    return {"success": True, kind: serialize_unit(unit)}


# =============================================================================
# E) delete_content()
# =============================================================================

async def delete_content(db: AsyncSession, kind: str, user_id: int, unit_id: int) -> Dict[str, Any]:
    """Soft delete when APPROVED, otherwise remove the unit and its children."""
    kind_info = CONTENT_KINDS[kind]
    unit = await get_live_unit(db, kind_info, unit_id, lock=True)
    await require_manager(db, user_id, unit)

    soft = unit.status == ContentStatus.APPROVED
    try:
        if soft:
            unit.is_deleted = True
        else:
            await db.delete(unit)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"{kind_info.label} {unit_id} {'soft' if soft else 'hard'}-deleted by user {user_id}")
    return {"success": True, "soft_deleted": soft}


# =============================================================================
# F) approve_content() / reject_content()
# =============================================================================

async def _review(
    db: AsyncSession,
    kind_info: ContentKind,
    unit_id: int,
    new_status: ContentStatus,
    rejection_reason: Optional[str],
):
    """Compare-and-set PENDING -> new_status. A second reviewer loses."""
    result = await db.execute(
        update(kind_info.model)
        .where(
            kind_info.model.id == unit_id,
            kind_info.model.status == ContentStatus.PENDING,
            kind_info.model.is_deleted == False  # noqa: E712
        )
        .values(status=new_status, rejection_reason=rejection_reason)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InvalidStateError(messages.ALREADY_PROCESSED, code=ErrorCode.ALREADY_PROCESSED)


async def approve_content(
    db: AsyncSession,
    kind: str,
    user_id: int,
    unit_id: int,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Dict[str, Any]:
    """
    PENDING -> APPROVED, clearing any previous rejection reason.

    In the same transaction the contributor earns the approval award (plus
    a per-question bonus for quizzes) and the reviewer earns moderation
    points.
    """
    kind_info = CONTENT_KINDS[kind]
    unit = await get_live_unit(db, kind_info, unit_id)
    subject_id = await subject_id_for_chapter(db, unit.chapter_id)
    await require_moderator(db, user_id, subject_id)

    try:
        await _review(db, kind_info, unit_id, ContentStatus.APPROVED, None)

        metadata_id = f"{kind}_id"
        await award_points(
            db, unit.contributor_id, kind_info.approved_points, kind_info.approved_reason,
            subject_id, {metadata_id: unit_id}
        )
        if kind_info.requires_questions:
            result = await db.execute(select(Question.id).where(Question.quiz_id == unit_id))
            for question_id in result.scalars().all():
                await award_points(
                    db, unit.contributor_id, POINT_VALUES["QUIZ_QUESTION"],
                    PointsReason.QUIZ_QUESTION_ADDED, subject_id,
                    {metadata_id: unit_id, "question_id": question_id}
                )
        await award_points(
            db, user_id, POINT_VALUES["MODERATOR_APPROVAL"],
            PointsReason.CONTENT_APPROVED_BY_MODERATOR, subject_id,
            {metadata_id: unit_id, "moderator_action": True}
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(unit)
    logger.info(f"{kind_info.label} {unit_id} approved by user {user_id}")

    _notify_decision(dispatcher, kind_info, unit, subject_id, "APPROVED")
    return {"success": True, kind: serialize_unit(unit)}


async def reject_content(
    db: AsyncSession,
    kind: str,
    user_id: int,
    unit_id: int,
    reason: str,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> Dict[str, Any]:
    """PENDING -> REJECTED with a 5-1000 character reason."""
    kind_info = CONTENT_KINDS[kind]
    reason = (reason or "").strip()
    if not REJECTION_REASON_MIN_LENGTH <= len(reason) <= REJECTION_REASON_MAX_LENGTH:
        raise BadRequestError(messages.REJECTION_REASON_REQUIRED)

    unit = await get_live_unit(db, kind_info, unit_id)
    subject_id = await subject_id_for_chapter(db, unit.chapter_id)
    await require_moderator(db, user_id, subject_id)

    try:
        await _review(db, kind_info, unit_id, ContentStatus.REJECTED, reason)
        await award_points(
            db, user_id, POINT_VALUES["MODERATOR_REJECTION"],
            PointsReason.CONTENT_REJECTED_BY_MODERATOR, subject_id,
            {f"{kind}_id": unit_id, "moderator_action": True}
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(unit)
    logger.info(f"{kind_info.label} {unit_id} rejected by user {user_id}: {reason}")

    _notify_decision(dispatcher, kind_info, unit, subject_id, "REJECTED")
    return {"success": True, kind: serialize_unit(unit)}


def _notify_decision(dispatcher, kind_info: ContentKind, unit, subject_id: int, decision: str) -> None:
    notify(dispatcher, Notice(
        type=NoticeType.CONTENT_APPROVED if decision == "APPROVED" else NoticeType.CONTENT_REJECTED,
        subject_id=subject_id,
        content_type=kind_info.label,
        content_id=unit.id,
        recipient_user_id=unit.contributor_id,
        payload={
            "content_type": kind_info.label,
            "content_id": unit.id,
            "content_title": unit.title,
            "chapter_id": unit.chapter_id,
            "decision": decision,
            "rejection_reason": unit.rejection_reason,
        },
    ))


# =============================================================================
# G) get_moderation_queue()
# =============================================================================

async def _pending_units(db: AsyncSession, model, subject_id: int):
    result = await db.execute(
        select(model, User.name, Chapter.title)
        .join(Chapter, Chapter.id == model.chapter_id)
        .join(User, User.id == model.contributor_id)
        .where(
            Chapter.subject_id == subject_id,
            model.status == ContentStatus.PENDING,
            model.is_deleted == False  # noqa: E712
        )
        .order_by(model.created_at.asc(), model.id.asc())
    )
    return result.all()


async def _pending_reports(db: AsyncSession, subject_id: int):
    """Pending reports whose target (or the target's parent) is live in this subject."""
    report_ids = set()

    for model, column in ((Canvas, Report.reported_canvas_id), (Quiz, Report.reported_quiz_id)):
        result = await db.execute(
            select(Report.id)
            .join(model, model.id == column)
            .join(Chapter, Chapter.id == model.chapter_id)
            .where(Chapter.subject_id == subject_id, model.is_deleted == False)  # noqa: E712
        )
        report_ids.update(result.scalars().all())

    for comment_model, content_model, fk, column in (
        (Comment, Canvas, Comment.canvas_id, Report.reported_comment_id),
        (QuizComment, Quiz, QuizComment.quiz_id, Report.reported_quiz_comment_id),
    ):
        result = await db.execute(
            select(Report.id)
            .join(comment_model, comment_model.id == column)
            .join(content_model, content_model.id == fk)
            .join(Chapter, Chapter.id == content_model.chapter_id)
            .where(Chapter.subject_id == subject_id, content_model.is_deleted == False)  # noqa: E712
        )
        report_ids.update(result.scalars().all())

    if not report_ids:
        return []

    result = await db.execute(
        select(Report)
        .where(Report.id.in_(report_ids), Report.status == ReportStatus.PENDING)
        .order_by(Report.created_at.desc(), Report.id.desc())
    )
    return result.scalars().all()


async def get_moderation_queue(db: AsyncSession, user_id: int, subject_id: int) -> Dict[str, Any]:
    await require_moderator(db, user_id, subject_id)

    canvases = await _pending_units(db, Canvas, subject_id)
    quizzes = await _pending_units(db, Quiz, subject_id)
    reports = await _pending_reports(db, subject_id)

    question_counts = {}
    quiz_ids = [row[0].id for row in quizzes]
    if quiz_ids:
        result = await db.execute(
            select(Question.quiz_id, func.count(Question.id))
            .where(Question.quiz_id.in_(quiz_ids))
            .group_by(Question.quiz_id)
        )
        question_counts = dict(result.all())

    return {
        "success": True,
        "pending_canvases": [
            {**serialize_unit(unit), "contributor_name": name, "chapter_title": chapter}
            for unit, name, chapter in canvases
        ],
        "pending_quizzes": [
            {
                **serialize_unit(unit),
                "contributor_name": name,
                "chapter_title": chapter,
                "question_count": question_counts.get(unit.id, 0),
            }
            for unit, name, chapter in quizzes
        ],
        "reports": [report.to_dict() for report in reports],
    }

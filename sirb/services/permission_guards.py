"""
sirb/services/permission_guards.py
Authorization capability checks shared by every workflow service.

Resolution order is cheapest first:
- can_moderate: ADMIN role lookup, then SubjectModerator membership
- can_manage:   ownership of the content unit, then ADMIN role

Denials raise ForbiddenError before any mutation and are logged.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.errors import ForbiddenError, NotFoundError, ErrorCode
from sirb.orm.user import User, UserRole
from sirb.orm.subject import Chapter
from sirb.orm.subject_moderator import SubjectModerator
from sirb.orm.canvas import Canvas
from sirb.orm.quiz import Quiz
from sirb.orm.comment import Comment, QuizComment
from sirb import messages

logger = logging.getLogger(__name__)


class AccessReason:
    ADMIN = "admin"
    MODERATOR = "moderator"
    OWNER = "owner"
    DENIED = "denied"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


DENIED = AccessDecision(allowed=False, reason=AccessReason.DENIED)


async def is_admin(db: AsyncSession, user_id: int) -> bool:
    """Direct role lookup."""
    result = await db.execute(select(User.role).where(User.id == user_id))
    return result.scalar_one_or_none() == UserRole.ADMIN


async def can_moderate(db: AsyncSession, user_id: int, subject_id: int) -> AccessDecision:
    if await is_admin(db, user_id):
        return AccessDecision(allowed=True, reason=AccessReason.ADMIN)

    result = await db.execute(
        select(SubjectModerator.id).where(
            SubjectModerator.subject_id == subject_id,
            SubjectModerator.user_id == user_id
        )
    )
    if result.scalar_one_or_none() is not None:
        return AccessDecision(allowed=True, reason=AccessReason.MODERATOR)

    return DENIED


async def can_manage(db: AsyncSession, user_id: int, content) -> AccessDecision:
    """`content` is any row with a contributor_id (canvas, quiz)."""
    if content.contributor_id == user_id:
        return AccessDecision(allowed=True, reason=AccessReason.OWNER)

    if await is_admin(db, user_id):
        return AccessDecision(allowed=True, reason=AccessReason.ADMIN)

    return DENIED


async def require_moderator(db: AsyncSession, user_id: int, subject_id: int) -> AccessDecision:
    decision = await can_moderate(db, user_id, subject_id)
    if not decision.allowed:
        logger.warning(f"Moderation denied: user={user_id} subject={subject_id}")
        raise ForbiddenError(messages.NOT_MODERATOR, code=ErrorCode.PERMISSION_DENIED)
    return decision


async def require_manager(db: AsyncSession, user_id: int, content) -> AccessDecision:
    decision = await can_manage(db, user_id, content)
    if not decision.allowed:
        logger.warning(
            f"Ownership denied: user={user_id} {type(content).__name__.lower()}={content.id}"
        )
        raise ForbiddenError(messages.NOT_CONTENT_OWNER, code=ErrorCode.OWNERSHIP_VIOLATION)
    return decision


# =============================================================================
# Subject resolution (content -> chapter -> subject)
# =============================================================================

CONTENT_MODELS = {
    "canvas": Canvas,
    "quiz": Quiz,
}

COMMENT_MODELS = {
    "comment": (Comment, Canvas, "canvas_id"),
    "quiz_comment": (QuizComment, Quiz, "quiz_id"),
}


async def subject_id_for_chapter(db: AsyncSession, chapter_id: int) -> Optional[int]:
    result = await db.execute(select(Chapter.subject_id).where(Chapter.id == chapter_id))
    return result.scalar_one_or_none()


async def resolve_subject_id(db: AsyncSession, kind: str, content_id: int) -> int:
    """
    Walk a canvas, quiz, comment or quiz comment up to its subject id.
    Raises NotFoundError when any link is missing.
    """
    if kind in CONTENT_MODELS:
        model = CONTENT_MODELS[kind]
        stmt = (
            select(Chapter.subject_id)
            .join(model, model.chapter_id == Chapter.id)
            .where(model.id == content_id)
        )
    elif kind in COMMENT_MODELS:
        comment_model, content_model, fk_name = COMMENT_MODELS[kind]
        stmt = (
            select(Chapter.subject_id)
            .join(content_model, content_model.chapter_id == Chapter.id)
            .join(comment_model, getattr(comment_model, fk_name) == content_model.id)
            .where(comment_model.id == content_id)
        )
    else:
        raise ValueError(f"Unknown content kind: {kind}")

    result = await db.execute(stmt)
    subject_id = result.scalar_one_or_none()
    if subject_id is None:
        raise NotFoundError()
    return subject_id

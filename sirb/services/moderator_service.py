"""
sirb/services/moderator_service.py
Admin management of per-subject moderator grants.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy import select, delete, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.errors import ForbiddenError, NotFoundError, ConflictError, BadRequestError, ErrorCode
from sirb.orm.subject import Subject
from sirb.orm.subject_moderator import SubjectModerator
from sirb.orm.user import User
from sirb.services.permission_guards import is_admin
from sirb import messages

logger = logging.getLogger(__name__)

SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 10


async def _require_admin(db: AsyncSession, user_id: int) -> None:
    if not await is_admin(db, user_id):
        logger.warning(f"Moderator management denied for user {user_id}")
        raise ForbiddenError(messages.FORBIDDEN, code=ErrorCode.PERMISSION_DENIED)


def _serialize_grant(grant: SubjectModerator, user: User) -> Dict[str, Any]:
    return {
        "id": grant.id,
        "subject_id": grant.subject_id,
        "user": {"id": user.id, "name": user.name, "email": user.email},
        "created_at": grant.created_at.isoformat() if grant.created_at else None,
    }


async def list_moderators(db: AsyncSession, acting_user_id: int, subject_id: int) -> List[Dict[str, Any]]:
    """Newest grant first."""
    await _require_admin(db, acting_user_id)
    result = await db.execute(
        select(SubjectModerator, User)
        .join(User, User.id == SubjectModerator.user_id)
        .where(SubjectModerator.subject_id == subject_id)
        .order_by(SubjectModerator.created_at.desc(), SubjectModerator.id.desc())
    )
    return [_serialize_grant(grant, user) for grant, user in result.all()]


async def assign_moderator(
    db: AsyncSession,
    acting_user_id: int,
    subject_id: int,
    user_id: int
) -> Dict[str, Any]:
    """
    Grant moderation of `subject_id` to `user_id`.

    Raises NotFoundError for a missing subject or user, BadRequestError for a
    banned user and ConflictError when the grant already exists.
    """
    await _require_admin(db, acting_user_id)

    subject = await db.get(Subject, subject_id)
    if subject is None:
        raise NotFoundError(messages.SUBJECT_NOT_FOUND)

    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(messages.USER_NOT_FOUND)
    if user.banned:
        raise BadRequestError(messages.USER_BANNED)

    grant = SubjectModerator(subject_id=subject_id, user_id=user_id)
    db.add(grant)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(messages.ALREADY_MODERATOR, code=ErrorCode.ALREADY_MODERATOR)
    except Exception:
        await db.rollback()
        raise

    logger.info(f"User {user_id} assigned as moderator of subject {subject_id} by admin {acting_user_id}")
    return {"success": True, "moderator": _serialize_grant(grant, user)}


async def remove_moderator(
    db: AsyncSession,
    acting_user_id: int,
    grant_id: int,
    subject_id: int
) -> Dict[str, Any]:
    """Delete the grant scoped to (id, subject). Removing a missing grant is not an error."""
    await _require_admin(db, acting_user_id)

    try:
        result = await db.execute(
            delete(SubjectModerator).where(
                SubjectModerator.id == grant_id,
                SubjectModerator.subject_id == subject_id
            )
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    removed = result.rowcount > 0
    if removed:
        logger.info(f"Moderator grant {grant_id} removed from subject {subject_id} by admin {acting_user_id}")
    return {"success": True, "removed": removed}


async def search_users(db: AsyncSession, acting_user_id: int, query: str) -> List[Dict[str, Any]]:
    """
    Case-insensitive substring match on name or email, banned users excluded,
    at most 10 results. Queries shorter than 2 characters return nothing.
    """
    await _require_admin(db, acting_user_id)

    term = (query or "").strip()
    if len(term) < SEARCH_MIN_LENGTH:
        return []

    result = await db.execute(
        select(User)
        .where(
            or_(User.name.icontains(term, autoescape=True), User.email.icontains(term, autoescape=True)),
            or_(User.banned == False, User.banned.is_(None))  # noqa: E712
        )
        .order_by(User.name.asc())
        .limit(SEARCH_LIMIT)
    )
    return [
        {"id": u.id, "name": u.name, "email": u.email, "role": u.role.value}
        for u in result.scalars().all()
    ]

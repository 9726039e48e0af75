"""
sirb/services/comment_service.py
Comment threads on canvases ("comment") and quizzes ("quiz_comment").

- Single-level nesting: replies attach to a live top-level comment on the
  same target.
- Deletion is soft. A deleted top-level comment stays listed, with its
  text masked, while at least one of its replies is live.
- Adding is rate limited per user across both comment tables.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select, exists, and_, or_
from sqlalchemy.orm import aliased
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.config import settings
from sirb.errors import BadRequestError, NotFoundError, ForbiddenError, ErrorCode
from sirb.orm.base import utcnow
from sirb.orm.canvas import Canvas
from sirb.orm.quiz import Quiz
from sirb.orm.comment import Comment, QuizComment
from sirb.orm.user import User
from sirb.orm.user_points import PointsReason
from sirb.services.permission_guards import is_admin, subject_id_for_chapter
from sirb.services.points_service import POINT_VALUES, COMMENT_MIN_LENGTH_FOR_POINTS, award_points
from sirb.services.rate_limiter import check_rate_limit
from sirb import messages

logger = logging.getLogger(__name__)

COMMENTS_PER_PAGE = 10
MAX_COMMENT_LENGTH = 2000


@dataclass(frozen=True)
class CommentTarget:
    kind: str
    model: type
    content_model: type
    target_fk: str
    not_found_message: str


COMMENT_TARGETS = {
    "comment": CommentTarget("comment", Comment, Canvas, "canvas_id", messages.CANVAS_NOT_FOUND),
    "quiz_comment": CommentTarget("quiz_comment", QuizComment, Quiz, "quiz_id", messages.QUIZ_NOT_FOUND),
}


def clean_text(text: str) -> str:
    trimmed = (text or "").strip()
    if not trimmed or len(trimmed) > MAX_COMMENT_LENGTH:
        raise BadRequestError(messages.INVALID_COMMENT_LENGTH)
    return trimmed


def serialize_comment(comment, user_name: Optional[str]) -> Dict[str, Any]:
    return {
        "id": comment.id,
        "text": messages.DELETED_COMMENT_TEXT if comment.is_deleted else comment.text,
        "user_id": comment.user_id,
        "user_name": user_name,
        "parent_comment_id": comment.parent_comment_id,
        "is_deleted": comment.is_deleted,
        "is_pinned": comment.is_pinned,
        "is_announcement": comment.is_announcement,
        "upvotes_count": comment.upvotes_count,
        "downvotes_count": comment.downvotes_count,
        "net_score": comment.net_score,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "edited_at": comment.edited_at.isoformat() if comment.edited_at else None,
    }


async def _live_content(db: AsyncSession, target: CommentTarget, content_id: int):
    content = await db.get(target.content_model, content_id)
    if content is None or content.is_deleted:
        raise NotFoundError(target.not_found_message)
    return content


async def _get_comment(db: AsyncSession, target: CommentTarget, comment_id: int):
    comment = await db.get(target.model, comment_id)
    if comment is None:
        raise NotFoundError(messages.COMMENT_NOT_FOUND)
    return comment


async def add_comment(
    db: AsyncSession,
    kind: str,
    user_id: int,
    content_id: int,
    text: str,
    parent_comment_id: Optional[int] = None,
) -> Dict[str, Any]:
    target = COMMENT_TARGETS[kind]
    text = clean_text(text)

    await check_rate_limit(db, user_id, "comment", settings.COMMENT_RATE_LIMIT)
    content = await _live_content(db, target, content_id)

    if parent_comment_id is not None:
        parent = await db.get(target.model, parent_comment_id)
        if (
            parent is None
            or parent.is_deleted
            or parent.parent_comment_id is not None
            or parent.target_id != content_id
        ):
            raise BadRequestError(messages.INVALID_PARENT_COMMENT)

    try:
        comment = target.model(
            **{target.target_fk: content_id},
            user_id=user_id,
            text=text,
            parent_comment_id=parent_comment_id,
        )
        db.add(comment)
        await db.flush()

        if len(text) >= COMMENT_MIN_LENGTH_FOR_POINTS:
            subject_id = await subject_id_for_chapter(db, content.chapter_id)
            await award_points(
                db, user_id, POINT_VALUES["COMMENT_CREATED"], PointsReason.COMMENT_CREATED,
                subject_id, {f"{kind}_id": comment.id, target.target_fk: content_id}
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    user = await db.get(User, user_id)
    logger.info(f"{kind} {comment.id} added on {target.target_fk}={content_id} by user {user_id}")
    return {"success": True, "comment": serialize_comment(comment, user.name if user else None)}


async def edit_comment(db: AsyncSession, kind: str, user_id: int, comment_id: int, text: str) -> Dict[str, Any]:
    """Author only."""
    target = COMMENT_TARGETS[kind]
    text = clean_text(text)
    comment = await _get_comment(db, target, comment_id)

    if comment.user_id != user_id:
        logger.warning(f"Comment edit denied: user={user_id} {kind}={comment_id}")
        raise ForbiddenError(messages.FORBIDDEN, code=ErrorCode.OWNERSHIP_VIOLATION)
    if comment.is_deleted:
        raise NotFoundError(messages.COMMENT_NOT_FOUND)

    comment.text = text
    comment.edited_at = utcnow()
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"{kind} {comment_id} edited by user {user_id}")
    return {"success": True}


async def delete_comment(db: AsyncSession, kind: str, user_id: int, comment_id: int) -> Dict[str, Any]:
    """Author or admin; soft delete."""
    target = COMMENT_TARGETS[kind]
    comment = await _get_comment(db, target, comment_id)

    if comment.user_id != user_id and not await is_admin(db, user_id):
        logger.warning(f"Comment delete denied: user={user_id} {kind}={comment_id}")
        raise ForbiddenError(messages.FORBIDDEN, code=ErrorCode.OWNERSHIP_VIOLATION)

    comment.is_deleted = True
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"{kind} {comment_id} deleted by user {user_id}")
    return {"success": True}


def _sort_columns(model, sort: str) -> list:
    primary = model.created_at if sort == "newest" else model.net_score
    return [model.is_announcement, model.is_pinned, primary, model.id]


def _after(columns: list, anchor):
    """Rows that sort strictly after `anchor` when every column is descending."""
    clauses = []
    for i, column in enumerate(columns):
        ties = [c == getattr(anchor, c.key) for c in columns[:i]]
        clauses.append(and_(*ties, column < getattr(anchor, column.key)))
    return or_(*clauses)


async def list_comments(
    db: AsyncSession,
    kind: str,
    content_id: int,
    cursor: Optional[int] = None,
    sort: str = "best",
) -> Dict[str, Any]:
    """
    One page of top-level comments with their live replies.

    Announcements come first, then pinned comments, then by net score
    ("best") or recency ("newest"). `next_cursor` is the id of the last
    comment on the page.
    """
    target = COMMENT_TARGETS[kind]
    model = target.model
    fk = getattr(model, target.target_fk)
    await _live_content(db, target, content_id)

    reply = aliased(model)
    has_live_reply = exists().where(
        and_(reply.parent_comment_id == model.id, reply.is_deleted == False)  # noqa: E712
    )

    stmt = (
        select(model, User.name)
        .join(User, User.id == model.user_id)
        .where(
            fk == content_id,
            model.parent_comment_id.is_(None),
            or_(model.is_deleted == False, has_live_reply)  # noqa: E712
        )
    )
    sort_columns = _sort_columns(model, sort)
    if cursor is not None:
        anchor = await db.get(model, cursor)
        if anchor is None or getattr(anchor, target.target_fk) != content_id:
            raise BadRequestError(messages.INVALID_COMMENT_CURSOR)
        stmt = stmt.where(_after(sort_columns, anchor))

    stmt = stmt.order_by(*[column.desc() for column in sort_columns])

    rows = (await db.execute(stmt.limit(COMMENTS_PER_PAGE + 1))).all()
    has_more = len(rows) > COMMENTS_PER_PAGE
    page = rows[:COMMENTS_PER_PAGE]

    replies_by_parent: Dict[int, List[Dict[str, Any]]] = {}
    parent_ids = [row[0].id for row in page]
    if parent_ids:
        reply_rows = await db.execute(
            select(model, User.name)
            .join(User, User.id == model.user_id)
            .where(model.parent_comment_id.in_(parent_ids), model.is_deleted == False)  # noqa: E712
            .order_by(model.created_at.asc(), model.id.asc())
        )
        for comment, name in reply_rows.all():
            replies_by_parent.setdefault(comment.parent_comment_id, []).append(serialize_comment(comment, name))

    comments = []
    for comment, name in page:
        data = serialize_comment(comment, name)
        data["replies"] = replies_by_parent.get(comment.id, [])
        comments.append(data)

    return {
        "success": True,
        "comments": comments,
        "next_cursor": page[-1][0].id if has_more and page else None,
        "has_more": has_more,
    }

"""
sirb/services/reorder_service.py
Staged renumbering for ordered siblings under a unique (parent, sequence) key.

Writing final positions one at a time can collide with a sibling that has
not moved yet. Instead every moved item is first parked in a disjoint key
space (negative values, one per update position), flushed, and only then
given its final position. Both phases share the caller's transaction, so a
failure leaves the original ordering intact.
"""
import logging
from dataclasses import dataclass
from typing import List, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.errors import BadRequestError, NotFoundError, ConflictError, ErrorCode
from sirb.orm.canvas import Canvas
from sirb.orm.quiz import Quiz
from sirb.orm.subject import Chapter
from sirb.services.permission_guards import require_moderator
from sirb import messages

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequenceUpdate:
    item_id: int
    sequence: int


def staging_value(position: int) -> int:
    """Temporary sequence for the item at `position` in the update list."""
    return -(position + 1)


def _validate_updates(updates: Sequence[SequenceUpdate]) -> None:
    item_ids = [u.item_id for u in updates]
    sequences = [u.sequence for u in updates]

    if len(set(item_ids)) != len(item_ids) or len(set(sequences)) != len(sequences):
        raise BadRequestError(messages.DUPLICATE_REORDER_ENTRY)

    if any(s < 0 for s in sequences):
        raise BadRequestError(messages.INVALID_SEQUENCE)


async def apply_staged_sequences(
    db: AsyncSession,
    model,
    parent_column: str,
    parent_id: int,
    updates: Sequence[SequenceUpdate],
    live_only: bool = False,
) -> None:
    """
    Move `updates` to their final sequences under one parent.

    Does not commit. Raises NotFoundError when an item is missing and
    BadRequestError when it belongs to another parent; nothing is written
    in either case.
    """
    _validate_updates(updates)
    if not updates:
        return

    item_ids = [u.item_id for u in updates]
    stmt = select(model.id, getattr(model, parent_column)).where(model.id.in_(item_ids))
    if live_only:
        stmt = stmt.where(model.is_deleted == False)  # noqa: E712
    rows = (await db.execute(stmt)).all()

    if len(rows) != len(item_ids):
        raise NotFoundError(messages.ITEMS_NOT_FOUND)
    if any(row[1] != parent_id for row in rows):
        raise BadRequestError(messages.ITEMS_WRONG_PARENT)

    # Phase 1: park every moved item outside the final value space
    for position, u in enumerate(updates):
        await db.execute(
            update(model).where(model.id == u.item_id).values(sequence=staging_value(position))
        )
    await db.flush()

    # Phase 2: final positions
    for u in updates:
        await db.execute(
            update(model).where(model.id == u.item_id).values(sequence=u.sequence)
        )
    await db.flush()


# =============================================================================
# Chapter content reordering (moderators and admins)
# =============================================================================

REORDERABLE = {
    "canvas": Canvas,
    "quiz": Quiz,
}


async def reorder_chapter_items(
    db: AsyncSession,
    user_id: int,
    chapter_id: int,
    kind: str,
    updates: List[SequenceUpdate],
) -> dict:
    """
    Reorder the canvases or quizzes of one chapter.

    Restricted to admins and moderators of the chapter's subject.
    Applying the same updates twice yields the same ordering.
    """
    model = REORDERABLE[kind]

    result = await db.execute(select(Chapter.subject_id).where(Chapter.id == chapter_id))
    subject_id = result.scalar_one_or_none()
    if subject_id is None:
        raise NotFoundError(messages.CHAPTER_NOT_FOUND)

    await require_moderator(db, user_id, subject_id)

    try:
        await apply_staged_sequences(db, model, "chapter_id", chapter_id, updates, live_only=True)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Reorder conflict in chapter {chapter_id} ({kind}) by user {user_id}")
        raise ConflictError(messages.SEQUENCE_CONFLICT, code=ErrorCode.ALREADY_EXISTS)
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Reordered {len(updates)} {kind} item(s) in chapter {chapter_id} by user {user_id}")
    return {"success": True}

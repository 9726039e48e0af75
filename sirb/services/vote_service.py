"""
sirb/services/vote_service.py
Vote aggregation for canvases, quizzes and both comment kinds.

Each vote runs in one transaction that locks the target row, applies the
3-way transition to the per-user vote row, and rewrites the denormalized
counters on the target. After commit every target satisfies
net_score == upvotes_count - downvotes_count.

    no vote        -> create row,  matching counter +1, net +/-1
    same type      -> delete row,  matching counter -1, net reversed
    other type     -> update row,  new +1 / old -1,     net moves by 2
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.errors import NotFoundError, ForbiddenError, ConflictError, ErrorCode
from sirb.orm.canvas import Canvas
from sirb.orm.quiz import Quiz
from sirb.orm.comment import Comment, QuizComment
from sirb.orm.vote import VoteType, CanvasVote, QuizVote, CommentVote, QuizCommentVote
from sirb.orm.user_points import PointsReason
from sirb.services.permission_guards import resolve_subject_id
from sirb.services.points_service import POINT_VALUES, award_points, revoke_points
from sirb import messages

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteTarget:
    kind: str
    model: type
    vote_model: type
    vote_fk: str
    owner_attr: str
    not_found_message: str
    upvote_points: int
    award_reason: str
    revoke_reason: str


VOTE_TARGETS = {
    "canvas": VoteTarget(
        kind="canvas",
        model=Canvas,
        vote_model=CanvasVote,
        vote_fk="canvas_id",
        owner_attr="contributor_id",
        not_found_message=messages.CANVAS_NOT_FOUND,
        upvote_points=POINT_VALUES["CANVAS_UPVOTE"],
        award_reason=PointsReason.CANVAS_UPVOTE_RECEIVED,
        revoke_reason=PointsReason.CANVAS_UPVOTE_REVOKED,
    ),
    "quiz": VoteTarget(
        kind="quiz",
        model=Quiz,
        vote_model=QuizVote,
        vote_fk="quiz_id",
        owner_attr="contributor_id",
        not_found_message=messages.QUIZ_NOT_FOUND,
        upvote_points=POINT_VALUES["QUIZ_UPVOTE"],
        award_reason=PointsReason.QUIZ_UPVOTE_RECEIVED,
        revoke_reason=PointsReason.QUIZ_UPVOTE_REVOKED,
    ),
    "comment": VoteTarget(
        kind="comment",
        model=Comment,
        vote_model=CommentVote,
        vote_fk="comment_id",
        owner_attr="user_id",
        not_found_message=messages.COMMENT_NOT_FOUND,
        upvote_points=POINT_VALUES["COMMENT_UPVOTE"],
        award_reason=PointsReason.COMMENT_UPVOTE_RECEIVED,
        revoke_reason=PointsReason.COMMENT_UPVOTE_REVOKED,
    ),
    "quiz_comment": VoteTarget(
        kind="quiz_comment",
        model=QuizComment,
        vote_model=QuizCommentVote,
        vote_fk="quiz_comment_id",
        owner_attr="user_id",
        not_found_message=messages.COMMENT_NOT_FOUND,
        upvote_points=POINT_VALUES["COMMENT_UPVOTE"],
        award_reason=PointsReason.COMMENT_UPVOTE_RECEIVED,
        revoke_reason=PointsReason.COMMENT_UPVOTE_REVOKED,
    ),
}


def _unit(vote_type: VoteType) -> int:
    return 1 if vote_type == VoteType.LIKE else -1


def _bump(target, vote_type: VoteType, delta: int) -> None:
    if vote_type == VoteType.LIKE:
        target.upvotes_count += delta
    else:
        target.downvotes_count += delta
    target.net_score += _unit(vote_type) * delta


def _counters(target, current: Optional[VoteType]) -> dict:
    return {
        "vote_type": current.value if current else None,
        "upvotes_count": target.upvotes_count,
        "downvotes_count": target.downvotes_count,
        "net_score": target.net_score,
    }


async def vote(
    db: AsyncSession,
    user_id: int,
    kind: str,
    target_id: int,
    vote_type: VoteType
) -> dict:
    """
    Apply a LIKE/DISLIKE from `user_id` to the target.
    Raises NotFoundError for a missing target and ForbiddenError for self-votes,
    both before any write.
    """
    kind_info = VOTE_TARGETS[kind]
    vote_type = VoteType(vote_type)

    try:
        result = await db.execute(
            select(kind_info.model).where(kind_info.model.id == target_id).with_for_update()
        )
        target = result.scalar_one_or_none()
        if target is None:
            raise NotFoundError(kind_info.not_found_message)

        owner_id = getattr(target, kind_info.owner_attr)
        if owner_id == user_id:
            raise ForbiddenError(messages.CANNOT_VOTE_OWN, code=ErrorCode.PERMISSION_DENIED)

        subject_id = await resolve_subject_id(db, kind, target_id)
        fk_column = getattr(kind_info.vote_model, kind_info.vote_fk)
        result = await db.execute(
            select(kind_info.vote_model).where(
                kind_info.vote_model.user_id == user_id,
                fk_column == target_id
            )
        )
        existing = result.scalar_one_or_none()
        points_metadata = {kind_info.vote_fk: target_id, "voter_id": user_id}

        if existing is None:
            db.add(kind_info.vote_model(**{"user_id": user_id, kind_info.vote_fk: target_id, "vote_type": vote_type}))
            _bump(target, vote_type, 1)
            current = vote_type
            if vote_type == VoteType.LIKE:
                await award_points(db, owner_id, kind_info.upvote_points, kind_info.award_reason, subject_id, points_metadata)

        elif existing.vote_type == vote_type:
            await db.delete(existing)
            _bump(target, vote_type, -1)
            current = None
            if vote_type == VoteType.LIKE:
                await revoke_points(db, owner_id, kind_info.upvote_points, kind_info.revoke_reason, subject_id, points_metadata)

        else:
            previous = existing.vote_type
            existing.vote_type = vote_type
            _bump(target, previous, -1)
            _bump(target, vote_type, 1)
            current = vote_type
            if previous == VoteType.LIKE:
                await revoke_points(db, owner_id, kind_info.upvote_points, kind_info.revoke_reason, subject_id, points_metadata)
            else:
                await award_points(db, owner_id, kind_info.upvote_points, kind_info.award_reason, subject_id, points_metadata)

        await db.commit()

    except IntegrityError:
        await db.rollback()
        logger.warning(f"Concurrent vote conflict: user={user_id} {kind}={target_id}")
        raise ConflictError(messages.VOTE_CONFLICT)
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Vote recorded: user={user_id} {kind}={target_id} type={vote_type.value} "
        f"-> up={target.upvotes_count} down={target.downvotes_count} net={target.net_score}"
    )
    return {"success": True, **_counters(target, current)}

"""
sirb/services/points_service.py
Contributor points ledger.

Awards and revocations are written inside the caller's transaction and
never commit on their own. Awards are idempotent per (user, metadata):
a second award is skipped while the net sum of matching rows is positive,
so a like / unlike / like cycle yields exactly one active award.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.config import feature_flags
from sirb.orm.user import User
from sirb.orm.user_points import UserPoints, PointsReason

logger = logging.getLogger(__name__)


POINT_VALUES = {
    "CANVAS_APPROVED": 100,
    "QUIZ_APPROVED": 100,
    "QUIZ_QUESTION": 10,
    "CANVAS_UPVOTE": 5,
    "QUIZ_UPVOTE": 5,
    "COMMENT_UPVOTE": 2,
    "QUIZ_ATTEMPT": 2,
    "COMMENT_CREATED": 3,
    "MODERATOR_APPROVAL": 20,
    "MODERATOR_REJECTION": 20,
    "REPORT_RESOLVED": 15,
    "VALID_REPORT": 10,
}

COMMENT_MIN_LENGTH_FOR_POINTS = 20


def metadata_key(metadata: Dict[str, Any]) -> str:
    return json.dumps(metadata, sort_keys=True, separators=(",", ":"))


def points_enabled() -> bool:
    return feature_flags.FEATURE_CONTRIBUTOR_POINTS


async def _adjust_total(db: AsyncSession, user_id: int, delta: int) -> None:
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(total_points=User.total_points + delta)
    )


async def check_points_awarded(db: AsyncSession, user_id: int, metadata: Dict[str, Any]) -> bool:
    result = await db.execute(
        select(func.coalesce(func.sum(UserPoints.points), 0)).where(
            UserPoints.user_id == user_id,
            UserPoints.metadata_key == metadata_key(metadata)
        )
    )
    return (result.scalar() or 0) > 0


async def award_points(
    db: AsyncSession,
    user_id: int,
    points: int,
    reason: str,
    subject_id: Optional[int],
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    """Returns True when a ledger row was written."""
    if not points_enabled():
        return False

    metadata = metadata or {}
    if await check_points_awarded(db, user_id, metadata):
        logger.info(f"Points already awarded: {reason} for user {user_id} {metadata}")
        return False

    db.add(UserPoints(
        user_id=user_id,
        subject_id=subject_id,
        points=points,
        reason=reason,
        metadata_json=json.dumps(metadata),
        metadata_key=metadata_key(metadata),
    ))
    await _adjust_total(db, user_id, points)
    await db.flush()

    logger.info(f"Awarded {points} points to user {user_id} for {reason} in subject {subject_id}")
    return True


async def revoke_points(
    db: AsyncSession,
    user_id: int,
    points: int,
    reason: str,
    subject_id: Optional[int],
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    if not points_enabled():
        return False

    metadata = metadata or {}
    db.add(UserPoints(
        user_id=user_id,
        subject_id=subject_id,
        points=-points,
        reason=reason,
        metadata_json=json.dumps(metadata),
        metadata_key=metadata_key(metadata),
    ))
    await _adjust_total(db, user_id, -points)
    await db.flush()

    logger.info(f"Revoked {points} points from user {user_id} for {reason} in subject {subject_id}")
    return True


async def get_points_breakdown(
    db: AsyncSession,
    user_id: int,
    subject_id: Optional[int] = None
) -> List[Dict[str, Any]]:
    stmt = (
        select(
            UserPoints.reason,
            func.sum(UserPoints.points).label("total_points"),
            func.count(UserPoints.id).label("count"),
        )
        .where(UserPoints.user_id == user_id)
        .group_by(UserPoints.reason)
        .order_by(UserPoints.reason)
    )
    if subject_id is not None:
        stmt = stmt.where(UserPoints.subject_id == subject_id)

    result = await db.execute(stmt)
    return [
        {"reason": row.reason, "total_points": row.total_points or 0, "count": row.count}
        for row in result.all()
    ]


async def get_user_total_points(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(select(User.total_points).where(User.id == user_id))
    return result.scalar_one_or_none() or 0


async def reconcile_user_points(db: AsyncSession, user_id: int) -> Dict[str, Any]:
    """Recompute User.total_points from the ledger and commit any correction."""
    current = await get_user_total_points(db, user_id)
    result = await db.execute(
        select(func.coalesce(func.sum(UserPoints.points), 0)).where(UserPoints.user_id == user_id)
    )
    actual = result.scalar() or 0

    if actual == current:
        return {"before": current, "after": current, "corrected": False}

    await db.execute(update(User).where(User.id == user_id).values(total_points=actual))
    await db.commit()
    logger.info(f"Reconciled points for user {user_id}: {current} -> {actual}")
    return {"before": current, "after": actual, "corrected": True}


__all__ = [
    "POINT_VALUES",
    "PointsReason",
    "award_points",
    "revoke_points",
    "check_points_awarded",
    "get_points_breakdown",
    "reconcile_user_points",
]

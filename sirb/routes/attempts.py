"""
sirb/routes/attempts.py
Quiz attempts and the caller's points.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.database import get_db
from sirb.orm.user import User
from sirb.rbac import get_current_user
from sirb.schemas.questions import AttemptStartRequest, AnswerRequest
from sirb.services import quiz_attempt_service
from sirb.services.points_service import get_points_breakdown

router = APIRouter(prefix="/api/quiz-attempts", tags=["quiz-attempts"])
points_router = APIRouter(prefix="/api/points", tags=["points"])


@router.post("", status_code=201)
async def start_attempt(
    body: AttemptStartRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await quiz_attempt_service.start_attempt(db, current_user.id, body.quiz_id)


@router.post("/{attempt_id}/answers")
async def submit_answer(
    attempt_id: int,
    body: AnswerRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await quiz_attempt_service.submit_answer(
        db, current_user.id, attempt_id, body.question_id, body.selected_option_ids
    )


@router.post("/{attempt_id}/complete")
async def complete_attempt(
    attempt_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await quiz_attempt_service.complete_attempt(db, current_user.id, attempt_id)


@points_router.get("/me")
async def my_points(
    subject_id: Optional[int] = Query(None, gt=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    breakdown = await get_points_breakdown(db, current_user.id, subject_id=subject_id)
    return {
        "success": True,
        "total_points": current_user.total_points,
        "breakdown": breakdown,
    }

"""
sirb/routes/questions.py
Quiz question management.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.database import get_db
from sirb.orm.user import User
from sirb.rbac import get_current_user
from sirb.schemas.content import ReorderRequest
from sirb.schemas.questions import QuestionCreateRequest, QuestionUpdateRequest
from sirb.services import question_service
from sirb.services.content_lifecycle_service import CONTENT_KINDS, get_live_unit
from sirb.services.reorder_service import SequenceUpdate

router = APIRouter(prefix="/api/quizzes/{quiz_id}/questions", tags=["questions"])


@router.get("")
async def list_questions(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Correct answers are hidden from learners."""
    await get_live_unit(db, CONTENT_KINDS["quiz"], quiz_id)
    questions = await question_service.list_questions(db, quiz_id)
    return {"success": True, "questions": questions}


@router.post("", status_code=201)
async def add_question(
    quiz_id: int,
    body: QuestionCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await question_service.add_question(
        db, current_user.id, quiz_id,
        question_text=body.question_text,
        question_type=body.question_type,
        options=[o.model_dump() for o in body.options],
        justification=body.justification,
    )


@router.put("/order")
async def reorder_questions(
    quiz_id: int,
    body: ReorderRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    updates = [SequenceUpdate(item_id=u.id, sequence=u.sequence) for u in body.updates]
    return await question_service.reorder_questions(db, current_user.id, quiz_id, updates)


@router.patch("/{question_id}")
async def update_question(
    quiz_id: int,
    question_id: int,
    body: QuestionUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await question_service.update_question(
        db, current_user.id, quiz_id, question_id,
        question_text=body.question_text,
        justification=body.justification,
        options=[o.model_dump() for o in body.options] if body.options is not None else None,
    )


@router.delete("/{question_id}")
async def delete_question(
    quiz_id: int,
    question_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await question_service.delete_question(db, current_user.id, quiz_id, question_id)

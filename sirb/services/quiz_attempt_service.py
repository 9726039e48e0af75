"""
sirb/services/quiz_attempt_service.py
Learners taking approved quizzes.

Flow: start_attempt -> submit_answer (any order, re-answering replaces
the selection) -> complete_attempt. Correctness is decided by the
answer evaluator against the question's correct option set.
"""
import logging
from typing import Any, Dict, List

from sqlalchemy import select, func, update
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.errors import BadRequestError, NotFoundError, ForbiddenError, InvalidStateError, ErrorCode
from sirb.orm.base import utcnow
from sirb.orm.content_unit import ContentStatus
from sirb.orm.quiz import Quiz, Question
from sirb.orm.quiz_attempt import QuizAttempt, QuestionAnswer, SelectedOption
from sirb.orm.user_points import PointsReason
from sirb.services.answer_evaluator import is_correct, correct_option_ids
from sirb.services.permission_guards import subject_id_for_chapter
from sirb.services.points_service import POINT_VALUES, award_points
from sirb import messages

logger = logging.getLogger(__name__)


def serialize_attempt(attempt: QuizAttempt) -> Dict[str, Any]:
    return {
        "id": attempt.id,
        "quiz_id": attempt.quiz_id,
        "user_id": attempt.user_id,
        "score": attempt.score,
        "total_questions": attempt.total_questions,
        "percentage": attempt.percentage,
        "completed_at": attempt.completed_at.isoformat() if attempt.completed_at else None,
    }


async def _available_quiz(db: AsyncSession, quiz_id: int) -> Quiz:
    quiz = await db.get(Quiz, quiz_id)
    if quiz is None or quiz.is_deleted:
        raise NotFoundError(messages.QUIZ_NOT_FOUND)
    if quiz.status != ContentStatus.APPROVED:
        raise InvalidStateError(messages.QUIZ_NOT_AVAILABLE)
    return quiz


async def _question_count(db: AsyncSession, quiz_id: int) -> int:
    result = await db.execute(select(func.count(Question.id)).where(Question.quiz_id == quiz_id))
    return result.scalar() or 0


async def _open_attempt(db: AsyncSession, user_id: int, attempt_id: int, lock: bool = False) -> QuizAttempt:
    stmt = select(QuizAttempt).where(QuizAttempt.id == attempt_id)
    if lock:
        stmt = stmt.with_for_update()
    attempt = (await db.execute(stmt)).scalar_one_or_none()

    if attempt is None:
        raise NotFoundError(messages.ATTEMPT_NOT_FOUND)
    if attempt.user_id != user_id:
        logger.warning(f"Attempt access denied: user={user_id} attempt={attempt_id}")
        raise ForbiddenError(messages.FORBIDDEN, code=ErrorCode.OWNERSHIP_VIOLATION)
    if attempt.is_completed:
        raise InvalidStateError(messages.ATTEMPT_COMPLETED, code=ErrorCode.STATE_TRANSITION_INVALID)
    return attempt


async def start_attempt(db: AsyncSession, user_id: int, quiz_id: int) -> Dict[str, Any]:
    """Start an attempt, or return the user's open one for this quiz."""
    await _available_quiz(db, quiz_id)

    total = await _question_count(db, quiz_id)
    if total == 0:
        raise InvalidStateError(messages.QUIZ_HAS_NO_QUESTIONS)

    result = await db.execute(
        select(QuizAttempt)
        .where(
            QuizAttempt.user_id == user_id,
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.completed_at.is_(None)
        )
        .order_by(QuizAttempt.id.desc())
    )
    existing = result.scalars().first()
    if existing is not None:
        return {"success": True, "resumed": True, "attempt": serialize_attempt(existing)}

    attempt = QuizAttempt(user_id=user_id, quiz_id=quiz_id, total_questions=total)
    db.add(attempt)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Quiz attempt {attempt.id} started on quiz {quiz_id} by user {user_id}")
    return {"success": True, "resumed": False, "attempt": serialize_attempt(attempt)}


async def submit_answer(
    db: AsyncSession,
    user_id: int,
    attempt_id: int,
    question_id: int,
    selected_option_ids: List[int],
) -> Dict[str, Any]:
    attempt = await _open_attempt(db, user_id, attempt_id)

    if not selected_option_ids:
        raise BadRequestError(messages.INVALID_INPUT)

    result = await db.execute(
        select(Question)
        .options(selectinload(Question.options))
        .where(Question.id == question_id)
    )
    question = result.scalar_one_or_none()
    if question is None or question.quiz_id != attempt.quiz_id:
        raise NotFoundError(messages.QUESTION_NOT_FOUND)

    option_ids = {o.id for o in question.options}
    selected = list(dict.fromkeys(selected_option_ids))
    if not set(selected) <= option_ids:
        raise BadRequestError(messages.OPTIONS_NOT_IN_QUESTION)

    correct = is_correct(selected, correct_option_ids(question.options), question.question_type)

    try:
        result = await db.execute(
            select(QuestionAnswer)
            .options(selectinload(QuestionAnswer.selected_options))
            .where(QuestionAnswer.attempt_id == attempt_id, QuestionAnswer.question_id == question_id)
        )
        answer = result.scalar_one_or_none()
        if answer is None:
            answer = QuestionAnswer(attempt_id=attempt_id, question_id=question_id, selected_options=[])
            db.add(answer)

        answer.is_correct = correct
        answer.selected_options = [SelectedOption(option_id=oid) for oid in selected]
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Answer recorded: attempt={attempt_id} question={question_id} correct={correct}")
    return {"success": True, "question_id": question_id, "is_correct": correct}


async def complete_attempt(db: AsyncSession, user_id: int, attempt_id: int) -> Dict[str, Any]:
    """
    Close the attempt and score it.

    Unanswered questions count as wrong. The quiz's attempt counter and
    the contributor's QUIZ_ATTEMPT points are written in the same
    transaction; attempting your own quiz earns nothing.
    """
    attempt = await _open_attempt(db, user_id, attempt_id, lock=True)
    quiz = await db.get(Quiz, attempt.quiz_id)

    try:
        total = await _question_count(db, attempt.quiz_id)
        result = await db.execute(
            select(func.count(QuestionAnswer.id)).where(
                QuestionAnswer.attempt_id == attempt_id,
                QuestionAnswer.is_correct == True  # noqa: E712
            )
        )
        score = result.scalar() or 0

        attempt.score = score
        attempt.total_questions = total
        attempt.percentage = round(score * 100.0 / total, 2) if total else 0.0
        attempt.completed_at = utcnow()

        await db.execute(
            update(Quiz)
            .where(Quiz.id == attempt.quiz_id)
            .values(attempt_count=Quiz.attempt_count + 1)
            .execution_options(synchronize_session=False)
        )

        if quiz is not None and quiz.contributor_id != user_id:
            subject_id = await subject_id_for_chapter(db, quiz.chapter_id)
            await award_points(
                db, quiz.contributor_id, POINT_VALUES["QUIZ_ATTEMPT"], PointsReason.QUIZ_ATTEMPT_RECEIVED,
                subject_id, {"quiz_attempt_id": attempt_id, "quiz_id": attempt.quiz_id}
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        f"Quiz attempt {attempt_id} completed by user {user_id}: "
        f"{attempt.score}/{attempt.total_questions} ({attempt.percentage}%)"
    )
    return {"success": True, "attempt": serialize_attempt(attempt)}

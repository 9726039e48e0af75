"""
sirb/services/question_service.py
Quiz question management (owner or admin, never on APPROVED quizzes).
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.errors import BadRequestError, NotFoundError, ConflictError
from sirb.orm.quiz import Question, Option, QuestionType
from sirb.services.content_lifecycle_service import CONTENT_KINDS, get_live_unit, ensure_editable
from sirb.services.permission_guards import require_manager
from sirb.services.reorder_service import SequenceUpdate, apply_staged_sequences
from sirb import messages

logger = logging.getLogger(__name__)


def validate_correct_options(question_type: QuestionType, options: List[Dict[str, Any]]) -> None:
    """Exactly one correct option for MCQ_SINGLE/TRUE_FALSE, at least one for MCQ_MULTI."""
    if question_type == QuestionType.TRUE_FALSE and len(options) != 2:
        raise BadRequestError(messages.TRUE_FALSE_OPTION_COUNT)
    correct = sum(1 for o in options if o["is_correct"])
    if question_type == QuestionType.MCQ_MULTI:
        valid = correct >= 1
    else:
        valid = correct == 1
    if not valid:
        raise BadRequestError(messages.INVALID_CORRECT_OPTIONS)


def normalize_options(question_type: QuestionType, options: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """TRUE_FALSE questions always get the two localized options, keeping the chosen answer."""
    if question_type != QuestionType.TRUE_FALSE:
        return options
    correct_index = next((i for i, o in enumerate(options) if o["is_correct"]), -1)
    return [
        {"option_text": messages.TRUE_LABEL, "is_correct": correct_index == 0},
        {"option_text": messages.FALSE_LABEL, "is_correct": correct_index == 1},
    ]


def serialize_question(question: Question, options: List[Option]) -> Dict[str, Any]:
    return {
        "id": question.id,
        "quiz_id": question.quiz_id,
        "question_text": question.question_text,
        "question_type": question.question_type.value,
        "justification": question.justification,
        "sequence": question.sequence,
        "options": [
            {"id": o.id, "option_text": o.option_text, "is_correct": o.is_correct, "sequence": o.sequence}
            for o in options
        ],
    }


async def _editable_quiz(db: AsyncSession, user_id: int, quiz_id: int):
    quiz = await get_live_unit(db, CONTENT_KINDS["quiz"], quiz_id, lock=True)
    await require_manager(db, user_id, quiz)
    ensure_editable(quiz)
    return quiz


async def _get_question(db: AsyncSession, quiz_id: int, question_id: int) -> Question:
    result = await db.execute(select(Question).where(Question.id == question_id))
    question = result.scalar_one_or_none()
    if question is None or question.quiz_id != quiz_id:
        raise NotFoundError(messages.QUESTION_NOT_FOUND)
    return question


def _build_options(question_id: int, options: List[Dict[str, Any]]) -> List[Option]:
    return [
        Option(
            question_id=question_id,
            option_text=o["option_text"],
            is_correct=o["is_correct"],
            sequence=index + 1,
        )
        for index, o in enumerate(options)
    ]


async def add_question(
    db: AsyncSession,
    user_id: int,
    quiz_id: int,
    question_text: str,
    question_type: QuestionType,
    options: List[Dict[str, Any]],
    justification: Optional[str] = None,
) -> Dict[str, Any]:
    question_type = QuestionType(question_type)
    validate_correct_options(question_type, options)
    await _editable_quiz(db, user_id, quiz_id)

    try:
        result = await db.execute(
            select(func.max(Question.sequence)).where(Question.quiz_id == quiz_id)
        )
        sequence = (result.scalar() or 0) + 1

        question = Question(
            quiz_id=quiz_id,
            question_text=question_text,
            question_type=question_type,
            justification=justification,
            sequence=sequence,
        )
        db.add(question)
        await db.flush()

        created = _build_options(question.id, normalize_options(question_type, options))
        db.add_all(created)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(messages.SEQUENCE_CONFLICT)
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Question {question.id} added to quiz {quiz_id} by user {user_id}")
    return {"success": True, "question_id": question.id, "question": serialize_question(question, created)}


async def update_question(
    db: AsyncSession,
    user_id: int,
    quiz_id: int,
    question_id: int,
    question_text: Optional[str] = None,
    justification: Optional[str] = None,
    options: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Edit text/justification; a new option list replaces the old one."""
    await _editable_quiz(db, user_id, quiz_id)
    question = await _get_question(db, quiz_id, question_id)

    try:
        if question_text is not None:
            question.question_text = question_text
        if justification is not None:
            question.justification = justification

        if options is not None:
            validate_correct_options(question.question_type, options)
            await db.execute(delete(Option).where(Option.question_id == question_id))
            db.add_all(_build_options(question_id, normalize_options(question.question_type, options)))

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    result = await db.execute(
        select(Option).where(Option.question_id == question_id).order_by(Option.sequence)
    )
    logger.info(f"Question {question_id} in quiz {quiz_id} updated by user {user_id}")
    return {"success": True, "question": serialize_question(question, list(result.scalars().all()))}


async def delete_question(db: AsyncSession, user_id: int, quiz_id: int, question_id: int) -> Dict[str, Any]:
    """Delete a question and close the gap in the remaining sequence."""
    await _editable_quiz(db, user_id, quiz_id)
    question = await _get_question(db, quiz_id, question_id)

    try:
        await db.delete(question)
        await db.flush()

        result = await db.execute(
            select(Question.id).where(Question.quiz_id == quiz_id).order_by(Question.sequence)
        )
        remaining = result.scalars().all()
        await apply_staged_sequences(
            db, Question, "quiz_id", quiz_id,
            [SequenceUpdate(item_id=qid, sequence=i + 1) for i, qid in enumerate(remaining)]
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Question {question_id} deleted from quiz {quiz_id} by user {user_id}")
    return {"success": True}


async def reorder_questions(
    db: AsyncSession,
    user_id: int,
    quiz_id: int,
    updates: List[SequenceUpdate],
) -> Dict[str, Any]:
    await _editable_quiz(db, user_id, quiz_id)

    try:
        await apply_staged_sequences(db, Question, "quiz_id", quiz_id, updates)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(messages.SEQUENCE_CONFLICT)
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Reordered {len(updates)} question(s) in quiz {quiz_id} by user {user_id}")
    return {"success": True}


async def list_questions(db: AsyncSession, quiz_id: int, include_answers: bool = False) -> List[Dict[str, Any]]:
    """Questions with options in order. Correct flags are hidden unless asked for."""
    result = await db.execute(
        select(Question).where(Question.quiz_id == quiz_id).order_by(Question.sequence)
    )
    questions = result.scalars().all()
    if not questions:
        return []

    result = await db.execute(
        select(Option)
        .where(Option.question_id.in_([q.id for q in questions]))
        .order_by(Option.question_id, Option.sequence)
    )
    by_question: Dict[int, List[Option]] = {}
    for option in result.scalars().all():
        by_question.setdefault(option.question_id, []).append(option)

    payload = []
    for question in questions:
        data = serialize_question(question, by_question.get(question.id, []))
        if not include_answers:
            data.pop("justification")
            for option in data["options"]:
                option.pop("is_correct")
        payload.append(data)
    return payload

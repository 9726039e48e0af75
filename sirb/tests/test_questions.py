"""
Quiz question management tests.
"""
import pytest
from sqlalchemy import select

from sirb.errors import BadRequestError, ForbiddenError, InvalidStateError, NotFoundError
from sirb.orm import ContentStatus, Question, QuestionType
from sirb.services import question_service


def options(*flags):
    return [{"option_text": f"option {i}", "is_correct": flag} for i, flag in enumerate(flags)]


@pytest.mark.asyncio
async def test_add_question_appends_with_options(db, contributor, make_quiz):
    quiz = await make_quiz(questions=1)

    result = await question_service.add_question(
        db, contributor.id, quiz.id, "Which one is right?", QuestionType.MCQ_SINGLE, options(False, True, False)
    )

    question = result["question"]
    assert question["sequence"] == 2
    assert [o["sequence"] for o in question["options"]] == [1, 2, 3]
    assert [o["is_correct"] for o in question["options"]] == [False, True, False]


@pytest.mark.asyncio
@pytest.mark.parametrize("question_type,flags", [
    (QuestionType.MCQ_SINGLE, (True, True)),
    (QuestionType.MCQ_SINGLE, (False, False)),
    (QuestionType.TRUE_FALSE, (True, True)),
    (QuestionType.TRUE_FALSE, (False, False, True)),
    (QuestionType.MCQ_MULTI, (False, False, False)),
])
async def test_correct_option_count_enforced(db, contributor, make_quiz, question_type, flags):
    quiz = await make_quiz()
    with pytest.raises(BadRequestError):
        await question_service.add_question(
            db, contributor.id, quiz.id, "Invalid key question", question_type, options(*flags)
        )


@pytest.mark.asyncio
async def test_multi_allows_several_correct(db, contributor, make_quiz):
    quiz = await make_quiz()
    result = await question_service.add_question(
        db, contributor.id, quiz.id, "Pick all primes", QuestionType.MCQ_MULTI, options(True, True, False)
    )
    assert sum(o["is_correct"] for o in result["question"]["options"]) == 2


@pytest.mark.asyncio
async def test_true_false_options_are_normalized(db, contributor, make_quiz):
    quiz = await make_quiz()
    result = await question_service.add_question(
        db, contributor.id, quiz.id, "The earth is round", QuestionType.TRUE_FALSE,
        [{"option_text": "yes", "is_correct": False}, {"option_text": "no", "is_correct": True}]
    )
    opts = result["question"]["options"]
    assert [o["option_text"] for o in opts] == ["صح", "خطأ"]
    assert [o["is_correct"] for o in opts] == [False, True]


@pytest.mark.asyncio
async def test_true_false_with_extra_options_is_not_stored(db, contributor, make_quiz):
    quiz = await make_quiz()
    quiz_id = quiz.id

    with pytest.raises(BadRequestError):
        await question_service.add_question(
            db, contributor.id, quiz_id, "The earth is round", QuestionType.TRUE_FALSE, options(False, False, True)
        )

    stored = (await db.execute(select(Question).where(Question.quiz_id == quiz_id))).scalars().all()
    assert stored == []


@pytest.mark.asyncio
async def test_stranger_cannot_add(db, learner, make_quiz):
    quiz = await make_quiz()
    with pytest.raises(ForbiddenError):
        await question_service.add_question(
            db, learner.id, quiz.id, "Sneaky question", QuestionType.MCQ_SINGLE, options(True, False)
        )


@pytest.mark.asyncio
async def test_approved_quiz_is_locked(db, contributor, make_quiz):
    quiz = await make_quiz(status=ContentStatus.APPROVED, questions=1)
    with pytest.raises(InvalidStateError):
        await question_service.add_question(
            db, contributor.id, quiz.id, "Late question", QuestionType.MCQ_SINGLE, options(True, False)
        )


@pytest.mark.asyncio
async def test_delete_closes_sequence_gap(db, contributor, make_quiz):
    quiz = await make_quiz(questions=3)
    rows = await db.execute(select(Question.id).where(Question.quiz_id == quiz.id).order_by(Question.sequence))
    first, second, third = rows.scalars().all()

    await question_service.delete_question(db, contributor.id, quiz.id, first)

    rows = await db.execute(
        select(Question.id, Question.sequence).where(Question.quiz_id == quiz.id).order_by(Question.sequence)
    )
    assert rows.all() == [(second, 1), (third, 2)]


@pytest.mark.asyncio
async def test_question_of_other_quiz_not_found(db, contributor, make_quiz):
    quiz = await make_quiz(questions=1)
    other = await make_quiz(questions=1)
    rows = await db.execute(select(Question.id).where(Question.quiz_id == other.id))
    foreign_id = rows.scalar_one()

    with pytest.raises(NotFoundError):
        await question_service.delete_question(db, contributor.id, quiz.id, foreign_id)


@pytest.mark.asyncio
async def test_update_replaces_options(db, contributor, make_quiz):
    quiz = await make_quiz(questions=1)
    question_id = (await db.execute(select(Question.id).where(Question.quiz_id == quiz.id))).scalar_one()

    result = await question_service.update_question(
        db, contributor.id, quiz.id, question_id,
        question_text="Rewritten question", options=options(False, False, True)
    )

    assert result["question"]["question_text"] == "Rewritten question"
    assert [o["is_correct"] for o in result["question"]["options"]] == [False, False, True]


@pytest.mark.asyncio
async def test_listing_hides_answers(db, make_quiz):
    quiz = await make_quiz(questions=2)

    hidden = await question_service.list_questions(db, quiz.id)
    shown = await question_service.list_questions(db, quiz.id, include_answers=True)

    assert len(hidden) == 2
    assert "is_correct" not in hidden[0]["options"][0]
    assert "justification" not in hidden[0]
    assert shown[0]["options"][0]["is_correct"] is True

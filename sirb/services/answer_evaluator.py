"""
sirb/services/answer_evaluator.py
Quiz answer correctness.

Pure functions, no I/O.
"""
from typing import Sequence

from sirb.orm.quiz import QuestionType


def is_correct(
    selected_ids: Sequence[int],
    correct_ids: Sequence[int],
    question_type: QuestionType
) -> bool:
    """
    Score one submitted answer.

    MCQ_MULTI: the sorted selection must equal the sorted correct set
    element-wise, so supersets and subsets both fail.
    MCQ_SINGLE / TRUE_FALSE: exactly one id selected and it matches the
    first correct id.
    An empty selection is never correct.
    """
    if not selected_ids or not correct_ids:
        return False

    if question_type == QuestionType.MCQ_MULTI:
        if len(selected_ids) != len(correct_ids):
            return False
        return sorted(selected_ids) == sorted(correct_ids)

    return len(selected_ids) == 1 and selected_ids[0] == correct_ids[0]


def correct_option_ids(options) -> list:
    """Ids of the options flagged correct, in option order."""
    return [option.id for option in sorted(options, key=lambda o: o.sequence) if option.is_correct]

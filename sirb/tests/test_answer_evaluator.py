"""
Answer evaluator unit tests.
"""
from types import SimpleNamespace

from sirb.orm.quiz import QuestionType
from sirb.services.answer_evaluator import is_correct, correct_option_ids


class TestSingleChoice:

    def test_matching_single_selection(self):
        assert is_correct([7], [7], QuestionType.MCQ_SINGLE) is True

    def test_wrong_selection(self):
        assert is_correct([8], [7], QuestionType.MCQ_SINGLE) is False

    def test_two_selections_never_correct(self):
        assert is_correct([7, 8], [7], QuestionType.MCQ_SINGLE) is False

    def test_true_false_uses_single_rule(self):
        assert is_correct([1], [1], QuestionType.TRUE_FALSE) is True
        assert is_correct([2], [1], QuestionType.TRUE_FALSE) is False


class TestMultiChoice:

    def test_order_does_not_matter(self):
        assert is_correct([3, 1, 2], [1, 2, 3], QuestionType.MCQ_MULTI) is True

    def test_subset_fails(self):
        assert is_correct([1, 2], [1, 2, 3], QuestionType.MCQ_MULTI) is False

    def test_superset_fails(self):
        assert is_correct([1, 2, 3, 4], [1, 2, 3], QuestionType.MCQ_MULTI) is False

    def test_same_size_different_members_fails(self):
        assert is_correct([1, 2, 4], [1, 2, 3], QuestionType.MCQ_MULTI) is False


class TestEmptyInputs:

    def test_empty_selection(self):
        for question_type in QuestionType:
            assert is_correct([], [1], question_type) is False

    def test_no_correct_options(self):
        assert is_correct([1], [], QuestionType.MCQ_SINGLE) is False


def test_correct_option_ids_follow_option_order():
    options = [
        SimpleNamespace(id=30, sequence=3, is_correct=True),
        SimpleNamespace(id=10, sequence=1, is_correct=True),
        SimpleNamespace(id=20, sequence=2, is_correct=False),
    ]
    assert correct_option_ids(options) == [10, 30]

"""
sirb/schemas/questions.py
Quiz question and attempt request schemas.
"""
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator, model_validator

from sirb.orm.quiz import QuestionType


class OptionInput(BaseModel):
    option_text: str = Field(..., min_length=1, max_length=500)
    is_correct: bool = False


class QuestionCreateRequest(BaseModel):
    """
    Used by: POST /api/quizzes/{id}/questions

    TRUE_FALSE questions send exactly two options; only the position of
    the correct one is kept.
    """
    question_text: str = Field(..., min_length=5)
    question_type: QuestionType
    options: List[OptionInput] = Field(..., min_length=2)
    justification: Optional[str] = Field(None, max_length=2000)

    @field_validator('question_text')
    @classmethod
    def validate_text(cls, v: str) -> str:
        if len(v.strip()) < 5:
            raise ValueError("question_text must be at least 5 characters")
        return v.strip()

    @model_validator(mode='after')
    def validate_true_false(self):
        if self.question_type == QuestionType.TRUE_FALSE and len(self.options) != 2:
            raise ValueError("TRUE_FALSE questions take exactly two options")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "question_text": "ما ناتج جمع 2 و 3؟",
                "question_type": "MCQ_SINGLE",
                "options": [
                    {"option_text": "4", "is_correct": False},
                    {"option_text": "5", "is_correct": True}
                ]
            }
        }


class QuestionUpdateRequest(BaseModel):
    question_text: Optional[str] = Field(None, min_length=5)
    justification: Optional[str] = Field(None, max_length=2000)
    options: Optional[List[OptionInput]] = Field(None, min_length=2)


class AttemptStartRequest(BaseModel):
    quiz_id: int = Field(..., gt=0)


class AnswerRequest(BaseModel):
    """Used by: POST /api/quiz-attempts/{id}/answers"""
    question_id: int = Field(..., gt=0)
    selected_option_ids: List[int] = Field(..., min_length=1)

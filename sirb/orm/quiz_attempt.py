"""
sirb/orm/quiz_attempt.py
Learner attempts on approved quizzes.
"""
from sqlalchemy import Column, Integer, Float, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from sirb.orm.base import BaseModel


class QuizAttempt(BaseModel):
    __tablename__ = "quiz_attempts"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    score = Column(Integer, nullable=True)
    total_questions = Column(Integer, nullable=False, default=0)
    percentage = Column(Float, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    answers = relationship("QuestionAnswer", back_populates="attempt", cascade="all, delete-orphan")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class QuestionAnswer(BaseModel):
    __tablename__ = "question_answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_answer_attempt_question"),
    )

    attempt_id = Column(Integer, ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    is_correct = Column(Boolean, nullable=False, default=False)

    attempt = relationship("QuizAttempt", back_populates="answers")
    selected_options = relationship("SelectedOption", cascade="all, delete-orphan")


class SelectedOption(BaseModel):
    __tablename__ = "selected_options"

    answer_id = Column(Integer, ForeignKey("question_answers.id", ondelete="CASCADE"), nullable=False, index=True)
    option_id = Column(Integer, ForeignKey("options.id", ondelete="CASCADE"), nullable=False)

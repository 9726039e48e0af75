"""
sirb/orm/quiz.py
Quiz, Question and Option models.

A quiz moves through the same lifecycle as a canvas and may only be
submitted for review once it holds at least one question.
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship

from sirb.orm.base import BaseModel
from sirb.orm.content_unit import ContentUnitMixin, live_sequence_index


class QuestionType(str, Enum):
    MCQ_SINGLE = "MCQ_SINGLE"
    MCQ_MULTI = "MCQ_MULTI"
    TRUE_FALSE = "TRUE_FALSE"


class Quiz(BaseModel, ContentUnitMixin):
    __tablename__ = "quizzes"
    __table_args__ = (live_sequence_index("quizzes"),)

    attempt_count = Column(Integer, nullable=False, default=0)

    questions = relationship(
        "Question",
        back_populates="quiz",
        cascade="all, delete-orphan",
        order_by="Question.sequence"
    )
    votes = relationship("QuizVote", cascade="all, delete-orphan")
    comments = relationship("QuizComment", cascade="all, delete-orphan")
    reports = relationship("Report", cascade="all, delete-orphan")
    attempts = relationship("QuizAttempt", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Quiz(id={self.id}, chapter_id={self.chapter_id}, status={self.status})>"


class Question(BaseModel):
    __tablename__ = "questions"
    __table_args__ = (
        UniqueConstraint("quiz_id", "sequence", name="uq_question_quiz_sequence"),
    )

    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(SQLEnum(QuestionType), nullable=False)
    justification = Column(Text, nullable=True)
    sequence = Column(Integer, nullable=False)

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "Option",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="Option.sequence"
    )


class Option(BaseModel):
    __tablename__ = "options"

    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    option_text = Column(String(500), nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    sequence = Column(Integer, nullable=False)

    question = relationship("Question", back_populates="options")

"""
sirb/orm/vote.py
Per-user vote records. At most one row per (user, target).
"""
from enum import Enum

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, Enum as SQLEnum

from sirb.orm.base import BaseModel


class VoteType(str, Enum):
    LIKE = "LIKE"
    DISLIKE = "DISLIKE"


def _vote_type_column():
    return Column(SQLEnum(VoteType, name="vote_type"), nullable=False)


def _user_column():
    return Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)


class CanvasVote(BaseModel):
    __tablename__ = "canvas_votes"
    __table_args__ = (UniqueConstraint("user_id", "canvas_id", name="uq_canvas_vote_user"),)

    user_id = _user_column()
    canvas_id = Column(Integer, ForeignKey("canvases.id", ondelete="CASCADE"), nullable=False, index=True)
    vote_type = _vote_type_column()


class QuizVote(BaseModel):
    __tablename__ = "quiz_votes"
    __table_args__ = (UniqueConstraint("user_id", "quiz_id", name="uq_quiz_vote_user"),)

    user_id = _user_column()
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    vote_type = _vote_type_column()


class CommentVote(BaseModel):
    __tablename__ = "comment_votes"
    __table_args__ = (UniqueConstraint("user_id", "comment_id", name="uq_comment_vote_user"),)

    user_id = _user_column()
    comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True)
    vote_type = _vote_type_column()


class QuizCommentVote(BaseModel):
    __tablename__ = "quiz_comment_votes"
    __table_args__ = (UniqueConstraint("user_id", "quiz_comment_id", name="uq_quiz_comment_vote_user"),)

    user_id = _user_column()
    quiz_comment_id = Column(Integer, ForeignKey("quiz_comments.id", ondelete="CASCADE"), nullable=False, index=True)
    vote_type = _vote_type_column()

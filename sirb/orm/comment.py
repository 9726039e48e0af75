"""
sirb/orm/comment.py
Discussion threads on canvases and quizzes.

Nesting is single-level: a reply's parent is always a top-level comment.
"""
from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import declared_attr, relationship

from sirb.orm.base import BaseModel


class CommentMixin:
    text = Column(Text, nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    is_pinned = Column(Boolean, nullable=False, default=False)
    is_announcement = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime, nullable=True)

    upvotes_count = Column(Integer, nullable=False, default=0)
    downvotes_count = Column(Integer, nullable=False, default=0)
    net_score = Column(Integer, nullable=False, default=0)

    @declared_attr
    def user_id(cls):
        return Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    @declared_attr
    def parent_comment_id(cls):
        return Column(
            Integer,
            ForeignKey(f"{cls.__tablename__}.id", ondelete="CASCADE"),
            nullable=True,
            index=True
        )


class Comment(BaseModel, CommentMixin):
    __tablename__ = "comments"

    canvas_id = Column(Integer, ForeignKey("canvases.id", ondelete="CASCADE"), nullable=False, index=True)

    votes = relationship("CommentVote", cascade="all, delete-orphan")
    reports = relationship("Report", cascade="all, delete-orphan")

    @property
    def target_id(self) -> int:
        return self.canvas_id


class QuizComment(BaseModel, CommentMixin):
    __tablename__ = "quiz_comments"

    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    votes = relationship("QuizCommentVote", cascade="all, delete-orphan")
    reports = relationship("Report", cascade="all, delete-orphan")

    @property
    def target_id(self) -> int:
        return self.quiz_id

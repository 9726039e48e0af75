"""
sirb/orm/canvas.py
Canvas: a single unit of learning content inside a chapter.
"""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from sirb.orm.base import BaseModel
from sirb.orm.content_unit import ContentUnitMixin, live_sequence_index


class Canvas(BaseModel, ContentUnitMixin):
    __tablename__ = "canvases"
    __table_args__ = (live_sequence_index("canvases"),)

    image_url = Column(String(500), nullable=True)

    votes = relationship("CanvasVote", cascade="all, delete-orphan")
    comments = relationship("Comment", cascade="all, delete-orphan")
    reports = relationship("Report", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Canvas(id={self.id}, chapter_id={self.chapter_id}, status={self.status})>"

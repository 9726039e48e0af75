"""
sirb/orm/subject.py
Subject and Chapter taxonomy.

Taxonomy is managed by admins elsewhere; the workflow only walks
content -> chapter -> subject to resolve moderation scope.
"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship

from sirb.orm.base import BaseModel


class Subject(BaseModel):
    __tablename__ = "subjects"

    name = Column(String(200), nullable=False, index=True)
    code = Column(String(50), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)

    chapters = relationship(
        "Chapter",
        back_populates="subject",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Subject(id={self.id}, code='{self.code}')>"


class Chapter(BaseModel):
    __tablename__ = "chapters"

    subject_id = Column(
        Integer,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title = Column(String(200), nullable=False)
    sequence = Column(Integer, nullable=False, default=1)

    subject = relationship("Subject", back_populates="chapters")

    def __repr__(self):
        return f"<Chapter(id={self.id}, subject_id={self.subject_id}, title='{self.title}')>"

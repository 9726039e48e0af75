"""
sirb/orm/subject_moderator.py
Per-subject moderation grant.
"""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from sirb.orm.base import BaseModel


class SubjectModerator(BaseModel):
    """
    Grants a user authority to review content of one subject.
    Admins are implicit moderators of every subject and need no row.
    """
    __tablename__ = "subject_moderators"
    __table_args__ = (
        UniqueConstraint("subject_id", "user_id", name="uq_subject_moderator"),
    )

    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    user = relationship("User")

    def __repr__(self):
        return f"<SubjectModerator(subject_id={self.subject_id}, user_id={self.user_id})>"

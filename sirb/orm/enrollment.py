"""
sirb/orm/enrollment.py
Student enrollment in a subject.
"""
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint

from sirb.orm.base import BaseModel


class Enrollment(BaseModel):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "subject_id", name="uq_enrollment_user_subject"),
    )

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)

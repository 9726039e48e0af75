"""
sirb/orm/user_points.py
Append-only contributor points ledger.

A revocation is a row with negative points; User.total_points mirrors
the sum of a user's rows.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index

from sirb.orm.base import BaseModel, utcnow


class PointsReason:
    """Values stored in UserPoints.reason"""

    CANVAS_APPROVED = "canvas_approved"
    QUIZ_APPROVED = "quiz_approved"
    QUIZ_QUESTION_ADDED = "quiz_question_added"

    CANVAS_UPVOTE_RECEIVED = "canvas_upvote_received"
    QUIZ_UPVOTE_RECEIVED = "quiz_upvote_received"
    COMMENT_UPVOTE_RECEIVED = "comment_upvote_received"
    COMMENT_CREATED = "comment_created"
    QUIZ_ATTEMPT_RECEIVED = "quiz_attempt_received"

    CONTENT_APPROVED_BY_MODERATOR = "content_approved_by_moderator"
    CONTENT_REJECTED_BY_MODERATOR = "content_rejected_by_moderator"
    REPORT_RESOLVED = "report_resolved"
    VALID_REPORT = "valid_report"

    CANVAS_UPVOTE_REVOKED = "canvas_upvote_revoked"
    QUIZ_UPVOTE_REVOKED = "quiz_upvote_revoked"
    COMMENT_UPVOTE_REVOKED = "comment_upvote_revoked"


class UserPoints(BaseModel):
    __tablename__ = "user_points"
    __table_args__ = (
        Index("ix_user_points_user_key", "user_id", "metadata_key"),
    )

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True, index=True)
    points = Column(Integer, nullable=False)
    reason = Column(String(50), nullable=False, index=True)
    metadata_json = Column(Text, nullable=True)
    # Canonical (sorted-key) JSON of the metadata, used for idempotency lookups
    metadata_key = Column(String(255), nullable=True)
    earned_at = Column(DateTime, nullable=False, default=utcnow)

"""
sirb/orm/report.py
User reports against content or comments.

Exactly one reported_* column is populated per row.
"""
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, CheckConstraint, Index, Enum as SQLEnum, text
)

from sirb.orm.base import BaseModel


class ReportReason(str, Enum):
    SPAM = "SPAM"
    INAPPROPRIATE = "INAPPROPRIATE"
    WRONG_INFO = "WRONG_INFO"
    HARASSMENT = "HARASSMENT"
    COPYRIGHT = "COPYRIGHT"
    OTHER = "OTHER"


class ReportStatus(str, Enum):
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


# Statuses that block a second report on the same target by the same user
ACTIVE_REPORT_STATUSES = (ReportStatus.PENDING, ReportStatus.RESOLVED)

TARGET_COLUMNS = {
    "canvas": "reported_canvas_id",
    "comment": "reported_comment_id",
    "quiz": "reported_quiz_id",
    "quiz_comment": "reported_quiz_comment_id",
}

_one_target_sql = " + ".join(
    f"(CASE WHEN {column} IS NOT NULL THEN 1 ELSE 0 END)" for column in TARGET_COLUMNS.values()
) + " = 1"

_active_sql = "status IN ({})".format(", ".join(f"'{s.value}'" for s in ACTIVE_REPORT_STATUSES))


def active_report_index(column: str) -> Index:
    """One active report per (reporter, target)."""
    return Index(
        f"uq_reports_active_{column}",
        "reporter_user_id",
        column,
        unique=True,
        sqlite_where=text(_active_sql),
        postgresql_where=text(_active_sql),
    )


class Report(BaseModel):
    __tablename__ = "reports"
    __table_args__ = (
        CheckConstraint(_one_target_sql, name="ck_report_single_target"),
        *(active_report_index(column) for column in TARGET_COLUMNS.values()),
    )

    reporter_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    reported_canvas_id = Column(Integer, ForeignKey("canvases.id", ondelete="CASCADE"), nullable=True, index=True)
    reported_comment_id = Column(Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    reported_quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=True, index=True)
    reported_quiz_comment_id = Column(
        Integer, ForeignKey("quiz_comments.id", ondelete="CASCADE"), nullable=True, index=True
    )

    reason = Column(SQLEnum(ReportReason), nullable=False)
    description = Column(String(500), nullable=True)
    status = Column(SQLEnum(ReportStatus), nullable=False, default=ReportStatus.PENDING, index=True)

    resolution_notes = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    @property
    def target_kind(self) -> str:
        for kind, column in TARGET_COLUMNS.items():
            if getattr(self, column) is not None:
                return kind
        raise ValueError(f"Report {self.id} has no target")

    @property
    def target_id(self) -> int:
        return getattr(self, TARGET_COLUMNS[self.target_kind])

    def to_dict(self):
        return {
            "id": self.id,
            "target_kind": self.target_kind,
            "target_id": self.target_id,
            "reason": self.reason.value,
            "description": self.description,
            "status": self.status.value,
            "reporter_user_id": self.reporter_user_id,
            "resolution_notes": self.resolution_notes,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

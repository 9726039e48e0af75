"""
sirb/orm/content_unit.py
Columns shared by every contributed learning unit (canvas, quiz).

Lifecycle: DRAFT -> PENDING -> APPROVED | REJECTED
           REJECTED -> PENDING (resubmit), PENDING -> DRAFT (cancel)

Vote counters are denormalized and always satisfy
net_score == upvotes_count - downvotes_count after a commit.
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, Index, text, Enum as SQLEnum
from sqlalchemy.orm import declared_attr


class ContentStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ContentUnitMixin:
    """Mixin for Canvas and Quiz. Concrete classes add the sequence index."""

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    sequence = Column(Integer, nullable=False)
    status = Column(
        SQLEnum(ContentStatus, name="content_status"),
        nullable=False,
        default=ContentStatus.DRAFT,
        index=True
    )
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    rejection_reason = Column(Text, nullable=True)

    upvotes_count = Column(Integer, nullable=False, default=0)
    downvotes_count = Column(Integer, nullable=False, default=0)
    net_score = Column(Integer, nullable=False, default=0)

    @declared_attr
    def chapter_id(cls):
        return Column(Integer, ForeignKey("chapters.id", ondelete="CASCADE"), nullable=False, index=True)

    @declared_attr
    def contributor_id(cls):
        return Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)


def live_sequence_index(table_name: str) -> Index:
    """Unique (chapter_id, sequence) among rows that are not soft-deleted."""
    return Index(
        f"uq_{table_name}_chapter_sequence_live",
        "chapter_id",
        "sequence",
        unique=True,
        sqlite_where=text("is_deleted = 0"),
        postgresql_where=text("is_deleted = false"),
    )

"""
sirb/orm/notification_log.py
Last-sent bookkeeping for notification cooldowns.
"""
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from sirb.orm.base import BaseModel, utcnow


class NotificationLog(BaseModel):
    __tablename__ = "notification_logs"
    __table_args__ = (
        UniqueConstraint("type", "content_type", "content_id", name="uq_notification_log_target"),
    )

    type = Column(String(50), nullable=False)
    content_type = Column(String(30), nullable=False)
    content_id = Column(Integer, nullable=False)
    subject_id = Column(Integer, nullable=True, index=True)
    last_sent_at = Column(DateTime, nullable=False, default=utcnow)

"""
sirb/services/notifications.py
Best-effort notifications for moderators, contributors and reporters.

Callers hand a Notice to NotificationDispatcher.dispatch(), which schedules
a detached asyncio task and returns immediately. The task opens its own
database session, applies the per-content cooldown, resolves recipients,
sends through the configured Notifier and records the send. Any failure in
that task is logged and dropped; it never reaches the request that
triggered it.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Set

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.config import settings, feature_flags
from sirb.orm.base import utcnow
from sirb.orm.user import User, UserRole
from sirb.orm.subject_moderator import SubjectModerator
from sirb.orm.notification_log import NotificationLog

logger = logging.getLogger(__name__)


class NoticeType:
    SUBMISSION_PENDING = "SUBMISSION_PENDING"
    CONTENT_APPROVED = "CONTENT_APPROVED"
    CONTENT_REJECTED = "CONTENT_REJECTED"
    REPORT_SUBMITTED = "REPORT_SUBMITTED"
    REPORT_RESOLVED = "REPORT_RESOLVED"


def cooldown_for(notice_type: str) -> Optional[timedelta]:
    if notice_type == NoticeType.SUBMISSION_PENDING:
        return timedelta(minutes=settings.SUBMISSION_NOTIFY_COOLDOWN_MINUTES)
    if notice_type == NoticeType.REPORT_SUBMITTED:
        return timedelta(minutes=settings.REPORT_NOTIFY_COOLDOWN_MINUTES)
    return None


@dataclass
class Notice:
    """
    One notification.

    Moderator notices set `subject_id` and leave `recipient_user_id` empty;
    they go to the subject's moderators and every admin.
    """
    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    subject_id: Optional[int] = None
    content_type: Optional[str] = None
    content_id: Optional[int] = None
    recipient_user_id: Optional[int] = None


# =============================================================================
# Notifiers
# =============================================================================

class Notifier:
    async def send(self, recipients: List[str], notice: Notice) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Default notifier: writes the notice to the application log."""

    async def send(self, recipients: List[str], notice: Notice) -> None:
        logger.info(f"[notify] {notice.type} -> {len(recipients)} recipient(s): {notice.payload}")


class WebhookNotifier(Notifier):
    """POSTs notices as JSON to an external mail gateway."""

    def __init__(self, url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def send(self, recipients: List[str], notice: Notice) -> None:
        body = {
            "type": notice.type,
            "recipients": recipients,
            "subject_id": notice.subject_id,
            "content_type": notice.content_type,
            "content_id": notice.content_id,
            "payload": notice.payload,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.url, json=body)
            response.raise_for_status()


# =============================================================================
# Dispatcher
# =============================================================================

class NotificationDispatcher:
    def __init__(
        self,
        notifier: Notifier,
        session_factory: Callable[[], AsyncSession],
        enabled: Optional[bool] = None,
    ):
        self.notifier = notifier
        self.session_factory = session_factory
        self._enabled = enabled
        self._tasks: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        if self._enabled is not None:
            return self._enabled
        return feature_flags.FEATURE_EMAIL_NOTIFICATIONS

    def dispatch(self, notice: Notice) -> Optional[asyncio.Task]:
        """Schedule delivery without waiting for it."""
        if not self.enabled:
            return None

        task = asyncio.get_running_loop().create_task(self._deliver(notice))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _deliver(self, notice: Notice) -> None:
        try:
            async with self.session_factory() as db:
                cooldown = cooldown_for(notice.type)
                if cooldown is not None and await self._in_cooldown(db, notice, cooldown):
                    logger.info(
                        f"Skipping duplicate {notice.type} for {notice.content_type} "
                        f"{notice.content_id} (cooldown active)"
                    )
                    return

                recipients = await self._recipients(db, notice)
                if not recipients:
                    logger.info(f"No recipients for {notice.type} (subject {notice.subject_id})")
                    return

                await self.notifier.send(recipients, notice)

                if cooldown is not None:
                    await self._record_sent(db, notice)
                    await db.commit()

                logger.info(f"Sent {notice.type} to {len(recipients)} recipient(s)")
        except Exception as e:
            logger.error(f"Failed to send {notice.type} notification: {str(e)}")

    async def _in_cooldown(self, db: AsyncSession, notice: Notice, cooldown: timedelta) -> bool:
        result = await db.execute(
            select(NotificationLog.id).where(
                NotificationLog.type == notice.type,
                NotificationLog.content_type == (notice.content_type or ""),
                NotificationLog.content_id == (notice.content_id or 0),
                NotificationLog.last_sent_at >= utcnow() - cooldown
            )
        )
        return result.first() is not None

    async def _record_sent(self, db: AsyncSession, notice: Notice) -> None:
        result = await db.execute(
            select(NotificationLog).where(
                NotificationLog.type == notice.type,
                NotificationLog.content_type == (notice.content_type or ""),
                NotificationLog.content_id == (notice.content_id or 0)
            )
        )
        log = result.scalar_one_or_none()
        if log is None:
            db.add(NotificationLog(
                type=notice.type,
                content_type=notice.content_type or "",
                content_id=notice.content_id or 0,
                subject_id=notice.subject_id,
                last_sent_at=utcnow(),
            ))
        else:
            log.last_sent_at = utcnow()
            log.subject_id = notice.subject_id

    async def _recipients(self, db: AsyncSession, notice: Notice) -> List[str]:
        if notice.recipient_user_id is not None:
            result = await db.execute(select(User.email).where(User.id == notice.recipient_user_id))
            email = result.scalar_one_or_none()
            return [email] if email else []

        moderator_emails = await db.execute(
            select(User.email)
            .join(SubjectModerator, SubjectModerator.user_id == User.id)
            .where(SubjectModerator.subject_id == notice.subject_id)
        )
        admin_emails = await db.execute(select(User.email).where(User.role == UserRole.ADMIN))

        recipients: List[str] = []
        for email in list(moderator_emails.scalars()) + list(admin_emails.scalars()):
            if email and email not in recipients:
                recipients.append(email)
        return recipients


_dispatcher: Optional[NotificationDispatcher] = None


def build_notifier() -> Notifier:
    if settings.NOTIFY_WEBHOOK_URL:
        return WebhookNotifier(settings.NOTIFY_WEBHOOK_URL, timeout=settings.NOTIFY_TIMEOUT_SECONDS)
    return LoggingNotifier()


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency: the process-wide dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        from sirb.database import AsyncSessionLocal
        _dispatcher = NotificationDispatcher(build_notifier(), AsyncSessionLocal)
    return _dispatcher


def notify(dispatcher: Optional[NotificationDispatcher], notice: Notice) -> None:
    """Dispatch when a dispatcher is wired in; services call this after commit."""
    if dispatcher is not None:
        dispatcher.dispatch(notice)

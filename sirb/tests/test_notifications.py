"""
Notification dispatcher tests against the real dispatcher: recipient
resolution, cooldowns, failure isolation and the webhook notifier.
"""
import json
from datetime import timedelta

import httpx
import pytest
from sqlalchemy import select

from sirb.orm import NotificationLog, UserRole, utcnow
from sirb.services.notifications import (
    Notice, NoticeType, Notifier, NotificationDispatcher, WebhookNotifier, notify,
)


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    async def send(self, recipients, notice):
        self.sent.append((recipients, notice))


class FailingNotifier(Notifier):
    async def send(self, recipients, notice):
        raise RuntimeError("mail gateway down")


def pending_notice(subject_id, content_id=1):
    return Notice(
        type=NoticeType.SUBMISSION_PENDING,
        subject_id=subject_id,
        content_type="CANVAS",
        content_id=content_id,
        payload={"content_title": "Canvas"},
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def real_dispatcher(notifier, session_factory):
    return NotificationDispatcher(notifier, session_factory, enabled=True)


@pytest.mark.asyncio
async def test_moderator_notice_reaches_moderators_and_admins(
    real_dispatcher, notifier, subject, moderator, admin, make_user
):
    await make_user(role=UserRole.ADMIN, name="second admin")

    real_dispatcher.dispatch(pending_notice(subject.id))
    await real_dispatcher.drain()

    (recipients, notice), = notifier.sent
    assert recipients[0] == moderator.email
    assert admin.email in recipients
    assert len(recipients) == len(set(recipients)) == 3
    assert notice.type == NoticeType.SUBMISSION_PENDING


@pytest.mark.asyncio
async def test_admin_who_moderates_is_listed_once(db, real_dispatcher, notifier, subject, admin):
    from sirb.orm import SubjectModerator
    db.add(SubjectModerator(subject_id=subject.id, user_id=admin.id))
    await db.commit()

    real_dispatcher.dispatch(pending_notice(subject.id))
    await real_dispatcher.drain()

    (recipients, _), = notifier.sent
    assert recipients == [admin.email]


@pytest.mark.asyncio
async def test_direct_notice_goes_to_one_user(real_dispatcher, notifier, learner, admin):
    real_dispatcher.dispatch(Notice(type=NoticeType.CONTENT_APPROVED, recipient_user_id=learner.id))
    await real_dispatcher.drain()

    (recipients, _), = notifier.sent
    assert recipients == [learner.email]


@pytest.mark.asyncio
async def test_cooldown_suppresses_repeat(db, real_dispatcher, notifier, subject, moderator):
    real_dispatcher.dispatch(pending_notice(subject.id))
    await real_dispatcher.drain()
    real_dispatcher.dispatch(pending_notice(subject.id))
    await real_dispatcher.drain()

    assert len(notifier.sent) == 1
    log = (await db.execute(select(NotificationLog))).scalar_one()
    assert (log.type, log.content_type, log.content_id) == (NoticeType.SUBMISSION_PENDING, "CANVAS", 1)


@pytest.mark.asyncio
async def test_cooldown_is_per_content(real_dispatcher, notifier, subject, moderator):
    real_dispatcher.dispatch(pending_notice(subject.id, content_id=1))
    await real_dispatcher.drain()
    real_dispatcher.dispatch(pending_notice(subject.id, content_id=2))
    await real_dispatcher.drain()

    assert len(notifier.sent) == 2


@pytest.mark.asyncio
async def test_expired_cooldown_sends_again(db, real_dispatcher, notifier, subject, moderator):
    db.add(NotificationLog(
        type=NoticeType.SUBMISSION_PENDING, content_type="CANVAS", content_id=1,
        subject_id=subject.id, last_sent_at=utcnow() - timedelta(hours=2),
    ))
    await db.commit()

    real_dispatcher.dispatch(pending_notice(subject.id))
    await real_dispatcher.drain()

    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_decisions_have_no_cooldown(real_dispatcher, notifier, learner):
    for _ in range(2):
        real_dispatcher.dispatch(Notice(
            type=NoticeType.CONTENT_REJECTED, recipient_user_id=learner.id,
            content_type="QUIZ", content_id=5,
        ))
        await real_dispatcher.drain()

    assert len(notifier.sent) == 2


@pytest.mark.asyncio
async def test_notifier_failure_is_swallowed(session_factory, subject, moderator, caplog):
    dispatcher = NotificationDispatcher(FailingNotifier(), session_factory, enabled=True)

    task = dispatcher.dispatch(pending_notice(subject.id))
    await dispatcher.drain()

    assert task.done() and task.exception() is None
    assert "mail gateway down" in caplog.text


@pytest.mark.asyncio
async def test_disabled_dispatcher_schedules_nothing(notifier, session_factory, subject):
    dispatcher = NotificationDispatcher(notifier, session_factory, enabled=False)

    assert dispatcher.dispatch(pending_notice(subject.id)) is None
    await dispatcher.drain()
    assert notifier.sent == []


def test_notify_without_dispatcher_is_a_no_op():
    notify(None, Notice(type=NoticeType.REPORT_RESOLVED))


@pytest.mark.asyncio
async def test_webhook_notifier_posts_json():
    captured = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(202)

    webhook = WebhookNotifier("https://mail.example.test/notify", transport=httpx.MockTransport(handler))
    await webhook.send(["mod@example.com"], Notice(
        type=NoticeType.REPORT_SUBMITTED, subject_id=3, content_type="COMMENT", content_id=9,
        payload={"report_reason": "SPAM"},
    ))

    request, = captured
    assert request.method == "POST"
    body = json.loads(request.content)
    assert body["recipients"] == ["mod@example.com"]
    assert body["type"] == NoticeType.REPORT_SUBMITTED
    assert body["payload"] == {"report_reason": "SPAM"}


@pytest.mark.asyncio
async def test_webhook_error_status_raises():
    webhook = WebhookNotifier(
        "https://mail.example.test/notify",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    with pytest.raises(httpx.HTTPStatusError):
        await webhook.send(["a@example.com"], Notice(type=NoticeType.CONTENT_APPROVED))

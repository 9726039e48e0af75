"""
Reporting and report resolution tests.
"""
import pytest
from sqlalchemy.exc import IntegrityError

from sirb.errors import BadRequestError, ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from sirb.orm import Comment, ContentStatus, Report, ReportReason, ReportStatus
from sirb.services.notifications import NoticeType
from sirb.services.points_service import get_user_total_points
from sirb.services import report_service
from sirb.services.report_service import report_content, resolve_report


@pytest.mark.asyncio
async def test_report_canvas(db, learner, subject, make_canvas, dispatcher):
    canvas = await make_canvas(status=ContentStatus.APPROVED)

    result = await report_content(
        db, learner.id, "canvas", canvas.id, ReportReason.SPAM, "  advertising  ", dispatcher=dispatcher
    )

    report = await db.get(Report, result["report_id"])
    assert report.status == ReportStatus.PENDING
    assert report.reported_canvas_id == canvas.id
    assert report.description == "advertising"

    notice, = dispatcher.of_type(NoticeType.REPORT_SUBMITTED)
    assert notice.subject_id == subject.id
    assert notice.payload["reporter_name"] == learner.name
    assert notice.payload["reported_content_title"] == canvas.title


@pytest.mark.asyncio
async def test_report_comment_targets_comment_column(db, learner, contributor, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)
    comment = Comment(canvas_id=canvas.id, user_id=contributor.id, text="rude words")
    db.add(comment)
    await db.commit()

    result = await report_content(db, learner.id, "comment", comment.id, ReportReason.HARASSMENT)

    report = await db.get(Report, result["report_id"])
    assert report.reported_comment_id == comment.id
    assert report.reported_canvas_id is None
    assert report.target_kind == "comment"


@pytest.mark.asyncio
async def test_duplicate_active_report_conflicts(db, learner, make_quiz):
    quiz = await make_quiz(status=ContentStatus.APPROVED)
    await report_content(db, learner.id, "quiz", quiz.id, ReportReason.WRONG_INFO)

    with pytest.raises(ConflictError) as exc:
        await report_content(db, learner.id, "quiz", quiz.id, ReportReason.SPAM)
    assert exc.value.code == "ALREADY_REPORTED"


@pytest.mark.asyncio
async def test_store_allows_one_active_report_per_target(db, learner, make_quiz):
    quiz = await make_quiz(status=ContentStatus.APPROVED)
    learner_id, quiz_id = learner.id, quiz.id
    db.add(Report(reporter_user_id=learner_id, reported_quiz_id=quiz_id, reason=ReportReason.SPAM))
    await db.commit()

    db.add(Report(reporter_user_id=learner_id, reported_quiz_id=quiz_id, reason=ReportReason.OTHER))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()

    db.add(Report(
        reporter_user_id=learner_id, reported_quiz_id=quiz_id, reason=ReportReason.OTHER,
        status=ReportStatus.DISMISSED,
    ))
    await db.commit()


@pytest.mark.asyncio
async def test_racing_duplicate_maps_to_conflict(db, learner, make_quiz, monkeypatch):
    quiz = await make_quiz(status=ContentStatus.APPROVED)
    learner_id, quiz_id = learner.id, quiz.id
    await report_content(db, learner_id, "quiz", quiz_id, ReportReason.WRONG_INFO)

    # The lookup misses the first report, as it would when both requests check before either commits
    monkeypatch.setattr(report_service, "ACTIVE_REPORT_STATUSES", (ReportStatus.DISMISSED,))

    with pytest.raises(ConflictError) as exc:
        await report_content(db, learner_id, "quiz", quiz_id, ReportReason.SPAM)
    assert exc.value.code == "ALREADY_REPORTED"


@pytest.mark.asyncio
async def test_dismissed_report_allows_new_one(db, learner, moderator, make_quiz):
    quiz = await make_quiz(status=ContentStatus.APPROVED)
    first = await report_content(db, learner.id, "quiz", quiz.id, ReportReason.WRONG_INFO)
    await resolve_report(db, moderator.id, first["report_id"], ReportStatus.DISMISSED)

    second = await report_content(db, learner.id, "quiz", quiz.id, ReportReason.WRONG_INFO)

    assert second["report_id"] != first["report_id"]


@pytest.mark.asyncio
async def test_description_too_long(db, learner, make_canvas):
    canvas = await make_canvas()
    with pytest.raises(BadRequestError):
        await report_content(db, learner.id, "canvas", canvas.id, ReportReason.OTHER, "x" * 501)


@pytest.mark.asyncio
async def test_missing_target(db, learner):
    with pytest.raises(NotFoundError):
        await report_content(db, learner.id, "quiz_comment", 9999, ReportReason.SPAM)


@pytest.mark.asyncio
async def test_resolve_awards_moderator_and_reporter(db, learner, moderator, make_canvas, dispatcher):
    canvas = await make_canvas(status=ContentStatus.APPROVED)
    filed = await report_content(db, learner.id, "canvas", canvas.id, ReportReason.COPYRIGHT)

    result = await resolve_report(
        db, moderator.id, filed["report_id"], ReportStatus.RESOLVED, "removed", dispatcher=dispatcher
    )

    assert result["report"]["status"] == "RESOLVED"
    assert result["report"]["resolution_notes"] == "removed"
    assert result["report"]["resolved_at"] is not None
    assert await get_user_total_points(db, moderator.id) == 15
    assert await get_user_total_points(db, learner.id) == 10

    notice, = dispatcher.of_type(NoticeType.REPORT_RESOLVED)
    assert notice.recipient_user_id == learner.id


@pytest.mark.asyncio
async def test_dismiss_awards_moderator_only(db, learner, admin, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)
    filed = await report_content(db, learner.id, "canvas", canvas.id, ReportReason.SPAM)

    await resolve_report(db, admin.id, filed["report_id"], ReportStatus.DISMISSED)

    assert await get_user_total_points(db, admin.id) == 15
    assert await get_user_total_points(db, learner.id) == 0


@pytest.mark.asyncio
async def test_resolving_twice_is_invalid(db, learner, moderator, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)
    filed = await report_content(db, learner.id, "canvas", canvas.id, ReportReason.SPAM)
    await resolve_report(db, moderator.id, filed["report_id"], ReportStatus.RESOLVED)

    with pytest.raises(InvalidStateError):
        await resolve_report(db, moderator.id, filed["report_id"], ReportStatus.DISMISSED)
    assert await get_user_total_points(db, moderator.id) == 15


@pytest.mark.asyncio
async def test_non_moderator_cannot_resolve(db, learner, contributor, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)
    filed = await report_content(db, learner.id, "canvas", canvas.id, ReportReason.SPAM)

    with pytest.raises(ForbiddenError):
        await resolve_report(db, contributor.id, filed["report_id"], ReportStatus.RESOLVED)


@pytest.mark.asyncio
async def test_pending_is_not_a_resolution(db, moderator):
    with pytest.raises(BadRequestError):
        await resolve_report(db, moderator.id, 1, ReportStatus.PENDING)


@pytest.mark.asyncio
async def test_unknown_report(db, moderator):
    with pytest.raises(NotFoundError):
        await resolve_report(db, moderator.id, 9999, ReportStatus.RESOLVED)

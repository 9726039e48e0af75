"""
Authorization capability tests.
"""
import pytest

from sirb.errors import ForbiddenError, NotFoundError
from sirb.orm import Comment, QuizComment
from sirb.services.permission_guards import (
    AccessReason, can_manage, can_moderate, require_manager, require_moderator, resolve_subject_id,
)


@pytest.mark.asyncio
async def test_admin_moderates_every_subject(db, admin, subject):
    decision = await can_moderate(db, admin.id, subject.id)
    assert decision.allowed and decision.reason == AccessReason.ADMIN
    assert await can_moderate(db, admin.id, subject.id + 500)


@pytest.mark.asyncio
async def test_moderator_limited_to_granted_subject(db, moderator, subject):
    decision = await can_moderate(db, moderator.id, subject.id)
    assert decision.reason == AccessReason.MODERATOR
    assert not await can_moderate(db, moderator.id, subject.id + 1)


@pytest.mark.asyncio
async def test_require_moderator_raises(db, learner, subject):
    with pytest.raises(ForbiddenError) as exc:
        await require_moderator(db, learner.id, subject.id)
    assert exc.value.code == "PERMISSION_DENIED"


@pytest.mark.asyncio
async def test_manage_owner_then_admin(db, contributor, admin, moderator, make_canvas):
    canvas = await make_canvas()

    assert (await can_manage(db, contributor.id, canvas)).reason == AccessReason.OWNER
    assert (await can_manage(db, admin.id, canvas)).reason == AccessReason.ADMIN

    denied = await can_manage(db, moderator.id, canvas)
    assert denied.allowed is False
    assert denied.reason == AccessReason.DENIED


@pytest.mark.asyncio
async def test_require_manager_raises_ownership_violation(db, learner, make_quiz):
    quiz = await make_quiz()
    with pytest.raises(ForbiddenError) as exc:
        await require_manager(db, learner.id, quiz)
    assert exc.value.code == "OWNERSHIP_VIOLATION"


@pytest.mark.asyncio
async def test_resolve_subject_for_content_and_comments(db, learner, subject, make_canvas, make_quiz):
    canvas = await make_canvas()
    quiz = await make_quiz()
    comment = Comment(canvas_id=canvas.id, user_id=learner.id, text="hi")
    quiz_comment = QuizComment(quiz_id=quiz.id, user_id=learner.id, text="hi")
    db.add_all([comment, quiz_comment])
    await db.commit()

    assert await resolve_subject_id(db, "canvas", canvas.id) == subject.id
    assert await resolve_subject_id(db, "quiz", quiz.id) == subject.id
    assert await resolve_subject_id(db, "comment", comment.id) == subject.id
    assert await resolve_subject_id(db, "quiz_comment", quiz_comment.id) == subject.id


@pytest.mark.asyncio
async def test_resolve_subject_missing(db):
    with pytest.raises(NotFoundError):
        await resolve_subject_id(db, "canvas", 12345)
    with pytest.raises(ValueError):
        await resolve_subject_id(db, "chapter", 1)

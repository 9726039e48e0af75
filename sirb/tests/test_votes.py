"""
Vote aggregator tests: toggle/flip transitions, counter invariants,
self-vote rejection and the upvote points that follow votes.
"""
import pytest
from sqlalchemy import select, func

from sirb.errors import NotFoundError, ForbiddenError
from sirb.orm import ContentStatus, CanvasVote, Comment, VoteType, UserPoints, PointsReason
from sirb.services.points_service import get_user_total_points
from sirb.services.vote_service import vote


def assert_counters(result):
    assert result["net_score"] == result["upvotes_count"] - result["downvotes_count"]


@pytest.mark.asyncio
async def test_first_like_creates_vote(db, learner, contributor, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)

    result = await vote(db, learner.id, "canvas", canvas.id, VoteType.LIKE)

    assert result["vote_type"] == "LIKE"
    assert (result["upvotes_count"], result["downvotes_count"], result["net_score"]) == (1, 0, 1)
    assert await get_user_total_points(db, contributor.id) == 5


@pytest.mark.asyncio
async def test_same_vote_twice_toggles_off(db, learner, contributor, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)

    await vote(db, learner.id, "canvas", canvas.id, VoteType.LIKE)
    result = await vote(db, learner.id, "canvas", canvas.id, VoteType.LIKE)

    assert result["vote_type"] is None
    assert (result["upvotes_count"], result["downvotes_count"], result["net_score"]) == (0, 0, 0)
    count = await db.execute(select(func.count(CanvasVote.id)).where(CanvasVote.canvas_id == canvas.id))
    assert count.scalar() == 0
    assert await get_user_total_points(db, contributor.id) == 0


@pytest.mark.asyncio
async def test_flip_like_to_dislike(db, learner, contributor, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)

    await vote(db, learner.id, "canvas", canvas.id, VoteType.LIKE)
    result = await vote(db, learner.id, "canvas", canvas.id, VoteType.DISLIKE)

    assert result["vote_type"] == "DISLIKE"
    assert (result["upvotes_count"], result["downvotes_count"], result["net_score"]) == (0, 1, -1)
    assert await get_user_total_points(db, contributor.id) == 0

    revoked = await db.execute(
        select(func.count(UserPoints.id)).where(UserPoints.reason == PointsReason.CANVAS_UPVOTE_REVOKED)
    )
    assert revoked.scalar() == 1


@pytest.mark.asyncio
async def test_counters_stay_consistent_across_voters(db, make_user, make_quiz):
    quiz = await make_quiz(status=ContentStatus.APPROVED)
    voters = [await make_user() for _ in range(4)]

    result = None
    for i, voter in enumerate(voters):
        result = await vote(db, voter.id, "quiz", quiz.id, VoteType.LIKE if i % 2 == 0 else VoteType.DISLIKE)
        assert_counters(result)
    result = await vote(db, voters[1].id, "quiz", quiz.id, VoteType.LIKE)

    assert_counters(result)
    assert result["upvotes_count"] == 3
    assert result["downvotes_count"] == 1


@pytest.mark.asyncio
async def test_like_after_toggle_awards_again(db, learner, contributor, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)

    await vote(db, learner.id, "canvas", canvas.id, VoteType.LIKE)
    await vote(db, learner.id, "canvas", canvas.id, VoteType.LIKE)
    await vote(db, learner.id, "canvas", canvas.id, VoteType.LIKE)

    assert await get_user_total_points(db, contributor.id) == 5


@pytest.mark.asyncio
async def test_self_vote_forbidden(db, contributor, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)

    with pytest.raises(ForbiddenError):
        await vote(db, contributor.id, "canvas", canvas.id, VoteType.LIKE)

    count = await db.execute(select(func.count(CanvasVote.id)))
    assert count.scalar() == 0


@pytest.mark.asyncio
async def test_missing_target(db, learner):
    with pytest.raises(NotFoundError):
        await vote(db, learner.id, "quiz", 999, VoteType.LIKE)


@pytest.mark.asyncio
async def test_comment_votes_use_comment_counters(db, learner, make_user, make_canvas):
    author = await make_user()
    canvas = await make_canvas(status=ContentStatus.APPROVED)
    comment = Comment(canvas_id=canvas.id, user_id=author.id, text="A helpful remark")
    db.add(comment)
    await db.commit()

    result = await vote(db, learner.id, "comment", comment.id, VoteType.LIKE)

    assert result["upvotes_count"] == 1
    assert await get_user_total_points(db, author.id) == 2


@pytest.mark.asyncio
async def test_opposite_votes_cancel_out(db, make_user, make_canvas):
    canvas = await make_canvas(status=ContentStatus.APPROVED)
    fan, critic = await make_user(), await make_user()

    await vote(db, fan.id, "canvas", canvas.id, VoteType.LIKE)
    result = await vote(db, critic.id, "canvas", canvas.id, VoteType.DISLIKE)

    assert (result["upvotes_count"], result["downvotes_count"], result["net_score"]) == (1, 1, 0)

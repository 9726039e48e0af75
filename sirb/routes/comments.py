"""
sirb/routes/comments.py
Comment threads on canvases and quizzes.

`kind` in the /api/comments paths is "comment" (canvas comments) or
"quiz_comment".
"""
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.database import get_db
from sirb.orm.user import User
from sirb.rbac import get_current_user
from sirb.schemas.community import CommentCreateRequest, CommentUpdateRequest
from sirb.schemas.content import VoteRequest
from sirb.services import comment_service
from sirb.services.vote_service import vote

router = APIRouter(prefix="/api", tags=["comments"])

CommentKind = Literal["comment", "quiz_comment"]

THREADS = {
    "canvases": "comment",
    "quizzes": "quiz_comment",
}


@router.get("/{plural}/{content_id}/comments")
async def list_comments(
    plural: Literal["canvases", "quizzes"],
    content_id: int,
    cursor: Optional[int] = Query(None, gt=0),
    sort: Literal["best", "newest"] = Query("best"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await comment_service.list_comments(db, THREADS[plural], content_id, cursor=cursor, sort=sort)


@router.post("/{plural}/{content_id}/comments", status_code=201)
async def add_comment(
    plural: Literal["canvases", "quizzes"],
    content_id: int,
    body: CommentCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await comment_service.add_comment(
        db, THREADS[plural], current_user.id, content_id, body.text,
        parent_comment_id=body.parent_comment_id
    )


@router.patch("/comments/{kind}/{comment_id}")
async def edit_comment(
    kind: CommentKind,
    comment_id: int,
    body: CommentUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await comment_service.edit_comment(db, kind, current_user.id, comment_id, body.text)


@router.delete("/comments/{kind}/{comment_id}")
async def delete_comment(
    kind: CommentKind,
    comment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await comment_service.delete_comment(db, kind, current_user.id, comment_id)


@router.post("/comments/{kind}/{comment_id}/vote")
async def vote_comment(
    kind: CommentKind,
    comment_id: int,
    body: VoteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await vote(db, current_user.id, kind, comment_id, body.vote_type)

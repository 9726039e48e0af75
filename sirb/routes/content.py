"""
sirb/routes/content.py
Canvas and quiz lifecycle endpoints.

Both content kinds expose the same surface, so the router is built once
per kind:

    POST   /api/{plural}              create (DRAFT)
    PATCH  /api/{plural}/{id}         update
    DELETE /api/{plural}/{id}         delete (soft when APPROVED)
    POST   /api/{plural}/{id}/submit  DRAFT|REJECTED -> PENDING
    POST   /api/{plural}/{id}/cancel  PENDING -> DRAFT
    POST   /api/{plural}/{id}/vote    LIKE / DISLIKE toggle
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.database import get_db
from sirb.orm.user import User
from sirb.rbac import get_current_user
from sirb.schemas.content import ContentCreateRequest, ContentUpdateRequest, VoteRequest
from sirb.services import content_lifecycle_service as lifecycle
from sirb.services.notifications import NotificationDispatcher, get_notification_dispatcher
from sirb.services.vote_service import vote


def build_content_router(kind: str, plural: str) -> APIRouter:
    router = APIRouter(prefix=f"/api/{plural}", tags=[plural])

    @router.post("", status_code=201)
    async def create_unit(
        body: ContentCreateRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        return await lifecycle.create_content(
            db, kind, current_user.id, body.chapter_id, body.title,
            description=body.description, image_url=body.image_url
        )

    @router.patch("/{unit_id}")
    async def update_unit(
        unit_id: int,
        body: ContentUpdateRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        return await lifecycle.update_content(
            db, kind, current_user.id, unit_id,
            title=body.title, description=body.description, image_url=body.image_url
        )

    @router.delete("/{unit_id}")
    async def delete_unit(
        unit_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        return await lifecycle.delete_content(db, kind, current_user.id, unit_id)

    @router.post("/{unit_id}/submit")
    async def submit_unit(
        unit_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(get_current_user),
        dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher)
    ):
        return await lifecycle.submit_content(db, kind, current_user.id, unit_id, dispatcher=dispatcher)

    @router.post("/{unit_id}/cancel")
    async def cancel_unit(
        unit_id: int,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        return await lifecycle.cancel_submission(db, kind, current_user.id, unit_id)

    @router.post("/{unit_id}/vote")
    async def vote_unit(
        unit_id: int,
        body: VoteRequest,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(get_current_user)
    ):
        return await vote(db, current_user.id, kind, unit_id, body.vote_type)

    return router


canvas_router = build_content_router("canvas", "canvases")
quiz_router = build_content_router("quiz", "quizzes")

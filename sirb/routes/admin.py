"""
sirb/routes/admin.py
Admin-only management of subject moderators.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sirb.database import get_db
from sirb.orm.user import User
from sirb.rbac import require_admin
from sirb.schemas.community import AssignModeratorRequest
from sirb.services import moderator_service

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/subjects/{subject_id}/moderators")
async def list_moderators(
    subject_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    moderators = await moderator_service.list_moderators(db, admin.id, subject_id)
    return {"success": True, "moderators": moderators}


@router.post("/subjects/{subject_id}/moderators", status_code=201)
async def assign_moderator(
    subject_id: int,
    body: AssignModeratorRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return await moderator_service.assign_moderator(db, admin.id, subject_id, body.user_id)


@router.delete("/subjects/{subject_id}/moderators/{grant_id}")
async def remove_moderator(
    subject_id: int,
    grant_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return await moderator_service.remove_moderator(db, admin.id, grant_id, subject_id)


@router.get("/users/search")
async def search_users(
    q: str = Query("", max_length=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    users = await moderator_service.search_users(db, admin.id, q)
    return {"success": True, "users": users}

"""
sirb/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from sirb.routes import content, questions, comments, reports, moderation, admin, attempts, uploads

router = APIRouter()

# Content lifecycle
router.include_router(content.canvas_router)
router.include_router(content.quiz_router)
router.include_router(questions.router)

# Community
router.include_router(comments.router)
router.include_router(reports.router)

# Moderation and administration
router.include_router(moderation.router)
router.include_router(admin.router)

# Learners
router.include_router(attempts.router)
router.include_router(attempts.points_router)
router.include_router(uploads.router)

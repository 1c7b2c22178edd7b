"""
API v1 routes.
"""

from fastapi import APIRouter

from lessonforge.api.v1 import content, lesson_plans, sessions, topics

router = APIRouter()

router.include_router(topics.router, prefix="/topics", tags=["Topics"])
router.include_router(lesson_plans.router, prefix="/lesson-plans", tags=["Lesson Plans"])
router.include_router(content.router, prefix="/content", tags=["Content"])
router.include_router(sessions.router, prefix="/sessions", tags=["Editing Sessions"])

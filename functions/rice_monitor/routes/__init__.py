"""
HTTP routes for the monitoring API, one router per resource.
"""

from fastapi import APIRouter

from rice_monitor.routes import analytics, auth, fields, media, submissions, users

router = APIRouter()
router.include_router(auth.router)
router.include_router(users.router)
router.include_router(submissions.router)
router.include_router(media.router)
router.include_router(fields.router)
router.include_router(analytics.router)

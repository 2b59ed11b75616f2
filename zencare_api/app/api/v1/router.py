"""
Top-level router for version 1 of the API.

This router aggregates the domain routers (users, counsellors,
appointments, etc.) under a unified prefix.  When new domains are
introduced, include their routers here.
"""

from fastapi import APIRouter

from .endpoints import (
    admin,
    ai_counselor,
    appointments,
    assessments,
    audit,
    college_head_requests,
    colleges,
    counsellor_requests,
    counsellors,
    feedback,
    notifications,
    reports,
    resources,
    statistics,
    users,
)

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(colleges.router, prefix="/colleges", tags=["colleges"])
router.include_router(
    college_head_requests.router, prefix="/college-head-requests", tags=["college head requests"]
)
router.include_router(counsellor_requests.router, prefix="/counsellor-requests", tags=["counsellor requests"])
router.include_router(counsellors.router, prefix="/counsellors", tags=["counsellors"])
router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
router.include_router(feedback.router, prefix="/feedback", tags=["feedback"])
router.include_router(reports.router, prefix="/reports", tags=["reports"])
router.include_router(assessments.router, prefix="/assessments", tags=["assessments"])
router.include_router(ai_counselor.router, prefix="/ai-counselor", tags=["ai counselor"])
router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
router.include_router(resources.router, prefix="/resources", tags=["resources"])
router.include_router(statistics.router, prefix="/statistics", tags=["statistics"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])

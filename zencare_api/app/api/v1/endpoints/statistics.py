"""
Dashboard statistics endpoints for API v1.

``/statistics/me`` picks the dashboard for the caller's role.  The
role-specific routes let admins look at any college or counsellor.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from zencare_api.app.api.v1.errors import http_error
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_COLLEGE_HEAD, ROLE_COUNSELLOR, get_current_user, require_roles
from zencare_api.app.services.statistics_service import StatisticsService

router = APIRouter()


@router.get("/me")
async def my_dashboard(current_user: dict = Depends(get_current_user)) -> Dict[str, Any]:
    try:
        return await StatisticsService.for_user(current_user)
    except ValueError as e:
        raise http_error(e)


@router.get("/overview")
async def admin_overview(current_user: dict = Depends(require_roles(ROLE_ADMIN))) -> Dict[str, Any]:
    """System-wide counts for administrators."""
    return await StatisticsService.admin_overview()


@router.get("/colleges/{college_id}")
async def college_dashboard(
    college_id: int,
    current_user: dict = Depends(require_roles(ROLE_ADMIN, ROLE_COLLEGE_HEAD)),
) -> Dict[str, Any]:
    if current_user.get("role_id") == ROLE_COLLEGE_HEAD and current_user.get("college_id") != college_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return await StatisticsService.college_head_dashboard(college_id)


@router.get("/counsellors/{counsellor_id}")
async def counsellor_dashboard(
    counsellor_id: int,
    current_user: dict = Depends(require_roles(ROLE_ADMIN, ROLE_COUNSELLOR)),
) -> Dict[str, Any]:
    if current_user.get("role_id") == ROLE_COUNSELLOR and current_user.get("user_id") != counsellor_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return await StatisticsService.counsellor_dashboard(counsellor_id)

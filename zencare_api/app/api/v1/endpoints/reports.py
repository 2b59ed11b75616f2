"""
Report endpoints for API v1.

Any user may report another user.  Reporters can follow, update or
withdraw their own reports; admins work the moderation queue.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import ROLE_ADMIN, get_current_user, require_roles
from zencare_api.app.schemas.report import (
    ReportCreate,
    ReportList,
    ReportOwnUpdate,
    ReportRead,
    ReportStatusUpdate,
    ReportTypes,
)
from zencare_api.app.services.report_service import ReportService


router = APIRouter()


@router.post("/", response_model=ReportRead, status_code=status.HTTP_201_CREATED)
async def create_report(
    data: ReportCreate,
    current_user: dict = Depends(get_current_user),
) -> ReportRead:
    """File a report about another user.

    Priority is derived from the type and the reason text; high-priority
    reports notify every admin.
    """
    try:
        return await ReportService.create(current_user["user_id"], data)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("report creation", e)


@router.get("/types", response_model=ReportTypes)
async def report_types() -> ReportTypes:
    return await ReportService.types()


@router.get("/mine", response_model=List[ReportRead])
async def my_reports(current_user: dict = Depends(get_current_user)) -> List[ReportRead]:
    return await ReportService.my_reports(current_user["user_id"])


@router.get("/stats", response_model=Dict[str, Dict[str, int]])
async def my_report_stats(current_user: dict = Depends(get_current_user)) -> Dict[str, Dict[str, int]]:
    """Counts by status of the reports the user filed and the reports about them."""
    return await ReportService.stats(current_user["user_id"])


@router.get("/about/{user_id}", response_model=List[ReportRead])
async def reports_about(
    user_id: int,
    current_user: dict = Depends(get_current_user),
) -> List[ReportRead]:
    """Reports about a user.  Non-admins only see their own, with reasons redacted."""
    try:
        return await ReportService.reports_about(user_id, current_user)
    except ValueError as e:
        raise http_error(e)


@router.put("/{report_id}/own", response_model=ReportRead)
async def update_own_report(
    report_id: int,
    data: ReportOwnUpdate,
    current_user: dict = Depends(get_current_user),
) -> ReportRead:
    """Withdraw a report or replace its reason.  Reporter only."""
    try:
        return await ReportService.update_own(current_user["user_id"], report_id, data.action, data.reason)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("report update", e)


@router.get("/", response_model=ReportList)
async def list_reports(
    type: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> ReportList:
    return await ReportService.list_reports(
        report_type=type, status=status, priority=priority, page=page, limit=limit
    )


@router.put("/{report_id}/status", response_model=ReportRead)
async def update_report_status(
    report_id: int,
    data: ReportStatusUpdate,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> ReportRead:
    try:
        return await ReportService.update_status(current_user["user_id"], report_id, data.status, data.admin_notes)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("report moderation", e)

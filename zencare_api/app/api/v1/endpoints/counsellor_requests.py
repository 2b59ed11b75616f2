"""
Counsellor registration endpoints for API v1.

Counsellors apply to join a specific college.  The head of that
college, or an admin, approves or rejects the application.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_COLLEGE_HEAD, require_roles
from zencare_api.app.schemas.college import RequestProcess, RequestStatus
from zencare_api.app.schemas.counsellor import CounsellorRequestCreate, CounsellorRequestRead
from zencare_api.app.services.counsellor_request_service import CounsellorRequestService


router = APIRouter()


@router.post("/", response_model=CounsellorRequestRead, status_code=status.HTTP_201_CREATED)
async def submit_request(data: CounsellorRequestCreate) -> CounsellorRequestRead:
    """Apply to become a counsellor at a college.  The college's heads are notified."""
    try:
        return await CounsellorRequestService.submit_request(data)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("counsellor request", e)


@router.get("/", response_model=List[CounsellorRequestRead])
async def list_requests(
    college_id: Optional[int] = Query(None),
    status: str = Query("pending", description="pending, approved, rejected or all"),
    current_user: dict = Depends(require_roles(ROLE_ADMIN, ROLE_COLLEGE_HEAD)),
) -> List[CounsellorRequestRead]:
    try:
        return await CounsellorRequestService.list_requests(current_user, college_id, status)
    except ValueError as e:
        raise http_error(e)


@router.get("/status", response_model=RequestStatus)
async def request_status(email: str = Query(...)) -> RequestStatus:
    try:
        return await CounsellorRequestService.request_status(email)
    except ValueError as e:
        raise http_error(e)


@router.put("/{request_id}", response_model=CounsellorRequestRead)
async def process_request(
    request_id: int,
    data: RequestProcess,
    current_user: dict = Depends(require_roles(ROLE_ADMIN, ROLE_COLLEGE_HEAD)),
) -> CounsellorRequestRead:
    """Approve or reject a counsellor application.

    Approval creates an approved counsellor account with a profile built
    from the application.
    """
    try:
        return await CounsellorRequestService.process_request(current_user, request_id, data.action, data.reason)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("process counsellor request", e)

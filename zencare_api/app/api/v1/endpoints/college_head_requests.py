"""
College head registration endpoints for API v1.

Prospective college heads submit a request describing themselves and
their institution.  An admin approves it, which creates the college
and the head's account, or rejects it.  Applicants can check the
status of their request by email without logging in.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import ROLE_ADMIN, require_roles
from zencare_api.app.schemas.college import (
    CollegeHeadRequestCreate,
    CollegeHeadRequestRead,
    RequestProcess,
    RequestStatus,
)
from zencare_api.app.services.college_service import CollegeHeadRequestService


router = APIRouter()


@router.post("/", response_model=CollegeHeadRequestRead, status_code=status.HTTP_201_CREATED)
async def submit_request(data: CollegeHeadRequestCreate) -> CollegeHeadRequestRead:
    try:
        return await CollegeHeadRequestService.submit_request(data)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("college head request", e)


@router.get("/", response_model=List[CollegeHeadRequestRead])
async def list_requests(
    status: str = Query("pending", description="pending, approved, rejected or all"),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> List[CollegeHeadRequestRead]:
    """List college-head requests by status.  Admin only."""
    try:
        return await CollegeHeadRequestService.list_requests(status)
    except ValueError as e:
        raise http_error(e)


@router.get("/status", response_model=RequestStatus)
async def request_status(email: str = Query(..., description="Email used in the request")) -> RequestStatus:
    try:
        return await CollegeHeadRequestService.request_status(email)
    except ValueError as e:
        raise http_error(e)


@router.put("/{request_id}", response_model=CollegeHeadRequestRead)
async def process_request(
    request_id: int,
    data: RequestProcess,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> CollegeHeadRequestRead:
    """Approve or reject a pending request.

    Approval creates the college (unless one with the same code exists)
    and an approved ``college_head`` account.
    """
    try:
        return await CollegeHeadRequestService.process_request(
            current_user["user_id"], request_id, data.action, data.reason
        )
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("process college head request", e)

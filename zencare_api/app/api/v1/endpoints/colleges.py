"""
College endpoints for API v1.

Colleges are read-only through the API; they come into existence when
an admin approves a college-head request or via the seeding script.
"""

from typing import List

from fastapi import APIRouter

from zencare_api.app.api.v1.errors import http_error
from zencare_api.app.schemas.college import CollegeRead
from zencare_api.app.services.college_service import CollegeService


router = APIRouter()


@router.get("/", response_model=List[CollegeRead])
async def list_colleges() -> List[CollegeRead]:
    """List registered colleges sorted by name.  Public."""
    return await CollegeService.list_colleges()


@router.get("/{college_id}", response_model=CollegeRead)
async def get_college(college_id: int) -> CollegeRead:
    try:
        return await CollegeService.get_college(college_id)
    except ValueError as e:
        raise http_error(e)

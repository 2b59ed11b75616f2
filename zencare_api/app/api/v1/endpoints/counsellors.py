"""
Counsellor endpoints for API v1.

The directory only lists *visible* counsellors: approved, unblocked
accounts with an approved and active profile.  Counsellors manage their
own profile and weekly schedule; admins and college heads toggle
approval.
"""

from datetime import date
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import (
    ROLE_ADMIN,
    ROLE_COLLEGE_HEAD,
    ROLE_STUDENT,
    get_current_user,
    require_roles,
)
from zencare_api.app.schemas.counsellor import (
    ApprovalUpdate,
    CounsellorProfileUpdate,
    CounsellorRead,
    DaySlots,
    ScheduleUpdate,
)
from zencare_api.app.services.counsellor_service import CounsellorService


router = APIRouter()


@router.get("/", response_model=List[CounsellorRead])
async def search_counsellors(
    college_id: Optional[int] = Query(None),
    specialization: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    session_mode: Optional[str] = Query(None, description="video, audio, chat or in_person"),
    emergency_available: Optional[bool] = Query(None),
    instant_booking: Optional[bool] = Query(None),
    sort_by: str = Query("rating", description="rating, experience or name"),
    order: str = Query("desc", description="asc or desc"),
    current_user: dict = Depends(get_current_user),
) -> List[CounsellorRead]:
    """Search the counsellor directory.

    Students who belong to a college only see that college's
    counsellors.
    """
    return await CounsellorService.search(
        requester=current_user,
        college_id=college_id,
        specialization=specialization,
        language=language,
        session_mode=session_mode,
        emergency_available=emergency_available,
        instant_booking=instant_booking,
        sort_by=sort_by,
        order=order,
    )


@router.get("/random", response_model=Optional[CounsellorRead])
async def random_counsellor(
    college_id: Optional[int] = Query(None),
    current_user: dict = Depends(get_current_user),
) -> Optional[CounsellorRead]:
    if current_user.get("role_id") == ROLE_STUDENT and current_user.get("college_id"):
        college_id = current_user["college_id"]
    return await CounsellorService.random_counsellor(college_id)


@router.get("/assigned", response_model=Optional[CounsellorRead])
async def assigned_counsellor(
    current_user: dict = Depends(require_roles(ROLE_STUDENT)),
) -> Optional[CounsellorRead]:
    """The counsellor assigned to the calling student, or ``null``."""
    return await CounsellorService.assigned_counsellor(current_user)


@router.get("/pending", response_model=List[CounsellorRead])
async def pending_approvals(
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> List[CounsellorRead]:
    """Unapproved, unblocked counsellors waiting for review.  Admin only."""
    return await CounsellorService.pending_approvals()


@router.get("/{counsellor_id}", response_model=CounsellorRead)
async def get_counsellor(counsellor_id: int) -> CounsellorRead:
    try:
        return await CounsellorService.get_counsellor(counsellor_id)
    except ValueError as e:
        raise http_error(e)


@router.put("/{counsellor_id}/profile", response_model=CounsellorRead)
async def update_profile(
    counsellor_id: int,
    update: CounsellorProfileUpdate,
    current_user: dict = Depends(get_current_user),
) -> CounsellorRead:
    try:
        return await CounsellorService.update_profile(current_user, counsellor_id, update)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("counsellor profile update", e)


@router.put("/{counsellor_id}/schedule", response_model=CounsellorRead)
async def update_schedule(
    counsellor_id: int,
    update: ScheduleUpdate,
    current_user: dict = Depends(get_current_user),
) -> CounsellorRead:
    """Replace the weekly schedule.

    Keys are lowercase weekday names; slots are ``HH:MM`` start times.
    """
    try:
        return await CounsellorService.update_schedule(current_user, counsellor_id, update)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("counsellor schedule update", e)


@router.get("/{counsellor_id}/slots", response_model=Dict[str, DaySlots])
async def week_slots(
    counsellor_id: int,
    week_of: Optional[date] = Query(None, description="Any date in the wanted week; defaults to today"),
) -> Dict[str, DaySlots]:
    """Bookable slots for the Sunday-to-Saturday week containing ``week_of``.

    Past days are marked ``is_past`` with no slots.  Today only offers
    hours after the current one, and slots held by pending or confirmed
    appointments are left out.
    """
    try:
        return await CounsellorService.week_slots(counsellor_id, week_of)
    except ValueError as e:
        raise http_error(e)


@router.get("/{counsellor_id}/slots/{day}", response_model=DaySlots)
async def day_slots(counsellor_id: int, day: date) -> DaySlots:
    try:
        return await CounsellorService.day_slots(counsellor_id, day)
    except ValueError as e:
        raise http_error(e)


@router.put("/{counsellor_id}/approval", response_model=CounsellorRead)
async def set_approval(
    counsellor_id: int,
    data: ApprovalUpdate,
    current_user: dict = Depends(require_roles(ROLE_ADMIN, ROLE_COLLEGE_HEAD)),
) -> CounsellorRead:
    """Approve or unapprove a counsellor.

    Admins may act on anyone; college heads only on their own college's
    counsellors.  The counsellor is notified.
    """
    try:
        return await CounsellorService.set_approval(current_user, counsellor_id, data.approved, data.reason)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("counsellor approval", e)

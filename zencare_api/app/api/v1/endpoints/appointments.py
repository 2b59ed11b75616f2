"""
Appointment endpoints for API v1.

Students book sessions into free slots of a counsellor's weekly
schedule.  Counsellors confirm, complete or mark no-shows; either
participant may cancel while the appointment is still open.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_COUNSELLOR, ROLE_STUDENT, get_current_user, require_roles
from zencare_api.app.schemas.appointment import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentRead,
    AppointmentStatusUpdate,
)
from zencare_api.app.services.appointment_service import AppointmentService


router = APIRouter()


@router.post("/", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    data: AppointmentCreate,
    current_user: dict = Depends(require_roles(ROLE_STUDENT)),
) -> AppointmentRead:
    """Book a session.

    ``time`` must be one of the free slots returned by
    ``GET /counsellors/{id}/slots/{date}``.  The counsellor is notified.
    """
    try:
        return await AppointmentService.book(current_user, data)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("booking", e)


@router.get("/mine", response_model=List[AppointmentRead])
async def my_appointments(
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(require_roles(ROLE_STUDENT)),
) -> List[AppointmentRead]:
    """The calling student's appointments, latest first."""
    return await AppointmentService.list_for_student(current_user["user_id"], status, limit)


@router.get("/counsellor", response_model=List[AppointmentRead])
async def counsellor_appointments(
    status: Optional[str] = Query(None),
    day: Optional[date] = Query(None, description="Only appointments on this date"),
    counsellor_id: Optional[int] = Query(None, description="Admins may pick a counsellor"),
    current_user: dict = Depends(require_roles(ROLE_COUNSELLOR, ROLE_ADMIN)),
) -> List[AppointmentRead]:
    """A counsellor's appointments in chronological order."""
    if current_user.get("role_id") != ROLE_ADMIN or counsellor_id is None:
        counsellor_id = current_user["user_id"]
    return await AppointmentService.list_for_counsellor(
        counsellor_id, status, day.isoformat() if day else None
    )


@router.get("/{appointment_id}", response_model=AppointmentRead)
async def get_appointment(
    appointment_id: int,
    current_user: dict = Depends(get_current_user),
) -> AppointmentRead:
    try:
        return await AppointmentService.get(appointment_id, current_user)
    except ValueError as e:
        raise http_error(e)


@router.put("/{appointment_id}/status", response_model=AppointmentRead)
async def update_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    current_user: dict = Depends(get_current_user),
) -> AppointmentRead:
    """Move an appointment along its lifecycle.

    pending -> confirmed or cancelled; confirmed -> completed, cancelled
    or no_show.  The student is notified.
    """
    try:
        return await AppointmentService.update_status(appointment_id, current_user, data.status, data.notes)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("appointment status update", e)


@router.post("/{appointment_id}/cancel", response_model=AppointmentRead)
async def cancel_appointment(
    appointment_id: int,
    data: AppointmentCancel,
    current_user: dict = Depends(get_current_user),
) -> AppointmentRead:
    try:
        return await AppointmentService.cancel(appointment_id, current_user, data.reason)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("appointment cancellation", e)

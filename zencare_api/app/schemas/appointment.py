"""
Pydantic schemas for counselling appointments.

A student books a session by picking a date and one of the counsellor's
free ``HH:MM`` slots on that date.  The stored ``scheduled_at`` value is
a local ISO datetime (``YYYY-MM-DDTHH:MM:00``).
"""

from datetime import date as date_type
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .counsellor import SessionMode

AppointmentStatus = Literal["pending", "confirmed", "completed", "cancelled", "no_show"]
SessionType = Literal["individual", "group", "crisis", "follow_up"]


class AppointmentCreate(BaseModel):
    counsellor_id: int
    date: date_type
    time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$", examples=["10:00"])
    session_type: SessionType = "individual"
    session_mode: SessionMode = "video"
    student_notes: Optional[str] = Field(None, max_length=2000)
    is_emergency: bool = False


class AppointmentRead(BaseModel):
    id: int
    student_id: int
    counsellor_id: int
    student_name: Optional[str] = None
    counsellor_name: Optional[str] = None
    scheduled_at: str
    duration: int
    session_type: str
    session_mode: str
    student_notes: Optional[str] = None
    is_emergency: bool = False
    status: str
    counsellor_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[str] = None
    booked_at: Optional[str] = None
    updated_at: Optional[str] = None


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus
    notes: Optional[str] = Field(None, max_length=2000)


class AppointmentCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)

"""
Pydantic schemas for counsellors.

Covers the public counsellor registration request, the profile a
counsellor maintains, the weekly availability schedule and the
read model shown in the student-facing directory.
"""

import re
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .user import Email

WEEKDAYS = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
SESSION_MODES = ("video", "audio", "chat", "in_person")

_SLOT_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

SessionMode = Literal["video", "audio", "chat", "in_person"]


class CounsellorRequestCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=120)
    email: Email
    password: str = Field(..., min_length=8)
    phone: Optional[str] = None
    specialization: str = Field(..., min_length=2)
    experience: str = Field(..., description="Free text, e.g. '5 years'")
    qualifications: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=lambda: ["English"])
    college_id: int
    id_proof_type: Optional[str] = Field(None, description="e.g. aadhaar, passport, license")
    id_proof_url: Optional[str] = None


class CounsellorRequestRead(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    specialization: str
    experience: str
    qualifications: List[str] = []
    languages: List[str] = []
    college_id: int
    id_proof_type: Optional[str] = None
    id_proof_url: Optional[str] = None
    status: str
    admin_notes: Optional[str] = None
    processed_by: Optional[int] = None
    processed_at: Optional[str] = None
    created_at: Optional[str] = None


class ApprovalUpdate(BaseModel):
    """Toggle a counsellor's approval flag."""

    approved: bool
    reason: Optional[str] = Field(None, max_length=1000)


class DaySchedule(BaseModel):
    available: bool = False
    slots: List[str] = Field(default_factory=list, description="Start times as HH:MM")

    @field_validator("slots")
    @classmethod
    def _normalise_slots(cls, value: List[str]) -> List[str]:
        for slot in value:
            if not _SLOT_RE.match(slot):
                raise ValueError(f"Invalid slot '{slot}', expected HH:MM")
        return sorted(set(value))


class ScheduleUpdate(BaseModel):
    schedule: Dict[str, DaySchedule]

    @field_validator("schedule")
    @classmethod
    def _weekday_keys(cls, value: Dict[str, DaySchedule]) -> Dict[str, DaySchedule]:
        normalised = {}
        for day, entry in value.items():
            key = day.strip().lower()
            if key not in WEEKDAYS:
                raise ValueError(f"Unknown weekday '{day}'")
            normalised[key] = entry
        return normalised


class CounsellorProfileUpdate(BaseModel):
    specializations: Optional[List[str]] = None
    languages: Optional[List[str]] = None
    qualifications: Optional[List[str]] = None
    experience: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=2000)
    session_modes: Optional[List[SessionMode]] = None
    session_duration: Optional[int] = Field(None, ge=15, le=180)
    instant_booking: Optional[bool] = None
    emergency_available: Optional[bool] = None
    is_active: Optional[bool] = None


class CounsellorRead(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    college_id: Optional[int] = None
    approved: bool
    specializations: List[str] = []
    languages: List[str] = []
    qualifications: List[str] = []
    experience: Optional[str] = None
    bio: Optional[str] = None
    session_modes: List[str] = []
    session_duration: int
    instant_booking: bool = False
    emergency_available: bool = False
    is_active: bool = True
    schedule: Dict[str, DaySchedule] = {}
    rating: float = 0.0
    total_reviews: int = 0
    last_booking_at: Optional[str] = None


class DaySlots(BaseModel):
    day_name: str
    slots: List[str]
    is_today: bool
    is_past: bool

"""
Pydantic schemas for user reports and moderation.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .user import Pagination

ReportType = Literal[
    "inappropriate_behavior",
    "harassment",
    "spam",
    "safety_concern",
    "crisis_detection",
    "other",
]
ReportStatus = Literal["open", "investigating", "resolved", "closed", "withdrawn"]


class ReportCreate(BaseModel):
    reported_user_id: int
    type: ReportType
    reason: str = Field(..., min_length=10, max_length=1000)
    session_id: Optional[str] = None
    evidence: Optional[str] = Field(None, max_length=2000)


class ReportRead(BaseModel):
    id: int
    reporter_id: Optional[int] = None
    reported_id: int
    type: str
    reason: str
    session_id: Optional[str] = None
    evidence: Optional[str] = None
    priority: str
    status: str
    admin_notes: Optional[str] = None
    handled_by: Optional[int] = None
    handled_at: Optional[str] = None
    withdraw_reason: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    reporter_name: Optional[str] = None
    reported_name: Optional[str] = None
    reported_role: Optional[str] = None


class ReportOwnUpdate(BaseModel):
    """Reporter-side change: withdraw the report or replace its reason."""

    action: Literal["withdraw", "update"]
    reason: str = Field(..., min_length=3, max_length=1000)


class ReportStatusUpdate(BaseModel):
    status: ReportStatus
    admin_notes: Optional[str] = Field(None, max_length=2000)


class ReportTypeInfo(BaseModel):
    value: str
    label: str
    description: str


class ReportTypes(BaseModel):
    types: List[ReportTypeInfo]
    guidelines: List[str]


class ReportList(BaseModel):
    reports: List[ReportRead]
    pagination: Pagination

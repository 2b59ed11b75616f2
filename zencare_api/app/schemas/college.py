"""
Pydantic schemas for colleges and college-head registration requests.

A college head applies through a public request form.  The request is
reviewed by the system admin; on approval the college and the head's
account are created together.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .user import Email


class CollegeRead(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    address: Optional[str] = None
    type: Optional[str] = None
    created_at: Optional[str] = None


class CollegeHeadRequestCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=120)
    email: Email
    password: str = Field(..., min_length=8, description="Password for the account created on approval")
    phone: Optional[str] = None
    position: Optional[str] = Field(None, description="e.g. Dean of Students")
    college_name: str = Field(..., min_length=3)
    college_code: Optional[str] = Field(None, description="Institution code, unique per college")
    college_address: Optional[str] = None
    college_type: Optional[str] = Field(None, description="e.g. engineering, medical, arts")


class CollegeHeadRequestRead(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    position: Optional[str] = None
    college_name: str
    college_code: Optional[str] = None
    college_address: Optional[str] = None
    college_type: Optional[str] = None
    status: str
    admin_notes: Optional[str] = None
    processed_by: Optional[int] = None
    processed_at: Optional[str] = None
    created_at: Optional[str] = None


class RequestProcess(BaseModel):
    """Approve or reject a pending registration request."""

    action: Literal["approve", "reject"]
    reason: Optional[str] = Field(None, max_length=1000)


class RequestStatus(BaseModel):
    email: str
    status: str
    created_at: Optional[str] = None
    processed_at: Optional[str] = None
    admin_notes: Optional[str] = None

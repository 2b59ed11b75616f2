"""
Pydantic models for user accounts.

Defines schemas for registering, authenticating, updating and reading
users.  Password hashes are never part of a response model.  Email
addresses are normalised to lower case on input.
"""

from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field


def normalise_email(value: str) -> str:
    value = value.strip().lower()
    if "@" not in value or value.startswith("@") or value.endswith("@"):
        raise ValueError("A valid email address is required")
    return value


Email = Annotated[str, AfterValidator(normalise_email)]


class UserCreate(BaseModel):
    """Self-service registration payload.

    Only students and counsellors can sign up directly.  College heads go
    through ``/college-head-requests`` and the system admin is the first
    account ever registered.
    """

    email: Email = Field(..., description="Login email, stored lower-case")
    password: str = Field(..., min_length=8)
    name: str = Field(..., min_length=2, max_length=120)
    role: Literal["student", "counsellor"] = "student"
    university: Optional[str] = Field(None, description="Free-text university name")
    college_id: Optional[int] = Field(None, description="Registered college the user belongs to")
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: Email
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: str
    user_id: int


class UserUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    name: Optional[str] = Field(None, min_length=2, max_length=120)
    phone: Optional[str] = None
    university: Optional[str] = None
    college_id: Optional[int] = None
    password: Optional[str] = Field(None, min_length=8)


class UserRead(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    role: str
    approved: bool
    blocked: bool
    block_reason: Optional[str] = None
    college_id: Optional[int] = None
    university: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class BlockRequest(BaseModel):
    blocked: bool
    reason: Optional[str] = Field(None, max_length=500)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class UserList(BaseModel):
    users: List[UserRead]
    pagination: Pagination

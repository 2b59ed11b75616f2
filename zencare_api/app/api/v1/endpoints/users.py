"""
User endpoints for API v1.

Provide registration, login, profile access and the admin-only account
management operations (listing, blocking and complete deletion).
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import (
    ROLE_ADMIN,
    ROLE_NAMES,
    create_access_token,
    get_current_user,
    require_roles,
)
from zencare_api.app.schemas.user import (
    BlockRequest,
    LoginRequest,
    TokenResponse,
    UserCreate,
    UserList,
    UserRead,
    UserUpdate,
)
from zencare_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate) -> UserRead:
    """Register a new student or counsellor account.

    Counsellors start unapproved and are hidden from students until an
    admin or the head of their college approves them.
    """
    try:
        return await UserService.register(user)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("registration", e)


@router.post("/login", response_model=TokenResponse)
async def login_user(credentials: LoginRequest) -> TokenResponse:
    """Authenticate with email and password and return a bearer token."""
    db_user = await UserService.authenticate(credentials.email, credentials.password)
    if not db_user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if db_user["blocked"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User account blocked: {db_user['block_reason'] or 'contact support'}",
        )
    token = create_access_token({"sub": db_user["email"]})
    return TokenResponse(
        access_token=token,
        token_type="bearer",
        role=ROLE_NAMES.get(db_user["role_id"], "student"),
        user_id=db_user["id"],
    )


@router.get("/me", response_model=UserRead)
async def read_me(current_user: dict = Depends(get_current_user)) -> UserRead:
    try:
        return await UserService.get_user(current_user["user_id"])
    except ValueError as e:
        raise http_error(e)


@router.get("/", response_model=UserList)
async def list_users(
    role: Optional[str] = Query(None, description="admin, college_head, counsellor or student"),
    approved: Optional[bool] = Query(None),
    blocked: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, description="Case-insensitive match on name or email"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> UserList:
    """List users with filters and pagination.  Admin only."""
    try:
        return await UserService.list_users(
            role=role, approved=approved, blocked=blocked, search=search, page=page, limit=limit
        )
    except ValueError as e:
        raise http_error(e)


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: int, current_user: dict = Depends(get_current_user)) -> UserRead:
    """Read a profile.

    Users may read their own profile, admins any profile, and
    counsellors the profiles of students who booked them.
    """
    if not await UserService.can_view_profile(current_user, user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not authorized to view this profile")
    try:
        return await UserService.get_user(user_id)
    except ValueError as e:
        raise http_error(e)


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    update: UserUpdate,
    current_user: dict = Depends(get_current_user),
) -> UserRead:
    """Update name, phone, university, college or password.  Self or admin."""
    if current_user.get("role_id") != ROLE_ADMIN and current_user.get("user_id") != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    try:
        return await UserService.update_profile(user_id, update)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("profile update", e)


@router.put("/{user_id}/block", response_model=UserRead)
async def block_user(
    user_id: int,
    data: BlockRequest,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> UserRead:
    """Block or unblock an account.  The user is notified."""
    try:
        return await UserService.block_user(current_user["user_id"], user_id, data.blocked, data.reason)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("block user", e)


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> Dict[str, object]:
    """Remove a user and everything that references them.

    Returns the number of deleted rows per table.
    """
    try:
        deleted = await UserService.delete_user_complete(current_user["user_id"], user_id)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("delete user", e)
    return {"user_id": user_id, "deleted": deleted}

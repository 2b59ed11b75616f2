"""
Notification endpoints for API v1.

Notifications are created by the workflows (approvals, bookings,
reports).  A user sees rows addressed to their id, to their email and
to their role.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends, Query

from zencare_api.app.api.v1.errors import http_error
from zencare_api.app.core.security import get_current_user
from zencare_api.app.schemas.notification import NotificationRead
from zencare_api.app.services.notification_service import NotificationService


router = APIRouter()


@router.get("/", response_model=List[NotificationRead])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(get_current_user),
) -> List[NotificationRead]:
    return await NotificationService.list_mine(current_user, unread_only, limit)


@router.put("/read-all")
async def mark_all_read(current_user: dict = Depends(get_current_user)) -> Dict[str, int]:
    updated = await NotificationService.mark_all_read(current_user)
    return {"updated": updated}


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    current_user: dict = Depends(get_current_user),
) -> Dict[str, str]:
    try:
        await NotificationService.mark_read(current_user, notification_id)
    except ValueError as e:
        raise http_error(e)
    return {"status": "ok"}

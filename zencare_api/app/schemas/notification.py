"""
Pydantic models for in-app notifications.
"""

from typing import Any, Optional

from pydantic import BaseModel


class NotificationRead(BaseModel):
    id: int
    type: str
    title: str
    message: str
    data: Optional[Any] = None
    read: bool
    created_at: Optional[str] = None

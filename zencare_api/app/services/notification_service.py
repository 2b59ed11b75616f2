"""
In-app notifications.

Workflows create notification rows inside their own transaction by
calling :meth:`NotificationService.create` with the open cursor.  A row
is addressed to exactly one of: a user id, an email address (for
applicants who do not have an account yet) or a role id (for example
"all admins").
"""

import json
import sqlite3
from typing import Any, Dict, List, Optional

from zencare_api.app.core.db import get_connection
from zencare_api.app.schemas.notification import NotificationRead


class NotificationService:

    @staticmethod
    def create(
        cursor: sqlite3.Cursor,
        *,
        type: str,
        title: str,
        message: str,
        user_id: Optional[int] = None,
        email: Optional[str] = None,
        role_id: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Queue a notification using the caller's cursor; the caller commits."""
        if user_id is None and email is None and role_id is None:
            raise ValueError("Notification needs a user, email or role recipient")
        cursor.execute(
            """
            INSERT INTO notifications (user_id, email, role_id, type, title, message, data)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, email, role_id, type, title, message, json.dumps(data) if data else None),
        )
        return cursor.lastrowid

    @staticmethod
    def _visibility(user: Dict[str, Any]) -> tuple:
        clause = "(user_id = ? OR (user_id IS NULL AND email = ?) OR (user_id IS NULL AND email IS NULL AND role_id = ?))"
        return clause, [user.get("user_id"), user.get("email"), user.get("role_id")]

    @classmethod
    async def list_mine(cls, user: Dict[str, Any], unread_only: bool = False, limit: int = 50) -> List[NotificationRead]:
        clause, params = cls._visibility(user)
        query = f"SELECT id, type, title, message, data, read, created_at FROM notifications WHERE {clause}"
        if unread_only:
            query += " AND read = 0"
        query += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [
            NotificationRead(
                id=row["id"],
                type=row["type"],
                title=row["title"],
                message=row["message"],
                data=json.loads(row["data"]) if row["data"] else None,
                read=bool(row["read"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    @classmethod
    async def mark_read(cls, user: Dict[str, Any], notification_id: int) -> None:
        clause, params = cls._visibility(user)
        conn = get_connection()
        try:
            cursor = conn.execute(
                f"UPDATE notifications SET read = 1 WHERE id = ? AND {clause}",
                (notification_id, *params),
            )
            if cursor.rowcount == 0:
                raise ValueError(f"Notification {notification_id} not found")
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def mark_all_read(cls, user: Dict[str, Any]) -> int:
        clause, params = cls._visibility(user)
        conn = get_connection()
        try:
            cursor = conn.execute(f"UPDATE notifications SET read = 1 WHERE read = 0 AND {clause}", tuple(params))
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

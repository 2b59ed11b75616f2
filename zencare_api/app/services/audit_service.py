"""
Audit trail of privileged and workflow actions.

Services call :meth:`AuditService.log` after their own transaction has
committed: approvals, blocks, bookings and status changes, report
moderation, feedback flags, crisis alert resolution and maintenance
runs.  Registrations are logged with ``user_id=None`` since nobody is
signed in yet.  Records survive deletion of the acting user.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from zencare_api.app.core.db import get_connection, load_json
from zencare_api.app.schemas.audit import AuditLogRead

logger = logging.getLogger(__name__)


class AuditService:

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Append one record.

        A failed write is logged at WARNING and not raised, since the
        audited change is already committed.
        """
        conn = get_connection()
        try:
            conn.execute(
                "INSERT INTO audit_logs (user_id, action, object_type, object_id, details) VALUES (?, ?, ?, ?, ?)",
                (user_id, action, object_type, object_id, json.dumps(details) if details else None),
            )
            conn.commit()
        except sqlite3.Error as exc:
            logger.warning("Failed to write audit log %s %s/%s: %s", action, object_type, object_id, exc)
        finally:
            conn.close()

    @classmethod
    async def list_logs(
        cls,
        user_id: Optional[int] = None,
        object_type: Optional[str] = None,
        object_id: Optional[int] = None,
        action: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogRead]:
        """Newest records first.

        ``start_date`` and ``end_date`` are compared as text against the
        ``YYYY-MM-DD HH:MM:SS`` timestamps, so a bare date works as a
        lower bound.
        """
        filters = {
            "user_id = ?": user_id,
            "object_type = ?": object_type,
            "object_id = ?": object_id,
            "action = ?": action,
            "timestamp >= ?": start_date,
            "timestamp <= ?": end_date,
        }
        where = [clause for clause, value in filters.items() if value is not None]
        params: List[Any] = [value for value in filters.values() if value is not None]
        query = "SELECT id, user_id, action, object_type, object_id, timestamp, details FROM audit_logs"
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [
            AuditLogRead(
                id=row["id"],
                user_id=row["user_id"],
                action=row["action"],
                object_type=row["object_type"],
                object_id=row["object_id"],
                timestamp=row["timestamp"],
                details=load_json(row["details"], row["details"]),
            )
            for row in rows
        ]

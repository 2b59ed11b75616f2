"""
Crisis alerts raised by the AI chat and by assessments.

Every alert is paired with a high-priority ``crisis_detection`` report
about the student so it shows up in the moderation queue.  The report's
reporter is the first admin account; when there is none it is left
empty.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from zencare_api.app.core.db import get_connection, load_json, utc_now
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_COLLEGE_HEAD
from zencare_api.app.schemas.chat import CrisisAlertRead
from zencare_api.app.services.report_service import insert_report

logger = logging.getLogger(__name__)


def system_reporter_id(cursor: sqlite3.Cursor) -> Optional[int]:
    row = cursor.execute(
        "SELECT id FROM users WHERE role_id = ? ORDER BY id LIMIT 1", (ROLE_ADMIN,)
    ).fetchone()
    return row["id"] if row else None


def record_crisis_alert(
    cursor: sqlite3.Cursor,
    user_id: int,
    source: str,
    message: str,
    matched_keywords: Iterable[str] = (),
    session_id: Optional[int] = None,
) -> int:
    """Insert an active alert and its moderation report; the caller commits."""
    matched = list(matched_keywords)
    cursor.execute(
        """
        INSERT INTO crisis_alerts (user_id, session_id, source, message, matched_keywords)
        VALUES (?, ?, ?, ?, ?)
        """,
        (user_id, session_id, source, message, json.dumps(matched)),
    )
    alert_id = cursor.lastrowid
    reason = f"Crisis language detected via {source}"
    if matched:
        reason += f": {', '.join(matched)}"
    insert_report(
        cursor,
        system_reporter_id(cursor),
        user_id,
        "crisis_detection",
        reason,
        session_id=str(session_id) if session_id is not None else None,
        evidence=message[:2000] if message else None,
    )
    logger.warning("Crisis alert %s raised for user %s (%s)", alert_id, user_id, source)
    return alert_id


def _row_to_alert(row: sqlite3.Row) -> CrisisAlertRead:
    return CrisisAlertRead(
        id=row["id"],
        user_id=row["user_id"],
        user_name=row["user_name"],
        session_id=row["session_id"],
        source=row["source"],
        message=row["message"],
        matched_keywords=load_json(row["matched_keywords"], []),
        status=row["status"],
        resolved_by=row["resolved_by"],
        resolved_at=row["resolved_at"],
        created_at=row["created_at"],
    )


class CrisisAlertService:

    @classmethod
    async def list_alerts(cls, requester: Dict[str, Any], status: Optional[str] = "active") -> List[CrisisAlertRead]:
        """Admins see every alert; college heads see alerts for their own students."""
        query = """
            SELECT a.*, u.name AS user_name FROM crisis_alerts a
            JOIN users u ON u.id = a.user_id
        """
        where = []
        params: list = []
        if status and status != "all":
            where.append("a.status = ?")
            params.append(status)
        if requester.get("role_id") == ROLE_COLLEGE_HEAD:
            where.append("u.college_id = ?")
            params.append(requester.get("college_id"))
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY a.created_at DESC, a.id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_alert(row) for row in rows]

    @classmethod
    async def resolve(cls, requester: Dict[str, Any], alert_id: int) -> CrisisAlertRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                "SELECT a.status, u.college_id FROM crisis_alerts a JOIN users u ON u.id = a.user_id WHERE a.id = ?",
                (alert_id,),
            ).fetchone()
            if not row:
                raise ValueError(f"Crisis alert {alert_id} not found")
            if requester.get("role_id") == ROLE_COLLEGE_HEAD and row["college_id"] != requester.get("college_id"):
                raise ValueError("Only alerts for your own college can be resolved")
            if row["status"] == "resolved":
                raise ValueError(f"Crisis alert {alert_id} is already resolved")
            cursor.execute(
                "UPDATE crisis_alerts SET status = 'resolved', resolved_by = ?, resolved_at = ? WHERE id = ?",
                (requester.get("user_id"), utc_now(), alert_id),
            )
            conn.commit()
            row = cursor.execute(
                "SELECT a.*, u.name AS user_name FROM crisis_alerts a JOIN users u ON u.id = a.user_id WHERE a.id = ?",
                (alert_id,),
            ).fetchone()
        finally:
            conn.close()
        logger.info("Crisis alert %s resolved by %s", alert_id, requester.get("user_id"))
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=requester.get("user_id"),
            action="resolve",
            object_type="crisis_alert",
            object_id=alert_id,
        )
        return _row_to_alert(row)

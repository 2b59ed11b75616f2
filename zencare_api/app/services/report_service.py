"""
User reports and moderation.

Any signed-in user can report another user.  Priority is derived from
the report type and the wording of the reason; high-priority reports
notify every admin.  Reporters can follow up on (update or withdraw)
their own open reports, and admins move reports through the moderation
statuses.
"""

import logging
import math
import sqlite3
from typing import Any, Dict, List, Optional

from zencare_api.app.core.db import get_connection, utc_now
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_NAMES
from zencare_api.app.schemas.report import (
    ReportCreate,
    ReportList,
    ReportRead,
    ReportTypeInfo,
    ReportTypes,
)
from zencare_api.app.schemas.user import Pagination
from zencare_api.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

REPORT_TYPES = [
    ReportTypeInfo(
        value="inappropriate_behavior",
        label="Inappropriate behaviour",
        description="Unprofessional or disrespectful conduct during a session or in messages.",
    ),
    ReportTypeInfo(
        value="harassment",
        label="Harassment",
        description="Repeated unwanted contact, threats or intimidation.",
    ),
    ReportTypeInfo(value="spam", label="Spam", description="Unsolicited advertising or repetitive messages."),
    ReportTypeInfo(
        value="safety_concern",
        label="Safety concern",
        description="You believe someone may be at risk of harm.",
    ),
    ReportTypeInfo(
        value="crisis_detection",
        label="Crisis detection",
        description="Raised automatically when crisis language is detected.",
    ),
    ReportTypeInfo(value="other", label="Other", description="Anything not covered above."),
]

REPORT_GUIDELINES = [
    "Describe what happened in at least 10 characters and include dates where you can.",
    "Attach evidence such as session ids or message excerpts when available.",
    "Reports are confidential; the reported user is not told who filed them.",
    "False or malicious reports may lead to action against your account.",
    "If someone is in immediate danger, contact emergency services first.",
]

HIGH_PRIORITY_TYPES = {"crisis_detection", "safety_concern"}
LOW_PRIORITY_TYPES = {"spam", "other"}
HIGH_PRIORITY_WORDS = ("suicide", "harm")

CLOSED_STATUSES = {"resolved", "closed"}

_SELECT = """
    SELECT r.*, reporter.name AS reporter_name, reported.name AS reported_name,
           reported.role_id AS reported_role_id
    FROM reports r
    LEFT JOIN users reporter ON reporter.id = r.reporter_id
    LEFT JOIN users reported ON reported.id = r.reported_id
"""


def report_priority(report_type: str, reason: str) -> str:
    """Derive a report's priority from its type and the wording of its reason."""
    lowered = reason.lower()
    if report_type in HIGH_PRIORITY_TYPES or any(word in lowered for word in HIGH_PRIORITY_WORDS):
        return "high"
    if report_type in LOW_PRIORITY_TYPES:
        return "low"
    return "medium"


def _row_to_report(row: sqlite3.Row, redact: bool = False) -> ReportRead:
    return ReportRead(
        id=row["id"],
        reporter_id=None if redact else row["reporter_id"],
        reported_id=row["reported_id"],
        type=row["type"],
        reason="[redacted]" if redact else row["reason"],
        session_id=row["session_id"],
        evidence=None if redact else row["evidence"],
        priority=row["priority"],
        status=row["status"],
        admin_notes=None if redact else row["admin_notes"],
        handled_by=row["handled_by"],
        handled_at=row["handled_at"],
        withdraw_reason=row["withdraw_reason"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        reporter_name=None if redact else row["reporter_name"],
        reported_name=row["reported_name"],
        reported_role=ROLE_NAMES.get(row["reported_role_id"]),
    )


def insert_report(
    cursor: sqlite3.Cursor,
    reporter_id: Optional[int],
    reported_id: int,
    report_type: str,
    reason: str,
    session_id: Optional[str] = None,
    evidence: Optional[str] = None,
) -> int:
    """Insert a report with derived priority; notify admins when it is high."""
    priority = report_priority(report_type, reason)
    cursor.execute(
        """
        INSERT INTO reports (reporter_id, reported_id, type, reason, session_id, evidence, priority)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (reporter_id, reported_id, report_type, reason, session_id, evidence, priority),
    )
    report_id = cursor.lastrowid
    if priority == "high":
        NotificationService.create(
            cursor,
            role_id=ROLE_ADMIN,
            type="high_priority_report",
            title="High priority report",
            message=f"A {report_type.replace('_', ' ')} report needs attention.",
            data={"report_id": report_id, "reported_id": reported_id},
        )
    return report_id


class ReportService:

    @classmethod
    async def create(cls, reporter_id: int, data: ReportCreate) -> ReportRead:
        if data.reported_user_id == reporter_id:
            raise ValueError("You cannot report yourself")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM users WHERE id = ?", (data.reported_user_id,)).fetchone():
                raise ValueError(f"User {data.reported_user_id} not found")
            report_id = insert_report(
                cursor,
                reporter_id,
                data.reported_user_id,
                data.type,
                data.reason,
                data.session_id,
                data.evidence,
            )
            conn.commit()
            row = cursor.execute(f"{_SELECT} WHERE r.id = ?", (report_id,)).fetchone()
        finally:
            conn.close()
        logger.info(
            "Report %s filed by %s against %s (%s, %s priority)",
            report_id, reporter_id, data.reported_user_id, data.type, row["priority"],
        )
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=reporter_id,
            action="create",
            object_type="report",
            object_id=report_id,
            details={"type": data.type, "priority": row["priority"]},
        )
        return _row_to_report(row)

    @classmethod
    async def my_reports(cls, reporter_id: int) -> List[ReportRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"{_SELECT} WHERE r.reporter_id = ? ORDER BY r.created_at DESC, r.id DESC", (reporter_id,)
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_report(row) for row in rows]

    @classmethod
    async def reports_about(cls, user_id: int, requester: Dict[str, Any]) -> List[ReportRead]:
        is_admin = requester.get("role_id") == ROLE_ADMIN
        if not is_admin and requester.get("user_id") != user_id:
            raise ValueError("Not authorized to view reports about this user")
        conn = get_connection()
        try:
            rows = conn.execute(
                f"{_SELECT} WHERE r.reported_id = ? ORDER BY r.created_at DESC, r.id DESC", (user_id,)
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_report(row, redact=not is_admin) for row in rows]

    @classmethod
    async def update_own(cls, reporter_id: int, report_id: int, action: str, reason: str) -> ReportRead:
        """Withdraw a report or replace its reason; only the reporter may do this."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT reporter_id, type, status FROM reports WHERE id = ?", (report_id,)).fetchone()
            if not row:
                raise ValueError(f"Report {report_id} not found")
            if row["reporter_id"] != reporter_id:
                raise ValueError("Only the reporter can change this report")
            if row["status"] in CLOSED_STATUSES or row["status"] == "withdrawn":
                raise ValueError(f"Report {report_id} is {row['status']} and can no longer be changed")
            now = utc_now()
            if action == "withdraw":
                cursor.execute(
                    "UPDATE reports SET status = 'withdrawn', withdraw_reason = ?, withdrawn_at = ?, updated_at = ? WHERE id = ?",
                    (reason, now, now, report_id),
                )
            else:
                if len(reason) < 10:
                    raise ValueError("Reason must be at least 10 characters")
                cursor.execute(
                    "UPDATE reports SET reason = ?, priority = ?, updated_at = ? WHERE id = ?",
                    (reason, report_priority(row["type"], reason), now, report_id),
                )
            conn.commit()
            row = cursor.execute(f"{_SELECT} WHERE r.id = ?", (report_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Report %s %s by its reporter %s", report_id, "withdrawn" if action == "withdraw" else "updated", reporter_id)
        return _row_to_report(row)

    @classmethod
    async def stats(cls, user_id: int) -> Dict[str, Dict[str, int]]:
        conn = get_connection()
        try:
            created = conn.execute(
                "SELECT status, COUNT(*) AS n FROM reports WHERE reporter_id = ? GROUP BY status", (user_id,)
            ).fetchall()
            about = conn.execute(
                "SELECT status, COUNT(*) AS n FROM reports WHERE reported_id = ? GROUP BY status", (user_id,)
            ).fetchall()
        finally:
            conn.close()

        def _tally(rows: List[sqlite3.Row]) -> Dict[str, int]:
            counts = {row["status"]: row["n"] for row in rows}
            counts["total"] = sum(counts.values())
            return counts

        return {"created": _tally(created), "about_me": _tally(about)}

    @classmethod
    async def types(cls) -> ReportTypes:
        return ReportTypes(types=REPORT_TYPES, guidelines=REPORT_GUIDELINES)

    @classmethod
    async def list_reports(
        cls,
        report_type: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> ReportList:
        """Admin listing, newest first, with reporter and reported names."""
        where = []
        params: list = []
        for column, value in (("r.type", report_type), ("r.status", status), ("r.priority", priority)):
            if value:
                where.append(f"{column} = ?")
                params.append(value)
        where_sql = f" WHERE {' AND '.join(where)}" if where else ""
        conn = get_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) FROM reports r{where_sql}", tuple(params)).fetchone()[0]
            rows = conn.execute(
                f"{_SELECT}{where_sql} ORDER BY r.created_at DESC, r.id DESC LIMIT ? OFFSET ?",
                (*params, limit, (page - 1) * limit),
            ).fetchall()
        finally:
            conn.close()
        return ReportList(
            reports=[_row_to_report(row) for row in rows],
            pagination=Pagination(
                page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if total else 0
            ),
        )

    @classmethod
    async def update_status(
        cls, admin_id: int, report_id: int, status: str, admin_notes: Optional[str] = None
    ) -> ReportRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute("SELECT reporter_id, status FROM reports WHERE id = ?", (report_id,)).fetchone()
            if not row:
                raise ValueError(f"Report {report_id} not found")
            previous = row["status"]
            now = utc_now()
            cursor.execute(
                """
                UPDATE reports SET status = ?, admin_notes = COALESCE(?, admin_notes), handled_by = ?,
                    handled_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (status, admin_notes, admin_id, now, now, report_id),
            )
            if row["reporter_id"] is not None:
                NotificationService.create(
                    cursor,
                    user_id=row["reporter_id"],
                    type="report_status",
                    title="Report updated",
                    message=f"Your report #{report_id} is now {status}.",
                    data={"report_id": report_id},
                )
            conn.commit()
            row = cursor.execute(f"{_SELECT} WHERE r.id = ?", (report_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Report %s: %s -> %s by admin %s", report_id, previous, status, admin_id)
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=admin_id,
            action="update_status",
            object_type="report",
            object_id=report_id,
            details={"from": previous, "to": status},
        )
        return _row_to_report(row)

"""
Service layer for dashboard statistics.

Each role gets a dashboard of aggregate counts: administrators see the
whole system, college heads their own college, counsellors their
caseload and students their own bookings and assessments.  All
queries are read-only.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from zencare_api.app.core.db import get_connection
from zencare_api.app.core.security import (
    ROLE_ADMIN,
    ROLE_COLLEGE_HEAD,
    ROLE_COUNSELLOR,
    ROLE_NAMES,
    ROLE_STUDENT,
)
from zencare_api.app.services.appointment_service import upcoming_cutoff

logger = logging.getLogger(__name__)

APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled", "no_show")


def _since(**delta: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(**delta)).strftime("%Y-%m-%d %H:%M:%S")


class StatisticsService:
    """Aggregated counts for the role dashboards."""

    @classmethod
    async def admin_overview(cls) -> Dict[str, Any]:
        """Return system-wide metrics for administrators.

        Includes user counts per role, the two approval queues, activity
        over the last day and week, and the open crisis workload.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            users_by_role = {name: 0 for name in ROLE_NAMES.values()}
            for row in cursor.execute("SELECT role_id, COUNT(*) AS n FROM users GROUP BY role_id").fetchall():
                users_by_role[ROLE_NAMES.get(row["role_id"], str(row["role_id"]))] = row["n"]
            pending_counsellors = cursor.execute(
                "SELECT COUNT(*) FROM users WHERE role_id = ? AND approved = 0 AND blocked = 0",
                (ROLE_COUNSELLOR,),
            ).fetchone()[0]
            pending_head_requests = cursor.execute(
                "SELECT COUNT(*) FROM college_head_requests WHERE status = 'pending'"
            ).fetchone()[0]
            new_users = cursor.execute(
                "SELECT COUNT(*) FROM users WHERE created_at >= ?", (_since(hours=24),)
            ).fetchone()[0]
            week_ago = _since(days=7)
            recent_appointments = cursor.execute(
                "SELECT COUNT(*) FROM appointments WHERE booked_at >= ?", (week_ago,)
            ).fetchone()[0]
            recent_reports = cursor.execute(
                "SELECT COUNT(*) FROM reports WHERE created_at >= ?", (week_ago,)
            ).fetchone()[0]
            open_crisis_reports = cursor.execute(
                "SELECT COUNT(*) FROM reports WHERE type = 'crisis_detection' AND status IN ('open', 'investigating')"
            ).fetchone()[0]
            active_alerts = cursor.execute(
                "SELECT COUNT(*) FROM crisis_alerts WHERE status = 'active'"
            ).fetchone()[0]
            return {
                "users_total": sum(users_by_role.values()),
                "users_by_role": users_by_role,
                "pending_counsellor_approvals": pending_counsellors,
                "pending_college_head_requests": pending_head_requests,
                "new_users_24h": new_users,
                "appointments_7d": recent_appointments,
                "reports_7d": recent_reports,
                "open_crisis_reports": open_crisis_reports,
                "active_crisis_alerts": active_alerts,
            }
        finally:
            conn.close()

    @classmethod
    async def college_head_dashboard(cls, college_id: int) -> Dict[str, Any]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            students = cursor.execute(
                "SELECT COUNT(*) FROM users WHERE college_id = ? AND role_id = ?", (college_id, ROLE_STUDENT)
            ).fetchone()[0]
            counsellors = cursor.execute(
                "SELECT COUNT(*) FROM users WHERE college_id = ? AND role_id = ?", (college_id, ROLE_COUNSELLOR)
            ).fetchone()[0]
            pending_requests = cursor.execute(
                "SELECT COUNT(*) FROM counsellor_requests WHERE college_id = ? AND status = 'pending'",
                (college_id,),
            ).fetchone()[0]
            appointments = {status: 0 for status in APPOINTMENT_STATUSES}
            rows = cursor.execute(
                """
                SELECT a.status, COUNT(*) AS n FROM appointments a
                JOIN users c ON c.id = a.counsellor_id
                WHERE c.college_id = ?
                GROUP BY a.status
                """,
                (college_id,),
            ).fetchall()
            for row in rows:
                appointments[row["status"]] = row["n"]
            average_rating = cursor.execute(
                """
                SELECT AVG(p.rating) FROM counsellor_profiles p
                JOIN users u ON u.id = p.user_id
                WHERE u.college_id = ? AND p.total_reviews > 0
                """,
                (college_id,),
            ).fetchone()[0]
            open_reports = cursor.execute(
                """
                SELECT COUNT(*) FROM reports r JOIN users u ON u.id = r.reported_id
                WHERE u.college_id = ? AND r.status IN ('open', 'investigating')
                """,
                (college_id,),
            ).fetchone()[0]
            return {
                "college_id": college_id,
                "students": students,
                "counsellors": counsellors,
                "pending_counsellor_requests": pending_requests,
                "appointments_by_status": appointments,
                "average_counsellor_rating": round(average_rating, 1) if average_rating is not None else None,
                "open_reports": open_reports,
            }
        finally:
            conn.close()

    @classmethod
    async def counsellor_dashboard(cls, counsellor_id: int) -> Dict[str, Any]:
        cutoff = upcoming_cutoff()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                """
                SELECT COUNT(*) AS total,
                       SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) AS pending,
                       SUM(CASE WHEN status = 'confirmed' AND scheduled_at >= ? THEN 1 ELSE 0 END) AS upcoming,
                       SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed,
                       COUNT(DISTINCT student_id) AS students
                FROM appointments WHERE counsellor_id = ?
                """,
                (cutoff, counsellor_id),
            ).fetchone()
            profile = cursor.execute(
                "SELECT rating, total_reviews FROM counsellor_profiles WHERE user_id = ?", (counsellor_id,)
            ).fetchone()
            return {
                "total_appointments": row["total"],
                "pending_appointments": row["pending"] or 0,
                "upcoming_appointments": row["upcoming"] or 0,
                "completed_sessions": row["completed"] or 0,
                "distinct_students": row["students"],
                "rating": profile["rating"] if profile else 0.0,
                "total_reviews": profile["total_reviews"] if profile else 0,
            }
        finally:
            conn.close()

    @classmethod
    async def student_dashboard(cls, student: Dict[str, Any]) -> Dict[str, Any]:
        student_id = student.get("user_id")
        cutoff = upcoming_cutoff()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                """
                SELECT COUNT(*) AS total,
                       SUM(CASE WHEN status IN ('pending', 'confirmed') AND scheduled_at >= ? THEN 1 ELSE 0 END)
                           AS upcoming,
                       SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) AS completed
                FROM appointments WHERE student_id = ?
                """,
                (cutoff, student_id),
            ).fetchone()
            assessments = cursor.execute(
                "SELECT COUNT(*) FROM assessments WHERE student_id = ?", (student_id,)
            ).fetchone()[0]
            latest: Dict[str, Any] = {}
            for assessment_type in ("phq9", "gad7"):
                latest_row = cursor.execute(
                    """
                    SELECT severity FROM assessments WHERE student_id = ? AND type = ?
                    ORDER BY created_at DESC, id DESC LIMIT 1
                    """,
                    (student_id, assessment_type),
                ).fetchone()
                latest[assessment_type] = latest_row["severity"] if latest_row else None
        finally:
            conn.close()
        from zencare_api.app.services.counsellor_service import CounsellorService
        assigned = await CounsellorService.assigned_counsellor(student)
        return {
            "total_bookings": row["total"],
            "upcoming_bookings": row["upcoming"] or 0,
            "completed_sessions": row["completed"] or 0,
            "assessments_taken": assessments,
            "latest_phq9_severity": latest["phq9"],
            "latest_gad7_severity": latest["gad7"],
            "assigned_counsellor_id": assigned.id if assigned else None,
        }

    @classmethod
    async def for_user(cls, user: Dict[str, Any]) -> Dict[str, Any]:
        """Dashboard matching the caller's role."""
        role_id = user.get("role_id")
        if role_id == ROLE_ADMIN:
            data = await cls.admin_overview()
        elif role_id == ROLE_COLLEGE_HEAD:
            if not user.get("college_id"):
                raise ValueError("College head account is not linked to a college")
            data = await cls.college_head_dashboard(user["college_id"])
        elif role_id == ROLE_COUNSELLOR:
            data = await cls.counsellor_dashboard(user["user_id"])
        else:
            data = await cls.student_dashboard(user)
        return {"role": ROLE_NAMES.get(role_id, "student"), **data}

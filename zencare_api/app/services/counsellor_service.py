"""
Counsellor directory, profiles, availability and approval.

A counsellor is *visible* to students only when the account is an
approved, unblocked counsellor and the profile is approved and active.
The approval toggle keeps ``users.approved`` and
``counsellor_profiles.approved`` in step.
"""

import json
import logging
import random
import sqlite3
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from zencare_api.app.core.db import get_connection, load_json, utc_now
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_COLLEGE_HEAD, ROLE_COUNSELLOR, ROLE_STUDENT
from zencare_api.app.schemas.counsellor import CounsellorProfileUpdate, CounsellorRead, ScheduleUpdate
from zencare_api.app.services import slots
from zencare_api.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

VISIBLE_SQL = (
    f"u.role_id = {ROLE_COUNSELLOR} AND u.approved = 1 AND u.blocked = 0 AND p.approved = 1 AND p.is_active = 1"
)

_SELECT = """
    SELECT u.id, u.name, u.email, u.college_id, u.approved,
           p.specializations, p.languages, p.qualifications, p.experience, p.bio,
           p.session_modes, p.session_duration, p.instant_booking, p.emergency_available,
           p.is_active, p.schedule, p.rating, p.total_reviews, p.last_booking_at
    FROM users u JOIN counsellor_profiles p ON p.user_id = u.id
"""

SORT_KEYS = {"rating", "experience", "name"}


def row_to_counsellor(row: sqlite3.Row) -> CounsellorRead:
    from zencare_api.app.core.config import settings

    return CounsellorRead(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        college_id=row["college_id"],
        approved=bool(row["approved"]),
        specializations=load_json(row["specializations"], []),
        languages=load_json(row["languages"], []),
        qualifications=load_json(row["qualifications"], []),
        experience=row["experience"],
        bio=row["bio"],
        session_modes=load_json(row["session_modes"], []),
        session_duration=row["session_duration"] or settings.session_duration_minutes,
        instant_booking=bool(row["instant_booking"]),
        emergency_available=bool(row["emergency_available"]),
        is_active=bool(row["is_active"]),
        schedule=load_json(row["schedule"], {}),
        rating=round(row["rating"] or 0.0, 1),
        total_reviews=row["total_reviews"] or 0,
        last_booking_at=row["last_booking_at"],
    )


def _experience_years(value: Optional[str]) -> float:
    digits = "".join(ch if ch.isdigit() or ch == "." else " " for ch in value or "").split()
    try:
        return float(digits[0]) if digits else 0.0
    except ValueError:
        return 0.0


def _contains(values: List[str], needle: str) -> bool:
    needle = needle.strip().lower()
    return any(needle in value.lower() for value in values)


def load_visible(cursor: sqlite3.Cursor, counsellor_id: int) -> CounsellorRead:
    row = cursor.execute(f"{_SELECT} WHERE u.id = ? AND {VISIBLE_SQL}", (counsellor_id,)).fetchone()
    if not row:
        raise ValueError(f"Counsellor {counsellor_id} not found")
    return row_to_counsellor(row)


def booked_intervals(cursor: sqlite3.Cursor, counsellor_id: int, first: date, last: date) -> List[slots.Booking]:
    """Pending and confirmed sessions that may overlap ``first``..``last``."""
    rows = cursor.execute(
        """
        SELECT scheduled_at, duration FROM appointments
        WHERE counsellor_id = ? AND status IN ('pending', 'confirmed')
          AND scheduled_at >= ? AND scheduled_at < ?
        """,
        (counsellor_id, (first - timedelta(days=1)).isoformat(), (last + timedelta(days=1)).isoformat()),
    ).fetchall()
    return [(datetime.fromisoformat(row["scheduled_at"]), row["duration"]) for row in rows]


def _check_manage(requester: Dict[str, Any], counsellor_id: int) -> None:
    if requester.get("role_id") == ROLE_ADMIN or requester.get("user_id") == counsellor_id:
        return
    raise ValueError("Only the counsellor or an admin can change this profile")


class CounsellorService:

    @classmethod
    async def search(
        cls,
        requester: Optional[Dict[str, Any]] = None,
        college_id: Optional[int] = None,
        specialization: Optional[str] = None,
        language: Optional[str] = None,
        session_mode: Optional[str] = None,
        emergency_available: Optional[bool] = None,
        instant_booking: Optional[bool] = None,
        sort_by: str = "rating",
        order: str = "desc",
    ) -> List[CounsellorRead]:
        """Search visible counsellors.

        Students that belong to a college only ever see that college's
        counsellors, whatever ``college_id`` they pass.  List-valued
        profile fields are matched case-insensitively by substring.
        """
        if requester and requester.get("role_id") == ROLE_STUDENT and requester.get("college_id"):
            college_id = requester["college_id"]
        query = f"{_SELECT} WHERE {VISIBLE_SQL}"
        params: list = []
        if college_id is not None:
            query += " AND u.college_id = ?"
            params.append(college_id)
        if emergency_available is not None:
            query += " AND p.emergency_available = ?"
            params.append(int(emergency_available))
        if instant_booking is not None:
            query += " AND p.instant_booking = ?"
            params.append(int(instant_booking))
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        counsellors = [row_to_counsellor(row) for row in rows]
        if specialization:
            counsellors = [c for c in counsellors if _contains(c.specializations, specialization)]
        if language:
            counsellors = [c for c in counsellors if _contains(c.languages, language)]
        if session_mode:
            counsellors = [c for c in counsellors if session_mode in c.session_modes]

        sort_key = sort_by if sort_by in SORT_KEYS else "rating"
        reverse = order.lower() != "asc"
        if sort_key == "rating":
            counsellors.sort(key=lambda c: (c.rating, c.total_reviews), reverse=reverse)
        elif sort_key == "experience":
            counsellors.sort(key=lambda c: _experience_years(c.experience), reverse=reverse)
        else:
            counsellors.sort(key=lambda c: (c.name or "").lower(), reverse=reverse)
        return counsellors

    @classmethod
    async def get_counsellor(cls, counsellor_id: int, visible_only: bool = True) -> CounsellorRead:
        conn = get_connection()
        try:
            if visible_only:
                return load_visible(conn.cursor(), counsellor_id)
            row = conn.execute(f"{_SELECT} WHERE u.id = ? AND u.role_id = ?", (counsellor_id, ROLE_COUNSELLOR)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Counsellor {counsellor_id} not found")
        return row_to_counsellor(row)

    @classmethod
    async def random_counsellor(cls, college_id: Optional[int] = None) -> Optional[CounsellorRead]:
        candidates = await cls.search(college_id=college_id)
        return random.choice(candidates) if candidates else None

    @classmethod
    async def assigned_counsellor(cls, student: Dict[str, Any]) -> Optional[CounsellorRead]:
        """A visible counsellor from the student's college, or ``None``.

        The pick is random but seeded by the student id, so the same
        student keeps the same counsellor while the candidate set is
        unchanged.
        """
        if not student.get("college_id"):
            return None
        candidates = sorted(await cls.search(college_id=student["college_id"]), key=lambda c: c.id)
        if not candidates:
            return None
        return random.Random(student.get("user_id")).choice(candidates)

    @classmethod
    async def update_profile(
        cls, requester: Dict[str, Any], counsellor_id: int, update: CounsellorProfileUpdate
    ) -> CounsellorRead:
        _check_manage(requester, counsellor_id)
        fields = update.model_dump(exclude_unset=True)
        for key in ("specializations", "languages", "qualifications", "session_modes"):
            if key in fields:
                fields[key] = json.dumps(fields[key] or [])
        for key in ("instant_booking", "emergency_available", "is_active"):
            if fields.get(key) is not None:
                fields[key] = int(fields[key])
        fields = {key: value for key, value in fields.items() if value is not None}
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM counsellor_profiles WHERE user_id = ?", (counsellor_id,)).fetchone():
                raise ValueError(f"Counsellor {counsellor_id} not found")
            if fields:
                assignments = ", ".join(f"{column} = ?" for column in fields)
                cursor.execute(
                    f"UPDATE counsellor_profiles SET {assignments}, updated_at = ? WHERE user_id = ?",
                    (*fields.values(), utc_now(), counsellor_id),
                )
                conn.commit()
            row = cursor.execute(f"{_SELECT} WHERE u.id = ?", (counsellor_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Counsellor %s profile updated by %s", counsellor_id, requester.get("user_id"))
        return row_to_counsellor(row)

    @classmethod
    async def update_schedule(
        cls, requester: Dict[str, Any], counsellor_id: int, update: ScheduleUpdate
    ) -> CounsellorRead:
        """Replace the weekly schedule; slots arrive validated, de-duplicated and sorted."""
        _check_manage(requester, counsellor_id)
        schedule = {day: entry.model_dump() for day, entry in update.schedule.items()}
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE counsellor_profiles SET schedule = ?, updated_at = ? WHERE user_id = ?",
                (json.dumps(schedule), utc_now(), counsellor_id),
            )
            if cursor.rowcount == 0:
                raise ValueError(f"Counsellor {counsellor_id} not found")
            conn.commit()
            row = cursor.execute(f"{_SELECT} WHERE u.id = ?", (counsellor_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Counsellor %s schedule updated", counsellor_id)
        return row_to_counsellor(row)

    @classmethod
    async def week_slots(
        cls, counsellor_id: int, week_of: Optional[date] = None, now: Optional[datetime] = None
    ) -> Dict[str, Dict[str, Any]]:
        now = now or slots.local_now()
        week_of = week_of or now.date()
        first = slots.start_of_week(week_of)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            counsellor = load_visible(cursor, counsellor_id)
            booked = booked_intervals(cursor, counsellor_id, first, first + timedelta(days=6))
        finally:
            conn.close()
        schedule = {day: entry.model_dump() for day, entry in counsellor.schedule.items()}
        return slots.week_slots(schedule, week_of, now, booked, counsellor.session_duration)

    @classmethod
    async def day_slots(
        cls, counsellor_id: int, day: date, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        now = now or slots.local_now()
        conn = get_connection()
        try:
            cursor = conn.cursor()
            counsellor = load_visible(cursor, counsellor_id)
            booked = booked_intervals(cursor, counsellor_id, day, day)
        finally:
            conn.close()
        schedule = {name: entry.model_dump() for name, entry in counsellor.schedule.items()}
        return slots.day_slots(schedule, day, now, booked, counsellor.session_duration)

    @classmethod
    async def pending_approvals(cls) -> List[CounsellorRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"{_SELECT} WHERE u.role_id = ? AND u.approved = 0 AND u.blocked = 0 ORDER BY u.created_at",
                (ROLE_COUNSELLOR,),
            ).fetchall()
        finally:
            conn.close()
        return [row_to_counsellor(row) for row in rows]

    @classmethod
    async def set_approval(
        cls, requester: Dict[str, Any], counsellor_id: int, approved: bool, reason: Optional[str] = None
    ) -> CounsellorRead:
        """Toggle the approval flag on the account and the profile together."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            user = cursor.execute(
                "SELECT id, college_id FROM users WHERE id = ? AND role_id = ?", (counsellor_id, ROLE_COUNSELLOR)
            ).fetchone()
            if not user:
                raise ValueError(f"Counsellor {counsellor_id} not found")
            is_admin = requester.get("role_id") == ROLE_ADMIN
            is_head = (
                requester.get("role_id") == ROLE_COLLEGE_HEAD
                and user["college_id"] is not None
                and requester.get("college_id") == user["college_id"]
            )
            if not (is_admin or is_head):
                raise ValueError("Only an admin or the counsellor's college head can change approval")
            now = utc_now()
            cursor.execute(
                "UPDATE users SET approved = ?, approved_at = ?, approved_by = ?, updated_at = ? WHERE id = ?",
                (int(approved), now if approved else None, requester.get("user_id") if approved else None, now, counsellor_id),
            )
            cursor.execute(
                "UPDATE counsellor_profiles SET approved = ?, updated_at = ? WHERE user_id = ?",
                (int(approved), now, counsellor_id),
            )
            if cursor.rowcount == 0:
                from zencare_api.app.services.user_service import insert_counsellor_profile
                insert_counsellor_profile(cursor, counsellor_id, approved=approved)
            NotificationService.create(
                cursor,
                user_id=counsellor_id,
                type="counsellor_approved" if approved else "counsellor_unapproved",
                title="Profile approved" if approved else "Profile approval withdrawn",
                message=(
                    "Your counsellor profile is approved and visible to students."
                    if approved
                    else f"Your counsellor profile is hidden from students. Reason: {reason or 'not specified'}"
                ),
            )
            conn.commit()
            row = cursor.execute(f"{_SELECT} WHERE u.id = ?", (counsellor_id,)).fetchone()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to change approval of counsellor %s: %s", counsellor_id, e)
            raise
        finally:
            conn.close()
        logger.info("Counsellor %s approval set to %s by %s", counsellor_id, approved, requester.get("user_id"))
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=requester.get("user_id"),
            action="approve" if approved else "unapprove",
            object_type="counsellor",
            object_id=counsellor_id,
            details={"reason": reason} if reason else None,
        )
        return row_to_counsellor(row)

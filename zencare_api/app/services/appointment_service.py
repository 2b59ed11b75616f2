"""
Business logic for counselling appointments.

Booking runs inside a ``BEGIN IMMEDIATE`` transaction: the free-slot
check, the overlap check and the insert happen under SQLite's write
lock, so two students cannot take the same slot.  The free slots are
computed by ``services.slots`` exactly as the availability endpoints
compute them.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional

from zencare_api.app.core.db import get_connection, utc_now
from zencare_api.app.core.security import ROLE_ADMIN
from zencare_api.app.schemas.appointment import AppointmentCreate, AppointmentRead
from zencare_api.app.services import slots
from zencare_api.app.services.counsellor_service import booked_intervals, load_visible
from zencare_api.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = ("pending", "confirmed")

TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled", "no_show"},
    "completed": set(),
    "cancelled": set(),
    "no_show": set(),
}

_SELECT = """
    SELECT a.*, s.name AS student_name, c.name AS counsellor_name
    FROM appointments a
    JOIN users s ON s.id = a.student_id
    JOIN users c ON c.id = a.counsellor_id
"""


def _row_to_appointment(row: sqlite3.Row) -> AppointmentRead:
    return AppointmentRead(
        id=row["id"],
        student_id=row["student_id"],
        counsellor_id=row["counsellor_id"],
        student_name=row["student_name"],
        counsellor_name=row["counsellor_name"],
        scheduled_at=row["scheduled_at"],
        duration=row["duration"],
        session_type=row["session_type"],
        session_mode=row["session_mode"],
        student_notes=row["student_notes"],
        is_emergency=bool(row["is_emergency"]),
        status=row["status"],
        counsellor_notes=row["counsellor_notes"],
        cancellation_reason=row["cancellation_reason"],
        cancelled_at=row["cancelled_at"],
        booked_at=row["booked_at"],
        updated_at=row["updated_at"],
    )


def _fetch(cursor: sqlite3.Cursor, appointment_id: int) -> sqlite3.Row:
    row = cursor.execute(f"{_SELECT} WHERE a.id = ?", (appointment_id,)).fetchone()
    if not row:
        raise ValueError(f"Appointment {appointment_id} not found")
    return row


class AppointmentService:
    """Service for booking and managing appointments."""

    @classmethod
    async def book(
        cls, student: Dict[str, Any], data: AppointmentCreate, now: Optional[datetime] = None
    ) -> AppointmentRead:
        """Book a session with a visible counsellor.

        The requested ``time`` must be one of the free slots for
        ``date`` (future, on the weekly schedule, not already held).
        The appointment is ``confirmed`` straight away when the
        counsellor offers instant booking, otherwise ``pending``.
        """
        now = now or slots.local_now()
        student_id = student.get("user_id")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            counsellor = load_visible(cursor, data.counsellor_id)
            if student.get("college_id") and counsellor.college_id not in (None, student["college_id"]):
                raise ValueError("Only counsellors from your college can be booked")
            if counsellor.session_modes and data.session_mode not in counsellor.session_modes:
                raise ValueError(
                    f"Session mode '{data.session_mode}' is not offered; choose one of {', '.join(counsellor.session_modes)}"
                )
            duration = counsellor.session_duration
            booked = booked_intervals(cursor, counsellor.id, data.date, data.date)
            schedule = {day: entry.model_dump() for day, entry in counsellor.schedule.items()}
            free = slots.day_slots(schedule, data.date, now, booked, duration)
            if data.time not in free["slots"]:
                raise ValueError(f"Slot {data.time} on {data.date.isoformat()} is not available")

            start = datetime.combine(data.date, slots.parse_slot(data.time))
            if any(slots.overlaps(start, duration, other, minutes) for other, minutes in booked):
                raise ValueError("Counsellor already has an appointment at that time")

            status = "confirmed" if counsellor.instant_booking else "pending"
            booked_at = utc_now()
            cursor.execute(
                """
                INSERT INTO appointments (
                    student_id, counsellor_id, scheduled_at, duration, session_type, session_mode,
                    student_notes, is_emergency, status, booked_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    student_id,
                    counsellor.id,
                    start.isoformat(),
                    duration,
                    data.session_type,
                    data.session_mode,
                    data.student_notes,
                    int(data.is_emergency),
                    status,
                    booked_at,
                    booked_at,
                ),
            )
            appointment_id = cursor.lastrowid
            cursor.execute(
                "UPDATE counsellor_profiles SET last_booking_at = ? WHERE user_id = ?",
                (booked_at, counsellor.id),
            )
            NotificationService.create(
                cursor,
                user_id=counsellor.id,
                type="appointment_booked",
                title="Emergency session booked" if data.is_emergency else "New appointment",
                message=f"A student booked a {data.session_type} session on {data.date.isoformat()} at {data.time}.",
                data={"appointment_id": appointment_id, "status": status},
            )
            conn.commit()
            row = _fetch(cursor, appointment_id)
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info(
            "Appointment %s booked by student %s with counsellor %s at %s (%s)",
            appointment_id, student_id, counsellor.id, start.isoformat(), status,
        )
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=student_id,
            action="create",
            object_type="appointment",
            object_id=appointment_id,
            details={"counsellor_id": counsellor.id, "scheduled_at": start.isoformat(), "status": status},
        )
        return _row_to_appointment(row)

    @classmethod
    async def list_for_student(
        cls, student_id: int, status: Optional[str] = None, limit: int = 50
    ) -> List[AppointmentRead]:
        query = f"{_SELECT} WHERE a.student_id = ?"
        params: list = [student_id]
        if status:
            query += " AND a.status = ?"
            params.append(status)
        query += " ORDER BY a.scheduled_at DESC LIMIT ?"
        params.append(limit)
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_appointment(row) for row in rows]

    @classmethod
    async def list_for_counsellor(
        cls, counsellor_id: int, status: Optional[str] = None, day: Optional[str] = None
    ) -> List[AppointmentRead]:
        query = f"{_SELECT} WHERE a.counsellor_id = ?"
        params: list = [counsellor_id]
        if status:
            query += " AND a.status = ?"
            params.append(status)
        if day:
            query += " AND substr(a.scheduled_at, 1, 10) = ?"
            params.append(day)
        query += " ORDER BY a.scheduled_at ASC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_appointment(row) for row in rows]

    @classmethod
    async def get(cls, appointment_id: int, requester: Dict[str, Any]) -> AppointmentRead:
        conn = get_connection()
        try:
            row = _fetch(conn.cursor(), appointment_id)
        finally:
            conn.close()
        if requester.get("role_id") != ROLE_ADMIN and requester.get("user_id") not in (
            row["student_id"],
            row["counsellor_id"],
        ):
            raise ValueError("Not authorized to view this appointment")
        return _row_to_appointment(row)

    @classmethod
    async def update_status(
        cls, appointment_id: int, requester: Dict[str, Any], status: str, notes: Optional[str] = None
    ) -> AppointmentRead:
        """Move an appointment along its lifecycle and notify the student."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = _fetch(cursor, appointment_id)
            if requester.get("role_id") != ROLE_ADMIN and requester.get("user_id") != row["counsellor_id"]:
                raise ValueError("Only the counsellor or an admin can update this appointment")
            current = row["status"]
            if status not in TRANSITIONS.get(current, set()):
                raise ValueError(f"Cannot change appointment status from {current} to {status}")
            now = utc_now()
            if status == "cancelled":
                cursor.execute(
                    """
                    UPDATE appointments SET status = ?, counsellor_notes = COALESCE(?, counsellor_notes),
                        cancellation_reason = ?, cancelled_at = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (status, notes, notes, now, now, appointment_id),
                )
            else:
                cursor.execute(
                    """
                    UPDATE appointments SET status = ?, counsellor_notes = COALESCE(?, counsellor_notes), updated_at = ?
                    WHERE id = ?
                    """,
                    (status, notes, now, appointment_id),
                )
            NotificationService.create(
                cursor,
                user_id=row["student_id"],
                type=f"appointment_{status}",
                title=f"Appointment {status.replace('_', ' ')}",
                message=f"Your appointment with {row['counsellor_name']} on {row['scheduled_at']} is now {status.replace('_', ' ')}.",
                data={"appointment_id": appointment_id},
            )
            conn.commit()
            row = _fetch(cursor, appointment_id)
        finally:
            conn.close()
        logger.info("Appointment %s: %s -> %s by %s", appointment_id, current, status, requester.get("user_id"))
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=requester.get("user_id"),
            action="update_status",
            object_type="appointment",
            object_id=appointment_id,
            details={"from": current, "to": status},
        )
        return _row_to_appointment(row)

    @classmethod
    async def cancel(
        cls, appointment_id: int, requester: Dict[str, Any], reason: Optional[str] = None
    ) -> AppointmentRead:
        """Cancel a pending or confirmed appointment on behalf of either participant."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = _fetch(cursor, appointment_id)
            user_id = requester.get("user_id")
            if user_id not in (row["student_id"], row["counsellor_id"]):
                raise ValueError("Only a participant can cancel this appointment")
            if row["status"] not in ACTIVE_STATUSES:
                raise ValueError(f"Cannot cancel an appointment that is {row['status']}")
            now = utc_now()
            cursor.execute(
                """
                UPDATE appointments SET status = 'cancelled', cancellation_reason = ?, cancelled_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (reason, now, now, appointment_id),
            )
            other = row["counsellor_id"] if user_id == row["student_id"] else row["student_id"]
            NotificationService.create(
                cursor,
                user_id=other,
                type="appointment_cancelled",
                title="Appointment cancelled",
                message=f"The appointment on {row['scheduled_at']} was cancelled. Reason: {reason or 'not specified'}",
                data={"appointment_id": appointment_id},
            )
            conn.commit()
            row = _fetch(cursor, appointment_id)
        finally:
            conn.close()
        logger.info("Appointment %s cancelled by %s", appointment_id, user_id)
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=user_id,
            action="cancel",
            object_type="appointment",
            object_id=appointment_id,
            details={"reason": reason} if reason else None,
        )
        return _row_to_appointment(row)

    @staticmethod
    def expire_stale(cursor: sqlite3.Cursor, now: datetime) -> int:
        """Cancel pending appointments whose start time has passed."""
        stamp = utc_now()
        cursor.execute(
            """
            UPDATE appointments SET status = 'cancelled', cancellation_reason = 'expired',
                cancelled_at = ?, updated_at = ?
            WHERE status = 'pending' AND scheduled_at < ?
            """,
            (stamp, stamp, now.replace(microsecond=0).isoformat()),
        )
        return cursor.rowcount


def upcoming_cutoff(now: Optional[datetime] = None) -> str:
    """ISO local timestamp used to split upcoming from past sessions."""
    return (now or slots.local_now()).replace(microsecond=0).isoformat()


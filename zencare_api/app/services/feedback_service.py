"""
Counsellor feedback and rating aggregation.

A counsellor's ``rating`` is the mean of all non-reported feedback
ratings rounded to one decimal, and ``total_reviews`` is their count.
Both are recomputed from the feedback table inside the same
``BEGIN IMMEDIATE`` transaction as the write that changes them, so
concurrent submissions never leave a stale average behind.
"""

import logging
import sqlite3
from typing import Dict, List, Tuple

from zencare_api.app.core.db import get_connection
from zencare_api.app.core.security import ROLE_COUNSELLOR
from zencare_api.app.schemas.feedback import FeedbackCreate, FeedbackRead, RatingSummary

logger = logging.getLogger(__name__)


def recompute_rating(cursor: sqlite3.Cursor, counsellor_id: int) -> Tuple[float, int]:
    """Recalculate and store a counsellor's aggregate rating.

    Must be called inside the caller's write transaction.
    """
    row = cursor.execute(
        "SELECT COUNT(*) AS total, COALESCE(SUM(rating), 0) AS rating_sum FROM feedback "
        "WHERE counsellor_id = ? AND reported = 0",
        (counsellor_id,),
    ).fetchone()
    total = row["total"]
    rating = round(row["rating_sum"] / total, 1) if total else 0.0
    cursor.execute(
        "UPDATE counsellor_profiles SET rating = ?, total_reviews = ? WHERE user_id = ?",
        (rating, total, counsellor_id),
    )
    return rating, total


def _row_to_feedback(row: sqlite3.Row, reveal_student: bool = True) -> FeedbackRead:
    anonymous = bool(row["anonymous"])
    return FeedbackRead(
        id=row["id"],
        counsellor_id=row["counsellor_id"],
        student_id=None if anonymous and not reveal_student else row["student_id"],
        appointment_id=row["appointment_id"],
        rating=row["rating"],
        comment=row["comment"],
        anonymous=anonymous,
        helpful=row["helpful"],
        reported=bool(row["reported"]),
        created_at=row["created_at"],
    )


class FeedbackService:

    @classmethod
    async def submit(cls, student_id: int, data: FeedbackCreate) -> FeedbackRead:
        """Store feedback and refresh the counsellor's aggregate rating.

        When ``appointment_id`` is given the appointment must belong to
        this student and counsellor, be completed and not yet rated.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            if not cursor.execute(
                "SELECT 1 FROM users WHERE id = ? AND role_id = ?", (data.counsellor_id, ROLE_COUNSELLOR)
            ).fetchone():
                raise ValueError(f"Counsellor {data.counsellor_id} not found")
            if data.appointment_id is not None:
                appointment = cursor.execute(
                    "SELECT student_id, counsellor_id, status FROM appointments WHERE id = ?",
                    (data.appointment_id,),
                ).fetchone()
                if not appointment:
                    raise ValueError(f"Appointment {data.appointment_id} not found")
                if appointment["student_id"] != student_id or appointment["counsellor_id"] != data.counsellor_id:
                    raise ValueError("Not authorized to rate this appointment")
                if appointment["status"] != "completed":
                    raise ValueError("Appointment must be completed before it can be rated")
                if cursor.execute(
                    "SELECT 1 FROM feedback WHERE appointment_id = ?", (data.appointment_id,)
                ).fetchone():
                    raise ValueError(f"Feedback for appointment {data.appointment_id} already exists")
            cursor.execute(
                """
                INSERT INTO feedback (counsellor_id, student_id, appointment_id, rating, comment, anonymous)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    data.counsellor_id,
                    student_id,
                    data.appointment_id,
                    data.rating,
                    data.comment,
                    int(data.anonymous),
                ),
            )
            feedback_id = cursor.lastrowid
            rating, total = recompute_rating(cursor, data.counsellor_id)
            conn.commit()
            row = cursor.execute("SELECT * FROM feedback WHERE id = ?", (feedback_id,)).fetchone()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info(
            "Feedback %s for counsellor %s: rating now %.1f over %s reviews",
            feedback_id, data.counsellor_id, rating, total,
        )
        return _row_to_feedback(row)

    @classmethod
    async def list_for_counsellor(cls, counsellor_id: int, limit: int = 20) -> List[FeedbackRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT * FROM feedback WHERE counsellor_id = ? AND reported = 0
                ORDER BY created_at DESC, id DESC LIMIT ?
                """,
                (counsellor_id, limit),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_feedback(row, reveal_student=False) for row in rows]

    @classmethod
    async def mark_helpful(cls, feedback_id: int) -> FeedbackRead:
        conn = get_connection()
        try:
            cursor = conn.execute("UPDATE feedback SET helpful = helpful + 1 WHERE id = ?", (feedback_id,))
            if cursor.rowcount == 0:
                raise ValueError(f"Feedback {feedback_id} not found")
            conn.commit()
            row = conn.execute("SELECT * FROM feedback WHERE id = ?", (feedback_id,)).fetchone()
        finally:
            conn.close()
        return _row_to_feedback(row, reveal_student=False)

    @classmethod
    async def flag(cls, admin_id: int, feedback_id: int, reported: bool) -> FeedbackRead:
        """Hide or restore a feedback entry and re-run the aggregation."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            row = cursor.execute("SELECT counsellor_id FROM feedback WHERE id = ?", (feedback_id,)).fetchone()
            if not row:
                raise ValueError(f"Feedback {feedback_id} not found")
            cursor.execute("UPDATE feedback SET reported = ? WHERE id = ?", (int(reported), feedback_id))
            recompute_rating(cursor, row["counsellor_id"])
            conn.commit()
            row = cursor.execute("SELECT * FROM feedback WHERE id = ?", (feedback_id,)).fetchone()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info("Feedback %s reported=%s by %s", feedback_id, reported, admin_id)
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=admin_id,
            action="flag" if reported else "unflag",
            object_type="feedback",
            object_id=feedback_id,
        )
        return _row_to_feedback(row)

    @classmethod
    async def summary(cls, counsellor_id: int) -> RatingSummary:
        conn = get_connection()
        try:
            profile = conn.execute(
                "SELECT rating, total_reviews FROM counsellor_profiles WHERE user_id = ?", (counsellor_id,)
            ).fetchone()
            if not profile:
                raise ValueError(f"Counsellor {counsellor_id} not found")
            rows = conn.execute(
                "SELECT rating, COUNT(*) AS n FROM feedback WHERE counsellor_id = ? AND reported = 0 GROUP BY rating",
                (counsellor_id,),
            ).fetchall()
        finally:
            conn.close()
        distribution: Dict[int, int] = {stars: 0 for stars in range(1, 6)}
        for row in rows:
            distribution[row["rating"]] = row["n"]
        return RatingSummary(
            counsellor_id=counsellor_id,
            rating=profile["rating"],
            total_reviews=profile["total_reviews"],
            distribution=distribution,
        )

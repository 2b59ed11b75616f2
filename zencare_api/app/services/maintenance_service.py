"""
One-shot data repair operations for administrators.

Every operation is idempotent: running it twice in a row touches no
rows the second time.  Each returns the number of rows it changed and
writes an audit record.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from zencare_api.app.core.db import get_connection, utc_now
from zencare_api.app.core.security import ROLE_COUNSELLOR
from zencare_api.app.services import slots
from zencare_api.app.services.appointment_service import AppointmentService
from zencare_api.app.services.audit_service import AuditService
from zencare_api.app.services.feedback_service import recompute_rating
from zencare_api.app.services.user_service import insert_counsellor_profile

logger = logging.getLogger(__name__)


class MaintenanceService:

    @classmethod
    async def _finish(cls, admin_id: int, operation: str, touched: int) -> int:
        logger.info("Maintenance %s touched %s rows", operation, touched)
        await AuditService.log(
            user_id=admin_id,
            action=operation,
            object_type="maintenance",
            details={"rows": touched},
        )
        return touched

    @classmethod
    async def sync_counsellor_profiles(cls, admin_id: int) -> int:
        """Create the missing profile row for every counsellor account."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            rows = cursor.execute(
                """
                SELECT u.id, u.approved FROM users u
                LEFT JOIN counsellor_profiles p ON p.user_id = u.id
                WHERE u.role_id = ? AND p.user_id IS NULL
                """,
                (ROLE_COUNSELLOR,),
            ).fetchall()
            for row in rows:
                insert_counsellor_profile(cursor, row["id"], approved=bool(row["approved"]))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to sync counsellor profiles: %s", e)
            raise
        finally:
            conn.close()
        return await cls._finish(admin_id, "sync_counsellor_profiles", len(rows))

    @classmethod
    async def sync_approval_flags(cls, admin_id: int) -> int:
        """Copy ``users.approved`` onto profiles whose flag has drifted."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                UPDATE counsellor_profiles
                SET approved = (SELECT u.approved FROM users u WHERE u.id = counsellor_profiles.user_id),
                    updated_at = ?
                WHERE approved != (SELECT u.approved FROM users u WHERE u.id = counsellor_profiles.user_id)
                """,
                (utc_now(),),
            )
            touched = cursor.rowcount
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to sync approval flags: %s", e)
            raise
        finally:
            conn.close()
        return await cls._finish(admin_id, "sync_approval_flags", touched)

    @classmethod
    async def recompute_ratings(cls, admin_id: int) -> int:
        """Re-run rating aggregation for every counsellor; counts changed profiles."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            profiles = cursor.execute(
                "SELECT user_id, rating, total_reviews FROM counsellor_profiles"
            ).fetchall()
            touched = 0
            for profile in profiles:
                rating, total = recompute_rating(cursor, profile["user_id"])
                if rating != round(profile["rating"] or 0.0, 1) or total != profile["total_reviews"]:
                    touched += 1
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to recompute ratings: %s", e)
            raise
        finally:
            conn.close()
        return await cls._finish(admin_id, "recompute_ratings", touched)

    @classmethod
    async def expire_stale_appointments(cls, admin_id: int, now: Optional[datetime] = None) -> int:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            touched = AppointmentService.expire_stale(cursor, now or slots.local_now())
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to expire stale appointments: %s", e)
            raise
        finally:
            conn.close()
        return await cls._finish(admin_id, "expire_stale_appointments", touched)

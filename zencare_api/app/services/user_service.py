"""
Business logic for user accounts.

The ``UserService`` handles self-service registration, credential
checks, profile reads and updates, and the admin-only account
management operations (listing, blocking and complete deletion).
Passwords are stored as PBKDF2 hashes produced by ``core.security``.
"""

import json
import logging
import math
import sqlite3
from typing import Any, Dict, Optional

from zencare_api.app.core.db import get_connection, utc_now
from zencare_api.app.core.security import (
    ROLE_ADMIN,
    ROLE_COUNSELLOR,
    ROLE_IDS,
    ROLE_NAMES,
    hash_password,
    verify_password,
)
from zencare_api.app.schemas.user import Pagination, UserCreate, UserList, UserRead, UserUpdate

logger = logging.getLogger(__name__)

USER_COLUMNS = (
    "id, email, name, role_id, approved, blocked, block_reason, college_id, university, phone, created_at"
)


def row_to_user(row: sqlite3.Row) -> UserRead:
    return UserRead(
        id=row["id"],
        email=row["email"],
        name=row["name"],
        role=ROLE_NAMES.get(row["role_id"], "unknown"),
        approved=bool(row["approved"]),
        blocked=bool(row["blocked"]),
        block_reason=row["block_reason"],
        college_id=row["college_id"],
        university=row["university"],
        phone=row["phone"],
        created_at=row["created_at"],
    )


def insert_counsellor_profile(cursor: sqlite3.Cursor, user_id: int, approved: bool = False, **fields: Any) -> None:
    """Create the profile row that accompanies every counsellor account."""
    from zencare_api.app.core.config import settings

    cursor.execute(
        """
        INSERT OR IGNORE INTO counsellor_profiles (
            user_id, specializations, languages, qualifications, experience,
            session_modes, session_duration, approved, schedule
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            user_id,
            json.dumps(fields.get("specializations", [])),
            json.dumps(fields.get("languages", ["English"])),
            json.dumps(fields.get("qualifications", [])),
            fields.get("experience"),
            json.dumps(fields.get("session_modes", ["video", "audio", "chat"])),
            fields.get("session_duration", settings.session_duration_minutes),
            int(approved),
            json.dumps(fields.get("schedule", {})),
        ),
    )


class UserService:
    """Service for user accounts."""

    @classmethod
    async def register(cls, data: UserCreate) -> UserRead:
        """Register a student or counsellor.

        The very first account in an empty database becomes the system
        admin.  Students are approved immediately; counsellors start
        unapproved with an empty profile and stay invisible to students
        until an admin or their college head approves them.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if cursor.execute("SELECT 1 FROM users WHERE email = ?", (data.email,)).fetchone():
                raise ValueError(f"User with email {data.email} already exists")
            if data.college_id is not None and not cursor.execute(
                "SELECT 1 FROM colleges WHERE id = ?", (data.college_id,)
            ).fetchone():
                raise ValueError(f"Unknown college_id {data.college_id}")

            is_first = cursor.execute("SELECT COUNT(*) FROM users").fetchone()[0] == 0
            if is_first:
                role_id = ROLE_ADMIN
            else:
                role_id = ROLE_IDS[data.role]
            approved = role_id != ROLE_COUNSELLOR
            cursor.execute(
                """
                INSERT INTO users (email, name, password, role_id, approved, college_id, university, phone)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.email,
                    data.name,
                    hash_password(data.password),
                    role_id,
                    int(approved),
                    data.college_id,
                    data.university,
                    data.phone,
                ),
            )
            user_id = cursor.lastrowid
            if role_id == ROLE_COUNSELLOR:
                insert_counsellor_profile(cursor, user_id)
            conn.commit()
            row = cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to register user %s: %s", data.email, e)
            raise
        finally:
            conn.close()

        logger.info("Registered %s %s (id=%s)", ROLE_NAMES[role_id], data.email, user_id)
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=None,
            action="register",
            object_type="user",
            object_id=user_id,
            details={"email": data.email, "role": ROLE_NAMES[role_id]},
        )
        return row_to_user(row)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[sqlite3.Row]:
        """Return the user row when the credentials match, otherwise ``None``.

        Blocked users are still returned so the caller can report the
        block reason.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, email, password, role_id, blocked, block_reason FROM users WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            return None
        return row

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"User {user_id} not found")
        return row_to_user(row)

    @classmethod
    async def can_view_profile(cls, requester: Dict[str, Any], user_id: int) -> bool:
        """Self and admins always; counsellors only for their own students."""
        if requester.get("user_id") == user_id or requester.get("role_id") == ROLE_ADMIN:
            return True
        if requester.get("role_id") != ROLE_COUNSELLOR:
            return False
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT 1 FROM appointments WHERE counsellor_id = ? AND student_id = ? LIMIT 1",
                (requester.get("user_id"), user_id),
            ).fetchone()
        finally:
            conn.close()
        return row is not None

    @classmethod
    async def update_profile(cls, user_id: int, update: UserUpdate) -> UserRead:
        fields = update.model_dump(exclude_unset=True)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone():
                raise ValueError(f"User {user_id} not found")
            if fields.get("college_id") is not None and not cursor.execute(
                "SELECT 1 FROM colleges WHERE id = ?", (fields["college_id"],)
            ).fetchone():
                raise ValueError(f"Unknown college_id {fields['college_id']}")
            if "password" in fields:
                if fields["password"] is None:
                    fields.pop("password")
                else:
                    fields["password"] = hash_password(fields["password"])
            if fields:
                assignments = ", ".join(f"{column} = ?" for column in fields)
                cursor.execute(
                    f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ?",
                    (*fields.values(), utc_now(), user_id),
                )
                conn.commit()
            row = cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        return row_to_user(row)

    @classmethod
    async def list_users(
        cls,
        role: Optional[str] = None,
        approved: Optional[bool] = None,
        blocked: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> UserList:
        """Return a filtered page of users, newest first."""
        where = []
        params: list = []
        if role:
            if role not in ROLE_IDS:
                raise ValueError(f"Unknown role '{role}'")
            where.append("role_id = ?")
            params.append(ROLE_IDS[role])
        if approved is not None:
            where.append("approved = ?")
            params.append(int(approved))
        if blocked is not None:
            where.append("blocked = ?")
            params.append(int(blocked))
        if search:
            where.append("(LOWER(name) LIKE ? OR LOWER(email) LIKE ?)")
            pattern = f"%{search.strip().lower()}%"
            params.extend([pattern, pattern])
        where_sql = f" WHERE {' AND '.join(where)}" if where else ""
        conn = get_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) FROM users{where_sql}", tuple(params)).fetchone()[0]
            rows = conn.execute(
                f"SELECT {USER_COLUMNS} FROM users{where_sql} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                (*params, limit, (page - 1) * limit),
            ).fetchall()
        finally:
            conn.close()
        return UserList(
            users=[row_to_user(row) for row in rows],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if total else 0,
            ),
        )

    @classmethod
    async def block_user(cls, admin_id: int, user_id: int, blocked: bool, reason: Optional[str] = None) -> UserRead:
        """Block or unblock an account and notify its owner."""
        if admin_id == user_id:
            raise ValueError("Cannot block your own account")
        from zencare_api.app.services.notification_service import NotificationService

        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone():
                raise ValueError(f"User {user_id} not found")
            cursor.execute(
                "UPDATE users SET blocked = ?, block_reason = ?, updated_at = ? WHERE id = ?",
                (int(blocked), reason if blocked else None, utc_now(), user_id),
            )
            NotificationService.create(
                cursor,
                user_id=user_id,
                type="account_blocked" if blocked else "account_unblocked",
                title="Account blocked" if blocked else "Account restored",
                message=(
                    f"Your account has been blocked. Reason: {reason or 'not specified'}"
                    if blocked
                    else "Your account has been unblocked."
                ),
            )
            conn.commit()
            row = cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if blocked:
            logger.warning("User %s blocked by %s: %s", user_id, admin_id, reason)
        else:
            logger.info("User %s unblocked by %s", user_id, admin_id)
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=admin_id,
            action="block" if blocked else "unblock",
            object_type="user",
            object_id=user_id,
            details={"reason": reason} if reason else None,
        )
        return row_to_user(row)

    @classmethod
    async def delete_user_complete(cls, admin_id: int, user_id: int) -> Dict[str, int]:
        """Delete a user and every row that references them.

        Returns the number of rows removed per table.  Audit logs are
        kept as history.
        """
        if admin_id == user_id:
            raise ValueError("Cannot delete your own account")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            user = cursor.execute("SELECT email FROM users WHERE id = ?", (user_id,)).fetchone()
            if not user:
                raise ValueError(f"User {user_id} not found")
            cursor.execute("BEGIN IMMEDIATE")
            rated_counsellors = [
                row["counsellor_id"]
                for row in cursor.execute(
                    "SELECT DISTINCT counsellor_id FROM feedback WHERE student_id = ? AND counsellor_id != ?",
                    (user_id, user_id),
                ).fetchall()
            ]
            statements = [
                ("ai_messages", "DELETE FROM ai_messages WHERE session_id IN (SELECT id FROM ai_chat_sessions WHERE user_id = ?)", (user_id,)),
                ("ai_chat_sessions", "DELETE FROM ai_chat_sessions WHERE user_id = ?", (user_id,)),
                ("crisis_alerts", "DELETE FROM crisis_alerts WHERE user_id = ?", (user_id,)),
                ("assessments", "DELETE FROM assessments WHERE student_id = ?", (user_id,)),
                ("feedback", "DELETE FROM feedback WHERE student_id = ? OR counsellor_id = ?", (user_id, user_id)),
                ("reports", "DELETE FROM reports WHERE reporter_id = ? OR reported_id = ?", (user_id, user_id)),
                ("appointments", "DELETE FROM appointments WHERE student_id = ? OR counsellor_id = ?", (user_id, user_id)),
                ("notifications", "DELETE FROM notifications WHERE user_id = ? OR email = ?", (user_id, user["email"])),
                ("counsellor_profiles", "DELETE FROM counsellor_profiles WHERE user_id = ?", (user_id,)),
                ("counsellor_requests", "DELETE FROM counsellor_requests WHERE email = ?", (user["email"],)),
                ("college_head_requests", "DELETE FROM college_head_requests WHERE email = ?", (user["email"],)),
                ("users", "DELETE FROM users WHERE id = ?", (user_id,)),
            ]
            removed: Dict[str, int] = {}
            for table, sql, params in statements:
                removed[table] = cursor.execute(sql, params).rowcount
            # aggregates of the remaining counsellors must stop counting the removed reviews
            from zencare_api.app.services.feedback_service import recompute_rating
            for counsellor_id in rated_counsellors:
                recompute_rating(cursor, counsellor_id)
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to delete user %s: %s", user_id, e)
            raise
        finally:
            conn.close()
        logger.warning("User %s deleted completely by %s", user_id, admin_id)
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=admin_id,
            action="delete",
            object_type="user",
            object_id=user_id,
            details=removed,
        )
        return removed

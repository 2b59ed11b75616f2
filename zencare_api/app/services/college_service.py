"""
Colleges and the college-head registration workflow.

A prospective college head submits a public request.  The system admin
approves or rejects it; approval creates the college (or reuses the
one registered under the same code) and an approved ``college_head``
account using the password supplied with the request.
"""

import logging
import sqlite3
from typing import List, Optional

from zencare_api.app.core.db import get_connection, utc_now
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_COLLEGE_HEAD, hash_password
from zencare_api.app.schemas.college import (
    CollegeHeadRequestCreate,
    CollegeHeadRequestRead,
    CollegeRead,
    RequestStatus,
)
from zencare_api.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

REQUEST_STATUSES = {"pending", "approved", "rejected", "all"}

_REQUEST_COLUMNS = (
    "id, name, email, phone, position, college_name, college_code, college_address, college_type, "
    "status, admin_notes, processed_by, processed_at, created_at"
)


def _row_to_college(row: sqlite3.Row) -> CollegeRead:
    return CollegeRead(
        id=row["id"],
        name=row["name"],
        code=row["code"],
        address=row["address"],
        type=row["type"],
        created_at=row["created_at"],
    )


def _row_to_request(row: sqlite3.Row) -> CollegeHeadRequestRead:
    return CollegeHeadRequestRead(**{key: row[key] for key in row.keys()})


class CollegeService:
    """Read access to registered colleges."""

    @classmethod
    async def list_colleges(cls) -> List[CollegeRead]:
        conn = get_connection()
        try:
            rows = conn.execute("SELECT id, name, code, address, type, created_at FROM colleges ORDER BY name").fetchall()
        finally:
            conn.close()
        return [_row_to_college(row) for row in rows]

    @classmethod
    async def get_college(cls, college_id: int) -> CollegeRead:
        conn = get_connection()
        try:
            row = conn.execute(
                "SELECT id, name, code, address, type, created_at FROM colleges WHERE id = ?",
                (college_id,),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"College {college_id} not found")
        return _row_to_college(row)

    @staticmethod
    def create_college(
        cursor: sqlite3.Cursor,
        name: str,
        code: Optional[str] = None,
        address: Optional[str] = None,
        type: Optional[str] = None,
    ) -> int:
        """Insert a college or return the id of the one with the same code."""
        if code:
            existing = cursor.execute("SELECT id FROM colleges WHERE code = ?", (code,)).fetchone()
            if existing:
                return existing["id"]
        cursor.execute(
            "INSERT INTO colleges (name, code, address, type) VALUES (?, ?, ?, ?)",
            (name, code, address, type),
        )
        return cursor.lastrowid


class CollegeHeadRequestService:
    """Public submission and admin review of college-head requests."""

    @classmethod
    async def submit_request(cls, data: CollegeHeadRequestCreate) -> CollegeHeadRequestRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            duplicate = cursor.execute(
                "SELECT status FROM college_head_requests WHERE email = ? AND status IN ('pending', 'approved')",
                (data.email,),
            ).fetchone()
            if duplicate:
                raise ValueError(f"A {duplicate['status']} request for {data.email} already exists")
            if cursor.execute("SELECT 1 FROM users WHERE email = ?", (data.email,)).fetchone():
                raise ValueError(f"User with email {data.email} already exists")
            cursor.execute(
                """
                INSERT INTO college_head_requests (
                    name, email, password, phone, position, college_name, college_code,
                    college_address, college_type
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.name,
                    data.email,
                    hash_password(data.password),
                    data.phone,
                    data.position,
                    data.college_name,
                    data.college_code,
                    data.college_address,
                    data.college_type,
                ),
            )
            request_id = cursor.lastrowid
            NotificationService.create(
                cursor,
                role_id=ROLE_ADMIN,
                type="college_head_request",
                title="New college head request",
                message=f"{data.name} requested to register {data.college_name}.",
                data={"request_id": request_id},
            )
            conn.commit()
            row = cursor.execute(
                f"SELECT {_REQUEST_COLUMNS} FROM college_head_requests WHERE id = ?", (request_id,)
            ).fetchone()
        finally:
            conn.close()
        logger.info("College head request %s submitted by %s", request_id, data.email)
        return _row_to_request(row)

    @classmethod
    async def list_requests(cls, status: str = "pending") -> List[CollegeHeadRequestRead]:
        if status not in REQUEST_STATUSES:
            raise ValueError(f"Unknown status '{status}'")
        query = f"SELECT {_REQUEST_COLUMNS} FROM college_head_requests"
        params: tuple = ()
        if status != "all":
            query += " WHERE status = ?"
            params = (status,)
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [_row_to_request(row) for row in rows]

    @classmethod
    async def process_request(
        cls, admin_id: int, request_id: int, action: str, reason: Optional[str] = None
    ) -> CollegeHeadRequestRead:
        """Approve or reject a pending request.

        Approval creates the college and the head's account in the same
        transaction as the status change.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            request = cursor.execute(
                "SELECT * FROM college_head_requests WHERE id = ?", (request_id,)
            ).fetchone()
            if not request:
                raise ValueError(f"Request {request_id} not found")
            if request["status"] != "pending":
                raise ValueError(f"Request {request_id} has already been {request['status']}")
            now = utc_now()
            if action == "approve":
                if cursor.execute("SELECT 1 FROM users WHERE email = ?", (request["email"],)).fetchone():
                    raise ValueError(f"User with email {request['email']} already exists")
                college_id = CollegeService.create_college(
                    cursor,
                    request["college_name"],
                    request["college_code"],
                    request["college_address"],
                    request["college_type"],
                )
                cursor.execute(
                    """
                    INSERT INTO users (email, name, password, role_id, approved, college_id, phone, approved_at, approved_by)
                    VALUES (?, ?, ?, ?, 1, ?, ?, ?, ?)
                    """,
                    (
                        request["email"],
                        request["name"],
                        request["password"],
                        ROLE_COLLEGE_HEAD,
                        college_id,
                        request["phone"],
                        now,
                        admin_id,
                    ),
                )
                new_status = "approved"
                message = f"Your request to register {request['college_name']} was approved. You can now log in."
            else:
                new_status = "rejected"
                message = f"Your request to register {request['college_name']} was rejected. Reason: {reason or 'not specified'}"
            cursor.execute(
                """
                UPDATE college_head_requests
                SET status = ?, admin_notes = ?, processed_by = ?, processed_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (new_status, reason, admin_id, now, now, request_id),
            )
            NotificationService.create(
                cursor,
                email=request["email"],
                type=f"college_head_request_{new_status}",
                title=f"College registration {new_status}",
                message=message,
                data={"request_id": request_id},
            )
            conn.commit()
            row = cursor.execute(
                f"SELECT {_REQUEST_COLUMNS} FROM college_head_requests WHERE id = ?", (request_id,)
            ).fetchone()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to process college head request %s: %s", request_id, e)
            raise
        finally:
            conn.close()
        logger.info("College head request %s %s by %s", request_id, new_status, admin_id)
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=admin_id,
            action=action,
            object_type="college_head_request",
            object_id=request_id,
            details={"reason": reason} if reason else None,
        )
        return _row_to_request(row)

    @classmethod
    async def request_status(cls, email: str) -> RequestStatus:
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT email, status, created_at, processed_at, admin_notes
                FROM college_head_requests WHERE email = ? ORDER BY id DESC LIMIT 1
                """,
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Request for {email} not found")
        return RequestStatus(**{key: row[key] for key in row.keys()})

"""
Counsellor registration requests.

Counsellors who are not yet on the platform apply through a public
form tied to a registered college.  The head of that college (or the
system admin) reviews the request; approval creates an approved
counsellor account and profile from the submitted details.
"""

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from zencare_api.app.core.db import get_connection, load_json, utc_now
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_COLLEGE_HEAD, ROLE_COUNSELLOR, hash_password
from zencare_api.app.schemas.college import RequestStatus
from zencare_api.app.schemas.counsellor import CounsellorRequestCreate, CounsellorRequestRead
from zencare_api.app.services.notification_service import NotificationService
from zencare_api.app.services.user_service import insert_counsellor_profile

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, name, email, phone, specialization, experience, qualifications, languages, college_id, "
    "id_proof_type, id_proof_url, status, admin_notes, processed_by, processed_at, created_at"
)


def _row_to_request(row: sqlite3.Row) -> CounsellorRequestRead:
    data = {key: row[key] for key in row.keys()}
    data["qualifications"] = load_json(row["qualifications"], [])
    data["languages"] = load_json(row["languages"], [])
    return CounsellorRequestRead(**data)


def _check_college_access(requester: Dict[str, Any], college_id: int) -> None:
    if requester.get("role_id") == ROLE_ADMIN:
        return
    if requester.get("role_id") == ROLE_COLLEGE_HEAD and requester.get("college_id") == college_id:
        return
    raise ValueError("Only the head of this college or an admin can manage its counsellor requests")


class CounsellorRequestService:

    @classmethod
    async def submit_request(cls, data: CounsellorRequestCreate) -> CounsellorRequestRead:
        """Store a pending request and notify the college's heads."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            college = cursor.execute("SELECT id, name FROM colleges WHERE id = ?", (data.college_id,)).fetchone()
            if not college:
                raise ValueError(f"College {data.college_id} not found")
            if cursor.execute(
                "SELECT 1 FROM counsellor_requests WHERE email = ? AND status IN ('pending', 'approved')",
                (data.email,),
            ).fetchone():
                raise ValueError(f"A counsellor request for {data.email} already exists")
            if cursor.execute("SELECT 1 FROM users WHERE email = ?", (data.email,)).fetchone():
                raise ValueError(f"User with email {data.email} already exists")
            cursor.execute(
                """
                INSERT INTO counsellor_requests (
                    name, email, password, phone, specialization, experience, qualifications,
                    languages, college_id, id_proof_type, id_proof_url
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.name,
                    data.email,
                    hash_password(data.password),
                    data.phone,
                    data.specialization,
                    data.experience,
                    json.dumps(data.qualifications),
                    json.dumps(data.languages),
                    data.college_id,
                    data.id_proof_type,
                    data.id_proof_url,
                ),
            )
            request_id = cursor.lastrowid
            heads = cursor.execute(
                "SELECT id FROM users WHERE role_id = ? AND college_id = ?",
                (ROLE_COLLEGE_HEAD, data.college_id),
            ).fetchall()
            for head in heads:
                NotificationService.create(
                    cursor,
                    user_id=head["id"],
                    type="counsellor_request",
                    title="New counsellor request",
                    message=f"{data.name} applied to join {college['name']} as a counsellor.",
                    data={"request_id": request_id},
                )
            conn.commit()
            row = cursor.execute(f"SELECT {_COLUMNS} FROM counsellor_requests WHERE id = ?", (request_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Counsellor request %s submitted by %s for college %s", request_id, data.email, data.college_id)
        return _row_to_request(row)

    @classmethod
    async def list_requests(
        cls, requester: Dict[str, Any], college_id: Optional[int] = None, status: str = "pending"
    ) -> List[CounsellorRequestRead]:
        """College heads see their own college only; admins may filter by any college."""
        if requester.get("role_id") == ROLE_COLLEGE_HEAD:
            if college_id is not None and college_id != requester.get("college_id"):
                raise ValueError("Only requests for your own college can be listed")
            college_id = requester.get("college_id")
        where = []
        params: list = []
        if college_id is not None:
            where.append("college_id = ?")
            params.append(college_id)
        if status != "all":
            where.append("status = ?")
            params.append(status)
        query = f"SELECT {_COLUMNS} FROM counsellor_requests"
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY created_at DESC, id DESC"
        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_request(row) for row in rows]

    @classmethod
    async def process_request(
        cls, requester: Dict[str, Any], request_id: int, action: str, reason: Optional[str] = None
    ) -> CounsellorRequestRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            request = cursor.execute("SELECT * FROM counsellor_requests WHERE id = ?", (request_id,)).fetchone()
            if not request:
                raise ValueError(f"Request {request_id} not found")
            _check_college_access(requester, request["college_id"])
            if request["status"] != "pending":
                raise ValueError(f"Request {request_id} has already been {request['status']}")
            now = utc_now()
            if action == "approve":
                if cursor.execute("SELECT 1 FROM users WHERE email = ?", (request["email"],)).fetchone():
                    raise ValueError(f"User with email {request['email']} already exists")
                cursor.execute(
                    """
                    INSERT INTO users (email, name, password, role_id, approved, college_id, phone, approved_at, approved_by)
                    VALUES (?, ?, ?, ?, 1, ?, ?, ?, ?)
                    """,
                    (
                        request["email"],
                        request["name"],
                        request["password"],
                        ROLE_COUNSELLOR,
                        request["college_id"],
                        request["phone"],
                        now,
                        requester.get("user_id"),
                    ),
                )
                insert_counsellor_profile(
                    cursor,
                    cursor.lastrowid,
                    approved=True,
                    specializations=[request["specialization"]],
                    languages=load_json(request["languages"], ["English"]),
                    qualifications=load_json(request["qualifications"], []),
                    experience=request["experience"],
                )
                new_status = "approved"
                message = "Your counsellor application was approved. You can now log in."
            else:
                new_status = "rejected"
                message = f"Your counsellor application was rejected. Reason: {reason or 'not specified'}"
            cursor.execute(
                """
                UPDATE counsellor_requests
                SET status = ?, admin_notes = ?, processed_by = ?, processed_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (new_status, reason, requester.get("user_id"), now, now, request_id),
            )
            NotificationService.create(
                cursor,
                email=request["email"],
                type=f"counsellor_request_{new_status}",
                title=f"Counsellor application {new_status}",
                message=message,
                data={"request_id": request_id},
            )
            conn.commit()
            row = cursor.execute(f"SELECT {_COLUMNS} FROM counsellor_requests WHERE id = ?", (request_id,)).fetchone()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("Failed to process counsellor request %s: %s", request_id, e)
            raise
        finally:
            conn.close()
        logger.info("Counsellor request %s %s by %s", request_id, new_status, requester.get("user_id"))
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=requester.get("user_id"),
            action=action,
            object_type="counsellor_request",
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
                FROM counsellor_requests WHERE email = ? ORDER BY id DESC LIMIT 1
                """,
                (email.strip().lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise ValueError(f"Request for {email} not found")
        return RequestStatus(**{key: row[key] for key in row.keys()})

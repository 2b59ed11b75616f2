"""
Audit log endpoint for API v1.  Admin only.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from zencare_api.app.core.security import ROLE_ADMIN, require_roles
from zencare_api.app.schemas.audit import AuditLogRead
from zencare_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs", response_model=List[AuditLogRead])
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Acting user"),
    object_type: Optional[str] = Query(None, description="user, counsellor, appointment, report, maintenance, ..."),
    object_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None, description="register, approve, block, book, ..."),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> List[AuditLogRead]:
    return await AuditService.list_logs(
        user_id=user_id,
        object_type=object_type,
        object_id=object_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )

"""
Admin maintenance endpoints for API v1.

One-shot data repair operations.  Each call is idempotent and returns
the number of rows it changed.
"""

from typing import Dict

from fastapi import APIRouter, Depends

from zencare_api.app.api.v1.errors import server_error
from zencare_api.app.core.security import ROLE_ADMIN, require_roles
from zencare_api.app.services.maintenance_service import MaintenanceService

router = APIRouter()


@router.post("/maintenance/sync-counsellor-profiles")
async def sync_counsellor_profiles(current_user: dict = Depends(require_roles(ROLE_ADMIN))) -> Dict[str, int]:
    """Create missing profile rows for counsellor accounts."""
    try:
        return {"updated": await MaintenanceService.sync_counsellor_profiles(current_user["user_id"])}
    except Exception as e:
        raise server_error("sync counsellor profiles", e)


@router.post("/maintenance/sync-approval-flags")
async def sync_approval_flags(current_user: dict = Depends(require_roles(ROLE_ADMIN))) -> Dict[str, int]:
    """Copy each account's approval flag onto its counsellor profile."""
    try:
        return {"updated": await MaintenanceService.sync_approval_flags(current_user["user_id"])}
    except Exception as e:
        raise server_error("sync approval flags", e)


@router.post("/maintenance/recompute-ratings")
async def recompute_ratings(current_user: dict = Depends(require_roles(ROLE_ADMIN))) -> Dict[str, int]:
    try:
        return {"updated": await MaintenanceService.recompute_ratings(current_user["user_id"])}
    except Exception as e:
        raise server_error("recompute ratings", e)


@router.post("/maintenance/expire-appointments")
async def expire_appointments(current_user: dict = Depends(require_roles(ROLE_ADMIN))) -> Dict[str, int]:
    """Cancel pending appointments whose start time has passed."""
    try:
        return {"updated": await MaintenanceService.expire_stale_appointments(current_user["user_id"])}
    except Exception as e:
        raise server_error("expire appointments", e)

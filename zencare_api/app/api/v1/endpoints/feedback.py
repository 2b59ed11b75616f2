"""
Feedback endpoints for API v1.

Students rate counsellors, optionally tied to a completed appointment.
Ratings flagged by an admin are excluded from the counsellor's average.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_STUDENT, get_current_user, require_roles
from zencare_api.app.schemas.feedback import FeedbackCreate, FeedbackFlag, FeedbackRead, RatingSummary
from zencare_api.app.services.feedback_service import FeedbackService


router = APIRouter()


@router.post("/", response_model=FeedbackRead, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    data: FeedbackCreate,
    current_user: dict = Depends(require_roles(ROLE_STUDENT)),
) -> FeedbackRead:
    """Rate a counsellor from 1 to 5.

    When ``appointment_id`` is given the appointment must be this
    student's completed session with the counsellor and not rated yet.
    """
    try:
        return await FeedbackService.submit(current_user["user_id"], data)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("feedback submission", e)


@router.get("/counsellor/{counsellor_id}", response_model=List[FeedbackRead])
async def counsellor_feedback(
    counsellor_id: int,
    limit: int = Query(20, ge=1, le=100),
) -> List[FeedbackRead]:
    return await FeedbackService.list_for_counsellor(counsellor_id, limit)


@router.get("/counsellor/{counsellor_id}/summary", response_model=RatingSummary)
async def rating_summary(counsellor_id: int) -> RatingSummary:
    """Average rating, review count and the 1-5 distribution."""
    try:
        return await FeedbackService.summary(counsellor_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{feedback_id}/helpful", response_model=FeedbackRead)
async def mark_helpful(
    feedback_id: int,
    current_user: dict = Depends(get_current_user),
) -> FeedbackRead:
    try:
        return await FeedbackService.mark_helpful(feedback_id)
    except ValueError as e:
        raise http_error(e)


@router.put("/{feedback_id}/flag", response_model=FeedbackRead)
async def flag_feedback(
    feedback_id: int,
    data: FeedbackFlag,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> FeedbackRead:
    """Hide or restore a rating.  The counsellor's average is recomputed."""
    try:
        return await FeedbackService.flag(current_user["user_id"], feedback_id, data.reported)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("feedback moderation", e)

"""
Assessment endpoints for API v1.

Students take the PHQ-9 (depression) and GAD-7 (anxiety) screenings.
A result comes back with an interpretation, recommendations and
coping strategies; severe results and any self-harm answer also carry
emergency resources.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import ROLE_STUDENT, get_current_user, require_roles
from zencare_api.app.schemas.assessment import AssessmentRead, AssessmentResult, AssessmentSubmit
from zencare_api.app.services.assessment_service import AssessmentService, questionnaire


router = APIRouter()


@router.get("/questionnaires/{assessment_type}")
async def get_questionnaire(assessment_type: str) -> Dict[str, Any]:
    """Questions and answer options for ``phq9`` or ``gad7``."""
    try:
        return questionnaire(assessment_type)
    except ValueError as e:
        raise http_error(e)


@router.post("/", response_model=AssessmentResult, status_code=status.HTTP_201_CREATED)
async def submit_assessment(
    data: AssessmentSubmit,
    current_user: dict = Depends(require_roles(ROLE_STUDENT)),
) -> AssessmentResult:
    try:
        return await AssessmentService.submit(current_user["user_id"], data)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("assessment submission", e)


@router.get("/mine", response_model=List[AssessmentRead])
async def my_assessments(
    type: Optional[str] = Query(None, description="phq9 or gad7"),
    current_user: dict = Depends(get_current_user),
) -> List[AssessmentRead]:
    return await AssessmentService.list_for_student(current_user["user_id"], type)


@router.get("/latest", response_model=Dict[str, Optional[AssessmentRead]])
async def latest_assessments(current_user: dict = Depends(get_current_user)) -> Dict[str, Optional[AssessmentRead]]:
    return await AssessmentService.latest(current_user["user_id"])


@router.get("/student/{student_id}", response_model=List[AssessmentRead])
async def student_assessments(
    student_id: int,
    type: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
) -> List[AssessmentRead]:
    """A student's results, for admins and counsellors the student has booked."""
    try:
        return await AssessmentService.list_for_student(student_id, type, requester=current_user)
    except ValueError as e:
        raise http_error(e)

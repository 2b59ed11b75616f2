"""
AI counsellor endpoints for API v1.

Chat with the AI counsellor, check a message for crisis language, read
past sessions and rate replies.  Admins and college heads work the
crisis alerts raised by the chat and by assessments.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import ROLE_ADMIN, ROLE_COLLEGE_HEAD, get_current_user, require_roles
from zencare_api.app.schemas.chat import (
    ChatMessageRead,
    ChatRequest,
    ChatResponse,
    ChatSessionRead,
    CrisisAlertRead,
    CrisisCheckRequest,
    CrisisCheckResponse,
    MessageRating,
)
from zencare_api.app.services.ai_chat_service import AIChatService
from zencare_api.app.services.crisis_alert_service import CrisisAlertService
from zencare_api.app.services.crisis_detector import crisis_detector


router = APIRouter()


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    current_user: dict = Depends(get_current_user),
) -> ChatResponse:
    """Send a message to the AI counsellor.

    Omit ``session_id`` to start a new session.  Messages containing
    crisis language get a fixed crisis response and raise an alert.
    """
    try:
        return await AIChatService.chat(current_user, request)
    except ValueError as e:
        raise http_error(e)
    except Exception as e:
        raise server_error("AI chat", e)


@router.post("/crisis-check", response_model=CrisisCheckResponse)
async def crisis_check(request: CrisisCheckRequest) -> CrisisCheckResponse:
    """Stateless crisis detection used for the warning banner.  Nothing is stored."""
    result = crisis_detector.detect(request.message, request.language)
    return CrisisCheckResponse(
        is_crisis=result.is_crisis,
        confidence=result.confidence,
        matched_keywords=result.matched_keywords,
        response=result.response,
        recommendations=result.recommendations,
    )


@router.get("/sessions", response_model=List[ChatSessionRead])
async def list_sessions(current_user: dict = Depends(get_current_user)) -> List[ChatSessionRead]:
    return await AIChatService.sessions(current_user["user_id"])


@router.get("/history", response_model=List[ChatMessageRead])
async def chat_history(
    session_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    current_user: dict = Depends(get_current_user),
) -> List[ChatMessageRead]:
    return await AIChatService.history(current_user["user_id"], session_id, limit)


@router.put("/messages/{message_id}/rating")
async def rate_message(
    message_id: int,
    data: MessageRating,
    current_user: dict = Depends(get_current_user),
) -> Dict[str, str]:
    try:
        await AIChatService.rate_message(current_user["user_id"], message_id, data.helpful)
    except ValueError as e:
        raise http_error(e)
    return {"status": "ok"}


@router.get("/detector", response_model=Dict[str, object])
async def detector_stats(current_user: dict = Depends(require_roles(ROLE_ADMIN))) -> Dict[str, object]:
    return crisis_detector.stats()


@router.get("/crisis-alerts", response_model=List[CrisisAlertRead])
async def list_crisis_alerts(
    status: str = Query("active", description="active, resolved or all"),
    current_user: dict = Depends(require_roles(ROLE_ADMIN, ROLE_COLLEGE_HEAD)),
) -> List[CrisisAlertRead]:
    return await CrisisAlertService.list_alerts(current_user, status)


@router.put("/crisis-alerts/{alert_id}/resolve", response_model=CrisisAlertRead)
async def resolve_crisis_alert(
    alert_id: int,
    current_user: dict = Depends(require_roles(ROLE_ADMIN, ROLE_COLLEGE_HEAD)),
) -> CrisisAlertRead:
    try:
        return await CrisisAlertService.resolve(current_user, alert_id)
    except ValueError as e:
        raise http_error(e)

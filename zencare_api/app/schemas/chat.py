"""
Pydantic schemas for the AI counsellor chat and crisis checks.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    session_id: Optional[int] = None
    language: str = Field("en", max_length=5)
    context: Optional[Dict[str, Any]] = None


class ChatResponse(BaseModel):
    session_id: int
    message_id: int
    response: str
    category: Optional[str] = None
    confidence: float
    is_crisis: bool
    recommendations: List[str] = []
    timestamp: str


class CrisisCheckRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    language: str = "en"


class CrisisCheckResponse(BaseModel):
    is_crisis: bool
    confidence: float
    matched_keywords: List[str]
    response: Optional[str] = None
    recommendations: List[str] = []


class MessageRating(BaseModel):
    helpful: bool


class ChatMessageRead(BaseModel):
    id: int
    session_id: int
    sender: str
    content: str
    category: Optional[str] = None
    confidence: Optional[float] = None
    is_crisis: bool = False
    helpful: Optional[bool] = None
    created_at: Optional[str] = None


class ChatSessionRead(BaseModel):
    id: int
    user_id: int
    language: str
    crisis_flag: bool
    message_count: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CrisisAlertRead(BaseModel):
    id: int
    user_id: int
    user_name: Optional[str] = None
    session_id: Optional[int] = None
    source: str
    message: Optional[str] = None
    matched_keywords: List[str] = []
    status: str
    resolved_by: Optional[int] = None
    resolved_at: Optional[str] = None
    created_at: Optional[str] = None

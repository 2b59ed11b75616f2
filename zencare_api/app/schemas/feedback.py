"""
Pydantic models for counsellor feedback and ratings.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class FeedbackCreate(BaseModel):
    counsellor_id: int
    appointment_id: Optional[int] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)
    anonymous: bool = True


class FeedbackRead(BaseModel):
    id: int
    counsellor_id: int
    student_id: Optional[int] = None
    appointment_id: Optional[int] = None
    rating: int
    comment: Optional[str] = None
    anonymous: bool
    helpful: int = 0
    reported: bool = False
    created_at: Optional[str] = None


class FeedbackFlag(BaseModel):
    reported: bool = True


class RatingSummary(BaseModel):
    counsellor_id: int
    rating: float
    total_reviews: int
    distribution: Dict[int, int]

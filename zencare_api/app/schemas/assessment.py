"""
Pydantic schemas for PHQ-9 and GAD-7 self-assessments.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

AssessmentType = Literal["phq9", "gad7"]


class AssessmentSubmit(BaseModel):
    type: AssessmentType
    answers: List[int] = Field(..., min_length=1)


class AssessmentRead(BaseModel):
    id: int
    student_id: int
    type: str
    answers: List[int]
    score: int
    severity: str
    crisis_flag: bool
    created_at: Optional[str] = None


class AssessmentResult(AssessmentRead):
    interpretation: str
    recommendations: List[str]
    coping_strategies: List[str]
    emergency_resources: Optional[Dict[str, str]] = None

"""
Pydantic schemas for attempts and scored submissions
"""
from pydantic import ConfigDict, Field
from typing import List, Literal, Optional
from datetime import datetime
from uuid import UUID

from app.schemas.questions import Answer, CamelModel, ScoredAnswer, SourceQuestion


class AttemptResponse(CamelModel):
    """An immutable attempt record"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    test_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    score: int
    total_questions: int
    duration: int
    overdue_time: int
    answers: List[ScoredAnswer]
    mode: str
    source_questions: Optional[List[SourceQuestion]] = None
    created_at: Optional[datetime] = None


class SubmissionResponse(CamelModel):
    """Result of scoring a run"""
    attempt: AttemptResponse
    score: int
    total: int
    percentage: int


class DirectAttemptRequest(CamelModel):
    """
    A complete answer set submitted without a session

    Used by anonymous runs. The server scores the answers itself.
    """
    answers: List[Answer] = Field(default_factory=list)
    duration: int = Field(..., ge=0)
    overdue_time: int = Field(0, ge=0)
    mode: Literal["Test", "Practice"] = "Test"


class TestResponse(CamelModel):
    """A test with its ordered question list"""
    id: UUID
    title: str
    category: Optional[str] = None
    description: Optional[str] = None
    level: Optional[str] = None
    unit: Optional[str] = None
    questions: List[dict]
    created_at: Optional[datetime] = None

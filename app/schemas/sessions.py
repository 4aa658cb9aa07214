"""
Pydantic schemas for session requests and responses
"""
from pydantic import ConfigDict, Field
from typing import List, Literal, Optional
from datetime import datetime
from uuid import UUID

from app.schemas.questions import Answer, CamelModel


class SessionStartRequest(CamelModel):
    """Start a new session or resume the active one"""
    test_id: UUID
    mode: Literal["Test", "Practice"]


class SessionPatch(CamelModel):
    """
    Partial update of an active session

    Each field present replaces the stored value wholesale; clients send
    their complete answer buffer, not a diff.
    """
    answers: Optional[List[Answer]] = None
    current_question: Optional[int] = Field(None, ge=0)
    remaining_time: Optional[int] = Field(None, ge=0)


class SessionSubmitRequest(CamelModel):
    """Final submission; overdue seconds are counted by the client"""
    overdue_time: int = Field(0, ge=0)


class TestSummary(CamelModel):
    """Brief test details shown in resume prompts"""
    id: UUID
    title: str
    category: Optional[str] = None
    level: Optional[str] = None
    unit: Optional[str] = None


class SessionResponse(CamelModel):
    """A persisted session"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    test_id: UUID
    mode: str
    answers: List[Answer]
    current_question: int
    remaining_time: int
    status: str
    started_at: Optional[datetime] = None
    last_saved_at: Optional[datetime] = None
    test: Optional[TestSummary] = None


class SessionStartResponse(CamelModel):
    session: SessionResponse
    resumed: bool


class SessionEnvelope(CamelModel):
    session: SessionResponse


class ActiveSessionsResponse(CamelModel):
    sessions: List[SessionResponse]


class MessageResponse(CamelModel):
    message: str

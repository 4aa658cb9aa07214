"""
Test session API endpoints: start/resume, autosave, submit, abandon
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from app.database import get_db
from app.models import Test, TestSession
from app.schemas.attempts import AttemptResponse, SubmissionResponse
from app.schemas.sessions import (
    ActiveSessionsResponse,
    MessageResponse,
    SessionEnvelope,
    SessionPatch,
    SessionResponse,
    SessionStartRequest,
    SessionStartResponse,
    SessionSubmitRequest,
    TestSummary,
)
from app.services.session_service import session_service
from app.utils.errors import (
    NotFoundError,
    SessionValidationError,
    raise_bad_request,
    raise_not_found,
)
from app.utils.identity import get_current_user_id

router = APIRouter(prefix="/api/sessions", tags=["sessions"])
logger = logging.getLogger(__name__)


def _session_out(session: TestSession, test: Optional[Test] = None) -> SessionResponse:
    data = SessionResponse.model_validate(session)
    if test is not None:
        data.test = TestSummary.model_validate(test, from_attributes=True)
    return data


@router.post("/start", response_model=SessionStartResponse, status_code=201)
async def start_session(
    request: SessionStartRequest,
    response: Response,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Start a session for a test, or resume the caller's active one

    - 201 with ``resumed: false`` when a new session is created
    - 200 with ``resumed: true`` when an active session already exists;
      its timer and answers are returned untouched
    """
    try:
        session, resumed = session_service.start(db, user_id, request.test_id, request.mode)
    except SessionValidationError as e:
        raise_bad_request(str(e))
    except NotFoundError as e:
        raise_not_found(e.message)

    if resumed:
        response.status_code = 200
    return SessionStartResponse(session=_session_out(session), resumed=resumed)


@router.get("/active", response_model=ActiveSessionsResponse)
async def list_active_sessions(
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Caller's active sessions for resume prompts, most recently saved first"""
    rows = session_service.list_active(db, user_id)
    return ActiveSessionsResponse(
        sessions=[_session_out(session, test) for session, test in rows]
    )


@router.get("/{session_id}", response_model=SessionEnvelope)
async def get_session(
    session_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Fetch one of the caller's sessions in any state"""
    try:
        session = session_service.get(db, session_id, user_id)
    except NotFoundError as e:
        raise_not_found(e.message)
    return SessionEnvelope(session=_session_out(session))


@router.patch("/{session_id}", response_model=SessionEnvelope)
async def patch_session(
    session_id: UUID,
    changes: SessionPatch,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Autosave an active session

    Provided fields replace the stored ones; send the full answer set.
    """
    try:
        session = session_service.patch(db, session_id, user_id, changes)
    except NotFoundError as e:
        raise_not_found(e.message)
    return SessionEnvelope(session=_session_out(session))


@router.post("/{session_id}/submit", response_model=SubmissionResponse)
async def submit_session(
    session_id: UUID,
    submission: Optional[SessionSubmitRequest] = None,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Score an active session server-side and record the attempt

    Unanswered questions count as incorrect. The session is completed
    and any later patch or submit on it returns 404.
    """
    overdue_time = submission.overdue_time if submission else 0
    try:
        attempt, score, total, percentage = session_service.submit(
            db, session_id, user_id, overdue_time=overdue_time
        )
    except NotFoundError as e:
        raise_not_found(e.message)

    return SubmissionResponse(
        attempt=AttemptResponse.model_validate(attempt),
        score=score,
        total=total,
        percentage=percentage,
    )


@router.delete("/{session_id}", response_model=MessageResponse)
async def abandon_session(
    session_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Abandon an active session; nothing is scored"""
    try:
        session_service.abandon(db, session_id, user_id)
    except NotFoundError as e:
        raise_not_found(e.message)
    return MessageResponse(message="Session abandoned")

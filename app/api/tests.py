"""
Test lookup and direct (session-less) attempt endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from app.database import get_db
from app.schemas.attempts import (
    AttemptResponse,
    DirectAttemptRequest,
    SubmissionResponse,
    TestResponse,
)
from app.services.attempt_service import attempt_service
from app.services.grading_service import percentage
from app.services.test_catalog import test_catalog
from app.utils.errors import NotFoundError, raise_not_found
from app.utils.identity import get_optional_user_id

router = APIRouter(prefix="/api/tests", tags=["tests"])
logger = logging.getLogger(__name__)


@router.get("/{test_id}", response_model=TestResponse)
async def get_test(test_id: UUID, db: Session = Depends(get_db)):
    """Fetch a test with its ordered questions"""
    try:
        test = test_catalog.get_test(db, test_id)
    except NotFoundError as e:
        raise_not_found(e.message)
    return TestResponse.model_validate(test)


@router.post("/{test_id}/attempt", response_model=SubmissionResponse, status_code=201)
async def create_attempt(
    test_id: UUID,
    request: DirectAttemptRequest,
    user_id: Optional[UUID] = Depends(get_optional_user_id),
    db: Session = Depends(get_db)
):
    """
    Score and store a complete run that had no session

    Works for anonymous callers. Answers are always scored here; any
    client-side correctness flags are ignored.
    """
    try:
        attempt, score, total = attempt_service.create_direct_attempt(db, test_id, user_id, request)
    except NotFoundError as e:
        raise_not_found(e.message)

    return SubmissionResponse(
        attempt=AttemptResponse.model_validate(attempt),
        score=score,
        total=total,
        percentage=percentage(score, total),
    )

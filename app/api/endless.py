"""
Endless practice API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from app.database import get_db
from app.schemas.attempts import AttemptResponse, SubmissionResponse
from app.schemas.endless import EndlessAttemptRequest, EndlessBatchResponse
from app.services.attempt_service import attempt_service
from app.services.grading_service import percentage
from app.services.endless_service import endless_service, parse_exclude
from app.utils.identity import get_optional_user_id

router = APIRouter(prefix="/api/endless", tags=["endless"])
logger = logging.getLogger(__name__)


@router.get("/batch", response_model=EndlessBatchResponse)
async def get_batch(
    level: Optional[str] = None,
    unit: Optional[str] = None,
    exclude: Optional[str] = Query(None, description="Comma separated source keys to skip"),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db)
):
    """
    Draw a random batch of questions from the whole bank

    Each question is tagged with ``sourceTestId``, ``sourceIndex`` and
    ``sourceKey``.
    """
    questions, remaining = endless_service.fetch_batch(
        db,
        level=level,
        unit=unit,
        exclude=parse_exclude(exclude),
        limit=limit,
    )
    return EndlessBatchResponse(questions=questions, remaining=remaining)


@router.post("/attempt", response_model=SubmissionResponse, status_code=201)
async def create_endless_attempt(
    request: EndlessAttemptRequest,
    user_id: Optional[UUID] = Depends(get_optional_user_id),
    db: Session = Depends(get_db)
):
    """Score one finished batch against its source questions and store it"""
    attempt, score, total = attempt_service.create_endless_attempt(db, user_id, request)
    return SubmissionResponse(
        attempt=AttemptResponse.model_validate(attempt),
        score=score,
        total=total,
        percentage=percentage(score, total),
    )

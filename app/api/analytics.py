"""
Performance stats API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from app.database import get_db
from app.schemas.analytics import QuestionTypeStatsResponse, StatsResponse
from app.services.analytics_service import analytics_service
from app.utils.identity import get_current_user_id

router = APIRouter(prefix="/api/stats", tags=["stats"])
logger = logging.getLogger(__name__)


@router.get("", response_model=StatsResponse)
async def get_stats(
    period: Optional[str] = Query(None, pattern="^(7d|30d|90d|all)$"),
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Caller's headline stats

    Returns:
    - Total attempts and average score for the period
    - Current streak of consecutive days with attempts
    - Daily accuracy trend
    """
    return StatsResponse(**analytics_service.get_user_stats(db, user_id, period))


@router.get("/question-types", response_model=QuestionTypeStatsResponse)
async def get_question_type_stats(
    user_id: UUID = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Caller's accuracy per question type, endless runs included"""
    return QuestionTypeStatsResponse(types=analytics_service.get_question_type_stats(db, user_id))

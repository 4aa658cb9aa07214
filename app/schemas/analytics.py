"""
Pydantic schemas for performance stats endpoints
"""
from typing import List

from app.schemas.questions import CamelModel


class Kpis(CamelModel):
    """Headline numbers for a user"""
    total_attempts: int
    average_score: float
    current_streak: int


class TrendPoint(CamelModel):
    """Accuracy for one day"""
    date: str
    score: float
    attempts: int


class StatsResponse(CamelModel):
    kpis: Kpis
    accuracy_trend: List[TrendPoint]


class QuestionTypeAccuracy(CamelModel):
    """Accuracy for one question type"""
    type: str
    correct: int
    total: int
    accuracy: float


class QuestionTypeStatsResponse(CamelModel):
    types: List[QuestionTypeAccuracy]

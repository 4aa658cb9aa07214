"""
Analytics service for per-user performance stats built on attempts
"""
import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models import Attempt, Test
from app.schemas.questions import normalize_question_type

logger = logging.getLogger(__name__)

PERIODS = {"7d": 7, "30d": 30, "90d": 90}


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _accuracy(correct: int, total: int) -> float:
    """Percentage with one decimal place"""
    if total <= 0:
        return 0.0
    return round(correct / total * 100, 1)


class AnalyticsService:
    """Service for generating performance stats"""

    def get_user_stats(
        self,
        db: Session,
        user_id: UUID,
        period: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Headline KPIs and a daily accuracy trend for a user

        Args:
            db: Database session
            user_id: User UUID
            period: "7d", "30d" or "90d"; anything else means all time
            now: Reference time (defaults to the current UTC time)

        Returns:
            Dictionary with ``kpis`` and ``accuracy_trend``
        """
        now = now or datetime.now(timezone.utc)
        attempts = db.query(Attempt).filter(
            Attempt.user_id == user_id
        ).order_by(Attempt.created_at).all()

        # Streak always looks at the full history
        streak = self._current_streak(attempts, now)

        if period in PERIODS:
            cutoff = now - timedelta(days=PERIODS[period])
            attempts = [a for a in attempts if _as_utc(a.created_at) >= cutoff]

        total_correct = sum(a.score for a in attempts)
        total_questions = sum(a.total_questions for a in attempts)

        by_day = defaultdict(lambda: {"correct": 0, "questions": 0, "attempts": 0})
        for attempt in attempts:
            day = _as_utc(attempt.created_at).date().isoformat()
            bucket = by_day[day]
            bucket["correct"] += attempt.score
            bucket["questions"] += attempt.total_questions
            bucket["attempts"] += 1

        trend = [
            {
                "date": day,
                "score": _accuracy(bucket["correct"], bucket["questions"]),
                "attempts": bucket["attempts"],
            }
            for day, bucket in sorted(by_day.items())
        ]

        logger.info(f"Stats for user {user_id}: {len(attempts)} attempts, period={period}")

        return {
            "kpis": {
                "total_attempts": len(attempts),
                "average_score": _accuracy(total_correct, total_questions),
                "current_streak": streak,
            },
            "accuracy_trend": trend,
        }

    def get_question_type_stats(self, db: Session, user_id: UUID) -> List[Dict[str, Any]]:
        """
        Accuracy per question type across all of a user's attempts

        Endless attempts have no test of their own; their answers are
        attributed through ``source_questions``.
        """
        attempts = db.query(Attempt).filter(Attempt.user_id == user_id).all()
        tests: Dict[str, List[dict]] = {}

        def bank(test_id: Any) -> List[dict]:
            key = str(test_id)
            if key not in tests:
                test = db.query(Test).filter(Test.id == UUID(key)).first()
                tests[key] = list(test.questions or []) if test else []
            return tests[key]

        counts = defaultdict(lambda: {"correct": 0, "total": 0})
        for attempt in attempts:
            sources = attempt.source_questions or []
            for answer in attempt.answers or []:
                index = answer.get("questionIndex", 0)
                question = None
                if attempt.test_id is not None:
                    question = self._question_at(bank(attempt.test_id), index)
                elif 0 <= index < len(sources):
                    source = sources[index]
                    question = self._question_at(bank(source["testId"]), source["questionIndex"])

                qtype = normalize_question_type(question.get("type") if question else None)
                counts[qtype]["total"] += 1
                if answer.get("isCorrect"):
                    counts[qtype]["correct"] += 1

        return [
            {
                "type": qtype,
                "correct": c["correct"],
                "total": c["total"],
                "accuracy": _accuracy(c["correct"], c["total"]),
            }
            for qtype, c in sorted(counts.items())
        ]

    def _question_at(self, questions: List[dict], index: int) -> Optional[dict]:
        if 0 <= index < len(questions) and isinstance(questions[index], dict):
            return questions[index]
        return None

    def _current_streak(self, attempts: List[Attempt], now: datetime) -> int:
        """Consecutive days, ending today, with at least one attempt"""
        days = {_as_utc(a.created_at).date() for a in attempts}
        streak = 0
        day = now.date()
        while day in days:
            streak += 1
            day -= timedelta(days=1)
        return streak


# Global instance
analytics_service = AnalyticsService()

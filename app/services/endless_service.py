"""
Endless practice: rolling batches drawn from the whole test bank
"""
import logging
import random
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.models import Test
from app.schemas.questions import parse_question, source_key

logger = logging.getLogger(__name__)


class EndlessService:
    """
    Serves batches of questions with no session behind them

    Questions the client saw recently are passed back as exclude keys
    (``"{testId}:{index}"``) so they are not repeated right away.
    """

    def __init__(self, rng: random.Random = None):
        self.rng = rng or random.Random()

    def fetch_batch(
        self,
        db: Session,
        level: Optional[str] = None,
        unit: Optional[str] = None,
        exclude: Iterable[str] = (),
        limit: Optional[int] = None
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Draw a random batch from the filtered bank

        Args:
            db: Database session
            level: Only tests at this level
            unit: Only tests in this unit
            exclude: Source keys to leave out
            limit: Batch size, capped at ENDLESS_MAX_BATCH_SIZE

        Returns:
            Tuple of (questions tagged with their source, questions left in the pool)
        """
        size = limit or settings.ENDLESS_BATCH_SIZE
        size = max(1, min(size, settings.ENDLESS_MAX_BATCH_SIZE))
        excluded = set(exclude or ())

        query = db.query(Test)
        if level:
            query = query.filter(Test.level == level)
        if unit:
            query = query.filter(Test.unit == unit)

        pool = []
        for test in query.all():
            for index, question in enumerate(test.questions or []):
                key = source_key(test.id, index)
                if key in excluded:
                    continue
                # Unrecognized questions can never be answered correctly
                if parse_question(question) is None:
                    continue
                pool.append({
                    **question,
                    "sourceTestId": str(test.id),
                    "sourceIndex": index,
                    "sourceKey": key,
                })

        batch = self.rng.sample(pool, min(size, len(pool)))
        remaining = len(pool) - len(batch)

        logger.info(
            f"Endless batch: {len(batch)} questions "
            f"(pool {len(pool)}, excluded {len(excluded)}, level={level}, unit={unit})"
        )
        return batch, remaining


def parse_exclude(raw: Optional[str]) -> List[str]:
    """Comma separated exclude keys from a query string"""
    if not raw:
        return []
    return [key.strip() for key in raw.split(",") if key.strip()]


# Global instance
endless_service = EndlessService()

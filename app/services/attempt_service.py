"""
Attempt creation for every flow that finishes a run
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.models import Attempt, Test
from app.schemas.attempts import DirectAttemptRequest
from app.schemas.endless import EndlessAttemptRequest
from app.services.grading_service import grading_service
from app.services.test_catalog import test_catalog

logger = logging.getLogger(__name__)


class AttemptService:
    """Scores answer sets and writes immutable attempts"""

    def build_attempt(
        self,
        *,
        questions: Sequence[Any],
        answers: Sequence[Any],
        duration: int,
        overdue_time: int,
        mode: str,
        test_id: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
        source_questions: Optional[List[Dict[str, Any]]] = None,
    ) -> Tuple[Attempt, int, int]:
        """
        Score answers and build an (unsaved) attempt

        The caller adds it to the session and commits, so it can share a
        transaction with other writes.

        Returns:
            Tuple of (attempt, score, total)
        """
        score, scored = grading_service.grade_answers(questions, answers)
        total = len(questions)

        attempt = Attempt(
            test_id=test_id,
            user_id=user_id,
            score=score,
            total_questions=total,
            duration=duration,
            overdue_time=overdue_time or 0,
            answers=[item.model_dump(by_alias=True) for item in scored],
            mode=mode,
            source_questions=source_questions,
        )
        return attempt, score, total

    def create_direct_attempt(
        self,
        db: Session,
        test_id: UUID,
        user_id: Optional[UUID],
        request: DirectAttemptRequest
    ) -> Tuple[Attempt, int, int]:
        """
        Score and store a run that had no session (anonymous or one-shot)

        Raises:
            TestNotFoundError: If the test does not exist
        """
        test = test_catalog.get_test(db, test_id)

        attempt, score, total = self.build_attempt(
            questions=test["questions"],
            answers=request.answers,
            duration=request.duration,
            overdue_time=request.overdue_time,
            mode=request.mode,
            test_id=test_id,
            user_id=user_id,
        )
        db.add(attempt)
        db.commit()
        db.refresh(attempt)

        logger.info(f"Direct attempt saved: {attempt.id}, score: {score}/{total}")
        return attempt, score, total

    def create_endless_attempt(
        self,
        db: Session,
        user_id: Optional[UUID],
        request: EndlessAttemptRequest
    ) -> Tuple[Attempt, int, int]:
        """
        Score and store one endless batch

        Each answer is scored against the bank question it came from; a
        source that no longer exists scores as incorrect.
        """
        questions = self._resolve_sources(db, request.source_questions)

        attempt, score, total = self.build_attempt(
            questions=questions,
            answers=request.answers,
            duration=request.duration,
            overdue_time=0,
            mode="Endless",
            user_id=user_id,
            source_questions=[
                source.model_dump(by_alias=True, mode="json")
                for source in request.source_questions
            ],
        )
        db.add(attempt)
        db.commit()
        db.refresh(attempt)

        logger.info(f"Endless attempt saved: {attempt.id}, score: {score}/{total}")
        return attempt, score, total

    def _resolve_sources(self, db: Session, sources) -> List[Optional[dict]]:
        test_ids = {source.test_id for source in sources}
        tests = {
            test.id: test
            for test in db.query(Test).filter(Test.id.in_(test_ids)).all()
        }

        questions = []
        for source in sources:
            test = tests.get(source.test_id)
            bank = (test.questions or []) if test else []
            if 0 <= source.question_index < len(bank):
                questions.append(bank[source.question_index])
            else:
                logger.warning(f"Endless source {source.key} not found, scoring as incorrect")
                questions.append(None)
        return questions


# Global instance
attempt_service = AttemptService()

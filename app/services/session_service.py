"""
Session lifecycle: start or resume, autosave patches, submit, abandon

A session moves ``active -> completed`` (submit) or ``active -> abandoned``
(explicit exit). Terminal sessions are never modified again; every
mutating operation only matches rows that are still ``active``.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import settings
from app.models import Attempt, SESSION_MODES, SessionStatus, Test, TestSession
from app.schemas.sessions import SessionPatch
from app.services.attempt_service import attempt_service
from app.services.grading_service import percentage
from app.services.test_catalog import test_catalog
from app.utils.errors import (
    ErrorMessages,
    SessionNotFoundError,
    SessionValidationError,
    TestNotFoundError,
)

logger = logging.getLogger(__name__)


class SessionService:
    """
    Server-side operations over the session store

    Concurrent patches are last-write-wins: each patch replaces whole
    fields, and clients always send their complete buffer.
    """

    def start(
        self,
        db: Session,
        user_id: UUID,
        test_id: UUID,
        mode: str
    ) -> Tuple[TestSession, bool]:
        """
        Resume the caller's active session for a test or create one

        Args:
            db: Database session
            user_id: Caller
            test_id: Test to take
            mode: "Test" or "Practice"

        Returns:
            Tuple of (session, resumed)

        Raises:
            SessionValidationError: If mode is not a session mode
            TestNotFoundError: If the test does not exist
        """
        if mode not in SESSION_MODES:
            raise SessionValidationError(ErrorMessages.INVALID_MODE)

        existing = self._find_active_for_test(db, user_id, test_id)
        if existing:
            logger.info(f"Resuming session {existing.id} for user {user_id}")
            return existing, True

        if not test_catalog.exists(db, test_id):
            raise TestNotFoundError()

        session = TestSession(
            user_id=user_id,
            test_id=test_id,
            mode=mode,
            answers=[],
            current_question=0,
            remaining_time=settings.time_limit_for(mode),
            status=SessionStatus.ACTIVE,
        )
        db.add(session)
        try:
            db.commit()
        except IntegrityError:
            # Another request created the active session first
            db.rollback()
            existing = self._find_active_for_test(db, user_id, test_id)
            if existing is None:
                raise
            logger.info(f"Concurrent start resolved to session {existing.id}")
            return existing, True

        db.refresh(session)
        logger.info(f"Session created: {session.id} (user {user_id}, test {test_id}, mode {mode})")
        return session, False

    def patch(
        self,
        db: Session,
        session_id: UUID,
        user_id: UUID,
        changes: SessionPatch
    ) -> TestSession:
        """
        Apply an autosave to an active session

        Only fields present in ``changes`` are replaced. The write itself
        only matches an ``active`` row, so a submit or abandon committed
        after the lookup turns the patch into a not-found.

        Raises:
            SessionNotFoundError: If no active session with this id belongs to the caller
        """
        session = self._get_active_owned(db, session_id, user_id)

        values = {TestSession.last_saved_at: datetime.now(timezone.utc)}
        if changes.answers is not None:
            values[TestSession.answers] = [
                answer.model_dump(by_alias=True) for answer in changes.answers
            ]
        if changes.current_question is not None:
            values[TestSession.current_question] = changes.current_question
        if changes.remaining_time is not None:
            values[TestSession.remaining_time] = changes.remaining_time

        updated = db.query(TestSession).filter(
            TestSession.id == session_id,
            TestSession.user_id == user_id,
            TestSession.status == SessionStatus.ACTIVE,
        ).update(values, synchronize_session=False)
        if updated != 1:
            db.rollback()
            logger.info(f"Patch for session {session_id} lost to a concurrent submit or abandon")
            raise SessionNotFoundError()

        db.commit()
        db.refresh(session)
        logger.debug(f"Session {session.id} saved ({len(session.answers or [])} answers)")
        return session

    def submit(
        self,
        db: Session,
        session_id: UUID,
        user_id: UUID,
        overdue_time: int = 0
    ) -> Tuple[Attempt, int, int, int]:
        """
        Score an active session and close it

        The status flip only matches an ``active`` row, so a repeated or
        concurrent submit finds nothing and never scores twice.

        Returns:
            Tuple of (attempt, score, total, percentage)

        Raises:
            SessionNotFoundError: If no active session with this id belongs to the caller
            TestNotFoundError: If the session's test no longer exists
        """
        session = self._get_active_owned(db, session_id, user_id)
        test = test_catalog.get_test(db, session.test_id)

        if not self._transition(db, session_id, user_id, SessionStatus.COMPLETED):
            db.rollback()
            raise SessionNotFoundError()

        budget = settings.time_limit_for(session.mode)
        attempt, score, total = attempt_service.build_attempt(
            questions=test["questions"],
            answers=session.answers or [],
            duration=max(budget - (session.remaining_time or 0), 0),
            overdue_time=overdue_time,
            mode=session.mode,
            test_id=session.test_id,
            user_id=user_id,
        )
        db.add(attempt)
        db.commit()
        db.refresh(attempt)

        logger.info(f"Session {session_id} submitted: {score}/{total}, attempt {attempt.id}")
        return attempt, score, total, percentage(score, total)

    def abandon(self, db: Session, session_id: UUID, user_id: UUID) -> None:
        """
        Mark an active session abandoned; no attempt is produced

        Raises:
            SessionNotFoundError: If no active session with this id belongs to the caller
        """
        if not self._transition(db, session_id, user_id, SessionStatus.ABANDONED):
            db.rollback()
            raise SessionNotFoundError()
        db.commit()
        logger.info(f"Session {session_id} abandoned by user {user_id}")

    def list_active(
        self,
        db: Session,
        user_id: UUID,
        limit: int = None
    ) -> List[Tuple[TestSession, Optional[Test]]]:
        """Caller's active sessions with their tests, most recently saved first"""
        limit = limit or settings.ACTIVE_SESSIONS_LIMIT
        return (
            db.query(TestSession, Test)
            .outerjoin(Test, Test.id == TestSession.test_id)
            .filter(
                TestSession.user_id == user_id,
                TestSession.status == SessionStatus.ACTIVE,
            )
            .order_by(TestSession.last_saved_at.desc())
            .limit(limit)
            .all()
        )

    def get(self, db: Session, session_id: UUID, user_id: UUID) -> TestSession:
        """
        Fetch one of the caller's sessions in any state

        Raises:
            SessionNotFoundError: If the session does not exist or is not the caller's
        """
        session = db.query(TestSession).filter(
            TestSession.id == session_id,
            TestSession.user_id == user_id,
        ).first()
        if not session:
            raise SessionNotFoundError(ErrorMessages.SESSION_NOT_FOUND)
        return session

    def _find_active_for_test(
        self,
        db: Session,
        user_id: UUID,
        test_id: UUID
    ) -> Optional[TestSession]:
        return db.query(TestSession).filter(
            TestSession.user_id == user_id,
            TestSession.test_id == test_id,
            TestSession.status == SessionStatus.ACTIVE,
        ).first()

    def _get_active_owned(self, db: Session, session_id: UUID, user_id: UUID) -> TestSession:
        session = db.query(TestSession).filter(
            TestSession.id == session_id,
            TestSession.user_id == user_id,
            TestSession.status == SessionStatus.ACTIVE,
        ).first()
        if not session:
            raise SessionNotFoundError()
        return session

    def _transition(self, db: Session, session_id: UUID, user_id: UUID, status: str) -> bool:
        """Conditionally move an active session to a terminal status"""
        updated = db.query(TestSession).filter(
            TestSession.id == session_id,
            TestSession.user_id == user_id,
            TestSession.status == SessionStatus.ACTIVE,
        ).update({TestSession.status: status}, synchronize_session="fetch")
        return updated == 1


# Global instance
session_service = SessionService()

"""
Attempt model - immutable scored result of a run
"""
from sqlalchemy import Column, String, Integer, TIMESTAMP, ForeignKey, event
from sqlalchemy import Uuid
from datetime import datetime, timezone
from app.database import Base, JSONType
import uuid


class ImmutableAttemptError(Exception):
    """Raised when code tries to modify a persisted attempt"""


class Attempt(Base):
    """
    Attempts table - durable record of what happened

    Written once by session submit, the direct/anonymous path or the
    endless path. Never updated afterwards.
    """
    __tablename__ = "attempts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    test_id = Column(Uuid, ForeignKey("tests.id"), nullable=True, index=True)  # null for Endless
    user_id = Column(Uuid, nullable=True, index=True)  # null for anonymous
    score = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False)
    duration = Column(Integer, nullable=False)  # seconds within the time budget
    overdue_time = Column(Integer, nullable=False, default=0)  # seconds after expiry
    answers = Column(JSONType, nullable=False, default=list)  # scored answers
    mode = Column(String(20), nullable=False, default="Test")
    source_questions = Column(JSONType, nullable=True)  # Endless: [{test_id, question_index}]
    created_at = Column(TIMESTAMP(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    def __repr__(self):
        return f"<Attempt(id={self.id}, user_id={self.user_id}, score={self.score}/{self.total_questions})>"


@event.listens_for(Attempt, "before_update")
def _reject_attempt_update(mapper, connection, target):
    raise ImmutableAttemptError(f"Attempt {target.id} is immutable")

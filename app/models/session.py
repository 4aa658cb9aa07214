"""
TestSession model - persisted in-progress attempt at a test
"""
from sqlalchemy import Column, String, Integer, TIMESTAMP, ForeignKey, Index, text
from sqlalchemy import Uuid
from datetime import datetime, timezone
from app.database import Base, JSONType
import uuid


SESSION_MODES = ("Test", "Practice")


class SessionStatus:
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


def _utcnow():
    return datetime.now(timezone.utc)


class TestSession(Base):
    """
    Test sessions table - one row per attempt in progress

    A session is mutable only while ``active``; ``completed`` and
    ``abandoned`` are terminal.
    """
    __tablename__ = "test_sessions"
    __test__ = False  # not a pytest class
    __table_args__ = (
        # At most one active session per (user, test)
        Index(
            "uq_test_sessions_active_user_test",
            "user_id",
            "test_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        # Resume prompts: newest save first
        Index("ix_test_sessions_user_status_saved", "user_id", "status", "last_saved_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    test_id = Column(Uuid, ForeignKey("tests.id"), nullable=False)
    mode = Column(String(20), nullable=False)
    answers = Column(JSONType, nullable=False, default=list)  # [{question_index, ...}]
    current_question = Column(Integer, nullable=False, default=0)
    remaining_time = Column(Integer, nullable=False)  # seconds
    status = Column(String(20), nullable=False, default=SessionStatus.ACTIVE)
    started_at = Column(TIMESTAMP(timezone=True), default=_utcnow)
    last_saved_at = Column(TIMESTAMP(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<TestSession(id={self.id}, user_id={self.user_id}, status={self.status})>"

"""
Database models package
"""
from app.models.test import Test
from app.models.session import TestSession, SessionStatus, SESSION_MODES
from app.models.attempt import Attempt, ImmutableAttemptError

__all__ = [
    "Test",
    "TestSession",
    "SessionStatus",
    "SESSION_MODES",
    "Attempt",
    "ImmutableAttemptError",
]

"""
Pytest configuration and shared fixtures for testing.
"""
import os
from pathlib import Path

# Point settings at a throwaway SQLite file and an unreachable Redis before
# anything under app/ is imported; caching degrades to a no-op.
_TEST_DB = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB}"
os.environ["REDIS_URL"] = "redis://127.0.0.1:6399/15"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["RATE_LIMIT_PER_HOUR"] = "1000000"

import uuid  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Test  # noqa: E402
from app.utils.rate_limiter import rate_limiter  # noqa: E402


def override_get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.reset()
    yield


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.
    """
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def asgi_client(db_session):
    """
    Factory for async clients talking to the app in-process.

    Used by the client driver tests.
    """
    app.dependency_overrides[get_db] = override_get_db

    def factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver",
        )

    yield factory
    app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def auth_headers(user_id):
    """Identity header as forwarded by the upstream auth layer."""
    return {"X-User-Id": str(user_id)}


@pytest.fixture
def sample_questions():
    """
    One question of each type, in this order:
    single-choice, multi-choice, short-answer, ordering, fill-blank.
    """
    return [
        {
            "text": "Which letter is second?",
            "type": "single-choice",
            "options": [
                {"text": "A", "isCorrect": False},
                {"text": "B", "isCorrect": True},
                {"text": "C", "isCorrect": False},
            ],
        },
        {
            "text": "Pick the vowels",
            "type": "multi-choice",
            "options": [
                {"text": "A", "isCorrect": True},
                {"text": "B", "isCorrect": False},
                {"text": "E", "isCorrect": True},
            ],
        },
        {
            "text": "Capital of Korea?",
            "type": "short-answer",
            "acceptedAnswers": ["Seoul", "서울"],
        },
        {
            "text": "Order the numbers",
            "type": "ordering",
            "items": ["one", "two", "three", "four"],
            "correctOrder": [0, 1, 2, 3],
        },
        {
            "text": "___ has its capital in ___",
            "type": "fill-blank",
            "blanks": [
                {"acceptedAnswers": ["한국", "Korea"]},
                {"acceptedAnswers": ["서울", "Seoul"]},
            ],
        },
    ]


@pytest.fixture
def correct_answers():
    """Answers that are correct for every question in ``sample_questions``."""
    return [
        {"questionIndex": 0, "selectedOptions": [1]},
        {"questionIndex": 1, "selectedOptions": [2, 0]},
        {"questionIndex": 2, "textAnswer": "  SEOUL  "},
        {"questionIndex": 3, "orderedItems": [0, 1, 2, 3]},
        {"questionIndex": 4, "blankAnswers": ["korea", "SEOUL"]},
    ]


def make_test(db, questions, title="Sample test", level="A1", unit="1"):
    test = Test(title=title, category="General", level=level, unit=unit, questions=questions)
    db.add(test)
    db.commit()
    db.refresh(test)
    return test


@pytest.fixture
def sample_test(db_session, sample_questions):
    return make_test(db_session, sample_questions)


@pytest.fixture
def test_factory(db_session):
    """Create extra tests in the bank."""
    def factory(questions, **kwargs):
        return make_test(db_session, questions, **kwargs)
    return factory

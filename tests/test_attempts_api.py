"""
Tests for test lookup and direct attempts
"""
import uuid

import pytest

from app.models import Attempt, ImmutableAttemptError
from app.services.grading_service import percentage


class TestGetTest:
    def test_returns_ordered_questions(self, client, sample_test, sample_questions):
        response = client.get(f"/api/tests/{sample_test.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(sample_test.id)
        assert data["title"] == "Sample test"
        assert data["questions"] == sample_questions

    def test_unknown_test(self, client):
        response = client.get(f"/api/tests/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "http_error"

    def test_malformed_id(self, client):
        assert client.get("/api/tests/not-a-uuid").status_code == 400


class TestDirectAttempt:
    def test_anonymous_attempt(self, client, sample_test, correct_answers):
        response = client.post(f"/api/tests/{sample_test.id}/attempt", json={
            "answers": correct_answers[:3],
            "duration": 95,
        })

        assert response.status_code == 201
        data = response.json()
        assert data["score"] == 3
        assert data["total"] == 5
        assert data["percentage"] == 60
        assert data["attempt"]["userId"] is None
        assert data["attempt"]["duration"] == 95
        assert data["attempt"]["overdueTime"] == 0
        assert data["attempt"]["mode"] == "Test"

    def test_attempt_with_identity(self, client, auth_headers, user_id, sample_test, correct_answers):
        response = client.post(f"/api/tests/{sample_test.id}/attempt", json={
            "answers": correct_answers,
            "duration": 300,
            "overdueTime": 20,
            "mode": "Practice",
        }, headers=auth_headers)

        data = response.json()
        assert data["score"] == 5
        assert data["attempt"]["userId"] == str(user_id)
        assert data["attempt"]["overdueTime"] == 20
        assert data["attempt"]["mode"] == "Practice"

    def test_client_correctness_flags_ignored(self, client, sample_test):
        response = client.post(f"/api/tests/{sample_test.id}/attempt", json={
            "answers": [
                {"questionIndex": 0, "selectedOptions": [0], "isCorrect": True},
                {"questionIndex": 2, "textAnswer": "Busan", "isCorrect": True},
            ],
            "duration": 10,
        })

        data = response.json()
        assert data["score"] == 0
        assert not any(a["isCorrect"] for a in data["attempt"]["answers"])

    def test_every_question_gets_a_scored_answer(self, client, sample_test):
        response = client.post(f"/api/tests/{sample_test.id}/attempt", json={
            "answers": [],
            "duration": 10,
        })

        answers = response.json()["attempt"]["answers"]
        assert [a["questionIndex"] for a in answers] == [0, 1, 2, 3, 4]
        assert all(a["isOverdue"] is False for a in answers)

    def test_unknown_test(self, client):
        response = client.post(f"/api/tests/{uuid.uuid4()}/attempt", json={"duration": 5})
        assert response.status_code == 404

    def test_duration_required(self, client, sample_test, db_session):
        response = client.post(f"/api/tests/{sample_test.id}/attempt", json={"answers": []})

        assert response.status_code == 400
        db_session.expire_all()
        assert db_session.query(Attempt).count() == 0

    def test_endless_mode_rejected(self, client, sample_test):
        response = client.post(f"/api/tests/{sample_test.id}/attempt", json={
            "duration": 5,
            "mode": "Endless",
        })
        assert response.status_code == 400


class TestAttemptImmutability:
    def test_update_rejected(self, client, sample_test, db_session):
        created = client.post(f"/api/tests/{sample_test.id}/attempt", json={"duration": 5}).json()

        attempt = db_session.query(Attempt).filter(
            Attempt.id == uuid.UUID(created["attempt"]["id"])
        ).one()
        attempt.score = 5

        with pytest.raises(ImmutableAttemptError):
            db_session.commit()
        db_session.rollback()

        db_session.expire_all()
        assert db_session.query(Attempt).one().score == 0


@pytest.mark.parametrize("score,total,expected", [
    (0, 5, 0),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),
    (5, 5, 100),
    (0, 0, 0),
])
def test_percentage(score, total, expected):
    assert percentage(score, total) == expected

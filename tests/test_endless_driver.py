"""
Tests for the endless practice client driver
"""
import pytest

from app.client.api_client import AssessmentApiClient
from app.client.endless_driver import EndlessDriver
from app.client.results import ApiError
from app.client.scheduler import ManualScheduler
from app.services.grading_service import percentage

# Correct answer for each question of ``sample_questions`` by index
CORRECT = {
    0: {"selected_options": [1]},
    1: {"selected_options": [0, 2]},
    2: {"text_answer": "Seoul"},
    3: {"ordered_items": [0, 1, 2, 3]},
    4: {"blank_answers": ["Korea", "Seoul"]},
}


class TestEndlessDriver:
    @pytest.mark.asyncio
    async def test_exclude_window_keeps_latest_keys(
        self, asgi_client, user_id, test_factory, sample_questions
    ):
        for i in range(8):
            test_factory(sample_questions, title=f"Bank {i}")

        async with asgi_client() as http:
            driver = EndlessDriver(
                AssessmentApiClient(http, user_id=str(user_id)), ManualScheduler(),
                batch_size=10, exclude_window=30,
            )
            await driver.start()

            seen = []
            for _ in range(35):
                seen.append(driver.current_question["sourceKey"])
                await driver.next()

        assert len(set(seen)) == 35
        assert list(driver.exclude_keys) == seen[-30:]
        assert driver.total_answered == 35
        assert len(driver.attempts) == 3

    @pytest.mark.asyncio
    async def test_finishing_batch_submits_and_fetches(
        self, asgi_client, user_id, sample_test
    ):
        async with asgi_client() as http:
            scheduler = ManualScheduler()
            driver = EndlessDriver(
                AssessmentApiClient(http, user_id=str(user_id)), scheduler, batch_size=5,
            )
            await driver.start()
            assert len(driver.questions) == 5

            await scheduler.advance(7)
            for _ in range(5):
                driver.answer(**CORRECT[driver.current_question["sourceIndex"]])
                assert driver.check_current() is True
                assert await driver.next() is True

        assert len(driver.attempts) == 1
        attempt = driver.attempts[0]
        assert attempt["score"] == 5
        assert attempt["total"] == 5
        assert attempt["attempt"]["mode"] == "Endless"
        assert attempt["attempt"]["duration"] == 7
        assert attempt["attempt"]["userId"] == str(user_id)
        assert driver.accuracy == 100
        # Every question in the bank was excluded, so the pool is exhausted
        assert driver.questions == []
        assert driver.current_question is None
        assert await driver.next() is False

    @pytest.mark.asyncio
    async def test_unanswered_question_scored_like_server(
        self, asgi_client, user_id, sample_test
    ):
        async with asgi_client() as http:
            driver = EndlessDriver(
                AssessmentApiClient(http, user_id=str(user_id)), ManualScheduler(), batch_size=5,
            )
            await driver.start()
            for _ in range(5):
                await driver.next()

        assert driver.total_correct == 0
        assert driver.accuracy == 0
        assert driver.attempts[0]["score"] == 0

    @pytest.mark.asyncio
    async def test_end_submits_answered_prefix(self, asgi_client, user_id, sample_test):
        async with asgi_client() as http:
            scheduler = ManualScheduler()
            driver = EndlessDriver(
                AssessmentApiClient(http, user_id=str(user_id)), scheduler, batch_size=5,
            )
            await driver.start()

            driver.answer(**CORRECT[driver.current_question["sourceIndex"]])
            await driver.next()
            driver.answer(text_answer="wrong")
            await scheduler.advance(3)
            await driver.end()
            await driver.end()

        assert len(driver.attempts) == 1
        attempt = driver.attempts[0]["attempt"]
        assert attempt["totalQuestions"] == 2
        assert attempt["score"] == 1
        assert attempt["duration"] == 3
        assert len(attempt["sourceQuestions"]) == 2
        assert driver.ended
        assert scheduler.pending == 0
        assert await driver.next() is False

    @pytest.mark.asyncio
    async def test_end_without_answers_stores_nothing(self, asgi_client, user_id, sample_test):
        async with asgi_client() as http:
            driver = EndlessDriver(AssessmentApiClient(http, user_id=str(user_id)), ManualScheduler())
            await driver.start()
            await driver.end()

        assert driver.attempts == []

    @pytest.mark.asyncio
    async def test_failed_chunk_submit_is_logged(
        self, asgi_client, user_id, sample_test, monkeypatch
    ):
        async with asgi_client() as http:
            api = AssessmentApiClient(http, user_id=str(user_id))
            driver = EndlessDriver(api, ManualScheduler(), batch_size=5)
            await driver.start()

            async def failing_submit(payload):
                raise ApiError("server unavailable", 503)

            monkeypatch.setattr(api, "submit_endless_attempt", failing_submit)
            for _ in range(5):
                await driver.next()

        assert driver.attempts == []
        assert driver.total_answered == 5

    @pytest.mark.asyncio
    async def test_failed_fetch_leaves_empty_batch(
        self, asgi_client, user_id, sample_test, monkeypatch
    ):
        async with asgi_client() as http:
            api = AssessmentApiClient(http, user_id=str(user_id))

            async def failing_fetch(**kwargs):
                raise ApiError("server unavailable", 503)

            monkeypatch.setattr(api, "fetch_endless_batch", failing_fetch)
            driver = EndlessDriver(api, ManualScheduler())
            loaded = await driver.fetch_batch()

        assert loaded is False
        assert driver.questions == []
        assert driver.remaining == 0


@pytest.mark.parametrize("correct,answered,expected", [
    (0, 0, 0),
    (1, 8, 13),
    (5, 8, 63),
    (1, 3, 33),
    (7, 7, 100),
])
def test_accuracy_rounds_like_server(correct, answered, expected):
    driver = EndlessDriver(api=None, scheduler=ManualScheduler())
    driver.total_correct = correct
    driver.total_answered = answered

    assert driver.accuracy == expected
    assert driver.accuracy == percentage(correct, answered)

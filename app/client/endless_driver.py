"""
Client-side driver for endless practice

No server session backs an endless run. Questions arrive in batches,
each answer gets immediate feedback from the shared scorer, and every
finished batch is stored as its own attempt.
"""
import logging
from collections import deque
from typing import Any, Dict, List, Optional

from app.client.api_client import AssessmentApiClient
from app.client.results import ApiError
from app.client.scheduler import CancelToken, Scheduler
from app.config import settings
from app.schemas.questions import Answer
from app.services.grading_service import percentage, score_question

logger = logging.getLogger(__name__)

BATCH_SIZE = settings.ENDLESS_BATCH_SIZE
EXCLUDE_WINDOW = settings.ENDLESS_EXCLUDE_WINDOW


class EndlessDriver:
    """
    Runs an endless practice run until ``end``

    The most recent question keys (up to ``exclude_window``, oldest
    evicted first) are sent with every batch request to avoid repeats.
    """

    def __init__(
        self,
        api: AssessmentApiClient,
        scheduler: Scheduler,
        level: Optional[str] = None,
        unit: Optional[str] = None,
        batch_size: int = BATCH_SIZE,
        exclude_window: int = EXCLUDE_WINDOW
    ):
        self.api = api
        self.scheduler = scheduler
        self.level = level
        self.unit = unit
        self.batch_size = batch_size

        self.exclude_keys: deque = deque(maxlen=exclude_window)
        self.questions: List[Dict[str, Any]] = []
        self.answers: Dict[int, Answer] = {}
        self.current_index = 0
        self.remaining = 0
        self.total_answered = 0
        self.total_correct = 0
        self.duration = 0
        self.started = False
        self.ended = False
        self.attempts: List[Dict[str, Any]] = []

        self._chunk_started_at = 0
        self._timer: Optional[CancelToken] = None

    @property
    def accuracy(self) -> int:
        """Running accuracy, rounded like the server's percentage"""
        return percentage(self.total_correct, self.total_answered)

    @property
    def current_question(self) -> Optional[Dict[str, Any]]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    async def start(self) -> None:
        self.started = True
        self._timer = self.scheduler.every(1, self._tick)
        await self.fetch_batch()

    async def fetch_batch(self) -> bool:
        """
        Load the next batch, replacing the current one

        Returns:
            False if the request failed or the pool is exhausted
        """
        try:
            payload = await self.api.fetch_endless_batch(
                level=self.level,
                unit=self.unit,
                exclude=list(self.exclude_keys),
                limit=self.batch_size,
            )
        except ApiError as e:
            logger.error(f"Failed to fetch endless batch: {str(e)}")
            payload = {"questions": [], "remaining": 0}

        self.questions = list(payload.get("questions") or [])
        self.remaining = payload.get("remaining", 0)
        self.current_index = 0
        self.answers = {}
        self._chunk_started_at = self.duration
        return bool(self.questions)

    def answer(self, **fields) -> Answer:
        """Record the answer for the current question"""
        answer = Answer(question_index=self.current_index, **fields)
        self.answers[self.current_index] = answer
        return answer

    def check_current(self) -> bool:
        """Live feedback for the current answer, scored exactly as the server will"""
        question = self.current_question
        if question is None:
            return False
        return score_question(question, self.answers.get(self.current_index))

    async def next(self) -> bool:
        """
        Lock in the current question and move on

        Finishing the last question of a batch submits the batch and
        fetches a new one.

        Returns:
            Whether the current answer was correct
        """
        question = self.current_question
        if question is None or self.ended:
            return False

        correct = self.check_current()
        self.total_answered += 1
        if correct:
            self.total_correct += 1
        self.exclude_keys.append(question["sourceKey"])

        if self.current_index >= len(self.questions) - 1:
            await self.submit_chunk(len(self.questions))
            await self.fetch_batch()
        else:
            self.current_index += 1
        return correct

    async def end(self) -> None:
        """Submit whatever was answered in this batch and stop; there is no resume"""
        if self.ended:
            return
        if self.answers:
            seen = max(self.answers) + 1
            await self.submit_chunk(seen)
        self.ended = True
        if self._timer:
            self._timer.cancel()
            self._timer = None

    async def submit_chunk(self, count: int) -> Optional[Dict[str, Any]]:
        """
        Store the first ``count`` questions of the batch as an attempt

        Failures are logged and dropped.
        """
        chunk = self.questions[:count]
        if not chunk:
            return None

        payload = {
            "answers": [
                self.answers[index].model_dump(by_alias=True)
                for index in sorted(self.answers)
                if index < count
            ],
            "duration": self.duration - self._chunk_started_at,
            "sourceQuestions": [
                {"testId": q["sourceTestId"], "questionIndex": q["sourceIndex"]}
                for q in chunk
            ],
        }
        try:
            result = await self.api.submit_endless_attempt(payload)
        except ApiError as e:
            logger.error(f"Failed to save endless attempt: {str(e)}")
            return None

        self.attempts.append(result)
        return result

    def _tick(self) -> None:
        if not self.ended:
            self.duration += 1

"""
Client-side driver for a timed test session

Owns the local answer buffer, the countdown/overdue timer and periodic
autosave, and talks to the session endpoints through
``AssessmentApiClient``. Timers come from an injected scheduler so the
whole flow can run against a virtual clock.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from app.client.api_client import AssessmentApiClient
from app.client.results import (
    ApiError,
    AutosaveResult,
    AutosaveStatus,
    ConfirmationRequired,
    SessionGoneError,
    SubmissionResult,
    SubmitError,
)
from app.client.scheduler import CancelToken, Scheduler
from app.schemas.questions import Answer
from app.services.grading_service import score_question

logger = logging.getLogger(__name__)

AUTOSAVE_INTERVAL = 30  # seconds
TICK_INTERVAL = 1  # seconds

EXIT_WARNING = "Progress exists but may not be the latest autosaved state. Leave anyway?"
MODE_SWITCH_WARNING = "Switching mode discards your answers and restarts from the first question."


class SessionTimer:
    """
    Countdown that turns into an overdue counter

    While time remains each tick takes a second off ``remaining_time``;
    once it reaches zero ticks add to ``overdue_seconds`` instead, with
    no upper bound.
    """

    def __init__(self, remaining_time: int):
        self.remaining_time = max(int(remaining_time), 0)
        self.overdue_seconds = 0

    @property
    def is_overdue(self) -> bool:
        return self.remaining_time <= 0

    def tick(self) -> None:
        if self.remaining_time > 0:
            self.remaining_time -= 1
        else:
            self.overdue_seconds += 1


class AnswerBuffer:
    """Local answers keyed by question index"""

    def __init__(self, answers: Optional[Dict[int, Answer]] = None):
        self._answers: Dict[int, Answer] = dict(answers or {})

    @classmethod
    def from_payload(cls, items: Iterable[Dict[str, Any]]) -> "AnswerBuffer":
        """Rebuild from the array form stored on the server"""
        answers = {}
        for item in items or []:
            answer = Answer.model_validate(item)
            answers[answer.question_index] = answer
        return cls(answers)

    def to_payload(self) -> List[Dict[str, Any]]:
        """Array form sent to the server, one entry per answered question"""
        return [
            self._answers[index].model_dump(by_alias=True)
            for index in sorted(self._answers)
        ]

    def set(self, index: int, **fields) -> Answer:
        answer = Answer(question_index=index, **fields)
        self._answers[index] = answer
        return answer

    def get(self, index: int) -> Optional[Answer]:
        return self._answers.get(index)

    def clear(self) -> None:
        self._answers.clear()

    def __len__(self) -> int:
        return len(self._answers)

    def __bool__(self) -> bool:
        return bool(self._answers)


class SessionDriver:
    """
    Runs one test session from start (or resume) to submit

    Usage:
        driver = SessionDriver(api, AsyncioScheduler())
        await driver.start(test_id, "Test")
        driver.answer(0, selected_options=[1])
        result = await driver.submit()
    """

    def __init__(
        self,
        api: AssessmentApiClient,
        scheduler: Scheduler,
        autosave_interval: float = AUTOSAVE_INTERVAL,
        tick_interval: float = TICK_INTERVAL
    ):
        self.api = api
        self.scheduler = scheduler
        self.autosave_interval = autosave_interval
        self.tick_interval = tick_interval

        self.test_id: Optional[str] = None
        self.session_id: Optional[str] = None
        self.mode: Optional[str] = None
        self.questions: List[Dict[str, Any]] = []
        self.buffer = AnswerBuffer()
        self.current_question = 0
        self.timer: Optional[SessionTimer] = None
        self.resumed = False
        self.submitted = False
        self.result: Optional[SubmissionResult] = None
        self.last_autosave: Optional[AutosaveResult] = None
        self._jobs: List[CancelToken] = []

    async def start(self, test_id: str, mode: str = "Test") -> bool:
        """
        Start or resume the session for a test

        On resume the stored answers, question pointer and remaining time
        are restored exactly as the server returned them.

        Returns:
            True if an existing session was resumed
        """
        self.close()
        test = await self.api.get_test(test_id)
        payload = await self.api.start_session(test_id, mode)
        session = payload["session"]

        self.test_id = str(test_id)
        self.questions = list(test.get("questions") or [])
        self._hydrate(session, resumed=bool(payload.get("resumed")))
        self._schedule()

        logger.info(
            f"Session {self.session_id} {'resumed' if self.resumed else 'started'} "
            f"({self.mode}, {len(self.buffer)} answers, {self.timer.remaining_time}s left)"
        )
        return self.resumed

    def answer(self, index: int, **fields) -> Answer:
        """Record the answer for a question, replacing any earlier one"""
        if self.submitted:
            raise SubmitError("Session already submitted")
        return self.buffer.set(index, **fields)

    def go_to(self, index: int) -> int:
        if self.questions:
            index = max(0, min(index, len(self.questions) - 1))
        self.current_question = max(index, 0)
        return self.current_question

    def check_answer(self, index: int) -> bool:
        """Live feedback with the same scoring the server uses"""
        if not 0 <= index < len(self.questions):
            return False
        return score_question(self.questions[index], self.buffer.get(index))

    @property
    def exit_requires_confirmation(self) -> bool:
        return bool(self.buffer) and not self.submitted

    async def leave(self, confirmed: bool = False) -> None:
        """
        Leave the session view

        The session stays active on the server for a later resume.

        Raises:
            ConfirmationRequired: If unsubmitted answers exist and the caller did not confirm
        """
        if self.exit_requires_confirmation and not confirmed:
            raise ConfirmationRequired(EXIT_WARNING)
        self.close()

    async def abandon(self) -> None:
        """Explicitly end the session without scoring it"""
        if self.session_id and not self.submitted:
            try:
                await self.api.abandon_session(self.session_id)
            except SessionGoneError:
                logger.info(f"Session {self.session_id} already ended elsewhere")
        self.close()
        self.session_id = None
        self.buffer.clear()

    async def change_mode(self, mode: str, confirmed: bool = False) -> None:
        """
        Switch between Test and Practice

        Mode is part of the session's identity: the current session is
        abandoned and a fresh one started, with answers and the question
        pointer reset.

        Raises:
            ConfirmationRequired: If answers exist and the caller did not confirm
        """
        if mode == self.mode:
            return
        if self.buffer and not confirmed:
            raise ConfirmationRequired(MODE_SWITCH_WARNING)

        test_id = self.test_id
        await self.abandon()
        self.current_question = 0
        await self.start(test_id, mode)

    def snapshot(self) -> Dict[str, Any]:
        """Full current state in patch form"""
        return {
            "answers": self.buffer.to_payload(),
            "currentQuestion": self.current_question,
            "remainingTime": self.timer.remaining_time if self.timer else 0,
        }

    async def autosave(self) -> AutosaveResult:
        """
        Send the full local state as a patch

        Failures are logged and recovered, never raised.
        """
        if self.session_id is None or self.submitted:
            result = AutosaveResult(AutosaveStatus.SKIPPED)
        else:
            try:
                await self.api.patch_session(self.session_id, self.snapshot())
                result = AutosaveResult(AutosaveStatus.SAVED)
            except ApiError as e:
                logger.warning(f"Autosave failed for session {self.session_id}: {str(e)}")
                result = AutosaveResult(AutosaveStatus.RECOVERED, error=str(e))

        self.last_autosave = result
        return result

    async def submit(self) -> SubmissionResult:
        """
        Save the final state and submit for scoring

        There is no automatic retry and no local fallback score.

        Raises:
            SubmitError: If there is nothing to submit or the server rejected it
        """
        if self.submitted:
            raise SubmitError("Session already submitted")
        if self.session_id is None:
            raise SubmitError("No session to submit")

        overdue = self.timer.overdue_seconds if self.timer else 0
        try:
            await self.api.patch_session(self.session_id, self.snapshot())
            payload = await self.api.submit_session(self.session_id, overdue_time=overdue)
        except ApiError as e:
            logger.error(f"Submit failed for session {self.session_id}: {str(e)}")
            raise SubmitError(str(e)) from e

        self.submitted = True
        self.close()
        self.result = SubmissionResult(
            score=payload["score"],
            total=payload["total"],
            percentage=payload["percentage"],
            attempt=payload.get("attempt") or {},
        )
        logger.info(f"Session {self.session_id} submitted: {self.result.score}/{self.result.total}")
        return self.result

    def close(self) -> None:
        """Stop the timer and autosave"""
        for token in self._jobs:
            token.cancel()
        self._jobs = []

    def _hydrate(self, session: Dict[str, Any], resumed: bool) -> None:
        self.session_id = session["id"]
        self.mode = session["mode"]
        self.resumed = resumed
        self.submitted = False
        self.result = None
        stored = session.get("answers") or []
        self.buffer = AnswerBuffer.from_payload(stored) if resumed and stored else AnswerBuffer()
        self.current_question = session.get("currentQuestion", 0)
        self.timer = SessionTimer(session.get("remainingTime", 0))

    def _schedule(self) -> None:
        self._jobs = [
            self.scheduler.every(self.tick_interval, self._tick),
            self.scheduler.every(self.autosave_interval, self.autosave),
        ]

    def _tick(self) -> None:
        if not self.submitted and self.timer:
            self.timer.tick()

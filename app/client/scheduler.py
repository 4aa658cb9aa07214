"""
Timer scheduling for the client drivers

Drivers never touch the event loop clock directly; they ask a scheduler
for repeating jobs and keep the returned tokens for cancellation. Tests
swap in ``ManualScheduler`` to move time forward explicitly.
"""
import asyncio
import inspect
import itertools
import logging
from typing import Any, Awaitable, Callable, List, Protocol, Set, Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[None, Awaitable[Any]]]


class CancelToken:
    """Handle for one scheduled job"""

    def __init__(self):
        self._cancelled = False
        self._on_cancel: List[Callable[[], Any]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for hook in self._on_cancel:
            hook()


class Scheduler(Protocol):
    def every(self, interval: float, callback: Callback) -> CancelToken:
        ...

    def cancel_all(self) -> None:
        ...


async def _invoke(callback: Callback) -> None:
    result = callback()
    if inspect.isawaitable(result):
        await result


class AsyncioScheduler:
    """Runs repeating jobs as asyncio tasks on the running loop"""

    def __init__(self):
        self._tokens: Set[CancelToken] = set()

    def every(self, interval: float, callback: Callback) -> CancelToken:
        token = CancelToken()
        task = asyncio.get_running_loop().create_task(self._run(interval, callback, token))
        token._on_cancel.append(task.cancel)
        token._on_cancel.append(lambda: self._tokens.discard(token))
        self._tokens.add(token)
        return token

    def cancel_all(self) -> None:
        for token in list(self._tokens):
            token.cancel()

    async def _run(self, interval: float, callback: Callback, token: CancelToken) -> None:
        while not token.cancelled:
            await asyncio.sleep(interval)
            if token.cancelled:
                break
            try:
                await _invoke(callback)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled job failed")


class _Job:
    def __init__(self, seq: int, interval: float, next_run: float, callback: Callback, token: CancelToken):
        self.seq = seq
        self.interval = interval
        self.next_run = next_run
        self.callback = callback
        self.token = token


class ManualScheduler:
    """
    Virtual clock for deterministic runs

    Jobs fire only inside ``advance``, in due-time order; jobs due at the
    same instant fire in the order they were scheduled.
    """

    def __init__(self):
        self.now = 0.0
        self._jobs: List[_Job] = []
        self._seq = itertools.count()

    def every(self, interval: float, callback: Callback) -> CancelToken:
        if interval <= 0:
            raise ValueError("interval must be positive")
        token = CancelToken()
        self._jobs.append(_Job(next(self._seq), interval, self.now + interval, callback, token))
        return token

    def cancel_all(self) -> None:
        for job in self._jobs:
            job.token.cancel()
        self._jobs = []

    @property
    def pending(self) -> int:
        """Number of live jobs"""
        return sum(1 for job in self._jobs if not job.token.cancelled)

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [
                job for job in self._jobs
                if not job.token.cancelled and job.next_run <= target
            ]
            if not due:
                break
            job = min(due, key=lambda j: (j.next_run, j.seq))
            self.now = job.next_run
            job.next_run += job.interval
            await _invoke(job.callback)
        self.now = target
        self._jobs = [job for job in self._jobs if not job.token.cancelled]

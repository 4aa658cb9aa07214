"""
Outcomes and errors reported by the client drivers
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class AutosaveStatus(str, Enum):
    SAVED = "saved"
    SKIPPED = "skipped"
    RECOVERED = "recovered"


@dataclass(frozen=True)
class AutosaveResult:
    """
    Outcome of one autosave cycle

    ``RECOVERED`` means the save failed and was dropped; the next cycle or
    the final submit resends the full state.
    """
    status: AutosaveStatus
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != AutosaveStatus.RECOVERED


@dataclass(frozen=True)
class SubmissionResult:
    score: int
    total: int
    percentage: int
    attempt: Dict[str, Any] = field(default_factory=dict)


class ApiError(Exception):
    """A request to the assessment API failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SessionGoneError(ApiError):
    """404: the session ended elsewhere or the test is gone"""


class SubmitError(Exception):
    """Final submission failed; the run has no server-side attempt"""


class ConfirmationRequired(Exception):
    """The action would discard local progress and needs explicit confirmation"""

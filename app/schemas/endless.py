"""
Pydantic schemas for endless practice
"""
from pydantic import Field
from typing import List

from app.schemas.questions import Answer, CamelModel, SourceQuestion


class EndlessBatchResponse(CamelModel):
    """
    A batch of questions drawn from the whole bank

    Each question carries ``sourceTestId``, ``sourceIndex`` and
    ``sourceKey`` so clients can attribute answers and exclude repeats.
    """
    questions: List[dict]
    remaining: int


class EndlessAttemptRequest(CamelModel):
    """Answers for one finished batch; ``questionIndex`` i answers source i"""
    answers: List[Answer] = Field(default_factory=list)
    duration: int = Field(0, ge=0)
    source_questions: List[SourceQuestion] = Field(..., min_length=1)

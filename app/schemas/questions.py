"""
Question variants and answer shapes shared by the server and the client drivers

Questions are a closed tagged union over ``type``. Stored and wire data is
camelCase; Python code uses snake_case field names.
"""
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from typing import Annotated, Any, List, Literal, Mapping, Optional, Union
from uuid import UUID


class CamelModel(BaseModel):
    """Base model reading and writing camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Option(CamelModel):
    text: str = ""
    is_correct: bool = False


class Blank(CamelModel):
    accepted_answers: List[str] = Field(default_factory=list)


class _QuestionBase(CamelModel):
    text: str = ""
    explanation: Optional[str] = None
    image: Optional[str] = None


class SingleChoiceQuestion(_QuestionBase):
    type: Literal["single-choice"] = "single-choice"
    options: List[Option] = Field(default_factory=list)


class MultiChoiceQuestion(_QuestionBase):
    type: Literal["multi-choice"] = "multi-choice"
    options: List[Option] = Field(default_factory=list)


class ShortAnswerQuestion(_QuestionBase):
    type: Literal["short-answer"] = "short-answer"
    accepted_answers: List[str] = Field(default_factory=list)


class OrderingQuestion(_QuestionBase):
    type: Literal["ordering"] = "ordering"
    items: List[str] = Field(default_factory=list)
    correct_order: List[int] = Field(default_factory=list)


class FillBlankQuestion(_QuestionBase):
    type: Literal["fill-blank"] = "fill-blank"
    blanks: List[Blank] = Field(default_factory=list)


Question = Annotated[
    Union[
        SingleChoiceQuestion,
        MultiChoiceQuestion,
        ShortAnswerQuestion,
        OrderingQuestion,
        FillBlankQuestion,
    ],
    Field(discriminator="type"),
]

# Type names written by older versions of the authoring tool
LEGACY_TYPE_ALIASES = {
    "mcq-single": "single-choice",
    "multiple-choice": "single-choice",
    "mcq-multiple": "multi-choice",
    "fill-in-the-blank": "fill-blank",
}

DEFAULT_QUESTION_TYPE = "single-choice"

_question_adapter = TypeAdapter(Question)


def normalize_question_type(raw_type: Any) -> str:
    """Canonical type name for a stored question; missing type means single-choice"""
    if not raw_type:
        return DEFAULT_QUESTION_TYPE
    raw_type = str(raw_type)
    return LEGACY_TYPE_ALIASES.get(raw_type, raw_type)


def parse_question(raw: Any) -> Optional[Question]:
    """
    Parse a stored question into its variant

    Returns None for unrecognized types or malformed payloads; callers
    treat that as a question nobody can answer correctly.
    """
    if isinstance(raw, _QuestionBase):
        return raw
    if not isinstance(raw, Mapping):
        return None

    data = dict(raw)
    data["type"] = normalize_question_type(data.get("type"))
    try:
        return _question_adapter.validate_python(data)
    except ValidationError:
        return None


class Answer(CamelModel):
    """User input for one question; only the fields for its type are filled"""
    question_index: int = 0
    selected_options: List[int] = Field(default_factory=list)
    text_answer: str = ""
    ordered_items: List[int] = Field(default_factory=list)
    blank_answers: List[str] = Field(default_factory=list)

    @field_validator("selected_options", "ordered_items", "blank_answers", mode="before")
    @classmethod
    def _none_as_empty_list(cls, value):
        return [] if value is None else value

    @field_validator("text_answer", mode="before")
    @classmethod
    def _none_as_empty_text(cls, value):
        return "" if value is None else value

    @classmethod
    def empty(cls, question_index: int) -> "Answer":
        return cls(question_index=question_index)


class ScoredAnswer(Answer):
    is_correct: bool = False
    is_overdue: bool = False


class SourceQuestion(CamelModel):
    """Where an endless-mode question came from"""
    test_id: UUID
    question_index: int

    @property
    def key(self) -> str:
        return source_key(self.test_id, self.question_index)


def source_key(test_id: Any, question_index: int) -> str:
    """Stable key for a question inside the test bank"""
    return f"{test_id}:{question_index}"

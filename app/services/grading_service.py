"""
Answer scoring shared by every flow

The same code scores the client's live preview and the server's
authoritative result, so the two can never disagree.

- Single choice: the first selected option is a correct option
- Multi choice: selected set equals the correct set
- Short answer: trimmed, case-folded match against accepted answers
- Ordering: positional match against the correct order
- Fill blank: every blank matches one of its accepted answers
"""
import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from app.schemas.questions import (
    Answer,
    FillBlankQuestion,
    MultiChoiceQuestion,
    OrderingQuestion,
    ScoredAnswer,
    ShortAnswerQuestion,
    SingleChoiceQuestion,
    parse_question,
)

logger = logging.getLogger(__name__)


def _normalize(text: Any) -> str:
    if not isinstance(text, str):
        return ""
    return text.strip().casefold()


def percentage(score: int, total: int) -> int:
    """Whole-number percentage, halves rounded up"""
    if total <= 0:
        return 0
    return int(math.floor(score / total * 100 + 0.5))


class GradingService:
    """
    Pure scoring of answers against question definitions

    ``score_question`` never raises: missing or malformed input is
    simply incorrect, so one bad answer cannot abort grading of the rest.
    """

    def score_question(self, question: Any, answer: Any) -> bool:
        """
        Decide whether an answer is correct

        Args:
            question: Parsed question variant or raw stored mapping
            answer: ``Answer``, raw mapping, or None for "not answered"

        Returns:
            True if correct
        """
        parsed = parse_question(question)
        if parsed is None:
            logger.debug("Unrecognized or malformed question, scoring as incorrect")
            return False

        submitted = self._coerce_answer(answer)
        if submitted is None:
            return False

        if isinstance(parsed, SingleChoiceQuestion):
            return self._score_single_choice(parsed, submitted)
        if isinstance(parsed, MultiChoiceQuestion):
            return self._score_multi_choice(parsed, submitted)
        if isinstance(parsed, ShortAnswerQuestion):
            return self._score_short_answer(parsed, submitted)
        if isinstance(parsed, OrderingQuestion):
            return self._score_ordering(parsed, submitted)
        if isinstance(parsed, FillBlankQuestion):
            return self._score_fill_blank(parsed, submitted)
        return False

    def grade_answers(
        self,
        questions: Sequence[Any],
        answers: Iterable[Any]
    ) -> Tuple[int, List[ScoredAnswer]]:
        """
        Score a full answer set against an ordered question list

        Every question gets exactly one scored answer. Questions with no
        recorded answer are scored as an empty answer.

        Args:
            questions: Ordered question list (variants or raw mappings)
            answers: Answers keyed by their ``question_index``

        Returns:
            Tuple of (number correct, scored answers in question order)
        """
        by_index: Dict[int, Answer] = {}
        for raw in answers or []:
            answer = self._coerce_answer(raw)
            if answer is None:
                logger.debug("Dropping malformed answer payload")
                continue
            by_index.setdefault(answer.question_index, answer)

        scored: List[ScoredAnswer] = []
        for index, question in enumerate(questions):
            answer = by_index.get(index) or Answer.empty(index)
            is_correct = self.score_question(question, answer)
            scored.append(ScoredAnswer.model_validate({
                **answer.model_dump(),
                "question_index": index,
                "is_correct": is_correct,
                "is_overdue": False,
            }))

        score = sum(1 for item in scored if item.is_correct)
        logger.debug(f"Graded {len(scored)} answers, {score} correct")
        return score, scored

    def _coerce_answer(self, answer: Any) -> Optional[Answer]:
        if isinstance(answer, Answer):
            return answer
        if answer is None:
            return Answer()
        if isinstance(answer, Mapping):
            try:
                return Answer.model_validate(answer)
            except ValidationError:
                return None
        return None

    def _score_single_choice(self, question: SingleChoiceQuestion, answer: Answer) -> bool:
        if not answer.selected_options:
            return False
        selected = answer.selected_options[0]
        if not 0 <= selected < len(question.options):
            return False
        return question.options[selected].is_correct

    def _score_multi_choice(self, question: MultiChoiceQuestion, answer: Answer) -> bool:
        correct = {i for i, option in enumerate(question.options) if option.is_correct}
        return set(answer.selected_options) == correct

    def _score_short_answer(self, question: ShortAnswerQuestion, answer: Answer) -> bool:
        text = _normalize(answer.text_answer)
        if not text:
            return False
        return any(_normalize(accepted) == text for accepted in question.accepted_answers)

    def _score_ordering(self, question: OrderingQuestion, answer: Answer) -> bool:
        return list(answer.ordered_items) == list(question.correct_order)

    def _score_fill_blank(self, question: FillBlankQuestion, answer: Answer) -> bool:
        if len(answer.blank_answers) != len(question.blanks):
            return False
        for submitted, blank in zip(answer.blank_answers, question.blanks):
            text = _normalize(submitted)
            if not any(_normalize(accepted) == text for accepted in blank.accepted_answers):
                return False
        return True


# Global instance
grading_service = GradingService()
score_question = grading_service.score_question

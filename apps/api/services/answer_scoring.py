"""
Answer Scoring

Converts one check-in answer into a raw sub-score on a fixed 1-10 scale,
dispatching on the question type.

Never raises. An answer that cannot be interpreted degrades to a neutral (5)
or zero score instead of failing the whole check-in: one bad answer must not
block scoring for everything else the client submitted.

Per-type rules:
    scale / rating      value in [1, 10] used verbatim, otherwise 0
    number              [0, 100] rescaled to [1, 10]; otherwise value/10 clamped
    multiple_choice     explicit option weight, else evenly spaced by position
    boolean             8 for the positive answer, 3 for the negative one
    text                5
    textarea            great=9, average=5, poor=2, anything else 5
    unknown             5
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


NEUTRAL_SCORE = 5.0
UNSCOREABLE = 0.0
MIN_SCORE = 1.0
MAX_SCORE = 10.0

DEFAULT_QUESTION_WEIGHT = 5
MAX_QUESTION_WEIGHT = 10

BOOLEAN_POSITIVE_SCORE = 8.0
BOOLEAN_NEGATIVE_SCORE = 3.0

TEXTAREA_KEYWORD_SCORES = {
    "great": 9.0,
    "average": 5.0,
    "poor": 2.0,
}


class QuestionType(str, Enum):
    SCALE = "scale"
    RATING = "rating"
    NUMBER = "number"
    MULTIPLE_CHOICE = "multiple_choice"
    SELECT = "select"
    BOOLEAN = "boolean"
    TEXT = "text"
    TEXTAREA = "textarea"

    @classmethod
    def parse(cls, raw: Any) -> Optional["QuestionType"]:
        """Return the matching type, or None for types scored generically."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


FREE_TEXT_TYPES = {QuestionType.TEXT, QuestionType.TEXTAREA}


@dataclass
class QuestionOption:
    """One choice of a multiple-choice question."""
    value: str
    text: Optional[str] = None
    weight: Optional[float] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "QuestionOption":
        # Options are stored either as bare strings or as objects
        if isinstance(raw, dict):
            value = raw.get("value", raw.get("text", raw.get("label", "")))
            text = raw.get("text", raw.get("label"))
            return cls(
                value=str(value),
                text=str(text) if text is not None else None,
                weight=raw.get("weight"),
            )
        return cls(value=str(raw))

    def matches(self, answer: str) -> bool:
        return answer == self.value or (self.text is not None and answer == self.text)


@dataclass
class Question:
    """Question definition as seen by the scorer."""
    id: str
    type: str
    weight: Optional[float] = None
    options: List[QuestionOption] = field(default_factory=list)
    yes_is_positive: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Question":
        """Build from a stored document (camelCase or snake_case keys)."""
        weight = data.get("questionWeight")
        if weight is None:
            weight = data.get("weight")
        yes_is_positive = data.get("yesIsPositive", data.get("yes_is_positive"))
        return cls(
            id=str(data.get("id")),
            type=str(data.get("type") or data.get("questionType") or ""),
            weight=weight,
            options=[QuestionOption.from_raw(o) for o in (data.get("options") or [])],
            yes_is_positive=True if yes_is_positive is None else bool(yes_is_positive),
        )

    @property
    def question_type(self) -> Optional[QuestionType]:
        return QuestionType.parse(self.type)

    @property
    def effective_weight(self) -> float:
        """Weight used by the aggregator, always within [0, 10]."""
        weight = _to_number(self.weight)
        if weight is None:
            return 0.0 if self.question_type in FREE_TEXT_TYPES else float(DEFAULT_QUESTION_WEIGHT)
        return max(0.0, min(float(MAX_QUESTION_WEIGHT), weight))


@dataclass
class Answer:
    """One response to one question inside a submitted check-in."""
    question_id: str
    value: Any = None
    comment: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Answer":
        value = data.get("answer", data.get("value"))
        return cls(
            question_id=str(data.get("questionId", data.get("question_id"))),
            value=value,
            comment=data.get("comment"),
        )


def normalize_question_weight(question_type: Any, weight: Any = None) -> int:
    """
    Weight to store when a question is saved to the library.

    Free-text questions never contribute to the score, so they are forced to
    0. Scored types default to 5 and are clamped into [1, 10].
    """
    if QuestionType.parse(question_type) in FREE_TEXT_TYPES:
        return 0
    number = _to_number(weight)
    if number is None or number <= 0:
        return DEFAULT_QUESTION_WEIGHT
    return int(max(1, min(MAX_QUESTION_WEIGHT, round(number))))


# ---------------------------------------------------------------------------
# Per-type rules
# ---------------------------------------------------------------------------

def _to_number(value: Any) -> Optional[float]:
    """Parse a numeric answer; bools and non-finite values are rejected."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def _score_scale(question: Question, value: Any) -> float:
    number = _to_number(value)
    if number is not None and MIN_SCORE <= number <= MAX_SCORE:
        return number
    return UNSCOREABLE


def _score_number(question: Question, value: Any) -> float:
    number = _to_number(value)
    if number is None:
        return UNSCOREABLE
    if 0 <= number <= 100:
        return MIN_SCORE + (number / 100.0) * 9.0
    return max(MIN_SCORE, min(MAX_SCORE, number / 10.0))


def _score_choice(question: Question, value: Any) -> float:
    if not question.options or value is None:
        return UNSCOREABLE

    answer = str(value)
    for index, option in enumerate(question.options):
        if not option.matches(answer):
            continue

        explicit = _to_number(option.weight)
        if explicit:
            return max(MIN_SCORE, min(MAX_SCORE, explicit))

        # Positional fallback: first option low, last option high
        count = len(question.options)
        if count == 1:
            return NEUTRAL_SCORE
        return MIN_SCORE + (index / (count - 1)) * 9.0

    return UNSCOREABLE


def _is_yes(value: Any) -> bool:
    if value is True:
        return True
    return isinstance(value, str) and value.strip().lower() == "yes"


def _score_boolean(question: Question, value: Any) -> float:
    positive = _is_yes(value) if question.yes_is_positive else not _is_yes(value)
    return BOOLEAN_POSITIVE_SCORE if positive else BOOLEAN_NEGATIVE_SCORE


def _score_text(question: Question, value: Any) -> float:
    return NEUTRAL_SCORE


def _score_textarea(question: Question, value: Any) -> float:
    if value is None:
        return NEUTRAL_SCORE
    keyword = str(value).strip().lower()
    return TEXTAREA_KEYWORD_SCORES.get(keyword, NEUTRAL_SCORE)


_SCORERS: Dict[QuestionType, Callable[[Question, Any], float]] = {
    QuestionType.SCALE: _score_scale,
    QuestionType.RATING: _score_scale,
    QuestionType.NUMBER: _score_number,
    QuestionType.MULTIPLE_CHOICE: _score_choice,
    QuestionType.SELECT: _score_choice,
    QuestionType.BOOLEAN: _score_boolean,
    QuestionType.TEXT: _score_text,
    QuestionType.TEXTAREA: _score_textarea,
}


def score_answer(question: Question, value: Any) -> float:
    """
    Score one answer on the 1-10 scale (0 for answers that cannot be scored).

    Unknown question types get the neutral score.
    """
    question_type = question.question_type
    scorer = _SCORERS.get(question_type) if question_type is not None else None
    if scorer is None:
        logger.debug(
            f"Question {question.id}: unrecognised type {question.type!r}, "
            f"using neutral score {NEUTRAL_SCORE}"
        )
        return NEUTRAL_SCORE

    try:
        return float(scorer(question, value))
    except Exception as e:
        logger.warning(
            f"Question {question.id}: could not score answer {value!r} "
            f"for type {question.type}: {e}"
        )
        return NEUTRAL_SCORE

"""
Response Aggregation

Combines the per-question scores of one submitted check-in into a single
weighted percentage:

    weighted_score  = question_score x question_weight
    total_possible  = sum(question_weight x 10)
    percent_score   = round(sum(weighted_score) / total_possible x 100)

Answers whose question no longer exists are skipped entirely (no weight, no
score). A client is not penalised for a question the coach has since removed.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from services.answer_scoring import (
    FREE_TEXT_TYPES,
    MAX_SCORE,
    Answer,
    Question,
    score_answer,
)

logger = logging.getLogger(__name__)


@dataclass
class ScoredAnswer:
    """One answer after scoring. Computed per request, never persisted."""
    question_id: str
    question_type: str
    question_score: float            # 1-10, 0 when unscoreable
    question_weight: float           # 0-10
    weighted_score: float


@dataclass
class AggregatedScore:
    """Result of aggregating one check-in."""
    total_weighted_score: float = 0.0
    total_possible: float = 0.0
    percent_score: int = 0           # 0-100
    answered_count: int = 0          # answers that carried weight
    scored_answers: List[ScoredAnswer] = field(default_factory=list)


QuestionSource = Union[Mapping[str, Question], Iterable[Question]]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def _index_questions(questions: QuestionSource) -> Dict[str, Question]:
    if isinstance(questions, Mapping):
        return {str(k): q for k, q in questions.items()}
    return {q.id: q for q in questions}


def _is_unanswered(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def aggregate_responses(
    questions: QuestionSource,
    answers: Iterable[Union[Answer, Dict[str, Any]]],
) -> AggregatedScore:
    """
    Aggregate a check-in's answers into a weighted 0-100 score.

    Order-independent: the result depends only on the set of answers.
    A check-in whose questions are all unweighted scores 0.
    """
    by_id = _index_questions(questions)
    result = AggregatedScore()

    for raw in answers:
        answer = raw if isinstance(raw, Answer) else Answer.from_dict(raw)

        question = by_id.get(answer.question_id)
        if question is None:
            logger.debug(f"Skipping answer for missing question {answer.question_id}")
            continue

        if _is_unanswered(answer.value):
            continue

        weight = question.effective_weight
        question_score = score_answer(question, answer.value)
        weighted = question_score * weight

        result.scored_answers.append(
            ScoredAnswer(
                question_id=question.id,
                question_type=question.type,
                question_score=question_score,
                question_weight=weight,
                weighted_score=weighted,
            )
        )

        if weight == 0:
            continue

        result.total_weighted_score += weighted
        result.total_possible += weight * MAX_SCORE
        result.answered_count += 1

    if result.total_possible > 0:
        percent = result.total_weighted_score / result.total_possible * 100.0
        result.percent_score = max(0, min(100, round_half_up(percent)))
    else:
        result.percent_score = 0

    return result


def extract_text_responses(
    questions: QuestionSource,
    answers: Iterable[Union[Answer, Dict[str, Any]]],
    limit: Optional[int] = None,
) -> List[str]:
    """Collect non-empty free-text answers, in submission order."""
    by_id = _index_questions(questions)
    texts: List[str] = []
    for raw in answers:
        if limit is not None and len(texts) >= limit:
            break
        answer = raw if isinstance(raw, Answer) else Answer.from_dict(raw)
        question = by_id.get(answer.question_id)
        if question is None or question.question_type not in FREE_TEXT_TYPES:
            continue
        if _is_unanswered(answer.value):
            continue
        texts.append(str(answer.value).strip())
    return texts

"""
Check-in scoring entry points.

answers -> aggregate_responses() -> percent score
client config -> resolve thresholds -> classify() -> traffic-light band

Neither step raises on bad data: a check-in always ends up with a score and
a band.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Union

from core.logging import log_fields
from services.answer_scoring import Answer
from services.question_library import fetch_questions
from services.response_aggregator import AggregatedScore, QuestionSource, aggregate_responses
from services.scoring_thresholds import ScoringThresholds, get_client_thresholds
from services.traffic_light import StatusDescriptor, classify

logger = logging.getLogger(__name__)


@dataclass
class CheckinScore:
    aggregate: AggregatedScore
    thresholds: ScoringThresholds
    status: StatusDescriptor

    @property
    def score(self) -> int:
        return self.aggregate.percent_score


def score_checkin(
    questions: QuestionSource,
    answers: Iterable[Union[Answer, Dict[str, Any]]],
    thresholds: ScoringThresholds,
) -> CheckinScore:
    aggregate = aggregate_responses(questions, answers)
    return CheckinScore(
        aggregate=aggregate,
        thresholds=thresholds,
        status=classify(aggregate.percent_score, thresholds),
    )


def score_client_checkin(
    client_id: str,
    answers: Iterable[Union[Answer, Dict[str, Any]]],
    db: Any,
) -> CheckinScore:
    """Score a submitted check-in against the question library and the client's thresholds."""
    parsed = [a if isinstance(a, Answer) else Answer.from_dict(a) for a in answers]
    questions = fetch_questions((a.question_id for a in parsed), db)
    thresholds = get_client_thresholds(client_id, db)

    result = score_checkin(questions, parsed, thresholds)
    logger.info(
        f"Check-in scored for client {client_id}",
        extra=log_fields(
            client_id=client_id,
            score=result.score,
            band=result.status.band.value,
            answered=result.aggregate.answered_count,
            submitted=len(parsed),
        ),
    )
    return result

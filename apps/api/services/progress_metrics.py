"""
Progress metrics over a client's completed check-in scores.

Scores are taken oldest first. Zero scores (never scored) are ignored.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from services.response_aggregator import round_half_up


class ScoreTrend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass
class ProgressMetrics:
    current_score: Optional[float]
    average_score: Optional[int]
    trend: ScoreTrend
    check_ins_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentScore": self.current_score,
            "averageScore": self.average_score,
            "trend": self.trend.value,
            "checkInsCount": self.check_ins_count,
        }


def summarize_progress(scores: Sequence[Optional[float]], check_ins_count: Optional[int] = None) -> ProgressMetrics:
    """
    Summarise chronological scores.

    Trend compares the latest score against the first one; fewer than two
    scores is insufficient data.
    """
    valid = [float(s) for s in scores if s]

    if not valid:
        return ProgressMetrics(
            current_score=None,
            average_score=None,
            trend=ScoreTrend.INSUFFICIENT_DATA,
            check_ins_count=check_ins_count if check_ins_count is not None else len(scores),
        )

    if len(valid) < 2:
        trend = ScoreTrend.INSUFFICIENT_DATA
    elif valid[-1] > valid[0]:
        trend = ScoreTrend.IMPROVING
    elif valid[-1] < valid[0]:
        trend = ScoreTrend.DECLINING
    else:
        trend = ScoreTrend.STABLE

    return ProgressMetrics(
        current_score=valid[-1],
        average_score=round_half_up(sum(valid) / len(valid)),
        trend=trend,
        check_ins_count=check_ins_count if check_ins_count is not None else len(scores),
    )

"""
Custom exception classes.

Scoring and classification never raise on bad data (they degrade to neutral
scores and default thresholds). The classes here cover the two places where
an error is real: explicit coach configuration and the insight pipeline.
"""
from typing import Any, Dict, Optional


class ScoringPlatformError(Exception):
    """Base exception with a stable error code."""

    error_code = "SCORING_PLATFORM_ERROR"

    def __init__(self, detail: str, error_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if error_code:
            self.error_code = error_code


class ThresholdValidationError(ScoringPlatformError):
    """Coach-supplied thresholds break 0 <= redMax < orangeMax < 100."""

    error_code = "VALIDATION_ERROR_THRESHOLDS"

    def __init__(self, red_max: Any, orange_max: Any):
        super().__init__(
            f"Invalid thresholds redMax={red_max}, orangeMax={orange_max}: "
            f"expected 0 <= redMax < orangeMax < 100"
        )
        self.red_max = red_max
        self.orange_max = orange_max


class InsightGenerationError(ScoringPlatformError):
    """
    The external analysis provider failed.

    `transient` marks failures worth retrying (5xx, network). When a stored
    analysis existed but was too old to reuse, it rides along as
    `stale_analysis` so the caller can decide whether to show it.
    """

    error_code = "INSIGHT_GENERATION_FAILED"

    def __init__(
        self,
        detail: str,
        transient: bool = False,
        stale_analysis: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(detail)
        self.transient = transient
        self.stale_analysis = stale_analysis


class InsightPersistenceError(ScoringPlatformError):
    """A cached analysis could not be read or written."""

    error_code = "INSIGHT_PERSISTENCE_FAILED"

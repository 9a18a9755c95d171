"""
Progress metrics tests. Scores are oldest first.
"""
from services.progress_metrics import ScoreTrend, summarize_progress


class TestSummarizeProgress:

    def test_improving(self):
        metrics = summarize_progress([50, 60, 72])

        assert metrics.current_score == 72
        assert metrics.average_score == 61
        assert metrics.trend == ScoreTrend.IMPROVING
        assert metrics.check_ins_count == 3

    def test_declining_compares_latest_to_first(self):
        assert summarize_progress([80, 90, 70]).trend == ScoreTrend.DECLINING

    def test_stable(self):
        assert summarize_progress([65, 40, 65]).trend == ScoreTrend.STABLE

    def test_single_score_is_insufficient(self):
        metrics = summarize_progress([70])
        assert metrics.trend == ScoreTrend.INSUFFICIENT_DATA
        assert metrics.current_score == 70

    def test_no_scores(self):
        metrics = summarize_progress([])

        assert metrics.current_score is None
        assert metrics.average_score is None
        assert metrics.trend == ScoreTrend.INSUFFICIENT_DATA
        assert metrics.check_ins_count == 0

    def test_zero_and_missing_scores_ignored(self):
        metrics = summarize_progress([0, 60, None, 70])

        assert metrics.average_score == 65
        assert metrics.trend == ScoreTrend.IMPROVING
        assert metrics.check_ins_count == 4

    def test_explicit_check_in_count(self):
        assert summarize_progress([60, 70], check_ins_count=12).check_ins_count == 12

    def test_average_rounds_half_up(self):
        assert summarize_progress([70, 71]).average_score == 71

    def test_to_dict(self):
        assert summarize_progress([50, 60]).to_dict() == {
            "currentScore": 60.0,
            "averageScore": 55,
            "trend": "improving",
            "checkInsCount": 2,
        }

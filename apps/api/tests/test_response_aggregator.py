"""
Response aggregation tests.

Covers the documented three-question example, missing-question skipping,
zero-weight check-ins and order independence.
"""
import itertools

import pytest

from services.answer_scoring import Answer, Question
from services.response_aggregator import (
    aggregate_responses,
    extract_text_responses,
    round_half_up,
)


@pytest.fixture
def sample_questions():
    return [
        Question(id="sleep", type="scale", weight=8),
        Question(id="exercise", type="boolean", weight=5, yes_is_positive=True),
        Question(id="notes", type="text", weight=2),
    ]


@pytest.fixture
def sample_answers():
    return [
        Answer(question_id="sleep", value=7),
        Answer(question_id="exercise", value="yes"),
        Answer(question_id="notes", value="Felt good this week"),
    ]


class TestDocumentedExample:

    def test_weighted_totals(self, sample_questions, sample_answers):
        result = aggregate_responses(sample_questions, sample_answers)

        assert result.total_weighted_score == pytest.approx(106)
        assert result.total_possible == pytest.approx(150)
        assert result.percent_score == 71
        assert result.answered_count == 3

    def test_per_answer_breakdown(self, sample_questions, sample_answers):
        result = aggregate_responses(sample_questions, sample_answers)
        by_id = {s.question_id: s for s in result.scored_answers}

        assert by_id["sleep"].question_score == 7
        assert by_id["sleep"].weighted_score == 56
        assert by_id["exercise"].weighted_score == 40
        assert by_id["notes"].weighted_score == 10

    def test_order_independent(self, sample_questions, sample_answers):
        scores = {
            aggregate_responses(sample_questions, list(perm)).percent_score
            for perm in itertools.permutations(sample_answers)
        }
        assert scores == {71}


class TestSkipping:

    def test_missing_question_contributes_nothing(self, sample_questions, sample_answers):
        answers = sample_answers + [Answer(question_id="deleted", value=1)]
        result = aggregate_responses(sample_questions, answers)

        assert result.percent_score == 71
        assert result.total_possible == pytest.approx(150)
        assert all(s.question_id != "deleted" for s in result.scored_answers)

    def test_unanswered_questions_skipped(self, sample_questions):
        answers = [
            Answer(question_id="sleep", value=10),
            Answer(question_id="exercise", value=None),
            Answer(question_id="notes", value="   "),
        ]
        result = aggregate_responses(sample_questions, answers)

        assert result.total_possible == pytest.approx(80)
        assert result.percent_score == 100
        assert result.answered_count == 1

    def test_accepts_mapping_and_dict_answers(self, sample_questions):
        questions = {q.id: q for q in sample_questions}
        answers = [
            {"questionId": "sleep", "answer": 7},
            {"questionId": "exercise", "answer": True},
            {"questionId": "notes", "answer": "ok"},
        ]
        assert aggregate_responses(questions, answers).percent_score == 71


class TestZeroWeight:

    def test_all_unweighted_scores_zero(self):
        questions = [Question(id="a", type="text"), Question(id="b", type="textarea")]
        answers = [Answer(question_id="a", value="hello"), Answer(question_id="b", value="great")]

        result = aggregate_responses(questions, answers)

        assert result.total_possible == 0
        assert result.percent_score == 0
        assert result.answered_count == 0

    def test_empty_checkin_scores_zero(self):
        assert aggregate_responses([], []).percent_score == 0

    def test_unweighted_answer_kept_in_breakdown(self):
        questions = [Question(id="a", type="scale", weight=4), Question(id="b", type="text")]
        answers = [Answer(question_id="a", value=5), Answer(question_id="b", value="notes")]

        result = aggregate_responses(questions, answers)

        assert result.percent_score == 50
        assert len(result.scored_answers) == 2
        assert result.answered_count == 1


class TestBounds:

    def test_unscoreable_answer_drags_score_down(self):
        questions = [Question(id="a", type="scale", weight=5), Question(id="b", type="scale", weight=5)]
        answers = [Answer(question_id="a", value=10), Answer(question_id="b", value=42)]

        assert aggregate_responses(questions, answers).percent_score == 50

    def test_perfect_checkin_is_hundred(self):
        questions = [Question(id="a", type="scale", weight=10)]
        assert aggregate_responses(questions, [Answer(question_id="a", value=10)]).percent_score == 100

    def test_rounds_half_up(self):
        assert round_half_up(70.5) == 71
        assert round_half_up(2.5) == 3
        assert round_half_up(2.4999) == 2


class TestTextExtraction:

    def test_collects_free_text_only(self, sample_questions, sample_answers):
        questions = sample_questions + [Question(id="journal", type="textarea")]
        answers = sample_answers + [
            Answer(question_id="journal", value="Stressful week at work"),
            Answer(question_id="journal-missing", value="ignored"),
        ]

        texts = extract_text_responses(questions, answers)

        assert texts == ["Felt good this week", "Stressful week at work"]

    def test_limit(self):
        questions = [Question(id=f"t{i}", type="text") for i in range(5)]
        answers = [Answer(question_id=f"t{i}", value=f"note {i}") for i in range(5)]

        assert extract_text_responses(questions, answers, limit=2) == ["note 0", "note 1"]

    def test_zero_limit_returns_nothing(self):
        questions = [Question(id="t", type="text")]
        answers = [Answer(question_id="t", value="hello")]

        assert extract_text_responses(questions, answers, limit=0) == []

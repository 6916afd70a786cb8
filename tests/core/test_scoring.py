"""Tests for auto-scoring, percentages and letter grades."""

import pytest

from lms.core.scoring import (
    compute_total,
    letter_grade,
    max_score,
    percentage,
    round_half_up,
    score_answer,
    score_submission,
)
from lms.db.exams_repository import QuestionRecord
from lms.db.submissions_repository import AnswerRecord


def mc_question() -> QuestionRecord:
    return QuestionRecord(
        id="q-mc",
        exam_id="e1",
        question_text="Capital of France?",
        question_type="multiple_choice",
        options=["Berlin", "Paris"],
        correct_answer="Paris",
        points=2,
    )


def checkbox_question() -> QuestionRecord:
    return QuestionRecord(
        id="q-cb",
        exam_id="e1",
        question_text="Primes?",
        question_type="multiple_checkboxes",
        options=["2", "4", "5"],
        correct_answers=["2", "5"],
        points=3,
    )


def essay_question() -> QuestionRecord:
    return QuestionRecord(
        id="q-es",
        exam_id="e1",
        question_text="Explain",
        question_type="essay",
        points=5,
    )


def answer(question_id: str, text: str = "", array: list[str] | None = None) -> AnswerRecord:
    return AnswerRecord(
        id=f"a-{question_id}",
        submission_id="s1",
        question_id=question_id,
        answer_text=text,
        answer_array=array or [],
    )


class TestScoreAnswer:
    """Tests for per-question scoring."""

    def test_multiple_choice_correct(self):
        """Exact match earns full points."""
        score = score_answer(mc_question(), answer("q-mc", "Paris"))
        assert score.points_earned == 2
        assert score.is_correct is True

    def test_multiple_choice_is_exact(self):
        """No case or whitespace normalization."""
        assert score_answer(mc_question(), answer("q-mc", "paris")).points_earned == 0
        assert score_answer(mc_question(), answer("q-mc", "Paris ")).points_earned == 0

    def test_checkboxes_order_independent(self):
        """Same set in any order is correct."""
        score = score_answer(checkbox_question(), answer("q-cb", array=["5", "2"]))
        assert score.points_earned == 3

    def test_checkboxes_all_or_nothing(self):
        """Subsets and supersets earn nothing."""
        assert score_answer(checkbox_question(), answer("q-cb", array=["2"])).points_earned == 0
        assert (
            score_answer(checkbox_question(), answer("q-cb", array=["2", "4", "5"])).points_earned
            == 0
        )

    def test_essay_needs_manual_grading(self):
        """Essays auto-score 0 with no correctness verdict."""
        score = score_answer(essay_question(), answer("q-es", "Recursion is..."))
        assert score.points_earned == 0
        assert score.points_possible == 5
        assert score.is_correct is None

    def test_unanswered_scores_zero(self):
        """Missing answers score 0."""
        score = score_answer(mc_question(), None)
        assert score.points_earned == 0
        assert score.is_correct is False


class TestScoreSubmission:
    """Tests for whole-submission scoring."""

    def test_totals(self):
        """Total sums earned points; max sums question points."""
        questions = [mc_question(), checkbox_question(), essay_question()]
        answers = [answer("q-mc", "Paris"), answer("q-cb", array=["2"])]

        scores = score_submission(questions, answers)
        assert [s.question_id for s in scores] == ["q-mc", "q-cb", "q-es"]
        assert compute_total(scores) == 2
        assert max_score(questions) == 10


class TestPercentageAndGrade:
    """Tests for percentage and letter grade helpers."""

    def test_percentage_rounds(self):
        assert percentage(2, 3) == 67
        assert percentage(1, 8) == 13
        assert percentage(5, 8) == 63

    def test_round_half_up(self):
        """Halves go up rather than to the even neighbour."""
        assert round_half_up(62.5) == 63
        assert round_half_up(12.5) == 13
        assert round_half_up(12.49) == 12
        assert round_half_up(0.0) == 0

    def test_percentage_without_points(self):
        """No available points gives 0%."""
        assert percentage(0, 0) == 0

    @pytest.mark.parametrize(
        "pct,grade",
        [(100, "A"), (90, "A"), (89.9, "B"), (80, "B"), (70, "C"), (60, "D"), (59, "F"), (0, "F")],
    )
    def test_letter_grade_boundaries(self, pct, grade):
        assert letter_grade(pct) == grade

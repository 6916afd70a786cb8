"""Exam scoring module.

Responsibilities:
- Auto-score multiple choice and multiple checkbox answers
- Leave essay answers at 0 until a grader sets their score
- Percentages and letter grades used by results, reviews and reports

Scoring is deterministic: answers are compared with the stored correct
answers exactly as saved, no normalization is applied.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from lms.db.exams_repository import QuestionRecord
from lms.db.submissions_repository import AnswerRecord

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class QuestionScore:
    """Score for a single question."""

    question_id: str
    points_earned: int
    points_possible: int
    is_correct: bool | None  # None for essays (needs manual grading)


# =============================================================================
# SCORING FUNCTIONS
# =============================================================================


def score_answer(question: QuestionRecord, answer: AnswerRecord | None) -> QuestionScore:
    """Auto-score one answer.

    Unanswered questions score 0. Essays always score 0 here.
    """
    if question.question_type == "essay":
        return QuestionScore(question.id, 0, question.points, None)

    is_correct = False
    if answer is not None:
        if question.question_type == "multiple_choice":
            is_correct = (
                question.correct_answer is not None
                and answer.answer_text == question.correct_answer
            )
        elif question.question_type == "multiple_checkboxes":
            # All-or-nothing; no partial credit for a subset of the options
            expected = set(question.correct_answers)
            is_correct = bool(expected) and set(answer.answer_array) == expected

    points = question.points if is_correct else 0
    return QuestionScore(question.id, points, question.points, is_correct)


def score_submission(
    questions: list[QuestionRecord],
    answers: Iterable[AnswerRecord],
) -> list[QuestionScore]:
    """Score every question of an exam against the submitted answers."""
    by_question = {a.question_id: a for a in answers}
    return [score_answer(q, by_question.get(q.id)) for q in questions]


def compute_total(scores: Iterable[QuestionScore]) -> int:
    """Sum of points earned."""
    return sum(s.points_earned for s in scores)


def max_score(questions: Iterable[QuestionRecord]) -> int:
    """Sum of question points."""
    return sum(q.points for q in questions)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (62.5 -> 63).

    The builtin round() sends halves to the even neighbour.
    """
    return math.floor(value + 0.5)


def percentage(total: int | float, maximum: int | float) -> int:
    """Rounded percentage; 0 when there are no points available."""
    if not maximum:
        return 0
    return round_half_up(total / maximum * 100)


def letter_grade(pct: float) -> str:
    """Letter grade for a percentage (A >= 90, B >= 80, C >= 70, D >= 60)."""
    if pct >= 90:
        return "A"
    if pct >= 80:
        return "B"
    if pct >= 70:
        return "C"
    if pct >= 60:
        return "D"
    return "F"

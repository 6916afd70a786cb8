"""Submission review and manual grading.

Responsibilities:
- List submissions for review, with per-student counts and averages
- Build a per-question breakdown of one submission
- Let a grader overwrite an answer's score and recompute the total
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from lms.core.errors import ConflictError, NotFoundError, ValidationError
from lms.core.scoring import letter_grade, percentage, score_answer
from lms.db.admin_repository import log_admin_activity
from lms.db.exams_repository import (
    ExaminationRecord,
    QuestionRecord,
    get_examination_by_id,
    list_examinations,
    list_questions,
)
from lms.db.submissions_repository import (
    COMPLETED_STATUSES,
    AnswerRecord,
    SubmissionRecord,
    get_submission,
    list_answers,
    list_submissions,
    set_answer_points,
)
from lms.db.users_repository import UserRecord, get_user_by_id, list_users

logger = structlog.get_logger(__name__)

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class SubmissionSummary:
    """A submission with the names needed to list it."""

    submission: SubmissionRecord
    student_name: str
    exam_title: str

    @property
    def percentage(self) -> int:
        return percentage(self.submission.total_score, self.submission.max_score)

    @property
    def letter_grade(self) -> str:
        return letter_grade(self.percentage)


@dataclass
class StudentReviewStats:
    """Submission count and average for one student."""

    student: UserRecord
    submission_count: int
    average_percentage: int


@dataclass
class AnswerReview:
    """One question of a submission with the student's answer."""

    question: QuestionRecord
    answer: AnswerRecord | None
    is_correct: bool | None
    points_earned: int


@dataclass
class SubmissionReview:
    """Full breakdown of a submission."""

    submission: SubmissionRecord
    student: UserRecord | None
    exam: ExaminationRecord
    answers: list[AnswerReview]

    @property
    def percentage(self) -> int:
        return percentage(self.submission.total_score, self.submission.max_score)


# =============================================================================
# REVIEW
# =============================================================================


def average_percentage(submissions: list[SubmissionRecord]) -> int:
    """Sum of scores over sum of maximums for completed submissions."""
    completed = [s for s in submissions if s.is_completed]
    total = sum(s.total_score for s in completed)
    maximum = sum(s.max_score for s in completed)
    return percentage(total, maximum)


def list_review_submissions(student_id: str | None = None) -> list[SubmissionSummary]:
    """Submissions to review, most recently submitted first."""
    submissions = list_submissions(student_id=student_id)
    students = {u.id: u for u in list_users(role="student")}
    exams = {e.id: e for e in list_examinations()}

    submissions.sort(key=lambda s: s.submitted_at or "", reverse=True)
    return [
        SubmissionSummary(
            submission=s,
            student_name=students[s.student_id].full_name if s.student_id in students else "Unknown",
            exam_title=exams[s.exam_id].title if s.exam_id in exams else "Unknown",
        )
        for s in submissions
    ]


def list_review_students() -> list[StudentReviewStats]:
    """Students with at least one submission, ordered by name."""
    submissions = list_submissions()
    stats = []
    for student in list_users(role="student"):
        own = [s for s in submissions if s.student_id == student.id]
        if not own:
            continue
        stats.append(
            StudentReviewStats(
                student=student,
                submission_count=len(own),
                average_percentage=average_percentage(own),
            )
        )
    return stats


def get_submission_review(submission_id: str) -> SubmissionReview:
    """Every question of the exam, in order, with the student's answer.

    Raises:
        NotFoundError: If the submission or its exam does not exist
    """
    submission = get_submission(submission_id)
    if submission is None:
        raise NotFoundError("Submission", submission_id)
    exam = get_examination_by_id(submission.exam_id)
    if exam is None:
        raise NotFoundError("Examination", submission.exam_id)

    answers = {a.question_id: a for a in list_answers(submission_id)}
    reviews = []
    for question in list_questions(exam.id):
        answer = answers.get(question.id)
        auto = score_answer(question, answer)
        reviews.append(
            AnswerReview(
                question=question,
                answer=answer,
                is_correct=auto.is_correct,
                points_earned=answer.points_earned if answer else 0,
            )
        )

    return SubmissionReview(
        submission=submission,
        student=get_user_by_id(submission.student_id),
        exam=exam,
        answers=reviews,
    )


# =============================================================================
# GRADING
# =============================================================================


def grade_answer(
    grader: UserRecord,
    submission_id: str,
    question_id: str,
    points: int,
) -> SubmissionRecord:
    """Set the score of one answer and mark the submission graded.

    Raises:
        NotFoundError: If the submission or question does not exist
        ConflictError: If the submission has not been submitted yet
        ValidationError: If points is outside 0..question points
    """
    submission = get_submission(submission_id)
    if submission is None:
        raise NotFoundError("Submission", submission_id)
    if submission.status not in COMPLETED_STATUSES:
        raise ConflictError("Only submitted examinations can be graded")

    question = next((q for q in list_questions(submission.exam_id) if q.id == question_id), None)
    if question is None:
        raise NotFoundError("Question", question_id)
    if points < 0 or points > question.points:
        raise ValidationError(f"Score must be between 0 and {question.points}")

    updated = set_answer_points(submission_id, question_id, points)
    log_admin_activity(
        grader.id,
        "update",
        "submission",
        submission_id,
        {"question_id": question_id, "points": points, "total_score": updated.total_score},
    )
    logger.info(
        "submission.graded",
        submission_id=submission_id,
        question_id=question_id,
        points=points,
        total_score=updated.total_score,
    )
    return updated

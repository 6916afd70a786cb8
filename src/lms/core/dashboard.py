"""Student dashboard and results."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from lms.core.errors import PermissionDeniedError
from lms.core.grading import SubmissionReview, get_submission_review
from lms.core.scoring import letter_grade
from lms.db.database import utcnow
from lms.db.exams_repository import ExaminationRecord, list_examinations
from lms.db.submissions_repository import SubmissionRecord, list_submissions

ExamStatus = Literal["completed", "in_progress", "upcoming", "expired", "available"]

LATEST_RESULTS = 3


@dataclass
class StudentExamEntry:
    """An active exam as listed on a student's dashboard."""

    exam: ExaminationRecord
    submission: SubmissionRecord | None
    status: ExamStatus
    can_take: bool
    can_continue: bool


@dataclass
class StudentStats:
    """Aggregate results over a student's completed submissions."""

    completed_count: int
    average_score: float
    average_percentage: float

    @property
    def letter_grade(self) -> str:
        return letter_grade(self.average_percentage)


@dataclass
class StudentDashboard:
    exams: list[StudentExamEntry]
    stats: StudentStats
    latest_results: list[SubmissionRecord]


def exam_status(
    exam: ExaminationRecord,
    submission: SubmissionRecord | None,
    now: datetime,
) -> ExamStatus:
    """Status of an exam for one student at a given time."""
    if submission is not None and submission.is_completed:
        return "completed"
    if submission is not None and submission.status == "in_progress":
        return "in_progress"
    if now < datetime.fromisoformat(exam.scheduled_start):
        return "upcoming"
    if now > datetime.fromisoformat(exam.scheduled_end):
        return "expired"
    return "available"


def student_stats(submissions: list[SubmissionRecord]) -> StudentStats:
    """Completed count, average raw score and overall percentage."""
    completed = [s for s in submissions if s.is_completed]
    if not completed:
        return StudentStats(0, 0.0, 0.0)

    total = sum(s.total_score for s in completed)
    maximum = sum(s.max_score for s in completed)
    return StudentStats(
        completed_count=len(completed),
        average_score=total / len(completed),
        average_percentage=(total / maximum * 100) if maximum else 0.0,
    )


def build_dashboard(student_id: str, now: datetime | None = None) -> StudentDashboard:
    """Active exams with their status plus the student's results summary."""
    now = now or utcnow()
    exams = list_examinations(active_only=True)
    exams.sort(key=lambda e: e.scheduled_start)
    submissions = list_submissions(student_id=student_id)
    submissions.sort(key=lambda s: s.created_at, reverse=True)
    by_exam = {s.exam_id: s for s in submissions}

    entries = []
    for exam in exams:
        submission = by_exam.get(exam.id)
        status = exam_status(exam, submission, now)
        entries.append(
            StudentExamEntry(
                exam=exam,
                submission=submission,
                status=status,
                can_take=submission is None and status == "available",
                can_continue=status == "in_progress",
            )
        )

    return StudentDashboard(
        exams=entries,
        stats=student_stats(submissions),
        latest_results=[s for s in submissions if s.is_completed][:LATEST_RESULTS],
    )


def get_student_result(student_id: str, submission_id: str) -> SubmissionReview:
    """A student's own completed submission, question by question.

    Raises:
        PermissionDeniedError: If the submission belongs to someone else or
            is still in progress
    """
    review = get_submission_review(submission_id)
    if review.submission.student_id != student_id:
        raise PermissionDeniedError("Submission belongs to another student")
    if not review.submission.is_completed:
        raise PermissionDeniedError("Results are available after submission")
    return review

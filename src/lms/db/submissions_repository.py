"""Repository functions for exam submissions and answers.

Claiming a submission and saving an answer are both single-statement
upserts keyed on the table's UNIQUE constraint, so concurrent callers
converge on one row instead of failing or duplicating.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

import structlog

from lms.core.errors import NotFoundError
from lms.db.database import dump_json, get_db, load_json, new_id, now_iso

logger = structlog.get_logger(__name__)

SubmissionStatus = Literal["in_progress", "submitted", "graded"]
COMPLETED_STATUSES: tuple[str, ...] = ("submitted", "graded")


@dataclass
class SubmissionRecord:
    """Exam submission record from database."""

    id: str
    exam_id: str
    student_id: str
    started_at: str
    submitted_at: str | None
    total_score: int
    max_score: int
    status: SubmissionStatus
    created_at: str

    @property
    def is_completed(self) -> bool:
        """Submitted or graded."""
        return self.status in COMPLETED_STATUSES


@dataclass
class AnswerRecord:
    """Exam answer record from database."""

    id: str
    submission_id: str
    question_id: str
    answer_text: str
    answer_array: list[str] = field(default_factory=list)
    points_earned: int = 0
    created_at: str = ""
    updated_at: str = ""


# =============================================================================
# SUBMISSIONS
# =============================================================================


def claim_submission(exam_id: str, student_id: str, max_score: int) -> SubmissionRecord:
    """Create the student's submission for an exam, or return the existing one.

    The insert is conditional on (exam_id, student_id); an existing row is
    returned untouched, so its started_at and status are never reset.
    """
    ts = now_iso()
    with get_db() as conn:
        cursor = conn.execute(
            """
            INSERT INTO exam_submissions (
                id, exam_id, student_id, started_at, total_score,
                max_score, status, created_at
            ) VALUES (?, ?, ?, ?, 0, ?, 'in_progress', ?)
            ON CONFLICT(exam_id, student_id) DO NOTHING
            """,
            (new_id(), exam_id, student_id, ts, max_score, ts),
        )
        created = cursor.rowcount > 0
        row = conn.execute(
            "SELECT * FROM exam_submissions WHERE exam_id = ? AND student_id = ?",
            (exam_id, student_id),
        ).fetchone()

    submission = _row_to_submission(row)
    logger.info(
        "submission.claimed",
        submission_id=submission.id,
        exam_id=exam_id,
        student_id=student_id,
        created=created,
    )
    return submission


def get_submission(submission_id: str) -> SubmissionRecord | None:
    """Get submission by ID."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM exam_submissions WHERE id = ?", (submission_id,)
        ).fetchone()

    return _row_to_submission(row) if row else None


def get_submission_for(exam_id: str, student_id: str) -> SubmissionRecord | None:
    """Get a student's submission for an exam."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM exam_submissions WHERE exam_id = ? AND student_id = ?",
            (exam_id, student_id),
        ).fetchone()

    return _row_to_submission(row) if row else None


def list_submissions(
    student_id: str | None = None,
    exam_id: str | None = None,
    statuses: tuple[str, ...] | None = None,
    submitted_since: str | None = None,
) -> list[SubmissionRecord]:
    """List submissions, most recently started first.

    Args:
        student_id: Only this student's submissions
        exam_id: Only submissions for this exam
        statuses: Only submissions in one of these statuses
        submitted_since: ISO timestamp lower bound on submitted_at
    """
    clauses: list[str] = []
    params: list[Any] = []
    if student_id is not None:
        clauses.append("student_id = ?")
        params.append(student_id)
    if exam_id is not None:
        clauses.append("exam_id = ?")
        params.append(exam_id)
    if statuses:
        clauses.append(f"status IN ({', '.join('?' for _ in statuses)})")
        params.extend(statuses)
    if submitted_since is not None:
        clauses.append("submitted_at >= ?")
        params.append(submitted_since)

    query = "SELECT * FROM exam_submissions"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY started_at DESC"

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()

    return [_row_to_submission(row) for row in rows]


def mark_submitted(
    submission_id: str,
    points_by_question: dict[str, int],
    total_score: int,
) -> SubmissionRecord:
    """Write auto-scored points and move the submission to 'submitted'.

    Only an in_progress submission changes; a submission that was already
    finalized is returned as it is.

    Raises:
        NotFoundError: If the submission does not exist
    """
    ts = now_iso()
    with get_db() as conn:
        cursor = conn.execute(
            """
            UPDATE exam_submissions
            SET status = 'submitted', submitted_at = ?, total_score = ?
            WHERE id = ? AND status = 'in_progress'
            """,
            (ts, total_score, submission_id),
        )
        if cursor.rowcount > 0:
            for question_id, points in points_by_question.items():
                conn.execute(
                    """
                    UPDATE exam_answers SET points_earned = ?, updated_at = ?
                    WHERE submission_id = ? AND question_id = ?
                    """,
                    (points, ts, submission_id, question_id),
                )

    submission = get_submission(submission_id)
    if submission is None:
        raise NotFoundError("Submission", submission_id)
    return submission


def set_answer_points(submission_id: str, question_id: str, points: int) -> SubmissionRecord:
    """Overwrite one answer's score, recompute the total and mark 'graded'.

    A question the student left unanswered gets an empty answer row so the
    grade is kept.
    """
    ts = now_iso()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO exam_answers (
                id, submission_id, question_id, answer_text, answer_array,
                points_earned, created_at, updated_at
            ) VALUES (?, ?, ?, '', '[]', ?, ?, ?)
            ON CONFLICT(submission_id, question_id) DO UPDATE SET
                points_earned = excluded.points_earned,
                updated_at = excluded.updated_at
            """,
            (new_id(), submission_id, question_id, points, ts, ts),
        )
        conn.execute(
            """
            UPDATE exam_submissions SET
                total_score = (
                    SELECT COALESCE(SUM(points_earned), 0)
                    FROM exam_answers WHERE submission_id = ?
                ),
                status = 'graded'
            WHERE id = ?
            """,
            (submission_id, submission_id),
        )

    logger.debug("answers.graded", submission_id=submission_id, question_id=question_id)
    return get_submission(submission_id)  # type: ignore[return-value]


def count_submissions_by_status() -> dict[str, int]:
    """Count submissions per status."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT status, COUNT(*) AS n FROM exam_submissions GROUP BY status"
        ).fetchall()

    counts = {"in_progress": 0, "submitted": 0, "graded": 0}
    for row in rows:
        counts[row["status"]] = row["n"]
    return counts


# =============================================================================
# ANSWERS
# =============================================================================


def upsert_answer(
    submission_id: str,
    question_id: str,
    answer_text: str = "",
    answer_array: list[str] | None = None,
) -> AnswerRecord:
    """Insert or overwrite the answer to one question."""
    ts = now_iso()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO exam_answers (
                id, submission_id, question_id, answer_text, answer_array,
                points_earned, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, 0, ?, ?)
            ON CONFLICT(submission_id, question_id) DO UPDATE SET
                answer_text = excluded.answer_text,
                answer_array = excluded.answer_array,
                updated_at = excluded.updated_at
            """,
            (
                new_id(),
                submission_id,
                question_id,
                answer_text,
                dump_json(answer_array or []),
                ts,
                ts,
            ),
        )
        row = conn.execute(
            "SELECT * FROM exam_answers WHERE submission_id = ? AND question_id = ?",
            (submission_id, question_id),
        ).fetchone()

    return _row_to_answer(row)


def list_answers(submission_id: str) -> list[AnswerRecord]:
    """List a submission's answers."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM exam_answers WHERE submission_id = ?", (submission_id,)
        ).fetchall()

    return [_row_to_answer(row) for row in rows]


def _row_to_submission(row) -> SubmissionRecord:
    """Convert database row to SubmissionRecord."""
    return SubmissionRecord(
        id=row["id"],
        exam_id=row["exam_id"],
        student_id=row["student_id"],
        started_at=row["started_at"],
        submitted_at=row["submitted_at"],
        total_score=row["total_score"],
        max_score=row["max_score"],
        status=row["status"],
        created_at=row["created_at"],
    )


def _row_to_answer(row) -> AnswerRecord:
    """Convert database row to AnswerRecord."""
    return AnswerRecord(
        id=row["id"],
        submission_id=row["submission_id"],
        question_id=row["question_id"],
        answer_text=row["answer_text"],
        answer_array=load_json(row["answer_array"], []),
        points_earned=row["points_earned"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )

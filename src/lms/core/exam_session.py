"""Exam-taking sessions.

Responsibilities:
- Start (or resume) a student's attempt, claiming one submission per
  (exam, student)
- Compute remaining time from started_at and the exam duration
- Debounced answer autosave, one pending write per question
- Flush pending answers and score the submission on submit
- Auto-submit when the countdown reaches zero

The database functions are synchronous; ExamSessionManager layers the
asyncio timers on top of them.
"""

from __future__ import annotations

import asyncio
import math
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import structlog

from lms.config.app_config import load_app_config
from lms.core.errors import ConflictError, LMSError, NotFoundError, PermissionDeniedError, ValidationError
from lms.core.exams import ExaminationDetail, get_examination_detail
from lms.core.scoring import compute_total, max_score, score_submission
from lms.db.database import utcnow
from lms.db.submissions_repository import (
    AnswerRecord,
    SubmissionRecord,
    claim_submission,
    get_submission,
    get_submission_for,
    list_answers,
    mark_submitted,
    upsert_answer,
)

logger = structlog.get_logger(__name__)

SAVE_PENDING = "pending"
SAVE_OK = "saved"
SAVE_FAILED = "save failed"

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class AttemptView:
    """What a student sees when starting or resuming an exam."""

    detail: ExaminationDetail
    submission: SubmissionRecord
    answers: list[AnswerRecord]
    remaining_seconds: int


@dataclass
class ActiveExam:
    """In-memory state of an exam being taken."""

    submission_id: str
    exam_id: str
    student_id: str
    question_ids: set[str]
    deadline: datetime
    # question_id -> (answer_text, answer_array)
    answers: dict[str, tuple[str, list[str]]] = field(default_factory=dict)
    save_status: dict[str, str] = field(default_factory=dict)
    pending: dict[str, asyncio.Task] = field(default_factory=dict)
    countdown: asyncio.Task | None = None


# =============================================================================
# TIME
# =============================================================================


def deadline_for(started_at: str, duration_minutes: int) -> datetime:
    """Moment the time limit runs out."""
    return datetime.fromisoformat(started_at) + timedelta(minutes=duration_minutes)


def remaining_seconds(started_at: str, duration_minutes: int, now: datetime | None = None) -> int:
    """Whole seconds left: max(0, floor(duration - elapsed))."""
    now = now or utcnow()
    elapsed = (now - datetime.fromisoformat(started_at)).total_seconds()
    return max(0, math.floor(duration_minutes * 60 - elapsed))


# =============================================================================
# ATTEMPTS (synchronous, database only)
# =============================================================================


def begin_attempt(exam_id: str, student_id: str, now: datetime | None = None) -> AttemptView:
    """Start an exam, or resume the student's in-progress attempt.

    Raises:
        NotFoundError: If the examination does not exist
        ConflictError: If the student already submitted, or the exam is
            inactive or outside its scheduled window
        ValidationError: If the exam has no questions
    """
    now = now or utcnow()
    detail = get_examination_detail(exam_id)
    exam = detail.exam

    existing = get_submission_for(exam_id, student_id)
    if existing is not None and existing.is_completed:
        raise ConflictError("You have already submitted this examination")

    if existing is None:
        if not exam.is_active:
            raise ConflictError("Examination is not active")
        if now < datetime.fromisoformat(exam.scheduled_start):
            raise ConflictError("Examination has not started yet")
        if now > datetime.fromisoformat(exam.scheduled_end):
            raise ConflictError("Examination has ended")
        if not detail.questions:
            raise ValidationError("Examination has no questions")

    submission = claim_submission(exam_id, student_id, max_score(detail.questions))
    if submission.is_completed:
        # Lost a race with a submit of the same attempt
        raise ConflictError("You have already submitted this examination")

    return AttemptView(
        detail=detail,
        submission=submission,
        answers=list_answers(submission.id),
        remaining_seconds=remaining_seconds(
            submission.started_at, exam.duration_minutes, now
        ),
    )


def _load_owned_submission(submission_id: str, student_id: str) -> SubmissionRecord:
    submission = get_submission(submission_id)
    if submission is None:
        raise NotFoundError("Submission", submission_id)
    if submission.student_id != student_id:
        raise PermissionDeniedError("Submission belongs to another student")
    return submission


def save_answer(
    submission_id: str,
    student_id: str,
    question_id: str,
    answer_text: str = "",
    answer_array: list[str] | None = None,
    now: datetime | None = None,
    enforce_deadline: bool = True,
) -> AnswerRecord:
    """Persist one answer immediately.

    Raises:
        ConflictError: If the submission is no longer in progress or the
            time limit has elapsed
        ValidationError: If the question is not part of the exam
    """
    submission = _load_owned_submission(submission_id, student_id)
    if submission.status != "in_progress":
        raise ConflictError("Submission is no longer in progress")

    detail = get_examination_detail(submission.exam_id)
    if question_id not in {q.id for q in detail.questions}:
        raise ValidationError(f"Question '{question_id}' is not part of this examination")
    if enforce_deadline and (now or utcnow()) >= deadline_for(
        submission.started_at, detail.exam.duration_minutes
    ):
        raise ConflictError("Time limit has elapsed")

    return upsert_answer(submission_id, question_id, answer_text, answer_array)


def finalize_submission(submission_id: str) -> SubmissionRecord:
    """Score the saved answers and mark the submission submitted.

    A submission that is already submitted or graded is returned unchanged.
    """
    submission = get_submission(submission_id)
    if submission is None:
        raise NotFoundError("Submission", submission_id)
    if submission.is_completed:
        return submission

    detail = get_examination_detail(submission.exam_id)
    scores = score_submission(detail.questions, list_answers(submission_id))
    total = compute_total(scores)
    result = mark_submitted(
        submission_id,
        {s.question_id: s.points_earned for s in scores},
        total,
    )
    logger.info(
        "submission.submitted",
        submission_id=submission_id,
        total_score=result.total_score,
        max_score=result.max_score,
    )
    return result


# =============================================================================
# SESSION MANAGER (asyncio)
# =============================================================================


class ExamSessionManager:
    """Tracks exams being taken: debounced autosave and countdown timers.

    All timers run on the event loop; the lock guards the registry of
    active exams.
    """

    def __init__(self, debounce_seconds: float | None = None):
        if debounce_seconds is None:
            debounce_seconds = load_app_config().exam.autosave_debounce_seconds
        self.debounce_seconds = debounce_seconds
        self._active: dict[str, ActiveExam] = {}
        self._lock = asyncio.Lock()

    async def open(self, exam_id: str, student_id: str) -> tuple[ActiveExam, AttemptView]:
        """Start or resume an exam and arm its countdown.

        Returns:
            The in-memory exam state and the attempt view for the client
        """
        view = begin_attempt(exam_id, student_id)
        submission = view.submission

        async with self._lock:
            active = self._active.get(submission.id)
            if active is None:
                active = ActiveExam(
                    submission_id=submission.id,
                    exam_id=exam_id,
                    student_id=student_id,
                    question_ids={q.id for q in view.detail.questions},
                    deadline=deadline_for(
                        submission.started_at, view.detail.exam.duration_minutes
                    ),
                )
                for answer in view.answers:
                    active.answers[answer.question_id] = (answer.answer_text, answer.answer_array)
                    active.save_status[answer.question_id] = SAVE_OK
                # Sleep to the exact deadline; remaining_seconds is floored
                delay = max(0.0, (active.deadline - utcnow()).total_seconds())
                active.countdown = asyncio.create_task(self._countdown(submission.id, delay))
                self._active[submission.id] = active

        logger.info(
            "exam_session.opened",
            submission_id=submission.id,
            exam_id=exam_id,
            remaining_seconds=view.remaining_seconds,
        )
        return active, view

    async def get(self, submission_id: str) -> ActiveExam | None:
        """Get an active exam by submission ID."""
        async with self._lock:
            return self._active.get(submission_id)

    async def record_answer(
        self,
        submission_id: str,
        student_id: str,
        question_id: str,
        answer_text: str = "",
        answer_array: list[str] | None = None,
    ) -> str:
        """Record an answer change and (re)schedule its debounced write.

        Returns:
            The question's save status after the change
        """
        active = await self._require(submission_id, student_id)
        if question_id not in active.question_ids:
            raise ValidationError(f"Question '{question_id}' is not part of this examination")
        if utcnow() >= active.deadline:
            raise ConflictError("Time limit has elapsed")

        active.answers[question_id] = (answer_text, list(answer_array or []))
        active.save_status[question_id] = SAVE_PENDING

        previous = active.pending.pop(question_id, None)
        if previous is not None:
            previous.cancel()
        active.pending[question_id] = asyncio.create_task(
            self._debounced_save(active, question_id)
        )
        return SAVE_PENDING

    async def flush(self, submission_id: str) -> None:
        """Cancel pending writes and save every in-memory answer now."""
        async with self._lock:
            active = self._active.get(submission_id)
        if active is None:
            return
        self._flush(active)

    async def submit(self, submission_id: str, student_id: str | None = None) -> SubmissionRecord:
        """Flush answers, score and finalize the submission.

        Used both for manual submission and when the countdown expires.
        Submitting twice returns the already-finalized submission.
        """
        if student_id is not None:
            _load_owned_submission(submission_id, student_id)

        async with self._lock:
            active = self._active.pop(submission_id, None)

        if active is not None:
            if active.countdown is not None and active.countdown is not asyncio.current_task():
                active.countdown.cancel()
            self._flush(active)

        return finalize_submission(submission_id)

    async def save_statuses(self, submission_id: str) -> dict[str, str]:
        """Per-question save status of an active exam."""
        async with self._lock:
            active = self._active.get(submission_id)
        return dict(active.save_status) if active else {}

    async def list_active(self) -> list[ActiveExam]:
        """List exams currently being taken."""
        async with self._lock:
            return list(self._active.values())

    async def shutdown(self) -> None:
        """Cancel every timer without submitting (server shutdown)."""
        async with self._lock:
            actives = list(self._active.values())
            self._active.clear()

        for active in actives:
            for task in active.pending.values():
                task.cancel()
            if active.countdown is not None:
                active.countdown.cancel()
        logger.info("exam_session.shutdown", active=len(actives))

    async def _require(self, submission_id: str, student_id: str) -> ActiveExam:
        async with self._lock:
            active = self._active.get(submission_id)
        if active is None:
            submission = _load_owned_submission(submission_id, student_id)
            if submission.status != "in_progress":
                raise ConflictError("Submission is no longer in progress")
            # Resume after a restart: re-register from the database
            active, _ = await self.open(submission.exam_id, student_id)
        if active.student_id != student_id:
            raise PermissionDeniedError("Submission belongs to another student")
        return active

    def _write(self, active: ActiveExam, question_id: str, enforce_deadline: bool) -> None:
        answer_text, answer_array = active.answers[question_id]
        try:
            save_answer(
                active.submission_id,
                active.student_id,
                question_id,
                answer_text,
                answer_array,
                enforce_deadline=enforce_deadline,
            )
        except (LMSError, sqlite3.Error) as e:
            active.save_status[question_id] = SAVE_FAILED
            logger.error(
                "exam_session.save_failed",
                submission_id=active.submission_id,
                question_id=question_id,
                error=str(e),
            )
            return
        active.save_status[question_id] = SAVE_OK

    def _flush(self, active: ActiveExam) -> None:
        for task in active.pending.values():
            task.cancel()
        active.pending.clear()
        # Answers were accepted before the deadline, so the flush ignores it
        for question_id in list(active.answers):
            if active.save_status.get(question_id) != SAVE_OK:
                self._write(active, question_id, enforce_deadline=False)
        logger.debug("exam_session.flushed", submission_id=active.submission_id)

    async def _debounced_save(self, active: ActiveExam, question_id: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        active.pending.pop(question_id, None)
        self._write(active, question_id, enforce_deadline=True)

    async def _countdown(self, submission_id: str, seconds: float) -> None:
        await asyncio.sleep(seconds)
        logger.info("exam_session.time_expired", submission_id=submission_id)
        try:
            await self.submit(submission_id)
        except (LMSError, sqlite3.Error) as e:
            logger.error("exam_session.auto_submit_failed", submission_id=submission_id, error=str(e))


# Global manager instance
_exam_session_manager: ExamSessionManager | None = None


def get_exam_session_manager() -> ExamSessionManager:
    """Get the global exam session manager."""
    global _exam_session_manager
    if _exam_session_manager is None:
        _exam_session_manager = ExamSessionManager()
    return _exam_session_manager


def reset_exam_session_manager() -> None:
    """Reset the exam session manager (for testing)."""
    global _exam_session_manager
    _exam_session_manager = None

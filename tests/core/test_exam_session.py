"""Tests for exam attempts, autosave, submission and the countdown."""

import asyncio
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from structlog.testing import capture_logs

from lms.core import exam_session
from lms.core.errors import ConflictError, PermissionDeniedError, ValidationError
from lms.core.exam_session import (
    SAVE_FAILED,
    SAVE_OK,
    SAVE_PENDING,
    ExamSessionManager,
    begin_attempt,
    finalize_submission,
    get_exam_session_manager,
    remaining_seconds,
    reset_exam_session_manager,
    save_answer,
)
from lms.db.database import get_db, utcnow
from lms.db.submissions_repository import get_submission, list_answers


@pytest_asyncio.fixture
async def manager():
    """Session manager with a short debounce; timers cancelled afterwards."""
    manager = ExamSessionManager(debounce_seconds=0.05)
    yield manager
    await manager.shutdown()


def backdate(submission_id: str, started_at: datetime) -> None:
    """Pretend the attempt started at started_at."""
    with get_db() as conn:
        conn.execute(
            "UPDATE exam_submissions SET started_at = ? WHERE id = ?",
            (started_at.isoformat(), submission_id),
        )


class TestRemainingSeconds:
    """Tests for the time-limit arithmetic."""

    def test_counts_down(self):
        start = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
        now = start + timedelta(minutes=10, seconds=0.5)
        assert remaining_seconds(start.isoformat(), 30, now) == 1199

    def test_never_negative(self):
        start = datetime(2030, 1, 1, 9, 0, tzinfo=timezone.utc)
        assert remaining_seconds(start.isoformat(), 30, start + timedelta(hours=2)) == 0


class TestBeginAttempt:
    """Tests for starting and resuming attempts."""

    def test_start_creates_submission(self, exam, student):
        view = begin_attempt(exam.exam.id, student.id)
        assert view.submission.status == "in_progress"
        assert view.submission.max_score == 10
        assert view.answers == []
        assert 0 < view.remaining_seconds <= 30 * 60

    def test_resume_keeps_start_time(self, exam, student):
        first = begin_attempt(exam.exam.id, student.id)
        later = utcnow() + timedelta(minutes=5)
        again = begin_attempt(exam.exam.id, student.id, now=later)
        assert again.submission.id == first.submission.id
        assert again.submission.started_at == first.submission.started_at
        assert again.remaining_seconds <= first.remaining_seconds - 299

    def test_resume_allowed_after_window_closes(self, make_exam, student):
        """An attempt in progress can be resumed after the scheduled end."""
        exam = make_exam(ends_in=timedelta(minutes=1))
        first = begin_attempt(exam.exam.id, student.id)
        again = begin_attempt(exam.exam.id, student.id, now=utcnow() + timedelta(minutes=2))
        assert again.submission.id == first.submission.id

    def test_inactive_exam(self, make_exam, student):
        exam = make_exam(is_active=False)
        with pytest.raises(ConflictError, match="not active"):
            begin_attempt(exam.exam.id, student.id)

    def test_not_started(self, make_exam, student):
        exam = make_exam(starts_in=timedelta(hours=1), ends_in=timedelta(hours=2))
        with pytest.raises(ConflictError, match="not started"):
            begin_attempt(exam.exam.id, student.id)

    def test_ended(self, make_exam, student):
        exam = make_exam(starts_in=timedelta(hours=-2), ends_in=timedelta(hours=-1))
        with pytest.raises(ConflictError, match="ended"):
            begin_attempt(exam.exam.id, student.id)

    def test_no_questions(self, make_exam, student):
        exam = make_exam(questions=[])
        with pytest.raises(ValidationError):
            begin_attempt(exam.exam.id, student.id)

    def test_already_submitted(self, exam, student):
        view = begin_attempt(exam.exam.id, student.id)
        finalize_submission(view.submission.id)
        with pytest.raises(ConflictError, match="already submitted"):
            begin_attempt(exam.exam.id, student.id)


class TestSaveAnswer:
    """Tests for immediate answer writes."""

    def test_rejects_foreign_question(self, exam, make_exam, student):
        other = make_exam("Other")
        view = begin_attempt(exam.exam.id, student.id)
        with pytest.raises(ValidationError):
            save_answer(view.submission.id, student.id, other.questions[0].id, "x")

    def test_rejects_other_student(self, exam, student, make_user, qids):
        view = begin_attempt(exam.exam.id, student.id)
        intruder = make_user()
        with pytest.raises(PermissionDeniedError):
            save_answer(view.submission.id, intruder.id, qids["multiple_choice"], "Paris")

    def test_rejects_after_deadline(self, exam, student, qids):
        view = begin_attempt(exam.exam.id, student.id)
        late = utcnow() + timedelta(minutes=31)
        with pytest.raises(ConflictError, match="Time limit"):
            save_answer(view.submission.id, student.id, qids["multiple_choice"], "Paris", now=late)


class TestFinalizeSubmission:
    """Tests for scoring on submit."""

    def test_scores_saved_answers(self, exam, student, qids):
        view = begin_attempt(exam.exam.id, student.id)
        sid = view.submission.id
        save_answer(sid, student.id, qids["multiple_choice"], "Paris")
        save_answer(sid, student.id, qids["multiple_checkboxes"], answer_array=["5", "2"])
        save_answer(sid, student.id, qids["essay"], "It calls itself")

        result = finalize_submission(sid)
        assert result.status == "submitted"
        assert result.total_score == 5
        points = {a.question_id: a.points_earned for a in list_answers(sid)}
        assert points == {qids["multiple_choice"]: 2, qids["multiple_checkboxes"]: 3, qids["essay"]: 0}

    def test_idempotent(self, exam, student):
        view = begin_attempt(exam.exam.id, student.id)
        first = finalize_submission(view.submission.id)
        second = finalize_submission(view.submission.id)
        assert second.submitted_at == first.submitted_at


class TestExamSessionManager:
    """Tests for debounced autosave and submission."""

    @pytest.mark.asyncio
    async def test_open_registers_exam(self, manager, exam, student):
        active, view = await manager.open(exam.exam.id, student.id)
        assert active.submission_id == view.submission.id
        assert await manager.get(view.submission.id) is active
        assert len(await manager.list_active()) == 1

    @pytest.mark.asyncio
    async def test_open_twice_reuses_state(self, manager, exam, student):
        first, _ = await manager.open(exam.exam.id, student.id)
        second, _ = await manager.open(exam.exam.id, student.id)
        assert second is first

    @pytest.mark.asyncio
    async def test_debounce_writes_latest_value_once(self, manager, exam, student, qids):
        """Rapid changes collapse into one write of the last value."""
        active, view = await manager.open(exam.exam.id, student.id)
        sid = view.submission.id
        qid = qids["multiple_choice"]

        assert await manager.record_answer(sid, student.id, qid, "Berlin") == SAVE_PENDING
        await manager.record_answer(sid, student.id, qid, "Rome")
        await manager.record_answer(sid, student.id, qid, "Paris")
        assert list_answers(sid) == []

        await asyncio.sleep(0.2)
        answers = list_answers(sid)
        assert [a.answer_text for a in answers] == ["Paris"]
        assert (await manager.save_statuses(sid)) == {qid: SAVE_OK}

    @pytest.mark.asyncio
    async def test_flush_writes_pending(self, exam, student, qids):
        manager = ExamSessionManager(debounce_seconds=60)
        try:
            _, view = await manager.open(exam.exam.id, student.id)
            sid = view.submission.id
            await manager.record_answer(sid, student.id, qids["essay"], "Draft")
            await manager.flush(sid)
            assert [a.answer_text for a in list_answers(sid)] == ["Draft"]
            assert (await manager.save_statuses(sid))[qids["essay"]] == SAVE_OK
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_submit_flushes_and_scores(self, exam, student, qids):
        manager = ExamSessionManager(debounce_seconds=60)
        try:
            _, view = await manager.open(exam.exam.id, student.id)
            sid = view.submission.id
            await manager.record_answer(sid, student.id, qids["multiple_choice"], "Paris")
            await manager.record_answer(
                sid, student.id, qids["multiple_checkboxes"], answer_array=["2", "5"]
            )

            result = await manager.submit(sid, student.id)
            assert result.status == "submitted"
            assert result.total_score == 5
            assert await manager.get(sid) is None
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_submit_twice(self, manager, exam, student):
        _, view = await manager.open(exam.exam.id, student.id)
        first = await manager.submit(view.submission.id, student.id)
        second = await manager.submit(view.submission.id, student.id)
        assert second.submitted_at == first.submitted_at

    @pytest.mark.asyncio
    async def test_submit_other_students_submission(self, manager, exam, student, make_user):
        _, view = await manager.open(exam.exam.id, student.id)
        with pytest.raises(PermissionDeniedError):
            await manager.submit(view.submission.id, make_user().id)

    @pytest.mark.asyncio
    async def test_answer_after_submit_rejected(self, manager, exam, student, qids):
        _, view = await manager.open(exam.exam.id, student.id)
        await manager.submit(view.submission.id, student.id)
        with pytest.raises(ConflictError):
            await manager.record_answer(view.submission.id, student.id, qids["essay"], "late")

    @pytest.mark.asyncio
    async def test_unknown_question_rejected(self, manager, exam, student):
        _, view = await manager.open(exam.exam.id, student.id)
        with pytest.raises(ValidationError):
            await manager.record_answer(view.submission.id, student.id, "nope", "x")

    @pytest.mark.asyncio
    async def test_record_reopens_after_restart(self, exam, student, qids):
        """A fresh manager picks up an in-progress submission on first answer."""
        view = begin_attempt(exam.exam.id, student.id)
        manager = ExamSessionManager(debounce_seconds=0.01)
        try:
            await manager.record_answer(view.submission.id, student.id, qids["essay"], "Resumed")
            await asyncio.sleep(0.1)
            assert [a.answer_text for a in list_answers(view.submission.id)] == ["Resumed"]
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_save_failure_reported(self, manager, exam, student, qids, monkeypatch):
        """A failed write marks the question 'save failed'."""

        def broken_upsert(*args, **kwargs):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(exam_session, "upsert_answer", broken_upsert)
        _, view = await manager.open(exam.exam.id, student.id)
        sid = view.submission.id
        await manager.record_answer(sid, student.id, qids["essay"], "Lost")
        await manager.flush(sid)
        assert (await manager.save_statuses(sid))[qids["essay"]] == SAVE_FAILED


class TestCountdown:
    """Tests for auto-submission when time runs out."""

    @pytest.mark.asyncio
    async def test_auto_submits_with_pending_answers(self, exam, student, qids):
        """Expiry flushes answers that were still waiting on the debounce."""
        view = begin_attempt(exam.exam.id, student.id)
        sid = view.submission.id
        # Leave one second on the clock
        backdate(sid, utcnow() - timedelta(minutes=30) + timedelta(seconds=1.5))

        manager = ExamSessionManager(debounce_seconds=60)
        try:
            active, resumed = await manager.open(exam.exam.id, student.id)
            assert resumed.remaining_seconds <= 1
            await manager.record_answer(sid, student.id, qids["multiple_choice"], "Paris")

            await asyncio.sleep(2.0)
            submission = get_submission(sid)
            assert submission.status == "submitted"
            assert submission.total_score == 2
            assert await manager.get(sid) is None
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_expired_attempt_submits_on_open(self, exam, student):
        """Reopening an attempt whose time is up submits it right away."""
        view = begin_attempt(exam.exam.id, student.id)
        backdate(view.submission.id, utcnow() - timedelta(minutes=45))

        manager = ExamSessionManager(debounce_seconds=0.01)
        try:
            _, resumed = await manager.open(exam.exam.id, student.id)
            assert resumed.remaining_seconds == 0
            await asyncio.sleep(0.1)
            assert get_submission(view.submission.id).status == "submitted"
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_waits_for_exact_deadline(self, exam, student, qids):
        """The timer does not fire in the last fractional second of the attempt."""
        view = begin_attempt(exam.exam.id, student.id)
        sid = view.submission.id
        backdate(sid, utcnow() - timedelta(minutes=30) + timedelta(seconds=1.9))

        manager = ExamSessionManager(debounce_seconds=60)
        try:
            _, resumed = await manager.open(exam.exam.id, student.id)
            assert resumed.remaining_seconds == 1

            await asyncio.sleep(1.3)
            assert get_submission(sid).status == "in_progress"
            status = await manager.record_answer(sid, student.id, qids["multiple_choice"], "Paris")
            assert status == SAVE_PENDING

            await asyncio.sleep(1.0)
            submission = get_submission(sid)
            assert submission.status == "submitted"
            assert submission.total_score == 2
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_auto_submit_database_error_logged(self, exam, student, monkeypatch):
        """A database error during auto-submission is logged, not raised from the timer."""

        def locked(*args, **kwargs):
            raise sqlite3.OperationalError("database is locked")

        view = begin_attempt(exam.exam.id, student.id)
        backdate(view.submission.id, utcnow() - timedelta(minutes=45))
        monkeypatch.setattr(exam_session, "mark_submitted", locked)

        manager = ExamSessionManager(debounce_seconds=0.01)
        try:
            with capture_logs() as logs:
                active, _ = await manager.open(exam.exam.id, student.id)
                await asyncio.sleep(0.1)

            assert active.countdown.done()
            assert active.countdown.exception() is None
            failures = [e for e in logs if e["event"] == "exam_session.auto_submit_failed"]
            assert len(failures) == 1
            assert failures[0]["log_level"] == "error"
            assert failures[0]["submission_id"] == view.submission.id
            assert "database is locked" in failures[0]["error"]
            assert get_submission(view.submission.id).status == "in_progress"
        finally:
            await manager.shutdown()


class TestGlobalManager:
    """Tests for the module-level manager."""

    def test_singleton_and_reset(self):
        first = get_exam_session_manager()
        assert get_exam_session_manager() is first
        reset_exam_session_manager()
        assert get_exam_session_manager() is not first

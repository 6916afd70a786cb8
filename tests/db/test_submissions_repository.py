"""Tests for submission and answer storage."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from lms.core.errors import NotFoundError
from lms.db.database import get_db
from lms.db.submissions_repository import (
    claim_submission,
    count_submissions_by_status,
    get_submission_for,
    list_answers,
    list_submissions,
    mark_submitted,
    set_answer_points,
    upsert_answer,
)


class TestClaimSubmission:
    """One submission per (exam, student)."""

    def test_claim_creates_in_progress_submission(self, exam, student):
        """First claim creates an in_progress row with the exam's max score."""
        submission = claim_submission(exam.exam.id, student.id, exam.max_score)
        assert submission.status == "in_progress"
        assert submission.max_score == 10
        assert submission.total_score == 0
        assert submission.submitted_at is None

    def test_second_claim_returns_same_row(self, exam, student):
        """Claiming again returns the existing submission untouched."""
        first = claim_submission(exam.exam.id, student.id, exam.max_score)
        second = claim_submission(exam.exam.id, student.id, 99)
        assert second.id == first.id
        assert second.started_at == first.started_at
        assert second.max_score == first.max_score

    def test_claim_does_not_reset_submitted(self, exam, student):
        """A finalized submission stays finalized when claimed again."""
        first = claim_submission(exam.exam.id, student.id, exam.max_score)
        mark_submitted(first.id, {}, 4)
        again = claim_submission(exam.exam.id, student.id, exam.max_score)
        assert again.status == "submitted"
        assert again.total_score == 4

    def test_concurrent_claims_create_one_row(self, exam, student):
        """Racing claims all resolve to a single submission."""
        with ThreadPoolExecutor(max_workers=5) as pool:
            results = list(
                pool.map(
                    lambda _: claim_submission(exam.exam.id, student.id, exam.max_score),
                    range(5),
                )
            )
        assert len({s.id for s in results}) == 1
        with get_db() as conn:
            count = conn.execute("SELECT COUNT(*) FROM exam_submissions").fetchone()[0]
        assert count == 1


class TestAnswers:
    """Answer autosave storage."""

    def test_upsert_overwrites_existing_answer(self, exam, student, qids):
        """Saving twice keeps one row with the latest value."""
        submission = claim_submission(exam.exam.id, student.id, exam.max_score)
        upsert_answer(submission.id, qids["multiple_choice"], "Berlin")
        upsert_answer(submission.id, qids["multiple_choice"], "Paris")

        answers = list_answers(submission.id)
        assert len(answers) == 1
        assert answers[0].answer_text == "Paris"

    def test_answer_array_round_trips(self, exam, student, qids):
        """Checkbox selections are stored as a list."""
        submission = claim_submission(exam.exam.id, student.id, exam.max_score)
        saved = upsert_answer(submission.id, qids["multiple_checkboxes"], answer_array=["2", "5"])
        assert saved.answer_array == ["2", "5"]


class TestMarkSubmitted:
    """Finalization of a submission."""

    def test_mark_submitted_sets_points_and_total(self, exam, student, qids):
        """Points per question and the total are written."""
        submission = claim_submission(exam.exam.id, student.id, exam.max_score)
        upsert_answer(submission.id, qids["multiple_choice"], "Paris")

        result = mark_submitted(submission.id, {qids["multiple_choice"]: 2}, 2)
        assert result.status == "submitted"
        assert result.total_score == 2
        assert result.submitted_at is not None
        assert list_answers(submission.id)[0].points_earned == 2

    def test_mark_submitted_only_once(self, exam, student):
        """A second finalization leaves the first result in place."""
        submission = claim_submission(exam.exam.id, student.id, exam.max_score)
        first = mark_submitted(submission.id, {}, 3)
        second = mark_submitted(submission.id, {}, 9)
        assert second.total_score == 3
        assert second.submitted_at == first.submitted_at

    def test_mark_submitted_unknown_raises(self):
        """Unknown submission raises NotFoundError."""
        with pytest.raises(NotFoundError):
            mark_submitted("missing", {}, 0)


class TestSetAnswerPoints:
    """Manual grading storage."""

    def test_recomputes_total_and_marks_graded(self, exam, student, qids):
        """Total becomes the sum of answer points."""
        submission = claim_submission(exam.exam.id, student.id, exam.max_score)
        upsert_answer(submission.id, qids["multiple_choice"], "Paris")
        upsert_answer(submission.id, qids["essay"], "A function calling itself")
        mark_submitted(submission.id, {qids["multiple_choice"]: 2, qids["essay"]: 0}, 2)

        graded = set_answer_points(submission.id, qids["essay"], 4)
        assert graded.status == "graded"
        assert graded.total_score == 6

    def test_grading_unanswered_question_creates_row(self, exam, student, qids):
        """An unanswered question can still receive points."""
        submission = claim_submission(exam.exam.id, student.id, exam.max_score)
        mark_submitted(submission.id, {}, 0)

        graded = set_answer_points(submission.id, qids["essay"], 1)
        assert graded.total_score == 1
        assert [a.question_id for a in list_answers(submission.id)] == [qids["essay"]]


class TestListing:
    """Submission queries."""

    def test_filters_and_counts(self, make_exam, student, make_user):
        """Filters by student and status; counts per status."""
        other = make_user()
        exam_a = make_exam("A")
        exam_b = make_exam("B")
        s1 = claim_submission(exam_a.exam.id, student.id, 10)
        claim_submission(exam_b.exam.id, student.id, 10)
        claim_submission(exam_a.exam.id, other.id, 10)
        mark_submitted(s1.id, {}, 5)

        assert len(list_submissions(student_id=student.id)) == 2
        assert [s.id for s in list_submissions(statuses=("submitted",))] == [s1.id]
        assert count_submissions_by_status() == {"in_progress": 2, "submitted": 1, "graded": 0}
        assert get_submission_for(exam_a.exam.id, other.id) is not None

"""Submission review and manual grading endpoints."""

from fastapi import APIRouter, Depends

from lms.core.grading import (
    get_submission_review,
    grade_answer,
    list_review_students,
    list_review_submissions,
)
from lms.db.users_repository import UserRecord
from lms.web.deps import require_admin
from lms.web.schemas import (
    GradeRequest,
    StudentReviewStatsListResponse,
    StudentReviewStatsResponse,
    SubmissionResponse,
    SubmissionReviewResponse,
    SubmissionSummaryListResponse,
    SubmissionSummaryResponse,
)

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.get("/submissions", response_model=SubmissionSummaryListResponse)
async def list_submissions_for_review(
    student_id: str | None = None,
    actor: UserRecord = Depends(require_admin),
) -> SubmissionSummaryListResponse:
    """Submissions, most recently submitted first, optionally for one student."""
    items = [
        SubmissionSummaryResponse.model_validate(s)
        for s in list_review_submissions(student_id=student_id)
    ]
    return SubmissionSummaryListResponse(submissions=items, count=len(items))


@router.get("/students", response_model=StudentReviewStatsListResponse)
async def list_students_for_review(
    actor: UserRecord = Depends(require_admin),
) -> StudentReviewStatsListResponse:
    """Students with submissions, with their count and average."""
    items = [StudentReviewStatsResponse.model_validate(s) for s in list_review_students()]
    return StudentReviewStatsListResponse(students=items, count=len(items))


@router.get("/submissions/{submission_id}", response_model=SubmissionReviewResponse)
async def get_review(
    submission_id: str,
    actor: UserRecord = Depends(require_admin),
) -> SubmissionReviewResponse:
    """Question-by-question breakdown of a submission."""
    return SubmissionReviewResponse.model_validate(get_submission_review(submission_id))


@router.put(
    "/submissions/{submission_id}/answers/{question_id}/score",
    response_model=SubmissionResponse,
)
async def set_score(
    submission_id: str,
    question_id: str,
    body: GradeRequest,
    actor: UserRecord = Depends(require_admin),
) -> SubmissionResponse:
    """Set one answer's score; the total is recomputed and the submission marked graded."""
    return SubmissionResponse.model_validate(
        grade_answer(actor, submission_id, question_id, body.points)
    )

"""Student dashboard, exam start and results."""

from fastapi import APIRouter, Depends, status

from lms.config.app_config import load_app_config
from lms.core.dashboard import build_dashboard, get_student_result
from lms.core.exam_session import get_exam_session_manager
from lms.db.users_repository import UserRecord
from lms.web.deps import require_student
from lms.web.schemas import (
    AnswerResponse,
    AttemptResponse,
    ExaminationResponse,
    StudentDashboardResponse,
    StudentExamEntryResponse,
    StudentQuestionResponse,
    StudentStatsResponse,
    SubmissionResponse,
    SubmissionReviewResponse,
)

router = APIRouter(prefix="/api/student/exams", tags=["student"])


@router.get("", response_model=StudentDashboardResponse)
async def dashboard(student: UserRecord = Depends(require_student)) -> StudentDashboardResponse:
    """Active exams with their status, and the student's results."""
    board = build_dashboard(student.id)
    return StudentDashboardResponse(
        exams=[StudentExamEntryResponse.model_validate(e) for e in board.exams],
        count=len(board.exams),
        stats=StudentStatsResponse.model_validate(board.stats),
        latest_results=[SubmissionResponse.model_validate(s) for s in board.latest_results],
    )


@router.post("/{exam_id}/start", response_model=AttemptResponse, status_code=status.HTTP_200_OK)
async def start_exam(exam_id: str, student: UserRecord = Depends(require_student)) -> AttemptResponse:
    """Start an exam, or resume the one in progress."""
    manager = get_exam_session_manager()
    _, view = await manager.open(exam_id, student.id)

    return AttemptResponse(
        submission=SubmissionResponse.model_validate(view.submission),
        examination=ExaminationResponse.model_validate(view.detail.exam),
        questions=[StudentQuestionResponse.model_validate(q) for q in view.detail.questions],
        answers=[AnswerResponse.model_validate(a) for a in view.answers],
        remaining_seconds=view.remaining_seconds,
        low_time_warning_seconds=load_app_config().exam.low_time_warning_seconds,
    )


@router.get("/results/{submission_id}", response_model=SubmissionReviewResponse)
async def get_result(
    submission_id: str,
    student: UserRecord = Depends(require_student),
) -> SubmissionReviewResponse:
    """Question-by-question result of one of the student's submissions."""
    return SubmissionReviewResponse.model_validate(get_student_result(student.id, submission_id))

"""Examination authoring endpoints."""

from fastapi import APIRouter, Depends, status

from lms.config.app_config import load_app_config
from lms.core import exams
from lms.core.exams import ExamDraft, ExaminationDetail, QuestionDraft
from lms.db.exams_repository import list_examinations
from lms.db.users_repository import UserRecord
from lms.web.deps import require_admin
from lms.web.schemas import (
    ExaminationDetailResponse,
    ExaminationInput,
    ExaminationListResponse,
    ExaminationResponse,
    MoveExaminationRequest,
    QuestionResponse,
)

router = APIRouter(prefix="/api/examinations", tags=["examinations"])


def _draft(body: ExaminationInput) -> ExamDraft:
    return ExamDraft(
        title=body.title,
        description=body.description,
        scheduled_start=body.scheduled_start,
        scheduled_end=body.scheduled_end,
        duration_minutes=body.duration_minutes or load_app_config().exam.default_duration_minutes,
        is_active=body.is_active,
        folder_id=body.folder_id,
        questions=[QuestionDraft(**q.model_dump()) for q in body.questions],
    )


def _detail_response(detail: ExaminationDetail) -> ExaminationDetailResponse:
    return ExaminationDetailResponse(
        examination=ExaminationResponse.model_validate(detail.exam),
        questions=[QuestionResponse.model_validate(q) for q in detail.questions],
        max_score=detail.max_score,
    )


@router.get("", response_model=ExaminationListResponse)
async def list_all_examinations(
    folder_id: str | None = None,
    active_only: bool = False,
    actor: UserRecord = Depends(require_admin),
) -> ExaminationListResponse:
    """List examinations, newest first."""
    items = [
        ExaminationResponse.model_validate(e)
        for e in list_examinations(active_only=active_only, folder_id=folder_id)
    ]
    return ExaminationListResponse(examinations=items, count=len(items))


@router.post("", response_model=ExaminationDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_examination(
    body: ExaminationInput,
    actor: UserRecord = Depends(require_admin),
) -> ExaminationDetailResponse:
    """Create an examination with its questions."""
    return _detail_response(exams.create_examination(actor, _draft(body)))


@router.get("/{exam_id}", response_model=ExaminationDetailResponse)
async def get_examination(
    exam_id: str,
    actor: UserRecord = Depends(require_admin),
) -> ExaminationDetailResponse:
    """Get an examination with its questions and answer key."""
    return _detail_response(exams.get_examination_detail(exam_id))


@router.put("/{exam_id}", response_model=ExaminationDetailResponse)
async def update_examination(
    exam_id: str,
    body: ExaminationInput,
    actor: UserRecord = Depends(require_admin),
) -> ExaminationDetailResponse:
    """Update an examination, replacing its questions."""
    return _detail_response(exams.update_examination_with_questions(actor, exam_id, _draft(body)))


@router.delete("/{exam_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_examination(exam_id: str, actor: UserRecord = Depends(require_admin)) -> None:
    """Delete an examination and its submissions."""
    exams.remove_examination(actor, exam_id)


@router.post("/{exam_id}/toggle-active", response_model=ExaminationResponse)
async def toggle_active(exam_id: str, actor: UserRecord = Depends(require_admin)) -> ExaminationResponse:
    """Activate or deactivate an examination."""
    return ExaminationResponse.model_validate(exams.toggle_examination_active(actor, exam_id))


@router.post("/{exam_id}/move", response_model=ExaminationResponse)
async def move_examination(
    exam_id: str,
    body: MoveExaminationRequest,
    actor: UserRecord = Depends(require_admin),
) -> ExaminationResponse:
    """Move an examination to a folder (null folder_id removes it)."""
    exam = exams.move_examination_to_folder(actor, exam_id, body.folder_id)
    return ExaminationResponse.model_validate(exam)

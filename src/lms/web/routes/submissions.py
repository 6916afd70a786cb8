"""Answering and submitting an exam in progress."""

import math

from fastapi import APIRouter, Depends, HTTPException, status

from lms.core.exam_session import get_exam_session_manager
from lms.db.database import utcnow
from lms.db.submissions_repository import get_submission
from lms.db.users_repository import UserRecord
from lms.web.deps import require_student
from lms.web.schemas import (
    AnswerRequest,
    AnswerSaveResponse,
    SaveStatusResponse,
    SubmissionResponse,
)

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


async def _status_response(submission_id: str) -> SaveStatusResponse:
    manager = get_exam_session_manager()
    active = await manager.get(submission_id)
    if active is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No exam in progress for submission '{submission_id}'",
        )
    remaining = max(0, math.floor((active.deadline - utcnow()).total_seconds()))
    return SaveStatusResponse(
        submission_id=submission_id,
        statuses=await manager.save_statuses(submission_id),
        remaining_seconds=remaining,
    )


def _check_owner(submission_id: str, student: UserRecord) -> None:
    submission = get_submission(submission_id)
    if submission is None or submission.student_id != student.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Submission '{submission_id}' not found",
        )


@router.put("/{submission_id}/answers/{question_id}", response_model=AnswerSaveResponse)
async def record_answer(
    submission_id: str,
    question_id: str,
    body: AnswerRequest,
    student: UserRecord = Depends(require_student),
) -> AnswerSaveResponse:
    """Record an answer; it is written after the autosave debounce."""
    _check_owner(submission_id, student)
    save_status = await get_exam_session_manager().record_answer(
        submission_id,
        student.id,
        question_id,
        answer_text=body.answer_text,
        answer_array=body.answer_array,
    )
    return AnswerSaveResponse(question_id=question_id, save_status=save_status)


@router.get("/{submission_id}/status", response_model=SaveStatusResponse)
async def save_status(
    submission_id: str,
    student: UserRecord = Depends(require_student),
) -> SaveStatusResponse:
    """Per-question save status and remaining time."""
    _check_owner(submission_id, student)
    return await _status_response(submission_id)


@router.post("/{submission_id}/flush", response_model=SaveStatusResponse)
async def flush_answers(
    submission_id: str,
    student: UserRecord = Depends(require_student),
) -> SaveStatusResponse:
    """Write every pending answer now."""
    _check_owner(submission_id, student)
    await get_exam_session_manager().flush(submission_id)
    return await _status_response(submission_id)


@router.post("/{submission_id}/submit", response_model=SubmissionResponse)
async def submit(
    submission_id: str,
    student: UserRecord = Depends(require_student),
) -> SubmissionResponse:
    """Flush answers, score and finalize the submission."""
    _check_owner(submission_id, student)
    submission = await get_exam_session_manager().submit(submission_id, student.id)
    return SubmissionResponse.model_validate(submission)

"""Examination authoring.

Responsibilities:
- Validate examinations and their questions before they are stored
- Create, update, delete, activate and move examinations
- Manage exam folders
- Record each change in the admin activity log

Question lists are replaced as a whole on update. This is refused once an
examination has submissions, since answers reference the old questions.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

import structlog

from lms.core.errors import ConflictError, NotFoundError, ValidationError
from lms.db.admin_repository import log_admin_activity
from lms.db.exams_repository import (
    QUESTION_TYPES,
    ExaminationRecord,
    FolderRecord,
    QuestionRecord,
    delete_examination,
    delete_folder,
    get_examination_by_id,
    get_folder_by_id,
    insert_examination,
    insert_folder,
    list_questions,
    move_examination,
    replace_questions,
    set_examination_active,
    update_examination,
    update_folder,
)
from lms.db.submissions_repository import list_submissions
from lms.db.users_repository import UserRecord

logger = structlog.get_logger(__name__)

# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class QuestionDraft:
    """A question as entered by an instructor."""

    question_text: str
    question_type: str
    options: list[str] = field(default_factory=list)
    correct_answer: str | None = None
    correct_answers: list[str] = field(default_factory=list)
    points: int = 1
    is_required: bool = True


@dataclass
class ExamDraft:
    """An examination as entered by an instructor."""

    title: str
    scheduled_start: datetime
    scheduled_end: datetime
    duration_minutes: int = 60
    description: str = ""
    is_active: bool = True
    folder_id: str | None = None
    questions: list[QuestionDraft] = field(default_factory=list)


@dataclass
class ExaminationDetail:
    """Examination with its ordered questions."""

    exam: ExaminationRecord
    questions: list[QuestionRecord]

    @property
    def max_score(self) -> int:
        return sum(q.points for q in self.questions)


# =============================================================================
# VALIDATION
# =============================================================================


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_question(question: QuestionDraft, position: int) -> None:
    """Check a question is complete for its type.

    Raises:
        ValidationError: Naming the 1-based question position
    """
    label = f"Question {position}"
    if not question.question_text.strip():
        raise ValidationError(f"{label}: question text is required")
    if question.question_type not in QUESTION_TYPES:
        raise ValidationError(f"{label}: unknown question type '{question.question_type}'")
    if question.points < 0:
        raise ValidationError(f"{label}: points cannot be negative")

    options = [o for o in question.options if o.strip()]

    if question.question_type == "multiple_choice":
        if len(options) < 2:
            raise ValidationError(f"{label}: at least 2 options are required")
        if not question.correct_answer or question.correct_answer not in options:
            raise ValidationError(f"{label}: correct answer must be one of the options")

    elif question.question_type == "multiple_checkboxes":
        if len(options) < 2:
            raise ValidationError(f"{label}: at least 2 options are required")
        if not question.correct_answers:
            raise ValidationError(f"{label}: select at least one correct answer")
        missing = [a for a in question.correct_answers if a not in options]
        if missing:
            raise ValidationError(f"{label}: correct answers must be among the options")

    elif options:
        raise ValidationError(f"{label}: essay questions have no options")


def validate_exam(draft: ExamDraft) -> None:
    """Check examination fields and every question.

    Raises:
        ValidationError: On the first problem found
    """
    if not draft.title.strip():
        raise ValidationError("Title is required")
    if draft.duration_minutes <= 0:
        raise ValidationError("Duration must be greater than 0")
    if to_utc(draft.scheduled_end) <= to_utc(draft.scheduled_start):
        raise ValidationError("End time must be after start time")
    for position, question in enumerate(draft.questions, start=1):
        validate_question(question, position)


def _question_rows(draft: ExamDraft) -> list[dict]:
    rows = []
    for q in draft.questions:
        row = asdict(q)
        row["options"] = [o for o in q.options if o.strip()] if q.question_type != "essay" else []
        if q.question_type != "multiple_choice":
            row["correct_answer"] = None
        if q.question_type != "multiple_checkboxes":
            row["correct_answers"] = []
        rows.append(row)
    return rows


def _check_folder(folder_id: str | None) -> None:
    if folder_id is not None and get_folder_by_id(folder_id) is None:
        raise NotFoundError("Folder", folder_id)


# =============================================================================
# EXAMINATIONS
# =============================================================================


def get_examination_detail(exam_id: str) -> ExaminationDetail:
    """Examination with its questions.

    Raises:
        NotFoundError: If the examination does not exist
    """
    exam = get_examination_by_id(exam_id)
    if exam is None:
        raise NotFoundError("Examination", exam_id)
    return ExaminationDetail(exam=exam, questions=list_questions(exam_id))


def create_examination(actor: UserRecord, draft: ExamDraft) -> ExaminationDetail:
    """Validate and store a new examination with its questions."""
    validate_exam(draft)
    _check_folder(draft.folder_id)

    exam = insert_examination(
        title=draft.title.strip(),
        description=draft.description,
        scheduled_start=to_utc(draft.scheduled_start).isoformat(),
        scheduled_end=to_utc(draft.scheduled_end).isoformat(),
        duration_minutes=draft.duration_minutes,
        is_active=draft.is_active,
        folder_id=draft.folder_id,
        created_by=actor.id,
    )
    questions = replace_questions(exam.id, _question_rows(draft))

    log_admin_activity(
        actor.id, "create", "examination", exam.id,
        {"title": exam.title, "questions": len(questions)},
    )
    logger.info("examinations.created", exam_id=exam.id, questions=len(questions))
    return ExaminationDetail(exam=exam, questions=questions)


def update_examination_with_questions(
    actor: UserRecord,
    exam_id: str,
    draft: ExamDraft,
) -> ExaminationDetail:
    """Update an examination and replace its question list.

    Raises:
        NotFoundError: If the examination does not exist
        ConflictError: If students have already started it
    """
    validate_exam(draft)
    _check_folder(draft.folder_id)
    if get_examination_by_id(exam_id) is None:
        raise NotFoundError("Examination", exam_id)
    if list_submissions(exam_id=exam_id):
        raise ConflictError("Examination already has submissions; questions cannot be replaced")

    exam = update_examination(
        exam_id,
        title=draft.title.strip(),
        description=draft.description,
        scheduled_start=to_utc(draft.scheduled_start).isoformat(),
        scheduled_end=to_utc(draft.scheduled_end).isoformat(),
        duration_minutes=draft.duration_minutes,
        is_active=draft.is_active,
        folder_id=draft.folder_id,
    )
    questions = replace_questions(exam_id, _question_rows(draft))

    log_admin_activity(
        actor.id, "update", "examination", exam_id,
        {"title": exam.title, "questions": len(questions)},
    )
    return ExaminationDetail(exam=exam, questions=questions)


def remove_examination(actor: UserRecord, exam_id: str) -> None:
    """Delete an examination with its questions and submissions."""
    exam = get_examination_by_id(exam_id)
    if exam is None:
        raise NotFoundError("Examination", exam_id)
    delete_examination(exam_id)
    log_admin_activity(actor.id, "delete", "examination", exam_id, {"title": exam.title})
    logger.info("examinations.deleted", exam_id=exam_id)


def toggle_examination_active(actor: UserRecord, exam_id: str) -> ExaminationRecord:
    """Flip an examination between active and inactive."""
    exam = get_examination_by_id(exam_id)
    if exam is None:
        raise NotFoundError("Examination", exam_id)
    updated = set_examination_active(exam_id, not exam.is_active)
    log_admin_activity(
        actor.id, "update", "examination", exam_id, {"is_active": updated.is_active}
    )
    return updated


def move_examination_to_folder(
    actor: UserRecord,
    exam_id: str,
    folder_id: str | None,
) -> ExaminationRecord:
    """Put an examination into a folder, or take it out with folder_id=None."""
    _check_folder(folder_id)
    exam = move_examination(exam_id, folder_id)
    log_admin_activity(actor.id, "update", "examination", exam_id, {"folder_id": folder_id})
    return exam


# =============================================================================
# FOLDERS
# =============================================================================


def create_folder(actor: UserRecord, name: str, description: str = "") -> FolderRecord:
    """Create an exam folder."""
    if not name.strip():
        raise ValidationError("Folder name is required")
    folder = insert_folder(name.strip(), description, created_by=actor.id)
    log_admin_activity(actor.id, "create", "folder", folder.id, {"name": folder.name})
    return folder


def rename_folder(
    actor: UserRecord,
    folder_id: str,
    name: str,
    description: str = "",
) -> FolderRecord:
    """Change a folder's name and description."""
    if not name.strip():
        raise ValidationError("Folder name is required")
    folder = update_folder(folder_id, name.strip(), description)
    log_admin_activity(actor.id, "update", "folder", folder_id, {"name": folder.name})
    return folder


def remove_folder(actor: UserRecord, folder_id: str) -> None:
    """Delete a folder. Its examinations remain, without a folder."""
    if not delete_folder(folder_id):
        raise NotFoundError("Folder", folder_id)
    log_admin_activity(actor.id, "delete", "folder", folder_id)

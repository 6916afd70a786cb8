"""Repository functions for examinations, their questions and folders.

Provides CRUD operations for the examinations, exam_questions and
exam_folders tables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

import structlog

from lms.core.errors import NotFoundError
from lms.db.database import dump_json, get_db, load_json, new_id, now_iso

logger = structlog.get_logger(__name__)

QuestionType = Literal["multiple_choice", "multiple_checkboxes", "essay"]
QUESTION_TYPES: tuple[str, ...] = ("multiple_choice", "multiple_checkboxes", "essay")


@dataclass
class FolderRecord:
    """Exam folder record from database."""

    id: str
    name: str
    description: str
    created_by: str | None
    created_at: str
    updated_at: str


@dataclass
class ExaminationRecord:
    """Examination record from database."""

    id: str
    title: str
    description: str
    scheduled_start: str
    scheduled_end: str
    duration_minutes: int
    is_active: bool
    folder_id: str | None
    created_by: str | None
    created_at: str
    updated_at: str


@dataclass
class QuestionRecord:
    """Exam question record from database."""

    id: str
    exam_id: str
    question_text: str
    question_type: QuestionType
    options: list[str] = field(default_factory=list)
    correct_answer: str | None = None
    correct_answers: list[str] = field(default_factory=list)
    points: int = 1
    is_required: bool = True
    order_index: int = 0


# =============================================================================
# FOLDERS
# =============================================================================


def insert_folder(name: str, description: str = "", created_by: str | None = None) -> FolderRecord:
    """Insert a new folder."""
    folder_id = new_id()
    ts = now_iso()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO exam_folders (id, name, description, created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (folder_id, name, description, created_by, ts, ts),
        )

    logger.debug("folders.inserted", folder_id=folder_id)
    return get_folder_by_id(folder_id)  # type: ignore[return-value]


def get_folder_by_id(folder_id: str) -> FolderRecord | None:
    """Get folder by ID."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM exam_folders WHERE id = ?", (folder_id,)
        ).fetchone()

    return _row_to_folder(row) if row else None


def list_folders() -> list[FolderRecord]:
    """List all folders ordered by name."""
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM exam_folders ORDER BY name").fetchall()

    return [_row_to_folder(row) for row in rows]


def update_folder(folder_id: str, name: str, description: str) -> FolderRecord:
    """Rename or re-describe a folder.

    Raises:
        NotFoundError: If the folder does not exist
    """
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE exam_folders SET name = ?, description = ?, updated_at = ? WHERE id = ?",
            (name, description, now_iso(), folder_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Folder", folder_id)

    logger.debug("folders.updated", folder_id=folder_id)
    return get_folder_by_id(folder_id)  # type: ignore[return-value]


def delete_folder(folder_id: str) -> bool:
    """Delete a folder; its examinations are left without a folder."""
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM exam_folders WHERE id = ?", (folder_id,))

    deleted = cursor.rowcount > 0
    if deleted:
        logger.debug("folders.deleted", folder_id=folder_id)
    return deleted


# =============================================================================
# EXAMINATIONS
# =============================================================================


def insert_examination(
    title: str,
    description: str,
    scheduled_start: str,
    scheduled_end: str,
    duration_minutes: int,
    is_active: bool = True,
    folder_id: str | None = None,
    created_by: str | None = None,
) -> ExaminationRecord:
    """Insert a new examination (questions are inserted separately)."""
    exam_id = new_id()
    ts = now_iso()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO examinations (
                id, title, description, scheduled_start, scheduled_end,
                duration_minutes, is_active, folder_id, created_by,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                exam_id,
                title,
                description,
                scheduled_start,
                scheduled_end,
                duration_minutes,
                int(is_active),
                folder_id,
                created_by,
                ts,
                ts,
            ),
        )

    logger.debug("examinations.inserted", exam_id=exam_id)
    return get_examination_by_id(exam_id)  # type: ignore[return-value]


def get_examination_by_id(exam_id: str) -> ExaminationRecord | None:
    """Get examination by ID."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM examinations WHERE id = ?", (exam_id,)
        ).fetchone()

    return _row_to_examination(row) if row else None


def list_examinations(
    active_only: bool = False,
    folder_id: str | None = None,
    created_since: str | None = None,
) -> list[ExaminationRecord]:
    """List examinations, newest first.

    Args:
        active_only: Only return examinations with is_active set
        folder_id: Only return examinations in this folder
        created_since: ISO timestamp lower bound on created_at
    """
    clauses: list[str] = []
    params: list[Any] = []
    if active_only:
        clauses.append("is_active = 1")
    if folder_id is not None:
        clauses.append("folder_id = ?")
        params.append(folder_id)
    if created_since is not None:
        clauses.append("created_at >= ?")
        params.append(created_since)

    query = "SELECT * FROM examinations"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY created_at DESC"

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()

    return [_row_to_examination(row) for row in rows]


def update_examination(
    exam_id: str,
    title: str,
    description: str,
    scheduled_start: str,
    scheduled_end: str,
    duration_minutes: int,
    is_active: bool,
    folder_id: str | None,
) -> ExaminationRecord:
    """Update an examination's metadata.

    Raises:
        NotFoundError: If the examination does not exist
    """
    with get_db() as conn:
        cursor = conn.execute(
            """
            UPDATE examinations SET
                title = ?,
                description = ?,
                scheduled_start = ?,
                scheduled_end = ?,
                duration_minutes = ?,
                is_active = ?,
                folder_id = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                title,
                description,
                scheduled_start,
                scheduled_end,
                duration_minutes,
                int(is_active),
                folder_id,
                now_iso(),
                exam_id,
            ),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Examination", exam_id)

    logger.debug("examinations.updated", exam_id=exam_id)
    return get_examination_by_id(exam_id)  # type: ignore[return-value]


def set_examination_active(exam_id: str, is_active: bool) -> ExaminationRecord:
    """Activate or deactivate an examination."""
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE examinations SET is_active = ?, updated_at = ? WHERE id = ?",
            (int(is_active), now_iso(), exam_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Examination", exam_id)

    logger.debug("examinations.active_changed", exam_id=exam_id, is_active=is_active)
    return get_examination_by_id(exam_id)  # type: ignore[return-value]


def move_examination(exam_id: str, folder_id: str | None) -> ExaminationRecord:
    """Move an examination into a folder (None removes it from any folder)."""
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE examinations SET folder_id = ?, updated_at = ? WHERE id = ?",
            (folder_id, now_iso(), exam_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Examination", exam_id)

    return get_examination_by_id(exam_id)  # type: ignore[return-value]


def delete_examination(exam_id: str) -> bool:
    """Delete an examination with its questions, submissions and answers."""
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM examinations WHERE id = ?", (exam_id,))

    deleted = cursor.rowcount > 0
    if deleted:
        logger.debug("examinations.deleted", exam_id=exam_id)
    return deleted


# =============================================================================
# QUESTIONS
# =============================================================================


def replace_questions(exam_id: str, questions: list[dict[str, Any]]) -> list[QuestionRecord]:
    """Replace all questions of an examination.

    Questions are stored in list order (order_index = position).

    Args:
        exam_id: Examination ID
        questions: Dicts with question_text, question_type, options,
            correct_answer, correct_answers, points, is_required
    """
    ts = now_iso()
    with get_db() as conn:
        conn.execute("DELETE FROM exam_questions WHERE exam_id = ?", (exam_id,))
        for index, q in enumerate(questions):
            conn.execute(
                """
                INSERT INTO exam_questions (
                    id, exam_id, question_text, question_type, options,
                    correct_answer, correct_answers, points, is_required,
                    order_index, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    new_id(),
                    exam_id,
                    q["question_text"],
                    q["question_type"],
                    dump_json(q.get("options") or []),
                    q.get("correct_answer"),
                    dump_json(q.get("correct_answers") or []),
                    q.get("points", 1),
                    int(q.get("is_required", True)),
                    index,
                    ts,
                ),
            )

    logger.debug("questions.replaced", exam_id=exam_id, count=len(questions))
    return list_questions(exam_id)


def list_questions(exam_id: str) -> list[QuestionRecord]:
    """List questions of an examination in display order."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM exam_questions WHERE exam_id = ? ORDER BY order_index",
            (exam_id,),
        ).fetchall()

    return [_row_to_question(row) for row in rows]


def _row_to_folder(row) -> FolderRecord:
    """Convert database row to FolderRecord."""
    return FolderRecord(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_examination(row) -> ExaminationRecord:
    """Convert database row to ExaminationRecord."""
    return ExaminationRecord(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        scheduled_start=row["scheduled_start"],
        scheduled_end=row["scheduled_end"],
        duration_minutes=row["duration_minutes"],
        is_active=bool(row["is_active"]),
        folder_id=row["folder_id"],
        created_by=row["created_by"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_question(row) -> QuestionRecord:
    """Convert database row to QuestionRecord."""
    return QuestionRecord(
        id=row["id"],
        exam_id=row["exam_id"],
        question_text=row["question_text"],
        question_type=row["question_type"],
        options=load_json(row["options"], []),
        correct_answer=row["correct_answer"],
        correct_answers=load_json(row["correct_answers"], []),
        points=row["points"],
        is_required=bool(row["is_required"]),
        order_index=row["order_index"],
    )

"""SQLite database connection and schema management.

Provides connection management and schema initialization for the LMS.
Uniqueness rules that make exam claiming and answer autosave safe live in
the schema: UNIQUE(exam_id, student_id) on exam_submissions and
UNIQUE(submission_id, question_id) on exam_answers.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("data/db/lms.db")

# Current database (module-level, set by init_db)
_db_path: Path | None = None

DEFAULT_SETTINGS: list[tuple[str, Any, str, str, bool]] = [
    ("app_name", "LetsGoLearn", "Application name", "general", True),
    ("app_version", "1.0.0", "Application version", "general", True),
    ("maintenance_mode", False, "Enable maintenance mode", "system", False),
    ("max_login_attempts", 5, "Maximum login attempts before lockout", "security", False),
    ("session_timeout_minutes", 30, "Session timeout in minutes", "security", False),
    ("allow_student_registration", False, "Allow students to self-register", "registration", False),
    ("default_exam_duration", 60, "Default exam duration in minutes", "exams", False),
    ("max_file_upload_size", 10485760, "Maximum file upload size in bytes (10MB)", "files", False),
    ("email_notifications_enabled", True, "Enable email notifications", "notifications", False),
    ("backup_retention_days", 30, "Number of days to retain backups", "system", False),
]


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Current UTC time in ISO 8601 format (the storage format for timestamps)."""
    return utcnow().isoformat()


def new_id() -> str:
    """Generate a primary key."""
    return str(uuid.uuid4())


def init_db(db_path: Path | None = None) -> None:
    """Initialize database with schema and default settings.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to data/db/lms.db
    """
    global _db_path
    _db_path = db_path or DEFAULT_DB_PATH

    # Ensure directory exists
    _db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        _create_schema(conn)
        _seed_settings(conn)

    logger.info("database.initialized", path=str(_db_path))


def get_db_path() -> Path:
    """Path of the active database."""
    return _db_path or DEFAULT_DB_PATH


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Commits on success and rolls back on error.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM users").fetchall()
    """
    db_path = get_db_path()

    # Ensure directory exists
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=10.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def dump_json(value: Any) -> str:
    """Serialize a JSON column value."""
    return json.dumps(value, ensure_ascii=False)


def load_json(raw: str | None, default: Any = None) -> Any:
    """Deserialize a JSON column value."""
    if raw is None or raw == "":
        return default
    return json.loads(raw)


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            username TEXT NOT NULL UNIQUE,
            email TEXT NOT NULL UNIQUE,
            full_name TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'student'
                CHECK(role IN ('super_admin', 'admin', 'student')),
            password_hash TEXT NOT NULL,
            last_login TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS exam_folders (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            created_by TEXT REFERENCES users(id) ON DELETE SET NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS examinations (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            scheduled_start TEXT NOT NULL,
            scheduled_end TEXT NOT NULL,
            duration_minutes INTEGER NOT NULL DEFAULT 60 CHECK(duration_minutes > 0),
            is_active INTEGER NOT NULL DEFAULT 1,
            folder_id TEXT REFERENCES exam_folders(id) ON DELETE SET NULL,
            created_by TEXT REFERENCES users(id) ON DELETE SET NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS exam_questions (
            id TEXT PRIMARY KEY,
            exam_id TEXT NOT NULL REFERENCES examinations(id) ON DELETE CASCADE,
            question_text TEXT NOT NULL,
            question_type TEXT NOT NULL
                CHECK(question_type IN ('multiple_choice', 'multiple_checkboxes', 'essay')),
            options TEXT NOT NULL DEFAULT '[]',
            correct_answer TEXT,
            correct_answers TEXT NOT NULL DEFAULT '[]',
            points INTEGER NOT NULL DEFAULT 1 CHECK(points >= 0),
            is_required INTEGER NOT NULL DEFAULT 1,
            order_index INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        );

        -- One attempt per student per exam: claiming relies on this constraint
        CREATE TABLE IF NOT EXISTS exam_submissions (
            id TEXT PRIMARY KEY,
            exam_id TEXT NOT NULL REFERENCES examinations(id) ON DELETE CASCADE,
            student_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            started_at TEXT NOT NULL,
            submitted_at TEXT,
            total_score INTEGER NOT NULL DEFAULT 0,
            max_score INTEGER NOT NULL DEFAULT 0,
            status TEXT NOT NULL DEFAULT 'in_progress'
                CHECK(status IN ('in_progress', 'submitted', 'graded')),
            created_at TEXT NOT NULL,
            UNIQUE(exam_id, student_id)
        );

        -- One answer per question per submission: autosave upserts on this
        CREATE TABLE IF NOT EXISTS exam_answers (
            id TEXT PRIMARY KEY,
            submission_id TEXT NOT NULL REFERENCES exam_submissions(id) ON DELETE CASCADE,
            question_id TEXT NOT NULL REFERENCES exam_questions(id) ON DELETE CASCADE,
            answer_text TEXT NOT NULL DEFAULT '',
            answer_array TEXT NOT NULL DEFAULT '[]',
            points_earned INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE(submission_id, question_id)
        );

        CREATE TABLE IF NOT EXISTS admin_activity_logs (
            id TEXT PRIMARY KEY,
            admin_id TEXT REFERENCES users(id) ON DELETE CASCADE,
            action_type TEXT NOT NULL,
            target_type TEXT NOT NULL,
            target_id TEXT,
            details TEXT NOT NULL DEFAULT '{}',
            ip_address TEXT,
            user_agent TEXT,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS system_settings (
            id TEXT PRIMARY KEY,
            setting_key TEXT NOT NULL UNIQUE,
            setting_value TEXT NOT NULL,
            description TEXT,
            category TEXT NOT NULL DEFAULT 'general',
            is_public INTEGER NOT NULL DEFAULT 0,
            updated_by TEXT REFERENCES users(id) ON DELETE SET NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS user_sessions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            session_token TEXT NOT NULL UNIQUE,
            ip_address TEXT,
            user_agent TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            last_activity TEXT NOT NULL,
            expires_at TEXT NOT NULL,
            created_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS system_notifications (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            message TEXT NOT NULL,
            notification_type TEXT NOT NULL DEFAULT 'info',
            target_role TEXT,
            target_user_id TEXT REFERENCES users(id) ON DELETE CASCADE,
            is_read INTEGER NOT NULL DEFAULT 0,
            is_system_wide INTEGER NOT NULL DEFAULT 0,
            created_by TEXT REFERENCES users(id) ON DELETE SET NULL,
            created_at TEXT NOT NULL,
            expires_at TEXT
        );

        CREATE TABLE IF NOT EXISTS inquiries (
            id TEXT PRIMARY KEY,
            email TEXT NOT NULL,
            subject TEXT NOT NULL,
            message TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'new'
                CHECK(status IN ('new', 'read', 'responded', 'archived')),
            is_read INTEGER NOT NULL DEFAULT 0,
            responded_at TEXT,
            responded_by TEXT REFERENCES users(id) ON DELETE SET NULL,
            response_message TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        -- Indexes
        CREATE INDEX IF NOT EXISTS idx_questions_exam ON exam_questions(exam_id, order_index);
        CREATE INDEX IF NOT EXISTS idx_submissions_student ON exam_submissions(student_id);
        CREATE INDEX IF NOT EXISTS idx_submissions_status ON exam_submissions(status);
        CREATE INDEX IF NOT EXISTS idx_answers_submission ON exam_answers(submission_id);
        CREATE INDEX IF NOT EXISTS idx_activity_created_at ON admin_activity_logs(created_at DESC);
        CREATE INDEX IF NOT EXISTS idx_activity_action_type ON admin_activity_logs(action_type);
        CREATE INDEX IF NOT EXISTS idx_sessions_token ON user_sessions(session_token);
        CREATE INDEX IF NOT EXISTS idx_inquiries_status ON inquiries(status);
        """
    )


def _seed_settings(conn: sqlite3.Connection) -> None:
    """Insert default system settings that are not present yet."""
    ts = now_iso()
    for key, value, description, category, is_public in DEFAULT_SETTINGS:
        conn.execute(
            """
            INSERT INTO system_settings (
                id, setting_key, setting_value, description, category,
                is_public, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(setting_key) DO NOTHING
            """,
            (new_id(), key, dump_json(value), description, category, int(is_public), ts, ts),
        )

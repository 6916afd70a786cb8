"""Shared fixtures: an isolated database and config per test, plus factories
for users and examinations.
"""

from datetime import timedelta
from pathlib import Path

import pytest
import yaml

from lms.config.app_config import clear_config_cache
from lms.core.accounts import create_account
from lms.core.exam_session import reset_exam_session_manager
from lms.core.exams import ExamDraft, QuestionDraft, create_examination
from lms.db.database import init_db, utcnow

PASSWORD = "secret123"

TEST_CONFIG = {
    "auth": {
        "session_timeout_minutes": 5,
        "session_max_hours": 12,
        # Lowest cost bcrypt accepts; keeps hashing fast
        "bcrypt_rounds": 4,
    },
    "exam": {
        "default_duration_minutes": 60,
        "autosave_debounce_seconds": 0.05,
        "low_time_warning_seconds": 300,
    },
}


@pytest.fixture(autouse=True)
def lms_db(tmp_path, monkeypatch) -> Path:
    """Fresh database and config for every test."""
    config_file = tmp_path / "app_config_v1.yaml"
    config_file.write_text(yaml.safe_dump(TEST_CONFIG), encoding="utf-8")
    db_path = tmp_path / "db" / "lms.db"

    monkeypatch.setenv("LMS_CONFIG_FILE", str(config_file))
    monkeypatch.setenv("LMS_DB_PATH", str(db_path))
    monkeypatch.delenv("LMS_DATA_DIR", raising=False)
    clear_config_cache()
    reset_exam_session_manager()

    init_db(db_path)
    yield db_path

    clear_config_cache()
    reset_exam_session_manager()


@pytest.fixture
def make_user():
    """Factory: make_user(username, role="student") -> UserRecord."""
    counter = {"n": 0}

    def _make(username: str | None = None, role: str = "student", full_name: str | None = None):
        counter["n"] += 1
        username = username or f"{role}{counter['n']}"
        return create_account(
            None,
            username=username,
            email=f"{username}@example.com",
            full_name=full_name or username.title(),
            role=role,
            password=PASSWORD,
        )

    return _make


@pytest.fixture
def super_admin(make_user):
    return make_user("root", role="super_admin", full_name="Root Admin")


@pytest.fixture
def admin(make_user):
    return make_user("teacher", role="admin", full_name="Terry Teacher")


@pytest.fixture
def student(make_user):
    return make_user("alice", role="student", full_name="Alice Student")


def sample_questions() -> list[QuestionDraft]:
    """One question of each type: 2 + 3 + 5 points."""
    return [
        QuestionDraft(
            question_text="Capital of France?",
            question_type="multiple_choice",
            options=["Berlin", "Paris", "Rome"],
            correct_answer="Paris",
            points=2,
        ),
        QuestionDraft(
            question_text="Select the prime numbers",
            question_type="multiple_checkboxes",
            options=["2", "4", "5"],
            correct_answers=["2", "5"],
            points=3,
        ),
        QuestionDraft(
            question_text="Explain recursion",
            question_type="essay",
            points=5,
        ),
    ]


@pytest.fixture
def make_exam(admin):
    """Factory: make_exam(title, ...) -> ExaminationDetail open right now."""

    def _make(
        title: str = "Midterm",
        questions: list[QuestionDraft] | None = None,
        duration_minutes: int = 30,
        starts_in: timedelta = timedelta(hours=-1),
        ends_in: timedelta = timedelta(hours=1),
        is_active: bool = True,
        folder_id: str | None = None,
    ):
        now = utcnow()
        draft = ExamDraft(
            title=title,
            scheduled_start=now + starts_in,
            scheduled_end=now + ends_in,
            duration_minutes=duration_minutes,
            is_active=is_active,
            folder_id=folder_id,
            questions=sample_questions() if questions is None else questions,
        )
        return create_examination(admin, draft)

    return _make


@pytest.fixture
def exam(make_exam):
    return make_exam()


@pytest.fixture
def qids(exam) -> dict[str, str]:
    """Question IDs of the sample exam keyed by question type."""
    return {q.question_type: q.id for q in exam.questions}

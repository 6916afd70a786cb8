"""Fixtures for Web API tests."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from lms.db.database import utcnow
from lms.web.api import create_app

PASSWORD = "secret123"


@pytest.fixture
def client():
    """Test client with the app lifespan running (keeps exam timers alive)."""
    with TestClient(create_app()) as client:
        yield client


@pytest.fixture
def login_as(client):
    """Factory: login_as(username) -> Authorization headers."""

    def _login(username: str) -> dict[str, str]:
        response = client.post("/api/auth/login", json={"username": username, "password": PASSWORD})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture
def exam_payload():
    """Factory for an examination request body open right now."""

    def _payload(**overrides):
        now = utcnow()
        body = {
            "title": "Web Quiz",
            "description": "Created over HTTP",
            "scheduled_start": (now - timedelta(hours=1)).isoformat(),
            "scheduled_end": (now + timedelta(hours=1)).isoformat(),
            "duration_minutes": 20,
            "questions": [
                {
                    "question_text": "2 + 2?",
                    "question_type": "multiple_choice",
                    "options": ["3", "4"],
                    "correct_answer": "4",
                    "points": 1,
                },
                {
                    "question_text": "Describe TCP",
                    "question_type": "essay",
                    "points": 4,
                },
            ],
        }
        body.update(overrides)
        return body

    return _payload

"""Tests for authentication endpoints and role guards."""

from lms import __version__


class TestHealth:
    """Tests for /health."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == __version__


class TestLogin:
    """Tests for /api/auth."""

    def test_login_and_me(self, client, student, login_as):
        headers = login_as("alice")
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "alice"
        assert data["role"] == "student"
        assert "password_hash" not in data

    def test_wrong_password(self, client, student):
        response = client.post("/api/auth/login", json={"username": "alice", "password": "nope"})
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json()["detail"] == "Invalid username or password"

    def test_missing_token(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401

    def test_bad_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    def test_logout_ends_session(self, client, student, login_as):
        headers = login_as("alice")
        assert client.post("/api/auth/logout", headers=headers).status_code == 204
        assert client.get("/api/auth/me", headers=headers).status_code == 401


class TestRoleGuards:
    """Tests for role-restricted routes."""

    def test_student_cannot_author(self, client, student, login_as):
        response = client.get("/api/examinations", headers=login_as("alice"))
        assert response.status_code == 403

    def test_admin_cannot_use_super_admin_routes(self, client, admin, login_as):
        response = client.get("/api/admin/overview", headers=login_as("teacher"))
        assert response.status_code == 403

    def test_super_admin_passes_admin_routes(self, client, super_admin, login_as):
        response = client.get("/api/examinations", headers=login_as("root"))
        assert response.status_code == 200
        assert response.json()["count"] == 0

    def test_admin_cannot_take_exams(self, client, admin, login_as):
        response = client.get("/api/student/exams", headers=login_as("teacher"))
        assert response.status_code == 403


class TestUsers:
    """Tests for /api/users."""

    def test_admin_creates_student(self, client, admin, login_as):
        response = client.post(
            "/api/users",
            headers=login_as("teacher"),
            json={
                "username": "bob",
                "email": "bob@example.com",
                "full_name": "Bob",
                "password": "password1",
            },
        )
        assert response.status_code == 201
        assert response.json()["role"] == "student"

    def test_admin_cannot_create_admin(self, client, admin, login_as):
        response = client.post(
            "/api/users",
            headers=login_as("teacher"),
            json={
                "username": "eve",
                "email": "eve@example.com",
                "full_name": "Eve",
                "role": "admin",
                "password": "password1",
            },
        )
        assert response.status_code == 403

    def test_duplicate_username_conflicts(self, client, super_admin, student, login_as):
        response = client.post(
            "/api/users",
            headers=login_as("root"),
            json={
                "username": "alice",
                "email": "other@example.com",
                "full_name": "Alice Two",
                "password": "password1",
            },
        )
        assert response.status_code == 409

    def test_admin_lists_only_students(self, client, super_admin, admin, student, login_as):
        response = client.get("/api/users", headers=login_as("teacher"))
        assert [u["username"] for u in response.json()["users"]] == ["alice"]

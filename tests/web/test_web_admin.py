"""Tests for super-admin, inquiry and notification endpoints."""


class TestInquiries:
    """Tests for the public contact form and its administration."""

    def test_public_inquiry_notifies_super_admin(self, client, super_admin, login_as):
        response = client.post(
            "/api/inquiries",
            json={"email": "visitor@example.com", "subject": "Demo", "message": "Can I try it?"},
        )
        assert response.status_code == 201
        assert response.json()["status"] == "new"

        root = login_as("root")
        notifications = client.get("/api/notifications", headers=root).json()
        assert notifications["notifications"][0]["title"] == "New Inquiry: Demo"

        inquiries = client.get("/api/admin/inquiries?status_filter=new", headers=root).json()
        assert inquiries["count"] == 1

    def test_respond_and_delete(self, client, super_admin, login_as):
        inquiry_id = client.post(
            "/api/inquiries",
            json={"email": "visitor@example.com", "subject": "Demo", "message": "Hi"},
        ).json()["id"]
        root = login_as("root")

        response = client.put(
            f"/api/admin/inquiries/{inquiry_id}",
            headers=root,
            json={"status": "responded", "response_message": "Sure"},
        )
        assert response.status_code == 200
        assert response.json()["response_message"] == "Sure"

        assert client.delete(f"/api/admin/inquiries/{inquiry_id}", headers=root).status_code == 204
        assert client.delete(f"/api/admin/inquiries/{inquiry_id}", headers=root).status_code == 404

    def test_blank_subject_rejected(self, client):
        response = client.post(
            "/api/inquiries",
            json={"email": "visitor@example.com", "subject": "", "message": "Hi"},
        )
        assert response.status_code == 422


class TestNotifications:
    """Tests for sending and reading notifications."""

    def test_send_and_read(self, client, super_admin, student, login_as):
        root = login_as("root")
        created = client.post(
            "/api/admin/notifications",
            headers=root,
            json={"title": "Maintenance", "message": "Sunday", "target_role": "student"},
        )
        assert created.status_code == 201
        notification_id = created.json()["id"]

        alice = login_as("alice")
        mine = client.get("/api/notifications", headers=alice).json()
        assert [n["title"] for n in mine["notifications"]] == ["Maintenance"]

        assert client.post(f"/api/notifications/{notification_id}/read", headers=alice).status_code == 204
        mine = client.get("/api/notifications", headers=alice).json()
        assert mine["notifications"][0]["is_read"] is True

    def test_cannot_read_others_notifications(self, client, super_admin, student, login_as):
        created = client.post(
            "/api/admin/notifications",
            headers=login_as("root"),
            json={"title": "Staff", "message": "Meeting", "target_role": "admin"},
        ).json()
        response = client.post(f"/api/notifications/{created['id']}/read", headers=login_as("alice"))
        assert response.status_code == 404

    def test_notification_needs_audience(self, client, super_admin, login_as):
        response = client.post(
            "/api/admin/notifications",
            headers=login_as("root"),
            json={"title": "Nobody", "message": "Hears this"},
        )
        assert response.status_code == 422


class TestAdministration:
    """Tests for overview, settings, activity logs and sessions."""

    def test_overview(self, client, super_admin, student, login_as):
        data = client.get("/api/admin/overview", headers=login_as("root")).json()
        assert data["total_users"] == 2
        assert data["users_by_role"]["student"] == 1
        assert data["active_sessions"] == 1

    def test_settings(self, client, super_admin, login_as):
        root = login_as("root")
        listed = client.get("/api/admin/settings", headers=root).json()
        assert listed["count"] == 10

        response = client.put(
            "/api/admin/settings/maintenance_mode", headers=root, json={"value": True}
        )
        assert response.status_code == 200
        assert response.json()["value"] is True

        missing = client.put("/api/admin/settings/nope", headers=root, json={"value": 1})
        assert missing.status_code == 404

    def test_activity_logs(self, client, super_admin, login_as):
        root = login_as("root")
        logs = client.get("/api/admin/activity-logs?action_type=login", headers=root).json()
        assert logs["count"] == 1
        assert logs["logs"][0]["admin_id"] == super_admin.id

    def test_sessions(self, client, super_admin, student, login_as):
        root = login_as("root")
        login_as("alice")

        sessions = client.get("/api/admin/sessions", headers=root).json()
        assert sessions["count"] == 2
        assert "session_token" not in sessions["sessions"][0]

        alice_session = next(s for s in sessions["sessions"] if s["user_id"] == student.id)
        response = client.delete(f"/api/admin/sessions/{alice_session['id']}", headers=root)
        assert response.status_code == 204

        response = client.delete("/api/admin/sessions", headers=root)
        assert response.json()["terminated_count"] == 1
        # The caller's own session was ended too
        assert client.get("/api/auth/me", headers=root).status_code == 401

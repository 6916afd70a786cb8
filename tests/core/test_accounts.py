"""Tests for account management permissions."""

import pytest

from lms.core.accounts import create_account, delete_account, update_account
from lms.core.auth import verify_password
from lms.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from lms.db.admin_repository import list_activity_logs
from lms.db.users_repository import get_user_by_id


class TestCreateAccount:
    """Tests for account creation."""

    def test_admin_creates_student(self, admin):
        user = create_account(admin, "bob", "bob@example.com", "Bob", "student", "password1")
        assert user.role == "student"
        assert verify_password("password1", user.password_hash)
        entry = list_activity_logs(action_type="create")[0]
        assert entry.admin_id == admin.id
        assert entry.target_id == user.id

    def test_admin_cannot_create_admin(self, admin):
        with pytest.raises(PermissionDeniedError):
            create_account(admin, "eve", "eve@example.com", "Eve", "admin", "password1")

    def test_super_admin_creates_admin(self, super_admin):
        user = create_account(super_admin, "eve", "eve@example.com", "Eve", "admin", "password1")
        assert user.is_admin

    def test_short_password(self, super_admin):
        with pytest.raises(ValidationError, match="at least 6"):
            create_account(super_admin, "bob", "bob@example.com", "Bob", "student", "123")

    def test_invalid_role(self, super_admin):
        with pytest.raises(ValidationError):
            create_account(super_admin, "bob", "bob@example.com", "Bob", "teacher", "password1")

    def test_duplicate_username(self, student, super_admin):
        with pytest.raises(ConflictError):
            create_account(super_admin, "alice", "new@example.com", "Alice 2", "student", "password1")


class TestUpdateAndDelete:
    """Tests for account changes."""

    def test_update_password(self, admin, student):
        updated = update_account(admin, student.id, password="newpass1")
        assert verify_password("newpass1", updated.password_hash)
        assert updated.email == student.email

    def test_admin_cannot_update_admin(self, admin, super_admin):
        with pytest.raises(PermissionDeniedError):
            update_account(admin, super_admin.id, full_name="Nope")

    def test_update_unknown(self, super_admin):
        with pytest.raises(NotFoundError):
            update_account(super_admin, "missing", full_name="X")

    def test_delete_student(self, admin, student):
        delete_account(admin, student.id)
        assert get_user_by_id(student.id) is None

    def test_cannot_delete_self(self, super_admin):
        with pytest.raises(ValidationError):
            delete_account(super_admin, super_admin.id)

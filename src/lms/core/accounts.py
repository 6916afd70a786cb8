"""User account management.

Super admins manage every account; admins manage student accounts only.
Every change is recorded in the admin activity log.
"""

from __future__ import annotations

import structlog

from lms.core.auth import hash_password
from lms.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from lms.db.admin_repository import log_admin_activity
from lms.db.users_repository import (
    ROLES,
    UserRecord,
    delete_user,
    get_user_by_id,
    insert_user,
    update_user,
)

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


def _check_can_manage(actor: UserRecord | None, role: str) -> None:
    # actor None means a trusted local caller (the CLI)
    if actor is None or actor.role == "super_admin":
        return
    if actor.role == "admin" and role == "student":
        return
    raise PermissionDeniedError(f"Role '{actor.role if actor else None}' cannot manage {role} accounts")


def _validate_account(username: str, email: str, full_name: str, role: str) -> None:
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")
    if not username.strip():
        raise ValidationError("Username is required")
    if "@" not in email:
        raise ValidationError(f"Invalid email: {email}")
    if not full_name.strip():
        raise ValidationError("Full name is required")


def _validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def create_account(
    actor: UserRecord | None,
    username: str,
    email: str,
    full_name: str,
    role: str,
    password: str,
    ip_address: str | None = None,
) -> UserRecord:
    """Create a user account.

    Raises:
        ValidationError: If a field is invalid
        PermissionDeniedError: If actor may not create accounts of this role
        ConflictError: If username or email is taken
    """
    _validate_account(username, email, full_name, role)
    _validate_password(password)
    _check_can_manage(actor, role)

    user = insert_user(
        username=username.strip(),
        email=email.strip(),
        full_name=full_name.strip(),
        role=role,
        password_hash=hash_password(password),
    )
    log_admin_activity(
        actor.id if actor else None,
        "create",
        role,
        user.id,
        {"username": user.username},
        ip_address,
    )
    logger.info("accounts.created", user_id=user.id, role=role)
    return user


def update_account(
    actor: UserRecord | None,
    user_id: str,
    email: str | None = None,
    full_name: str | None = None,
    password: str | None = None,
    ip_address: str | None = None,
) -> UserRecord:
    """Update an account's email, name or password (None leaves a field as is)."""
    user = get_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    _check_can_manage(actor, user.role)

    if email is not None and "@" not in email:
        raise ValidationError(f"Invalid email: {email}")
    if full_name is not None and not full_name.strip():
        raise ValidationError("Full name is required")
    if password:
        _validate_password(password)

    updated = update_user(
        user_id,
        email=email,
        full_name=full_name,
        password_hash=hash_password(password) if password else None,
    )
    changed = [name for name, value in (("email", email), ("full_name", full_name), ("password", password)) if value]
    log_admin_activity(
        actor.id if actor else None,
        "update",
        user.role,
        user_id,
        {"fields": changed},
        ip_address,
    )
    return updated


def delete_account(actor: UserRecord | None, user_id: str, ip_address: str | None = None) -> None:
    """Delete an account and everything that cascades from it.

    Raises:
        NotFoundError: If the user does not exist
        ValidationError: If actor tries to delete their own account
    """
    user = get_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    _check_can_manage(actor, user.role)
    if actor is not None and actor.id == user_id:
        raise ValidationError("You cannot delete your own account")

    delete_user(user_id)
    log_admin_activity(
        actor.id if actor else None,
        "delete",
        user.role,
        user_id,
        {"username": user.username},
        ip_address,
    )
    logger.info("accounts.deleted", user_id=user_id)

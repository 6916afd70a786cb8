"""Authentication and login sessions.

Responsibilities:
- Hash and verify passwords with bcrypt
- Log users in, issuing a bearer token backed by a user_sessions row
- Validate tokens on each request, enforcing the inactivity timeout and
  the absolute session lifetime
- Role checks shared by the web layer and the CLI
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import bcrypt
import structlog

from lms.config.app_config import load_app_config
from lms.core.errors import AuthenticationError, PermissionDeniedError
from lms.db.admin_repository import log_admin_activity
from lms.db.database import utcnow
from lms.db.users_repository import (
    SessionRecord,
    UserRecord,
    deactivate_session,
    get_session_by_token,
    get_user_by_id,
    get_user_by_username,
    insert_session,
    touch_last_login,
    touch_session,
)

logger = structlog.get_logger(__name__)


@dataclass
class LoginResult:
    """Authenticated user with the session created for them."""

    user: UserRecord
    session: SessionRecord

    @property
    def token(self) -> str:
        return self.session.session_token


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password with bcrypt."""
    if rounds is None:
        rounds = load_app_config().auth.bcrypt_rounds
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.warning("auth.invalid_hash_format")
        return False


def login(
    username: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> LoginResult:
    """Authenticate a user and open a session.

    Raises:
        AuthenticationError: If the username or password is wrong
    """
    user = get_user_by_username(username)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("auth.login_failed", username=username)
        raise AuthenticationError("Invalid username or password")

    config = load_app_config().auth
    expires_at = utcnow() + timedelta(hours=config.session_max_hours)
    session = insert_session(
        user_id=user.id,
        session_token=secrets.token_urlsafe(32),
        expires_at=expires_at.isoformat(),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    touch_last_login(user.id)
    if user.is_admin:
        log_admin_activity(user.id, "login", "session", session.id, {}, ip_address, user_agent)

    logger.info("auth.login", user_id=user.id, role=user.role, session_id=session.id)
    return LoginResult(user=get_user_by_id(user.id) or user, session=session)


def authenticate_token(token: str, now: datetime | None = None) -> tuple[UserRecord, SessionRecord]:
    """Resolve a bearer token to its user, refreshing the session's activity.

    A session idle for longer than the configured timeout, or past its
    absolute expiry, is deactivated and rejected.

    Raises:
        AuthenticationError: If the token is unknown, inactive or expired
    """
    now = now or utcnow()
    session = get_session_by_token(token)
    if session is None or not session.is_active:
        raise AuthenticationError("Invalid or expired session")

    timeout = timedelta(minutes=load_app_config().auth.session_timeout_minutes)
    last_activity = datetime.fromisoformat(session.last_activity)
    expires_at = datetime.fromisoformat(session.expires_at)

    if now - last_activity > timeout or now >= expires_at:
        deactivate_session(session.id)
        logger.info("auth.session_expired", session_id=session.id, user_id=session.user_id)
        raise AuthenticationError("Session expired")

    user = get_user_by_id(session.user_id)
    if user is None:
        deactivate_session(session.id)
        raise AuthenticationError("Invalid or expired session")

    touch_session(session.id, now.isoformat())
    return user, session


def logout(token: str) -> bool:
    """End the session behind a token. Returns False if it was not active."""
    session = get_session_by_token(token)
    if session is None:
        return False
    ended = deactivate_session(session.id)
    if ended:
        user = get_user_by_id(session.user_id)
        if user is not None and user.is_admin:
            log_admin_activity(user.id, "logout", "session", session.id)
        logger.info("auth.logout", session_id=session.id, user_id=session.user_id)
    return ended


def require_role(user: UserRecord, *roles: str) -> None:
    """Raise unless the user has one of the given roles.

    super_admin passes every check that admits admin.
    """
    allowed = set(roles)
    if "admin" in allowed:
        allowed.add("super_admin")
    if user.role not in allowed:
        raise PermissionDeniedError(f"Role '{user.role}' may not perform this action")

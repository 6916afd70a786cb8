"""Repository functions for users and login sessions.

Provides CRUD operations for the users and user_sessions tables.
Password hashing happens in lms.core.auth; this module only stores hashes.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Literal

import structlog

from lms.core.errors import ConflictError, NotFoundError
from lms.db.database import get_db, new_id, now_iso

logger = structlog.get_logger(__name__)

Role = Literal["super_admin", "admin", "student"]
ROLES: tuple[str, ...] = ("super_admin", "admin", "student")


@dataclass
class UserRecord:
    """User record from database."""

    id: str
    username: str
    email: str
    full_name: str
    role: Role
    password_hash: str
    last_login: str | None
    created_at: str
    updated_at: str

    @property
    def is_admin(self) -> bool:
        """Admins and super admins can author and grade exams."""
        return self.role in ("admin", "super_admin")


@dataclass
class SessionRecord:
    """Login session record from database."""

    id: str
    user_id: str
    session_token: str
    ip_address: str | None
    user_agent: str | None
    is_active: bool
    last_activity: str
    expires_at: str
    created_at: str


def insert_user(
    username: str,
    email: str,
    full_name: str,
    role: str,
    password_hash: str,
) -> UserRecord:
    """Insert a new user.

    Raises:
        ConflictError: If username or email is already taken
    """
    user_id = new_id()
    ts = now_iso()
    try:
        with get_db() as conn:
            conn.execute(
                """
                INSERT INTO users (
                    id, username, email, full_name, role,
                    password_hash, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (user_id, username, email, full_name, role, password_hash, ts, ts),
            )
    except sqlite3.IntegrityError as e:
        raise ConflictError(f"Username or email already in use: {username}") from e

    logger.debug("users.inserted", user_id=user_id, role=role)
    return get_user_by_id(user_id)  # type: ignore[return-value]


def get_user_by_id(user_id: str) -> UserRecord | None:
    """Get user by ID."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()

    return _row_to_user(row) if row else None


def get_user_by_username(username: str) -> UserRecord | None:
    """Get user by username."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM users WHERE username = ?", (username,)
        ).fetchone()

    return _row_to_user(row) if row else None


def list_users(role: str | None = None) -> list[UserRecord]:
    """List users, optionally filtered by role, ordered by full name."""
    with get_db() as conn:
        if role:
            rows = conn.execute(
                "SELECT * FROM users WHERE role = ? ORDER BY full_name", (role,)
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM users ORDER BY full_name").fetchall()

    return [_row_to_user(row) for row in rows]


def update_user(
    user_id: str,
    *,
    email: str | None = None,
    full_name: str | None = None,
    password_hash: str | None = None,
) -> UserRecord:
    """Update mutable user fields. Fields left as None are unchanged.

    Raises:
        NotFoundError: If the user does not exist
        ConflictError: If the new email is already taken
    """
    try:
        with get_db() as conn:
            cursor = conn.execute(
                """
                UPDATE users SET
                    email = COALESCE(?, email),
                    full_name = COALESCE(?, full_name),
                    password_hash = COALESCE(?, password_hash),
                    updated_at = ?
                WHERE id = ?
                """,
                (email, full_name, password_hash, now_iso(), user_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("User", user_id)
    except sqlite3.IntegrityError as e:
        raise ConflictError(f"Email already in use: {email}") from e

    logger.debug("users.updated", user_id=user_id)
    return get_user_by_id(user_id)  # type: ignore[return-value]


def touch_last_login(user_id: str) -> None:
    """Record a successful login."""
    ts = now_iso()
    with get_db() as conn:
        conn.execute(
            "UPDATE users SET last_login = ?, updated_at = ? WHERE id = ?",
            (ts, ts, user_id),
        )


def delete_user(user_id: str) -> bool:
    """Delete user by ID.

    Returns:
        True if deleted, False if not found
    """
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))

    deleted = cursor.rowcount > 0
    if deleted:
        logger.debug("users.deleted", user_id=user_id)

    return deleted


def count_users_by_role() -> dict[str, int]:
    """Count users per role (roles without users are reported as 0)."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT role, COUNT(*) AS n FROM users GROUP BY role"
        ).fetchall()

    counts = {role: 0 for role in ROLES}
    for row in rows:
        counts[row["role"]] = row["n"]
    return counts


# =============================================================================
# SESSIONS
# =============================================================================


def insert_session(
    user_id: str,
    session_token: str,
    expires_at: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SessionRecord:
    """Create an active login session."""
    session_id = new_id()
    ts = now_iso()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO user_sessions (
                id, user_id, session_token, ip_address, user_agent,
                is_active, last_activity, expires_at, created_at
            ) VALUES (?, ?, ?, ?, ?, 1, ?, ?, ?)
            """,
            (session_id, user_id, session_token, ip_address, user_agent, ts, expires_at, ts),
        )

    logger.debug("sessions.inserted", session_id=session_id, user_id=user_id)
    return get_session_by_token(session_token)  # type: ignore[return-value]


def get_session_by_token(session_token: str) -> SessionRecord | None:
    """Get a session by its bearer token."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM user_sessions WHERE session_token = ?", (session_token,)
        ).fetchone()

    return _row_to_session(row) if row else None


def touch_session(session_id: str, ts: str) -> None:
    """Refresh a session's last activity timestamp."""
    with get_db() as conn:
        conn.execute(
            "UPDATE user_sessions SET last_activity = ? WHERE id = ?",
            (ts, session_id),
        )


def deactivate_session(session_id: str) -> bool:
    """Terminate one session. Returns False if it was not active."""
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE user_sessions SET is_active = 0 WHERE id = ? AND is_active = 1",
            (session_id,),
        )
    return cursor.rowcount > 0


def deactivate_all_sessions() -> int:
    """Terminate every active session. Returns the number terminated."""
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE user_sessions SET is_active = 0 WHERE is_active = 1"
        )
    return cursor.rowcount


def list_sessions(active_only: bool = False) -> list[SessionRecord]:
    """List sessions, most recent activity first."""
    query = "SELECT * FROM user_sessions"
    if active_only:
        query += " WHERE is_active = 1"
    query += " ORDER BY last_activity DESC"

    with get_db() as conn:
        rows = conn.execute(query).fetchall()

    return [_row_to_session(row) for row in rows]


def _row_to_user(row) -> UserRecord:
    """Convert database row to UserRecord."""
    return UserRecord(
        id=row["id"],
        username=row["username"],
        email=row["email"],
        full_name=row["full_name"],
        role=row["role"],
        password_hash=row["password_hash"],
        last_login=row["last_login"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_session(row) -> SessionRecord:
    """Convert database row to SessionRecord."""
    return SessionRecord(
        id=row["id"],
        user_id=row["user_id"],
        session_token=row["session_token"],
        ip_address=row["ip_address"],
        user_agent=row["user_agent"],
        is_active=bool(row["is_active"]),
        last_activity=row["last_activity"],
        expires_at=row["expires_at"],
        created_at=row["created_at"],
    )

"""Repository functions for super-admin tables.

Covers admin_activity_logs, system_settings, inquiries and
system_notifications.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from lms.core.errors import NotFoundError, ValidationError
from lms.db.database import dump_json, get_db, load_json, new_id, now_iso

logger = structlog.get_logger(__name__)

INQUIRY_STATUSES: tuple[str, ...] = ("new", "read", "responded", "archived")


@dataclass
class ActivityLogRecord:
    """Admin activity log entry."""

    id: str
    admin_id: str | None
    action_type: str
    target_type: str
    target_id: str | None
    details: dict[str, Any] = field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: str = ""


@dataclass
class SettingRecord:
    """System setting. value is the decoded JSON value."""

    setting_key: str
    value: Any
    description: str | None
    category: str
    is_public: bool
    updated_by: str | None
    updated_at: str


@dataclass
class InquiryRecord:
    """Contact inquiry submitted from the public site."""

    id: str
    email: str
    subject: str
    message: str
    status: str
    is_read: bool
    responded_at: str | None
    responded_by: str | None
    response_message: str | None
    created_at: str
    updated_at: str


@dataclass
class NotificationRecord:
    """System notification."""

    id: str
    title: str
    message: str
    notification_type: str
    target_role: str | None
    target_user_id: str | None
    is_read: bool
    is_system_wide: bool
    created_by: str | None
    created_at: str
    expires_at: str | None


# =============================================================================
# ACTIVITY LOG
# =============================================================================


def log_admin_activity(
    admin_id: str | None,
    action_type: str,
    target_type: str,
    target_id: str | None = None,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> str:
    """Record an admin action. Returns the log entry ID."""
    log_id = new_id()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO admin_activity_logs (
                id, admin_id, action_type, target_type, target_id,
                details, ip_address, user_agent, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                log_id,
                admin_id,
                action_type,
                target_type,
                target_id,
                dump_json(details or {}),
                ip_address,
                user_agent,
                now_iso(),
            ),
        )

    logger.info(
        "admin_activity.logged",
        admin_id=admin_id,
        action_type=action_type,
        target_type=target_type,
        target_id=target_id,
    )
    return log_id


def list_activity_logs(
    action_type: str | None = None,
    since: str | None = None,
    limit: int = 100,
) -> list[ActivityLogRecord]:
    """List activity log entries, newest first."""
    clauses: list[str] = []
    params: list[Any] = []
    if action_type:
        clauses.append("action_type = ?")
        params.append(action_type)
    if since:
        clauses.append("created_at >= ?")
        params.append(since)

    query = "SELECT * FROM admin_activity_logs"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    query += " ORDER BY created_at DESC LIMIT ?"
    params.append(limit)

    with get_db() as conn:
        rows = conn.execute(query, params).fetchall()

    return [_row_to_activity(row) for row in rows]


def count_activity_since(since: str) -> int:
    """Number of activity log entries created at or after since."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT COUNT(*) AS n FROM admin_activity_logs WHERE created_at >= ?",
            (since,),
        ).fetchone()
    return row["n"]


# =============================================================================
# SETTINGS
# =============================================================================


def get_system_setting(setting_key: str) -> SettingRecord | None:
    """Get a setting by key."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM system_settings WHERE setting_key = ?", (setting_key,)
        ).fetchone()

    return _row_to_setting(row) if row else None


def list_system_settings(public_only: bool = False) -> list[SettingRecord]:
    """List settings grouped by category."""
    query = "SELECT * FROM system_settings"
    if public_only:
        query += " WHERE is_public = 1"
    query += " ORDER BY category, setting_key"

    with get_db() as conn:
        rows = conn.execute(query).fetchall()

    return [_row_to_setting(row) for row in rows]


def update_system_setting(setting_key: str, value: Any, updated_by: str | None) -> bool:
    """Set a setting's value.

    Returns:
        True if the setting exists and was updated, False otherwise
    """
    with get_db() as conn:
        cursor = conn.execute(
            """
            UPDATE system_settings
            SET setting_value = ?, updated_by = ?, updated_at = ?
            WHERE setting_key = ?
            """,
            (dump_json(value), updated_by, now_iso(), setting_key),
        )

    updated = cursor.rowcount > 0
    if updated:
        logger.info("settings.updated", setting_key=setting_key)
    return updated


# =============================================================================
# INQUIRIES
# =============================================================================


def create_inquiry(email: str, subject: str, message: str) -> InquiryRecord:
    """Store a public inquiry and notify super admins.

    The notification is only created when at least one super admin exists.

    Raises:
        ValidationError: If any field is empty
    """
    for name, value in (("Email", email), ("Subject", subject), ("Message", message)):
        if not value or not value.strip():
            raise ValidationError(f"{name} is required")

    inquiry_id = new_id()
    ts = now_iso()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO inquiries (
                id, email, subject, message, status, is_read,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, 'new', 0, ?, ?)
            """,
            (inquiry_id, email, subject, message, ts, ts),
        )
        super_admin = conn.execute(
            "SELECT id FROM users WHERE role = 'super_admin' LIMIT 1"
        ).fetchone()
        if super_admin is not None:
            conn.execute(
                """
                INSERT INTO system_notifications (
                    id, title, message, notification_type, target_role,
                    is_read, is_system_wide, created_at
                ) VALUES (?, ?, ?, 'info', 'super_admin', 0, 0, ?)
                """,
                (new_id(), f"New Inquiry: {subject}", f"Email: {email}\n\n{message}", ts),
            )

    logger.info("inquiries.created", inquiry_id=inquiry_id)
    return get_inquiry(inquiry_id)  # type: ignore[return-value]


def get_inquiry(inquiry_id: str) -> InquiryRecord | None:
    """Get inquiry by ID."""
    with get_db() as conn:
        row = conn.execute("SELECT * FROM inquiries WHERE id = ?", (inquiry_id,)).fetchone()

    return _row_to_inquiry(row) if row else None


def list_inquiries(status: str | None = None) -> list[InquiryRecord]:
    """List inquiries, newest first."""
    with get_db() as conn:
        if status:
            rows = conn.execute(
                "SELECT * FROM inquiries WHERE status = ? ORDER BY created_at DESC",
                (status,),
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM inquiries ORDER BY created_at DESC").fetchall()

    return [_row_to_inquiry(row) for row in rows]


def update_inquiry_status(
    inquiry_id: str,
    status: str,
    is_read: bool = True,
    response_message: str | None = None,
    responded_by: str | None = None,
) -> InquiryRecord:
    """Change an inquiry's status.

    Moving to 'responded' with a response message stamps responded_at and
    responded_by; an existing response message is kept otherwise.

    Raises:
        ValidationError: If status is not a known inquiry status
        NotFoundError: If the inquiry does not exist
    """
    if status not in INQUIRY_STATUSES:
        raise ValidationError(f"Invalid status: {status}")

    ts = now_iso()
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE inquiries SET status = ?, is_read = ?, updated_at = ? WHERE id = ?",
            (status, int(is_read), ts, inquiry_id),
        )
        if cursor.rowcount == 0:
            raise NotFoundError("Inquiry", inquiry_id)
        if status == "responded" and response_message is not None:
            conn.execute(
                """
                UPDATE inquiries
                SET response_message = ?, responded_at = ?, responded_by = ?
                WHERE id = ?
                """,
                (response_message, ts, responded_by, inquiry_id),
            )

    logger.info("inquiries.status_changed", inquiry_id=inquiry_id, status=status)
    return get_inquiry(inquiry_id)  # type: ignore[return-value]


def delete_inquiry(inquiry_id: str) -> bool:
    """Delete an inquiry."""
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM inquiries WHERE id = ?", (inquiry_id,))
    return cursor.rowcount > 0


# =============================================================================
# NOTIFICATIONS
# =============================================================================


def create_notification(
    title: str,
    message: str,
    notification_type: str = "info",
    target_role: str | None = None,
    target_user_id: str | None = None,
    is_system_wide: bool = False,
    created_by: str | None = None,
    expires_at: str | None = None,
) -> NotificationRecord:
    """Create a notification."""
    notification_id = new_id()
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO system_notifications (
                id, title, message, notification_type, target_role,
                target_user_id, is_read, is_system_wide, created_by,
                created_at, expires_at
            ) VALUES (?, ?, ?, ?, ?, ?, 0, ?, ?, ?, ?)
            """,
            (
                notification_id,
                title,
                message,
                notification_type,
                target_role,
                target_user_id,
                int(is_system_wide),
                created_by,
                now_iso(),
                expires_at,
            ),
        )

    logger.info("notifications.created", notification_id=notification_id)
    return get_notification(notification_id)  # type: ignore[return-value]


def get_notification(notification_id: str) -> NotificationRecord | None:
    """Get notification by ID."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM system_notifications WHERE id = ?", (notification_id,)
        ).fetchone()

    return _row_to_notification(row) if row else None


def list_notifications() -> list[NotificationRecord]:
    """List every notification, newest first."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM system_notifications ORDER BY created_at DESC"
        ).fetchall()

    return [_row_to_notification(row) for row in rows]


def list_visible_notifications(user_id: str, role: str) -> list[NotificationRecord]:
    """Notifications a user should see: system-wide, for their role or for them.

    Expired notifications are excluded.
    """
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM system_notifications
            WHERE (is_system_wide = 1 OR target_role = ? OR target_user_id = ?)
              AND (expires_at IS NULL OR expires_at > ?)
            ORDER BY created_at DESC
            """,
            (role, user_id, now_iso()),
        ).fetchall()

    return [_row_to_notification(row) for row in rows]


def mark_notification_read(notification_id: str) -> bool:
    """Mark a notification as read."""
    with get_db() as conn:
        cursor = conn.execute(
            "UPDATE system_notifications SET is_read = 1 WHERE id = ?", (notification_id,)
        )
    return cursor.rowcount > 0


def delete_notification(notification_id: str) -> bool:
    """Delete a notification."""
    with get_db() as conn:
        cursor = conn.execute(
            "DELETE FROM system_notifications WHERE id = ?", (notification_id,)
        )
    return cursor.rowcount > 0


def _row_to_activity(row) -> ActivityLogRecord:
    """Convert database row to ActivityLogRecord."""
    return ActivityLogRecord(
        id=row["id"],
        admin_id=row["admin_id"],
        action_type=row["action_type"],
        target_type=row["target_type"],
        target_id=row["target_id"],
        details=load_json(row["details"], {}),
        ip_address=row["ip_address"],
        user_agent=row["user_agent"],
        created_at=row["created_at"],
    )


def _row_to_setting(row) -> SettingRecord:
    """Convert database row to SettingRecord."""
    return SettingRecord(
        setting_key=row["setting_key"],
        value=load_json(row["setting_value"]),
        description=row["description"],
        category=row["category"],
        is_public=bool(row["is_public"]),
        updated_by=row["updated_by"],
        updated_at=row["updated_at"],
    )


def _row_to_inquiry(row) -> InquiryRecord:
    """Convert database row to InquiryRecord."""
    return InquiryRecord(
        id=row["id"],
        email=row["email"],
        subject=row["subject"],
        message=row["message"],
        status=row["status"],
        is_read=bool(row["is_read"]),
        responded_at=row["responded_at"],
        responded_by=row["responded_by"],
        response_message=row["response_message"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_notification(row) -> NotificationRecord:
    """Convert database row to NotificationRecord."""
    return NotificationRecord(
        id=row["id"],
        title=row["title"],
        message=row["message"],
        notification_type=row["notification_type"],
        target_role=row["target_role"],
        target_user_id=row["target_user_id"],
        is_read=bool(row["is_read"]),
        is_system_wide=bool(row["is_system_wide"]),
        created_by=row["created_by"],
        created_at=row["created_at"],
        expires_at=row["expires_at"],
    )

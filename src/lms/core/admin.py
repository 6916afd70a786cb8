"""Super-admin administration.

Settings, inquiries, notifications and login sessions, plus the system
overview. Mutations are recorded in the admin activity log.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import structlog

from lms.core.errors import NotFoundError, ValidationError
from lms.db import admin_repository
from lms.db.admin_repository import (
    InquiryRecord,
    NotificationRecord,
    SettingRecord,
    log_admin_activity,
)
from lms.db.database import utcnow
from lms.db.exams_repository import list_examinations
from lms.db.submissions_repository import count_submissions_by_status
from lms.db.users_repository import (
    UserRecord,
    count_users_by_role,
    deactivate_all_sessions,
    deactivate_session,
    list_sessions,
)

logger = structlog.get_logger(__name__)

NOTIFICATION_TYPES: tuple[str, ...] = ("info", "warning", "error", "success")


@dataclass
class SystemOverview:
    """Headline counts for the super-admin dashboard."""

    users_by_role: dict[str, int]
    total_exams: int
    active_exams: int
    submissions_by_status: dict[str, int]
    activity_last_7_days: int
    active_sessions: int

    @property
    def total_users(self) -> int:
        return sum(self.users_by_role.values())

    @property
    def total_submissions(self) -> int:
        return sum(self.submissions_by_status.values())


def system_overview(now: datetime | None = None) -> SystemOverview:
    """Counts of users, exams, submissions, recent activity and sessions."""
    now = now or utcnow()
    exams = list_examinations()
    return SystemOverview(
        users_by_role=count_users_by_role(),
        total_exams=len(exams),
        active_exams=sum(1 for e in exams if e.is_active),
        submissions_by_status=count_submissions_by_status(),
        activity_last_7_days=admin_repository.count_activity_since(
            (now - timedelta(days=7)).isoformat()
        ),
        active_sessions=len(list_sessions(active_only=True)),
    )


# =============================================================================
# SETTINGS
# =============================================================================


def change_setting(actor: UserRecord, setting_key: str, value: Any) -> SettingRecord:
    """Update a system setting.

    Raises:
        NotFoundError: If no setting has this key
    """
    previous = admin_repository.get_system_setting(setting_key)
    if previous is None or not admin_repository.update_system_setting(setting_key, value, actor.id):
        raise NotFoundError("Setting", setting_key)

    log_admin_activity(
        actor.id, "update", "system_setting", None,
        {"setting_key": setting_key, "old_value": previous.value, "new_value": value},
    )
    return admin_repository.get_system_setting(setting_key)  # type: ignore[return-value]


# =============================================================================
# INQUIRIES
# =============================================================================


def respond_to_inquiry(
    actor: UserRecord,
    inquiry_id: str,
    status: str,
    response_message: str | None = None,
) -> InquiryRecord:
    """Move an inquiry to a new status, optionally recording a response."""
    inquiry = admin_repository.update_inquiry_status(
        inquiry_id,
        status,
        is_read=status != "new",
        response_message=response_message,
        responded_by=actor.id if status == "responded" else None,
    )
    log_admin_activity(actor.id, "update", "inquiry", inquiry_id, {"status": status})
    return inquiry


def remove_inquiry(actor: UserRecord, inquiry_id: str) -> None:
    if not admin_repository.delete_inquiry(inquiry_id):
        raise NotFoundError("Inquiry", inquiry_id)
    log_admin_activity(actor.id, "delete", "inquiry", inquiry_id)


# =============================================================================
# NOTIFICATIONS
# =============================================================================


def send_notification(
    actor: UserRecord,
    title: str,
    message: str,
    notification_type: str = "info",
    target_role: str | None = None,
    target_user_id: str | None = None,
    is_system_wide: bool = False,
    expires_at: datetime | None = None,
) -> NotificationRecord:
    """Create a notification for everyone, a role, or one user.

    Raises:
        ValidationError: If the notification has no audience or bad fields
    """
    if not title.strip() or not message.strip():
        raise ValidationError("Title and message are required")
    if notification_type not in NOTIFICATION_TYPES:
        raise ValidationError(f"Invalid notification type: {notification_type}")
    if not (is_system_wide or target_role or target_user_id):
        raise ValidationError("Notification needs a target role, a target user or system-wide delivery")

    notification = admin_repository.create_notification(
        title=title.strip(),
        message=message,
        notification_type=notification_type,
        target_role=target_role,
        target_user_id=target_user_id,
        is_system_wide=is_system_wide,
        created_by=actor.id,
        expires_at=expires_at.isoformat() if expires_at else None,
    )
    log_admin_activity(actor.id, "create", "notification", notification.id, {"title": title})
    return notification


def remove_notification(actor: UserRecord, notification_id: str) -> None:
    if not admin_repository.delete_notification(notification_id):
        raise NotFoundError("Notification", notification_id)
    log_admin_activity(actor.id, "delete", "notification", notification_id)


# =============================================================================
# SESSIONS
# =============================================================================


def terminate_session(actor: UserRecord, session_id: str) -> None:
    """End one login session.

    Raises:
        NotFoundError: If no active session has this ID
    """
    if not deactivate_session(session_id):
        raise NotFoundError("Session", session_id)
    log_admin_activity(actor.id, "delete", "user_session", session_id)
    logger.info("sessions.terminated", session_id=session_id)


def terminate_all_sessions(actor: UserRecord) -> int:
    """End every active session, including the caller's. Returns the count."""
    count = deactivate_all_sessions()
    log_admin_activity(actor.id, "delete", "user_session", None, {"terminated_count": count})
    logger.info("sessions.terminated_all", count=count)
    return count

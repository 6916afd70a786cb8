"""Super-admin endpoints: activity log, settings, inquiries, notifications, sessions."""

from fastapi import APIRouter, Depends, HTTPException, status

from lms.core import admin
from lms.db import admin_repository
from lms.db.users_repository import UserRecord, list_sessions
from lms.web.deps import require_super_admin
from lms.web.schemas import (
    ActivityLogListResponse,
    ActivityLogResponse,
    InquiryListResponse,
    InquiryResponse,
    InquiryStatusUpdate,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
    SettingListResponse,
    SettingResponse,
    SettingUpdate,
    SystemOverviewResponse,
    TerminateAllResponse,
    UserSessionListResponse,
    UserSessionResponse,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/overview", response_model=SystemOverviewResponse)
async def overview(actor: UserRecord = Depends(require_super_admin)) -> SystemOverviewResponse:
    """Headline counts across the system."""
    return SystemOverviewResponse.model_validate(admin.system_overview())


# =============================================================================
# ACTIVITY LOG
# =============================================================================


@router.get("/activity-logs", response_model=ActivityLogListResponse)
async def activity_logs(
    action_type: str | None = None,
    limit: int = 100,
    actor: UserRecord = Depends(require_super_admin),
) -> ActivityLogListResponse:
    """Admin actions, newest first, optionally of one action type."""
    logs = [
        ActivityLogResponse.model_validate(entry)
        for entry in admin_repository.list_activity_logs(action_type=action_type, limit=limit)
    ]
    return ActivityLogListResponse(logs=logs, count=len(logs))


# =============================================================================
# SETTINGS
# =============================================================================


@router.get("/settings", response_model=SettingListResponse)
async def list_settings(actor: UserRecord = Depends(require_super_admin)) -> SettingListResponse:
    """All system settings by category."""
    settings = [SettingResponse.model_validate(s) for s in admin_repository.list_system_settings()]
    return SettingListResponse(settings=settings, count=len(settings))


@router.get("/settings/{setting_key}", response_model=SettingResponse)
async def get_setting(
    setting_key: str,
    actor: UserRecord = Depends(require_super_admin),
) -> SettingResponse:
    """Get one setting."""
    setting = admin_repository.get_system_setting(setting_key)
    if setting is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Setting '{setting_key}' not found",
        )
    return SettingResponse.model_validate(setting)


@router.put("/settings/{setting_key}", response_model=SettingResponse)
async def update_setting(
    setting_key: str,
    body: SettingUpdate,
    actor: UserRecord = Depends(require_super_admin),
) -> SettingResponse:
    """Change a setting's value."""
    return SettingResponse.model_validate(admin.change_setting(actor, setting_key, body.value))


# =============================================================================
# INQUIRIES
# =============================================================================


@router.get("/inquiries", response_model=InquiryListResponse)
async def list_inquiries(
    status_filter: str | None = None,
    actor: UserRecord = Depends(require_super_admin),
) -> InquiryListResponse:
    """Inquiries, newest first."""
    items = [
        InquiryResponse.model_validate(i)
        for i in admin_repository.list_inquiries(status=status_filter)
    ]
    return InquiryListResponse(inquiries=items, count=len(items))


@router.put("/inquiries/{inquiry_id}", response_model=InquiryResponse)
async def update_inquiry(
    inquiry_id: str,
    body: InquiryStatusUpdate,
    actor: UserRecord = Depends(require_super_admin),
) -> InquiryResponse:
    """Change an inquiry's status, optionally recording a response."""
    inquiry = admin.respond_to_inquiry(actor, inquiry_id, body.status, body.response_message)
    return InquiryResponse.model_validate(inquiry)


@router.delete("/inquiries/{inquiry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inquiry(inquiry_id: str, actor: UserRecord = Depends(require_super_admin)) -> None:
    admin.remove_inquiry(actor, inquiry_id)


# =============================================================================
# NOTIFICATIONS
# =============================================================================


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    actor: UserRecord = Depends(require_super_admin),
) -> NotificationListResponse:
    """Every notification, newest first."""
    items = [NotificationResponse.model_validate(n) for n in admin_repository.list_notifications()]
    return NotificationListResponse(notifications=items, count=len(items))


@router.post("/notifications", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    body: NotificationCreate,
    actor: UserRecord = Depends(require_super_admin),
) -> NotificationResponse:
    """Send a notification to everyone, a role, or one user."""
    notification = admin.send_notification(
        actor,
        title=body.title,
        message=body.message,
        notification_type=body.notification_type,
        target_role=body.target_role,
        target_user_id=body.target_user_id,
        is_system_wide=body.is_system_wide,
        expires_at=body.expires_at,
    )
    return NotificationResponse.model_validate(notification)


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str,
    actor: UserRecord = Depends(require_super_admin),
) -> None:
    admin.remove_notification(actor, notification_id)


# =============================================================================
# SESSIONS
# =============================================================================


@router.get("/sessions", response_model=UserSessionListResponse)
async def sessions(
    active_only: bool = True,
    actor: UserRecord = Depends(require_super_admin),
) -> UserSessionListResponse:
    """Login sessions, most recent activity first."""
    items = [UserSessionResponse.model_validate(s) for s in list_sessions(active_only=active_only)]
    return UserSessionListResponse(sessions=items, count=len(items))


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def terminate_session(
    session_id: str,
    actor: UserRecord = Depends(require_super_admin),
) -> None:
    """End one session."""
    admin.terminate_session(actor, session_id)


@router.delete("/sessions", response_model=TerminateAllResponse)
async def terminate_all_sessions(
    actor: UserRecord = Depends(require_super_admin),
) -> TerminateAllResponse:
    """End every active session."""
    return TerminateAllResponse(terminated_count=admin.terminate_all_sessions(actor))

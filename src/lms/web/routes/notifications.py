"""The caller's own notifications."""

from fastapi import APIRouter, Depends, HTTPException, status

from lms.db.admin_repository import list_visible_notifications, mark_notification_read
from lms.db.users_repository import UserRecord
from lms.web.deps import get_current_user
from lms.web.schemas import NotificationListResponse, NotificationResponse

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def my_notifications(user: UserRecord = Depends(get_current_user)) -> NotificationListResponse:
    """System-wide, role and personal notifications that have not expired."""
    items = [
        NotificationResponse.model_validate(n)
        for n in list_visible_notifications(user.id, user.role)
    ]
    return NotificationListResponse(notifications=items, count=len(items))


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_read(notification_id: str, user: UserRecord = Depends(get_current_user)) -> None:
    """Mark a visible notification as read."""
    visible = {n.id for n in list_visible_notifications(user.id, user.role)}
    if notification_id not in visible or not mark_notification_read(notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Notification '{notification_id}' not found",
        )

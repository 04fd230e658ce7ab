from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from app.database import get_db
from app.services.auth import get_current_user
from app.models.user import User
from app.schemas.notification import (
    NotificationsListResponse,
    NotificationActionResponse,
)
from app.crud import notification as notification_crud

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/", response_model=NotificationsListResponse)
def get_notifications(
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notifications = notification_crud.get_user_notifications(
        db, current_user.id, skip=skip, limit=limit
    )
    unread_count = notification_crud.get_unread_notifications_count(
        db, current_user.id
    )
    return {
        "success": True,
        "notifications": notifications,
        "unread_count": unread_count,
    }


@router.put("/read-all", response_model=NotificationActionResponse)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    updated_count = notification_crud.mark_all_notifications_as_read(
        db, current_user.id
    )
    logger.info(f"User {current_user.id} marked {updated_count} notifications as read")
    return {
        "success": True,
        "message": f"{updated_count} notifications marked as read",
    }


@router.put("/{notification_id}/read", response_model=NotificationActionResponse)
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not notification_crud.mark_notification_as_read(
        db, notification_id, current_user.id
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found"
        )
    return {"success": True, "message": "Notification marked as read"}

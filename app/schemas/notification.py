from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List
from datetime import datetime


class NotificationBase(BaseModel):
    title: str = Field(max_length=255)
    message: str
    # booking_created, booking_accepted, booking_rejected, booking_cancelled
    type: str = Field(max_length=50)
    # Ride details of the booking event (booking_id, offer_id, seats, cities...)
    data: Optional[Dict[str, Any]] = None


class NotificationCreate(NotificationBase):
    user_id: int


class NotificationResponse(NotificationBase):
    id: int
    user_id: int
    is_read: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationsListResponse(BaseModel):
    """Inbox page, newest first"""

    success: bool
    notifications: List[NotificationResponse]
    unread_count: int


class NotificationActionResponse(BaseModel):
    success: bool
    message: str

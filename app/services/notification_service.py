import logging
from typing import Any, Dict, Optional

from app.crud import notification as notification_crud
from app.database import SessionLocal
from app.schemas.notification import NotificationCreate

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking_created"
BOOKING_ACCEPTED = "booking_accepted"
BOOKING_REJECTED = "booking_rejected"
BOOKING_CANCELLED = "booking_cancelled"

_TEMPLATES = {
    BOOKING_CREATED: (
        "New booking request",
        "A passenger requested {seats} seat(s) on your ride from {from_city} to {to_city}",
    ),
    BOOKING_ACCEPTED: (
        "Booking accepted",
        "The driver accepted your booking for {seats} seat(s) from {from_city} to {to_city}",
    ),
    BOOKING_REJECTED: (
        "Booking rejected",
        "The driver rejected your booking from {from_city} to {to_city}",
    ),
    BOOKING_CANCELLED: (
        "Booking cancelled",
        "A passenger cancelled a booking for {seats} seat(s) from {from_city} to {to_city}",
    ),
}


class NotificationSink:
    """Fire-and-forget notification enqueue, called once the decision is committed"""

    def enqueue(
        self, user_id: int, notification_type: str, payload: Optional[Dict[str, Any]] = None
    ) -> None:
        raise NotImplementedError


class DatabaseNotificationSink(NotificationSink):
    """
    Persists notifications as rows of the user's inbox.

    Uses its own session so a failure here never touches the booking
    transaction that produced the event.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def enqueue(
        self, user_id: int, notification_type: str, payload: Optional[Dict[str, Any]] = None
    ) -> None:
        payload = payload or {}
        title, message = self._render(notification_type, payload)

        db = self.session_factory()
        try:
            notification_crud.create_notification(
                db,
                NotificationCreate(
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=notification_type,
                    data=payload,
                ),
            )
            logger.info(f"Notification created for user {user_id}: {notification_type}")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _render(notification_type: str, payload: Dict[str, Any]):
        template = _TEMPLATES.get(notification_type)
        if template is None:
            return "Booking update", f"Your booking has a new update ({notification_type})"

        title, message = template
        try:
            return title, message.format(**payload)
        except KeyError:
            # Payload without ride details
            return title, title


notification_sink = DatabaseNotificationSink(SessionLocal)


def get_notification_sink() -> NotificationSink:
    return notification_sink

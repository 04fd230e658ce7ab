from sqlalchemy.orm import Session
from sqlalchemy import and_
from typing import List, Optional
from app.models.notification import Notification
from app.schemas.notification import NotificationCreate


def create_notification(db: Session, notification: NotificationCreate) -> Notification:
    """Store one booking event in the user's inbox and commit it"""
    db_notification = Notification(
        user_id=notification.user_id,
        title=notification.title,
        message=notification.message,
        type=notification.type,
        data=notification.data,
    )
    db.add(db_notification)
    db.commit()
    db.refresh(db_notification)
    return db_notification


def get_user_notifications(
    db: Session, user_id: int, skip: int = 0, limit: int = 100
) -> List[Notification]:
    """Inbox page, newest first; id breaks ties between events of the same second"""
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def _unread(db: Session, user_id: int):
    return db.query(Notification).filter(
        and_(Notification.user_id == user_id, Notification.is_read.is_(False))
    )


def get_unread_notifications_count(db: Session, user_id: int) -> int:
    return _unread(db, user_id).count()


def get_notification(
    db: Session, notification_id: int, user_id: int
) -> Optional[Notification]:
    """None when the notification belongs to another user"""
    return (
        db.query(Notification)
        .filter(
            and_(Notification.id == notification_id, Notification.user_id == user_id)
        )
        .first()
    )


def mark_notification_as_read(db: Session, notification_id: int, user_id: int) -> bool:
    notification = get_notification(db, notification_id, user_id)
    if not notification:
        return False

    notification.is_read = True
    db.commit()
    return True


def mark_all_notifications_as_read(db: Session, user_id: int) -> int:
    """Bulk update of the user's unread inbox, returns the number of rows marked"""
    updated_count = _unread(db, user_id).update(
        {"is_read": True}, synchronize_session=False
    )
    db.commit()
    return updated_count

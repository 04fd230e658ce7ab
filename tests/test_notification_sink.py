"""
Tests for the persisted notification inbox
"""
from app.crud import notification as notification_crud
from app.models.notification import Notification
from app.services.notification_service import (
    BOOKING_ACCEPTED,
    DatabaseNotificationSink,
)


def test_enqueue_persists_rendered_notification(db, session_factory, passenger):
    sink = DatabaseNotificationSink(session_factory)

    sink.enqueue(
        passenger.id,
        BOOKING_ACCEPTED,
        {"booking_id": 10, "seats": 2, "from_city": "Najaf", "to_city": "Karbala"},
    )

    notifications = notification_crud.get_user_notifications(db, passenger.id)
    assert len(notifications) == 1
    notification = notifications[0]
    assert notification.type == "booking_accepted"
    assert notification.title == "Booking accepted"
    assert "2 seat(s)" in notification.message
    assert "Najaf" in notification.message
    assert notification.data["booking_id"] == 10
    assert notification.is_read is False


def test_enqueue_without_ride_details_uses_title(db, session_factory, passenger):
    sink = DatabaseNotificationSink(session_factory)

    sink.enqueue(passenger.id, BOOKING_ACCEPTED, {"booking_id": 10})

    notification = db.query(Notification).filter_by(user_id=passenger.id).one()
    assert notification.message == "Booking accepted"


def test_enqueue_unknown_type_gets_generic_title(db, session_factory, passenger):
    sink = DatabaseNotificationSink(session_factory)

    sink.enqueue(passenger.id, "seat_map_changed")

    notification = db.query(Notification).filter_by(user_id=passenger.id).one()
    assert notification.title == "Booking update"
    assert notification.data == {}


def test_accept_through_database_sink_reaches_inbox(
    db, session_factory, make_offer, make_booking, passenger
):
    from app.services.acceptance_coordinator import AcceptanceCoordinator

    coordinator = AcceptanceCoordinator(
        session_factory, DatabaseNotificationSink(session_factory), backoff_ms=0
    )
    offer = make_offer(seats=3)
    booking = make_booking(offer, seats=3)

    coordinator.accept(booking.id, offer.driver_id)

    assert notification_crud.get_unread_notifications_count(db, passenger.id) == 1
    notification = notification_crud.get_user_notifications(db, passenger.id)[0]
    assert notification.data["booking_id"] == booking.id
    assert notification.data["driver_id"] == offer.driver_id


def test_mark_notifications_read(db, session_factory, passenger):
    sink = DatabaseNotificationSink(session_factory)
    for _ in range(3):
        sink.enqueue(passenger.id, BOOKING_ACCEPTED, {})

    first = notification_crud.get_user_notifications(db, passenger.id)[0]
    assert notification_crud.mark_notification_as_read(db, first.id, passenger.id)
    assert notification_crud.get_unread_notifications_count(db, passenger.id) == 2

    assert notification_crud.mark_all_notifications_as_read(db, passenger.id) == 2
    assert notification_crud.get_unread_notifications_count(db, passenger.id) == 0


def test_mark_read_ignores_other_users_notifications(
    db, session_factory, passenger, other_passenger
):
    sink = DatabaseNotificationSink(session_factory)
    sink.enqueue(passenger.id, BOOKING_ACCEPTED, {})
    notification = notification_crud.get_user_notifications(db, passenger.id)[0]

    assert not notification_crud.mark_notification_as_read(
        db, notification.id, other_passenger.id
    )

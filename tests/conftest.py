"""
Shared pytest configuration.

Each test gets its own file-backed SQLite database: the coordinator opens its
own sessions (and threads in the concurrency tests), so an in-memory database
bound to a single connection is not enough.
"""
import os
import tempfile

import pytest
from datetime import datetime, timedelta
from sqlalchemy.orm import sessionmaker

# app.main creates its tables on import; point it at a scratch database
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(), "app.db")

from app.database import Base, create_db_engine

# Import all models so SQLAlchemy can resolve relationships
from app.models.user import User
from app.models.offer import Offer, OfferStatus
from app.models.booking import Booking, BookingStatus
from app.models.notification import Notification
from app.services.acceptance_coordinator import AcceptanceCoordinator
from app.services.notification_service import NotificationSink


class RecordingNotificationSink(NotificationSink):
    """Keeps enqueued events in memory"""

    def __init__(self):
        self.events = []

    def enqueue(self, user_id, notification_type, payload=None):
        self.events.append((user_id, notification_type, payload))

    def types_for(self, user_id):
        return [event[1] for event in self.events if event[0] == user_id]


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}", lock_timeout_ms=5000)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def notification_sink():
    return RecordingNotificationSink()


@pytest.fixture
def coordinator(session_factory, notification_sink):
    return AcceptanceCoordinator(
        session_factory,
        notification_sink,
        max_attempts=3,
        backoff_ms=0,
        lock_timeout_ms=5000,
    )


def _make_user(db, user_id, name, email, is_driver=False):
    user = User(id=user_id, name=name, email=email, is_active=True, is_driver=is_driver)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def driver(db):
    return _make_user(db, 1, "Test Driver", "driver@example.com", is_driver=True)


@pytest.fixture
def passenger(db):
    return _make_user(db, 2, "Test Passenger", "passenger@example.com")


@pytest.fixture
def other_passenger(db):
    return _make_user(db, 3, "Other Passenger", "other@example.com")


@pytest.fixture
def make_offer(db, driver):
    def _make_offer(seats=4, status=OfferStatus.ACTIVE, driver_id=None):
        offer = Offer(
            driver_id=driver_id or driver.id,
            from_city="Baghdad",
            to_city="Basra",
            departure_time=datetime.utcnow() + timedelta(days=1),
            price=25000,
            seats=seats,
            status=status,
        )
        db.add(offer)
        db.commit()
        db.refresh(offer)
        return offer

    return _make_offer


@pytest.fixture
def make_booking(db, passenger):
    def _make_booking(offer, seats=1, status=BookingStatus.PENDING, passenger_id=None):
        booking = Booking(
            offer_id=offer.id,
            passenger_id=passenger_id or passenger.id,
            seats=seats,
            status=status,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make_booking


@pytest.fixture
def booking_status(db):
    """Status as committed by other sessions"""

    def _booking_status(booking_id):
        db.expire_all()
        return db.get(Booking, booking_id).status

    return _booking_status


@pytest.fixture
def confirmed_seats(db):
    def _confirmed_seats(offer_id):
        db.expire_all()
        bookings = (
            db.query(Booking)
            .filter(
                Booking.offer_id == offer_id,
                Booking.status == BookingStatus.CONFIRMED,
            )
            .all()
        )
        return sum(b.seats for b in bookings)

    return _confirmed_seats

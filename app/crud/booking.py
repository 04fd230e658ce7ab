from sqlalchemy.orm import Session
from sqlalchemy import and_, func
from typing import List, Optional
import logging

from app.crud import offer as offer_crud
from app.models.booking import Booking, BookingStatus
from app.models.offer import Offer
from app.schemas.booking import BookingCreate
from app.services.booking_ledger import BookingLedger
from app.utils.booking_errors import BookingNotFoundError

logger = logging.getLogger(__name__)


def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
    return db.query(Booking).filter(Booking.id == booking_id).first()


def get_bookings(
    db: Session,
    skip: int = 0,
    limit: int = 100,
    passenger_id: Optional[int] = None,
    driver_id: Optional[int] = None,
    offer_id: Optional[int] = None,
    status: Optional[BookingStatus] = None,
) -> List[Booking]:
    query = db.query(Booking)

    if passenger_id:
        query = query.filter(Booking.passenger_id == passenger_id)
    if driver_id:
        query = query.join(Offer, Booking.offer_id == Offer.id).filter(
            Offer.driver_id == driver_id
        )
    if offer_id:
        query = query.filter(Booking.offer_id == offer_id)
    if status:
        query = query.filter(Booking.status == status)

    return (
        query.order_by(Booking.created_at.desc(), Booking.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def create_booking(db: Session, booking: BookingCreate, passenger_id: int) -> Booking:
    """
    Create a booking in PENDING status.

    Requests that no longer fit the offer are refused early, but no seats are
    held: availability is decided again when the driver accepts the booking.
    """
    offer = offer_crud.get_offer(db, booking.offer_id)
    if not offer:
        raise BookingNotFoundError("Offer", booking.offer_id)

    if not offer.is_active:
        raise ValueError("Offer is not available")

    if offer.driver_id == passenger_id:
        raise ValueError("You cannot book your own offer")

    if booking.seats > offer.seats:
        raise ValueError(f"Offer only has {offer.seats} seat(s)")

    # Early refusal only, seats are not held; accept checks again under lock
    available_seats = get_available_seats(db, offer.id)["available_seats"]
    if booking.seats > available_seats:
        raise ValueError(f"Only {available_seats} seat(s) available")

    db_booking = Booking(
        offer_id=booking.offer_id,
        passenger_id=passenger_id,
        seats=booking.seats,
        message=booking.message,
        status=BookingStatus.PENDING,
    )
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    logger.info(
        f"Booking {db_booking.id} created: offer {offer.id}, passenger {passenger_id}, seats {booking.seats}"
    )
    return db_booking


def count_pending(db: Session, user_id: int) -> dict:
    """Pending bookings received as driver and sent as passenger"""
    received_pending = (
        db.query(Booking)
        .join(Offer, Booking.offer_id == Offer.id)
        .filter(
            and_(Offer.driver_id == user_id, Booking.status == BookingStatus.PENDING)
        )
        .count()
    )
    sent_pending = (
        db.query(Booking)
        .filter(
            and_(
                Booking.passenger_id == user_id,
                Booking.status == BookingStatus.PENDING,
            )
        )
        .count()
    )

    return {
        "received_pending": received_pending,
        "sent_pending": sent_pending,
        "total_pending": received_pending + sent_pending,
    }


def get_available_seats(db: Session, offer_id: int) -> Optional[dict]:
    """
    Seat availability as of now, for display only.

    Not locked: the authoritative check runs again when the driver accepts.
    """
    offer = offer_crud.get_offer(db, offer_id)
    if offer is None:
        return None

    confirmed_seats = BookingLedger(db).sum_confirmed_seats(offer.id)
    return {
        "offer_id": offer.id,
        "seats": offer.seats,
        "confirmed_seats": confirmed_seats,
        "available_seats": max(offer.seats - confirmed_seats, 0),
    }


def _status_counts(query) -> dict:
    rows = query.with_entities(Booking.status, func.count(Booking.id)).group_by(
        Booking.status
    )
    counts = {status.value: 0 for status in BookingStatus}
    for status, count in rows:
        counts[status.value] = count
    counts["total"] = sum(counts.values())
    return counts


def get_booking_stats(db: Session) -> dict:
    """Bookings per status across all offers"""
    return _status_counts(db.query(Booking))


def get_user_booking_stats(db: Session, user_id: int) -> dict:
    """Bookings per status sent by the user as passenger"""
    return _status_counts(db.query(Booking).filter(Booking.passenger_id == user_id))

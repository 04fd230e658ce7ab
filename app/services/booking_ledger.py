import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.booking import Booking, BookingStatus
from app.models.offer import Offer
from app.utils.booking_errors import BookingNotFoundError

logger = logging.getLogger(__name__)


class BookingLedger:
    """
    Row access for booking decisions.

    Every method runs inside the caller's transaction on the session it was
    built with; the ledger never commits or rolls back and makes no business
    decisions.
    """

    def __init__(self, db: Session):
        self.db = db

    def lock_booking_and_offer(self, booking_id: int) -> Tuple[Booking, Offer]:
        """
        Lock the offer row and then the booking row (SELECT ... FOR UPDATE).

        The offer is always locked first so that every decision on the same
        offer serializes, whichever booking it targets, and all callers take
        the locks in the same order.

        Raises:
            BookingNotFoundError: booking or its offer does not exist
        """
        offer_id = (
            self.db.query(Booking.offer_id).filter(Booking.id == booking_id).scalar()
        )
        if offer_id is None:
            raise BookingNotFoundError("Booking", booking_id)

        offer = (
            self.db.query(Offer)
            .filter(Offer.id == offer_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if offer is None:
            raise BookingNotFoundError("Offer", offer_id)

        booking = (
            self.db.query(Booking)
            .filter(Booking.id == booking_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if booking is None:
            raise BookingNotFoundError("Booking", booking_id)

        logger.debug(f"Locked offer {offer.id} and booking {booking.id}")
        return booking, offer

    def sum_confirmed_seats(
        self, offer_id: int, excluding_booking_id: Optional[int] = None
    ) -> int:
        query = self.db.query(func.coalesce(func.sum(Booking.seats), 0)).filter(
            Booking.offer_id == offer_id,
            Booking.status == BookingStatus.CONFIRMED,
        )
        if excluding_booking_id is not None:
            query = query.filter(Booking.id != excluding_booking_id)
        return int(query.scalar() or 0)

    def set_status(self, booking_id: int, new_status: BookingStatus) -> None:
        updated = (
            self.db.query(Booking)
            .filter(Booking.id == booking_id)
            .update(
                {"status": new_status, "updated_at": datetime.utcnow()},
                synchronize_session="evaluate",
            )
        )
        if updated == 0:
            raise BookingNotFoundError("Booking", booking_id)

import logging
import os
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from dotenv import load_dotenv
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.database import BOOKING_LOCK_TIMEOUT_MS, SessionLocal
from app.models.booking import Booking, BookingStatus
from app.models.offer import Offer
from app.schemas.booking import Booking as BookingSchema
from app.services.booking_ledger import BookingLedger
from app.services.notification_service import (
    BOOKING_ACCEPTED,
    BOOKING_CANCELLED,
    BOOKING_REJECTED,
    NotificationSink,
    notification_sink,
)
from app.utils.booking_errors import (
    BookingForbiddenError,
    BookingUnavailableError,
    CapacityExceededError,
    InvalidBookingStateError,
)

load_dotenv()

logger = logging.getLogger(__name__)

BOOKING_ACCEPT_MAX_ATTEMPTS = int(os.getenv("BOOKING_ACCEPT_MAX_ATTEMPTS", "3"))
BOOKING_RETRY_BACKOFF_MS = int(os.getenv("BOOKING_RETRY_BACKOFF_MS", "50"))

# serialization_failure, deadlock_detected, lock_not_available, query_canceled
TRANSIENT_PG_CODES = {"40001", "40P01", "55P03", "57014"}


def is_transient_db_error(exc: BaseException) -> bool:
    """True for database failures that a fresh transaction may not hit again"""
    if isinstance(exc, PoolTimeoutError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True

    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode:
        # Class 08: connection exceptions
        return pgcode in TRANSIENT_PG_CODES or pgcode.startswith("08")

    if isinstance(exc, OperationalError):
        # SQLite reports lock waits that ran out of busy timeout this way
        message = str(exc.orig).lower()
        return "database is locked" in message or "database is busy" in message
    return False


class AcceptanceCoordinator:
    """
    Decides on bookings (accept, reject, cancel) inside one short transaction.

    The offer row is locked before availability is computed, so concurrent
    decisions on the same offer run one after another and the first to
    commit wins the remaining seats. Notifications are enqueued only after
    the commit and their failures never change the decision.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        notification_sink: Optional[NotificationSink] = None,
        max_attempts: int = BOOKING_ACCEPT_MAX_ATTEMPTS,
        backoff_ms: int = BOOKING_RETRY_BACKOFF_MS,
        lock_timeout_ms: int = BOOKING_LOCK_TIMEOUT_MS,
    ):
        self.session_factory = session_factory
        self.notification_sink = notification_sink
        self.max_attempts = max(1, max_attempts)
        self.backoff_ms = backoff_ms
        self.lock_timeout_ms = lock_timeout_ms

    def accept(self, booking_id: int, driver_id: int) -> BookingSchema:
        """
        Confirm a pending booking if the offer still has enough seats.

        Raises:
            BookingNotFoundError: booking or offer does not exist
            BookingForbiddenError: caller is not the offer's driver
            InvalidBookingStateError: booking is not pending
            CapacityExceededError: not enough seats left, booking stays pending
            BookingUnavailableError: transient database failure after retries
        """

        def decide(ledger: BookingLedger):
            booking, offer = ledger.lock_booking_and_offer(booking_id)
            self._ensure_driver(offer, driver_id)
            self._ensure_status(booking, (BookingStatus.PENDING,))

            confirmed_seats = ledger.sum_confirmed_seats(
                offer.id, excluding_booking_id=booking.id
            )
            available_seats = offer.seats - confirmed_seats
            if booking.seats > available_seats:
                logger.warning(
                    f"Booking {booking.id} refused: requests {booking.seats} seat(s), "
                    f"{available_seats} available on offer {offer.id}"
                )
                raise CapacityExceededError(max(available_seats, 0), booking.seats)

            ledger.set_status(booking.id, BookingStatus.CONFIRMED)
            return self._snapshot(booking, offer)

        booking, payload = self._run_in_transaction("accept", booking_id, decide)
        logger.info(
            f"Booking {booking.id} accepted by driver {driver_id} ({booking.seats} seat(s))"
        )
        self._notify(booking.passenger_id, BOOKING_ACCEPTED, payload)
        return booking

    def reject(self, booking_id: int, driver_id: int) -> BookingSchema:
        def decide(ledger: BookingLedger):
            booking, offer = ledger.lock_booking_and_offer(booking_id)
            self._ensure_driver(offer, driver_id)
            self._ensure_status(booking, (BookingStatus.PENDING,))
            ledger.set_status(booking.id, BookingStatus.REJECTED)
            return self._snapshot(booking, offer)

        booking, payload = self._run_in_transaction("reject", booking_id, decide)
        logger.info(f"Booking {booking.id} rejected by driver {driver_id}")
        self._notify(booking.passenger_id, BOOKING_REJECTED, payload)
        return booking

    def cancel(self, booking_id: int, passenger_id: int) -> BookingSchema:
        """Cancel a pending or confirmed booking; confirmed seats become free again"""

        def decide(ledger: BookingLedger):
            booking, offer = ledger.lock_booking_and_offer(booking_id)
            if booking.passenger_id != passenger_id:
                raise BookingForbiddenError("You can only cancel your own bookings")
            self._ensure_status(
                booking, (BookingStatus.PENDING, BookingStatus.CONFIRMED)
            )
            ledger.set_status(booking.id, BookingStatus.CANCELLED)
            return self._snapshot(booking, offer)

        booking, payload = self._run_in_transaction("cancel", booking_id, decide)
        logger.info(f"Booking {booking.id} cancelled by passenger {passenger_id}")
        self._notify(payload["driver_id"], BOOKING_CANCELLED, payload)
        return booking

    def _run_in_transaction(
        self, operation: str, booking_id: int, work: Callable[[BookingLedger], Any]
    ):
        """
        Run ``work`` in a fresh transaction, retrying transient database errors.

        Each attempt starts again from the lock, so a retry never reuses data
        read by a failed attempt.
        """
        attempt = 0
        while True:
            attempt += 1
            db = self.session_factory()
            try:
                self._begin(db)
                result = work(BookingLedger(db))
                db.commit()
                return result
            except SQLAlchemyError as e:
                self._rollback(db)
                if not is_transient_db_error(e):
                    logger.error(
                        f"Database error during booking {operation} for booking {booking_id}: {e}"
                    )
                    raise
                if attempt >= self.max_attempts:
                    logger.error(
                        f"Booking {operation} for booking {booking_id} gave up after "
                        f"{attempt} attempt(s): {e}"
                    )
                    raise BookingUnavailableError() from e

                delay = self.backoff_ms * attempt / 1000
                logger.warning(
                    f"Transient database error during booking {operation} for booking "
                    f"{booking_id} (attempt {attempt}/{self.max_attempts}), retrying in {delay}s: {e}"
                )
                time.sleep(delay)
            except Exception:
                self._rollback(db)
                raise
            finally:
                db.close()

    @staticmethod
    def _rollback(db: Session) -> None:
        # The error that aborted the attempt is the one classified and raised
        try:
            db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback of booking transaction failed")

    def _begin(self, db: Session) -> None:
        """Open the transaction with the lock-wait limits of the backend"""
        conn = db.connection()
        dialect = conn.dialect.name
        if dialect == "sqlite":
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        elif dialect == "postgresql":
            timeout = int(self.lock_timeout_ms)
            conn.exec_driver_sql(f"SET LOCAL lock_timeout = {timeout}")
            conn.exec_driver_sql(f"SET LOCAL statement_timeout = {timeout * 2}")

    @staticmethod
    def _ensure_driver(offer: Offer, driver_id: int) -> None:
        if offer.driver_id != driver_id:
            raise BookingForbiddenError(
                "You can only decide on bookings for your own offers"
            )

    @staticmethod
    def _ensure_status(booking: Booking, allowed: Iterable[BookingStatus]) -> None:
        if booking.status not in allowed:
            raise InvalidBookingStateError(booking.status.value)

    @staticmethod
    def _snapshot(booking: Booking, offer: Offer) -> Tuple[BookingSchema, Dict[str, Any]]:
        """Detach the result from the session before it is committed and closed"""
        payload = {
            "booking_id": booking.id,
            "offer_id": offer.id,
            "driver_id": offer.driver_id,
            "passenger_id": booking.passenger_id,
            "seats": booking.seats,
            "from_city": offer.from_city,
            "to_city": offer.to_city,
            "departure_time": (
                offer.departure_time.isoformat() if offer.departure_time else None
            ),
        }
        return BookingSchema.model_validate(booking), payload

    def _notify(
        self, user_id: int, notification_type: str, payload: Dict[str, Any]
    ) -> None:
        if self.notification_sink is None:
            return
        try:
            self.notification_sink.enqueue(user_id, notification_type, payload)
        except Exception:
            logger.exception(
                f"Failed to enqueue {notification_type} notification for user {user_id}"
            )


acceptance_coordinator = AcceptanceCoordinator(SessionLocal, notification_sink)


def get_acceptance_coordinator() -> AcceptanceCoordinator:
    return acceptance_coordinator

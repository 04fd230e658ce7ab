from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.database import get_db
from app.crud import booking as crud
from app.crud import offer as offer_crud
from app.schemas.booking import (
    Booking,
    BookingActionResponse,
    BookingCreate,
    BookingErrorResponse,
    BookingStatsResponse,
    BookingStatus,
    PendingCountResponse,
)
from app.models.booking import BookingStatus as BookingStatusModel
from app.services.acceptance_coordinator import (
    AcceptanceCoordinator,
    get_acceptance_coordinator,
)
from app.services.auth import get_current_user
from app.services.notification_service import (
    BOOKING_CREATED,
    NotificationSink,
    get_notification_sink,
)
from app.models.user import User

router = APIRouter()
logger = logging.getLogger(__name__)

# Failure bodies rendered by the BookingError handler
BOOKING_ACTION_ERRORS = {
    400: {"model": BookingErrorResponse},
    403: {"model": BookingErrorResponse},
    404: {"model": BookingErrorResponse},
    409: {"model": BookingErrorResponse},
    503: {"model": BookingErrorResponse},
}


@router.post("/", response_model=Booking, status_code=201)
def create_booking(
    booking: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notification_sink: NotificationSink = Depends(get_notification_sink),
):
    try:
        db_booking = crud.create_booking(
            db=db, booking=booking, passenger_id=current_user.id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    offer = offer_crud.get_offer(db, db_booking.offer_id)
    try:
        notification_sink.enqueue(
            offer.driver_id,
            BOOKING_CREATED,
            {
                "booking_id": db_booking.id,
                "offer_id": offer.id,
                "passenger_id": current_user.id,
                "seats": db_booking.seats,
                "from_city": offer.from_city,
                "to_city": offer.to_city,
            },
        )
    except Exception:
        logger.exception(f"Failed to notify driver {offer.driver_id} of booking {db_booking.id}")

    return db_booking


@router.get("/", response_model=List[Booking])
def read_bookings(
    role: str = Query("sent", pattern="^(sent|received)$"),
    status: Optional[BookingStatus] = None,
    offer_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Bookings sent by the caller as passenger, or received on the caller's offers"""
    status_filter = BookingStatusModel(status.value) if status else None
    if role == "received":
        return crud.get_bookings(
            db=db,
            skip=skip,
            limit=limit,
            driver_id=current_user.id,
            offer_id=offer_id,
            status=status_filter,
        )
    return crud.get_bookings(
        db=db,
        skip=skip,
        limit=limit,
        passenger_id=current_user.id,
        offer_id=offer_id,
        status=status_filter,
    )


@router.get("/pending/count", response_model=PendingCountResponse)
def read_pending_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return crud.count_pending(db, current_user.id)


@router.get("/stats", response_model=BookingStatsResponse)
def read_booking_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return crud.get_booking_stats(db)


@router.get("/stats/user", response_model=BookingStatsResponse)
def read_user_booking_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return crud.get_user_booking_stats(db, current_user.id)


@router.get("/{booking_id}", response_model=Booking)
def read_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db_booking = crud.get_booking(db=db, booking_id=booking_id)
    if db_booking is None:
        raise HTTPException(status_code=404, detail="Booking not found")

    offer = offer_crud.get_offer(db, db_booking.offer_id)
    if current_user.id not in (db_booking.passenger_id, offer.driver_id):
        raise HTTPException(status_code=403, detail="Access denied")
    return db_booking


@router.post(
    "/{booking_id}/accept",
    response_model=BookingActionResponse,
    responses=BOOKING_ACTION_ERRORS,
)
def accept_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    coordinator: AcceptanceCoordinator = Depends(get_acceptance_coordinator),
):
    # BookingError subclasses are rendered by the app-level handler
    booking = coordinator.accept(booking_id, current_user.id)
    return {"ok": True, "booking": booking}


@router.post(
    "/{booking_id}/reject",
    response_model=BookingActionResponse,
    responses=BOOKING_ACTION_ERRORS,
)
def reject_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    coordinator: AcceptanceCoordinator = Depends(get_acceptance_coordinator),
):
    booking = coordinator.reject(booking_id, current_user.id)
    return {"ok": True, "booking": booking}


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingActionResponse,
    responses=BOOKING_ACTION_ERRORS,
)
def cancel_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    coordinator: AcceptanceCoordinator = Depends(get_acceptance_coordinator),
):
    booking = coordinator.cancel(booking_id, current_user.id)
    return {"ok": True, "booking": booking}

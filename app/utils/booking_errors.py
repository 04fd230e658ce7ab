"""
Booking decision errors.

Every error is caller-facing: the client must branch on ``error_code`` and
re-render with the new information instead of repeating the same call.
Only ``BookingUnavailableError`` may be retried by the caller, after a delay.
"""
from typing import Optional


class BookingError(Exception):
    """Base class for booking decision errors"""

    error_code = "BOOKING_ERROR"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"ok": False, "error_code": self.error_code, "message": self.message}


class BookingNotFoundError(BookingError):
    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str = "Booking", resource_id: Optional[int] = None):
        self.resource = resource
        self.resource_id = resource_id
        if resource_id is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} {resource_id} not found"
        super().__init__(message)


class BookingForbiddenError(BookingError):
    error_code = "FORBIDDEN"
    status_code = 403


class InvalidBookingStateError(BookingError):
    error_code = "INVALID_STATE"
    status_code = 400

    def __init__(self, current_status: str, message: Optional[str] = None):
        self.current_status = current_status
        super().__init__(
            message or f"Booking is already {current_status} and cannot be changed"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["current_status"] = self.current_status
        return data


class CapacityExceededError(BookingError):
    error_code = "CAPACITY_EXCEEDED"
    status_code = 409

    def __init__(self, available_seats: int, requested_seats: int):
        self.available_seats = available_seats
        self.requested_seats = requested_seats
        super().__init__(
            f"Only {available_seats} seat(s) available, booking requests {requested_seats}"
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["available_seats"] = self.available_seats
        return data


class BookingUnavailableError(BookingError):
    """Transient database failure that outlived the retry budget"""

    error_code = "UNAVAILABLE"
    status_code = 503

    def __init__(self, message: str = "Booking service temporarily unavailable, try again later"):
        super().__init__(message)

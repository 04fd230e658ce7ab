from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class BookingBase(BaseModel):
    offer_id: int
    seats: int = Field(default=1, ge=1, le=7)
    message: Optional[str] = Field(default=None, max_length=500)


class BookingCreate(BookingBase):
    pass


class BookingInDB(BookingBase):
    id: int
    passenger_id: int
    status: BookingStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class Booking(BookingInDB):
    pass


class BookingActionResponse(BaseModel):
    ok: bool = True
    booking: Booking


class BookingErrorResponse(BaseModel):
    ok: bool = False
    error_code: str
    message: str
    available_seats: Optional[int] = None
    current_status: Optional[BookingStatus] = None


class PendingCountResponse(BaseModel):
    received_pending: int
    sent_pending: int
    total_pending: int


class BookingStatsResponse(BaseModel):
    total: int
    pending: int
    confirmed: int
    cancelled: int
    rejected: int

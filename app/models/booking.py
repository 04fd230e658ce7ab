from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_offer_id_status", "offer_id", "status"),
        {"extend_existing": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    offer_id = Column(Integer, ForeignKey("offers.id"), nullable=False, index=True)
    passenger_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    seats = Column(Integer, nullable=False, default=1)
    message = Column(String, nullable=True)
    # Stored lowercase ("pending", "confirmed", ...)
    status = Column(
        Enum(
            BookingStatus,
            name="booking_status",
            values_callable=lambda e: [member.value for member in e],
        ),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    offer = relationship("app.models.offer.Offer", back_populates="bookings")
    passenger = relationship("app.models.user.User", back_populates="bookings")

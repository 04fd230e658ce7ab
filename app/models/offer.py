from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Float
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.database import Base


class OfferStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Offer(Base):
    __tablename__ = "offers"
    __table_args__ = {"extend_existing": True}

    id = Column(Integer, primary_key=True, index=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    from_city = Column(String, nullable=False)
    to_city = Column(String, nullable=False)
    departure_time = Column(DateTime, nullable=False)
    price = Column(Float)
    seats = Column(Integer, nullable=False)  # Seat capacity
    status = Column(
        Enum(
            OfferStatus,
            name="offer_status",
            values_callable=lambda e: [member.value for member in e],
        ),
        default=OfferStatus.ACTIVE,
        nullable=False,
    )
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    driver = relationship("app.models.user.User", back_populates="offers")
    bookings = relationship("app.models.booking.Booking", back_populates="offer")

    @property
    def is_active(self) -> bool:
        return self.status == OfferStatus.ACTIVE

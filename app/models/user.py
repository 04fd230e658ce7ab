from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from app.database import Base
from datetime import datetime


class User(Base):
    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True)
    email = Column(String, unique=True, index=True)
    phone = Column(String)
    is_active = Column(Boolean, default=True)
    is_driver = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    offers = relationship("app.models.offer.Offer", back_populates="driver")
    bookings = relationship("app.models.booking.Booking", back_populates="passenger")
    notifications = relationship(
        "app.models.notification.Notification",
        back_populates="user",
        cascade="all, delete-orphan",
    )

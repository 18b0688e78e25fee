from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, func
from sqlalchemy.orm import relationship
from app.db.session import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    room_number = Column(String, nullable=False)
    type = Column(String, nullable=False)
    price = Column(Float, nullable=False, default=0.0)  # per night
    description = Column(String, default="")
    image = Column(String, nullable=True)

    # Advisory only. Availability is always computed from bookings.
    is_booked = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, server_default=func.now())

    bookings = relationship("Booking", back_populates="room")

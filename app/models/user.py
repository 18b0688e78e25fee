from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from app.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, default="")
    password_hash = Column(String, nullable=False)

    role = Column(String, nullable=False, default="user")  # user | admin
    is_blocked = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, server_default=func.now())

    bookings = relationship("Booking", back_populates="user")

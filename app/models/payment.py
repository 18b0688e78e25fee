from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.models.enums import PaymentStatus, PaymentMethod


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)

    amount = Column(Float, nullable=False)
    method = Column(String, nullable=False, default=PaymentMethod.MOMO.value)
    status = Column(String, nullable=False, default=PaymentStatus.UNPAID.value)

    order_id = Column(String, nullable=True, index=True)  # one row per gateway attempt
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())

    booking = relationship("Booking", back_populates="payments")

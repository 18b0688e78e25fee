from sqlalchemy import Column, Integer, String, Date, Float, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import relationship
from app.db.session import Base
from app.models.enums import BookingStatus, PAID_STATUSES


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)

    # Half-open stay [check_in, check_out)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    guests = Column(Integer, nullable=False, default=1)

    status = Column(String, nullable=False, default=BookingStatus.PENDING.value, index=True)
    total_price = Column(Float, nullable=False, default=0.0)

    # Discount snapshot at booking / payment time
    discount_code = Column(String, nullable=True)
    discount_applied = Column(Float, nullable=False, default=0.0)
    amount_after_discount = Column(Float, nullable=True)

    # PAYMENT CORRELATION
    momo_order_id = Column(String, unique=True, index=True, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="bookings")
    room = relationship("Room", back_populates="bookings")
    payments = relationship("Payment", back_populates="booking")

    __table_args__ = (
        CheckConstraint("check_in < check_out", name="ck_booking_dates"),
        CheckConstraint("total_price >= 0", name="ck_booking_price"),
    )

    @hybrid_property
    def is_paid(self):
        return self.status in PAID_STATUSES

    @is_paid.expression
    def is_paid(cls):
        return cls.status.in_(PAID_STATUSES)

    @property
    def charged_amount(self):
        """Amount the guest is asked to pay through the gateway."""
        if self.amount_after_discount is not None:
            return self.amount_after_discount
        return self.total_price

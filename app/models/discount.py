from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, CheckConstraint, func
from app.db.session import Base


class Discount(Base):
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)  # stored uppercase

    # Exactly one of percent / value is set
    percent = Column(Float, nullable=True)
    value = Column(Float, nullable=True)

    start_date = Column(DateTime, nullable=True)  # null = starts immediately
    end_date = Column(DateTime, nullable=True)    # null = never expires
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("percent IS NULL OR (percent >= 1 AND percent <= 100)", name="ck_discount_percent"),
        CheckConstraint("value IS NULL OR value >= 0", name="ck_discount_value"),
    )

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional

class BookingBase(BaseModel):
    room_id: int
    check_in: date
    check_out: date

class BookingCreate(BookingBase):
    guests: int = Field(default=1, ge=1)
    discount_code: Optional[str] = None

class BookingOut(BookingBase):
    id: int
    user_id: int
    guests: int
    status: str
    is_paid: bool
    total_price: float
    discount_code: Optional[str] = None
    discount_applied: float = 0.0
    amount_after_discount: Optional[float] = None
    momo_order_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

class BookingStatusUpdate(BaseModel):
    status: str

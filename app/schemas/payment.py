from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class MomoCreate(BaseModel):
    booking_id: int
    discount_code: Optional[str] = None


class MomoCreateOut(BaseModel):
    pay_url: str


class MomoNotification(BaseModel):
    """IPN body. Only the first fields are required; the rest feed signature checks."""

    model_config = ConfigDict(extra="allow")

    orderId: str
    resultCode: int
    amount: Optional[int] = None
    message: Optional[str] = None
    partnerCode: Optional[str] = None
    requestId: Optional[str] = None
    orderInfo: Optional[str] = None
    orderType: Optional[str] = None
    transId: Optional[int] = None
    payType: Optional[str] = None
    responseTime: Optional[int] = None
    extraData: Optional[str] = None
    signature: Optional[str] = None


class PaymentOut(BaseModel):
    id: int
    amount: float
    method: str
    status: str
    order_id: Optional[str] = None
    paid_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PaymentStatusOut(BaseModel):
    booking_id: int
    booking_status: str
    payment_state: str  # paid | refund_due | failed | cancelled | pending
    is_paid: bool
    amount: float
    order_id: Optional[str] = None
    payments: list[PaymentOut] = []

from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError as PayloadError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, get_current_user, get_momo_client
from app.core.exceptions import BookingError, LockUnavailable
from app.core.logging_config import payment_logger
from app.models.booking import Booking
from app.models.user import User
from app.models.enums import UserRole
from app.schemas.payment import MomoCreate, MomoCreateOut, MomoNotification, PaymentOut, PaymentStatusOut
from app.services.payments import (
    Channel,
    ReconciliationOutcome,
    initiate_payment,
    match_order,
    payment_state,
    reconcile,
)
from app.utils.momo_client import MomoClient

router = APIRouter(prefix="/payment", tags=["Payment"])

# What the guest is shown after the gateway redirect
RESULT_BY_STATE = {
    "paid": "success",
    "refund_due": "failed",
    "failed": "failed",
    "cancelled": "failed",
    "pending": "pending",
}

# Errors after which the gateway should redeliver
RETRYABLE = (SQLAlchemyError, LockUnavailable)


def _redirect(path: str, **params):
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return RedirectResponse(f"{path}?{query}" if query else path, status_code=303)


# =====================================================================
# CREATE MOMO PAYMENT
# =====================================================================
@router.post("/momo/create", response_model=MomoCreateOut)
def create_momo_payment(
    data: MomoCreate,
    user: User = Depends(get_current_user),
    client: MomoClient = Depends(get_momo_client),
    db: Session = Depends(get_db),
):
    owner_id = None if user.role == UserRole.ADMIN.value else user.id
    try:
        pay_url = initiate_payment(
            db,
            client,
            booking_id=data.booking_id,
            user_id=owner_id,
            discount_code=data.discount_code,
        )
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)

    return MomoCreateOut(pay_url=pay_url)


# =====================================================================
# IPN (server to server)
# =====================================================================
@router.post("/momo/notify")
async def momo_notify(
    request: Request,
    client: MomoClient = Depends(get_momo_client),
    db: Session = Depends(get_db),
):
    # Parsed by hand: a malformed body is acknowledged, not answered with 422
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    return await run_in_threadpool(_handle_notify, payload, client, db)


def _handle_notify(payload, client: MomoClient, db: Session):
    try:
        data = MomoNotification.model_validate(payload)
    except PayloadError as e:
        order_id = payload.get("orderId") if isinstance(payload, dict) else None
        payment_logger(str(order_id) if order_id else None).error(
            f"MoMo notify ignored: unreadable body | {e.errors(include_url=False)}"
        )
        return {"message": "acknowledged", "orderId": order_id, "outcome": "invalid"}

    log = payment_logger(data.orderId)
    log.info(f"MoMo notify | resultCode={data.resultCode} | amount={data.amount} | message={data.message}")

    if client.config.verify_ipn_signature and not client.verify_notification(data.model_dump()):
        log.warning("MoMo notify rejected: bad signature")
        return JSONResponse(status_code=400, content={"message": "invalid signature"})

    try:
        result = reconcile(
            db,
            order_id=data.orderId,
            result_code=data.resultCode,
            amount=data.amount,
            channel=Channel.NOTIFY,
        )
    except RETRYABLE:
        # Not acknowledged: the gateway redelivers
        return JSONResponse(status_code=500, content={"message": "temporary failure, retry"})

    return {
        "message": "acknowledged",
        "orderId": data.orderId,
        "outcome": result.outcome.value,
    }


# =====================================================================
# BROWSER RETURN
# =====================================================================
@router.get("/momo/return")
def momo_return(
    request: Request,
    orderId: Optional[str] = None,
    resultCode: Optional[str] = None,
    message: Optional[str] = None,
    amount: Optional[str] = None,
    client: MomoClient = Depends(get_momo_client),
    db: Session = Depends(get_db),
):
    log = payment_logger(orderId)
    log.info(f"MoMo return | resultCode={resultCode} | message={message}")

    if not orderId:
        return _redirect("/payment/result", status="error")

    # Without a trustworthy verdict only the current state is shown; the IPN settles it
    trusted = resultCode is not None
    if trusted and client.config.verify_ipn_signature:
        trusted = client.verify_notification(dict(request.query_params))
        if not trusted:
            log.warning("MoMo return carried a bad signature, not settling")

    try:
        if trusted:
            result = reconcile(
                db,
                order_id=orderId,
                result_code=resultCode,
                amount=amount,
                channel=Channel.RETURN,
            )
            if result.outcome == ReconciliationOutcome.UNMATCHED:
                return _redirect("/payment/result", status="error")

        booking, _ = match_order(db, orderId)
    except RETRYABLE:
        # The browser cannot be redelivered; keep the order id in front of the guest
        return _redirect("/payment/support", order_id=orderId)

    if not booking:
        return _redirect("/payment/result", status="error")

    return _redirect(
        "/payment/result",
        order_id=orderId,
        booking_id=booking.id,
        status=RESULT_BY_STATE[payment_state(booking)],
    )


# =====================================================================
# RESULT / SUPPORT VIEWS
# =====================================================================
@router.get("/result")
def payment_result(order_id: Optional[str] = None, db: Session = Depends(get_db)):
    booking, _ = match_order(db, order_id)

    if not booking:
        return JSONResponse(
            status_code=404,
            content={"status": "error", "message": "No booking matches this payment"},
        )

    state = payment_state(booking)
    return {
        "order_id": order_id,
        "booking_id": booking.id,
        "booking_status": booking.status,
        "status": RESULT_BY_STATE[state],
        "payment_state": state,
    }


@router.get("/support")
def payment_support(order_id: Optional[str] = None):
    return {
        "status": "unknown",
        "order_id": order_id,
        "message": (
            "We could not record your payment result yet. "
            "Please contact support and quote this order id."
        ),
    }


# =====================================================================
# BOOKING PAYMENT STATUS
# =====================================================================
@router.get("/bookings/{booking_id}", response_model=PaymentStatusOut)
def booking_payment_status(
    booking_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Booking).filter(Booking.id == booking_id)
    if user.role != UserRole.ADMIN.value:
        query = query.filter(Booking.user_id == user.id)
    booking = query.first()

    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    return PaymentStatusOut(
        booking_id=booking.id,
        booking_status=booking.status,
        payment_state=payment_state(booking),
        is_paid=booking.is_paid,
        amount=booking.charged_amount,
        order_id=booking.momo_order_id,
        payments=[PaymentOut.model_validate(p) for p in booking.payments],
    )

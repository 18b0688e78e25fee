from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, InvalidTransitionError, RoomUnavailableError
from app.core.locks import keyed_lock
from app.core.logging_config import payment_logger
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.room import Room
from app.models.enums import BookingStatus, PaymentStatus, PaymentMethod, BLOCKING_STATUSES
from app.services.bookings import room_lock_name, takes_room
from app.utils.availability import find_conflict
from app.utils.discounts import evaluate, apply_discount
from app.utils.momo_client import MomoClient
from app.utils.notifications import send_booking_confirmation
from app.utils.pricing import to_gateway_amount

# A gateway verdict may only settle bookings still waiting for payment
SETTLEABLE_STATUSES = (
    BookingStatus.PENDING.value,
    BookingStatus.CONFIRMED.value,
)


class ReconciliationOutcome(str, Enum):
    UNMATCHED = "unmatched"
    PAID = "paid"
    CANCELLED = "cancelled"
    ALREADY_SETTLED = "already_settled"
    # paid, but the room was taken meanwhile; booking cancelled, refund due
    CONFLICT = "conflict"
    # verdict for an older attempt that a newer one replaced
    SUPERSEDED = "superseded"


class Channel(str, Enum):
    NOTIFY = "notify"
    RETURN = "return"


@dataclass
class ReconciliationResult:
    outcome: ReconciliationOutcome
    booking_id: int | None = None
    status: str | None = None
    payment_id: int | None = None

    @property
    def settled_now(self) -> bool:
        return self.outcome in (
            ReconciliationOutcome.PAID,
            ReconciliationOutcome.CANCELLED,
            ReconciliationOutcome.CONFLICT,
        )


def is_success(result_code) -> bool:
    try:
        return int(result_code) == 0
    except (TypeError, ValueError):
        return False


def _reported_amount(amount):
    try:
        return float(amount)
    except (TypeError, ValueError):
        return None


def match_order(db: Session, order_id: str | None):
    """
    Booking and payment attempt for a gateway order id.

    The booking's current order id wins; older attempts are found through
    their Payment row. Either value may be None.
    """
    if not order_id:
        return None, None

    attempt = (
        db.query(Payment)
        .filter(Payment.order_id == order_id)
        .order_by(Payment.id)
        .first()
    )
    booking = db.query(Booking).filter(Booking.momo_order_id == order_id).first()
    if booking is None and attempt is not None:
        booking = attempt.booking
    return booking, attempt


# ---------------------------------------------------------------------
# INITIATE
# ---------------------------------------------------------------------
def initiate_payment(
    db: Session,
    client: MomoClient,
    booking_id: int,
    user_id: int | None = None,
    discount_code: str | None = None,
    now: datetime | None = None,
) -> str:
    """
    Start a MoMo payment for a booking and return the gateway payUrl.

    The booking is only updated once the gateway hands back a payUrl, so a
    failed or timed out attempt leaves it pending and payable again. Every
    attempt that got a payUrl keeps an unpaid Payment row under its order id.
    """
    query = db.query(Booking).filter(Booking.id == booking_id)
    if user_id is not None:
        query = query.filter(Booking.user_id == user_id)
    booking = query.first()
    if not booking:
        raise NotFoundError("Booking not found")

    if booking.status not in SETTLEABLE_STATUSES:
        raise InvalidTransitionError(f"A '{booking.status}' booking cannot be paid")

    # Do not charge for dates that are no longer ours
    if booking.status not in BLOCKING_STATUSES and find_conflict(
        db, booking.room_id, booking.check_in, booking.check_out, exclude_booking_id=booking.id
    ):
        raise RoomUnavailableError("Room is no longer available for these dates")

    amount = booking.charged_amount
    applied_code = booking.discount_code

    # A coupon is applied once per booking, at booking time or here
    if discount_code and not booking.discount_code:
        evaluation = evaluate(db, discount_code, now or datetime.now())
        if evaluation.valid:
            amount = max(apply_discount(booking.total_price, evaluation), 0)
            applied_code = evaluation.code

    order_id = client.new_order_id()
    order_info = f"Room booking {booking.room.room_number}"

    pay_url = client.create_payment(order_id, to_gateway_amount(amount), order_info)

    # The correlation id, discount and charged amount are stored together
    updated = (
        db.query(Booking)
        .filter(Booking.id == booking.id, Booking.status.in_(SETTLEABLE_STATUSES))
        .update(
            {
                Booking.momo_order_id: order_id,
                Booking.discount_code: applied_code,
                Booking.amount_after_discount: amount,
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        db.rollback()
        raise InvalidTransitionError("Booking was settled while the payment was being created")

    db.add(Payment(
        booking_id=booking.id,
        amount=amount,
        method=PaymentMethod.MOMO.value,
        status=PaymentStatus.UNPAID.value,
        order_id=order_id,
    ))
    db.commit()

    payment_logger(order_id).info(
        f"Payment initiated | Booking={booking.id} | Amount={amount} | Discount={applied_code}"
    )
    return pay_url


# ---------------------------------------------------------------------
# RECONCILE
# ---------------------------------------------------------------------
def reconcile(
    db: Session,
    order_id: str | None,
    result_code,
    amount=None,
    channel: Channel = Channel.NOTIFY,
    now: datetime | None = None,
    notify=send_booking_confirmation,
) -> ReconciliationResult:
    """
    Apply one gateway verdict to the booking it refers to.

    Both callback channels call this; it may run several times per order and
    in any order. Settlement runs under the booking's room lock, and only the
    call that moves the booking out of a settleable status writes the payment
    and sends the confirmation.

    Storage errors propagate (after rollback) so the caller can ask the
    gateway to redeliver.
    """
    log = payment_logger(order_id)
    success = is_success(result_code)

    booking, attempt = match_order(db, order_id)

    if not booking:
        log.warning(f"Unmatched order | channel={channel.value} | resultCode={result_code}")
        return ReconciliationResult(outcome=ReconciliationOutcome.UNMATCHED)

    with keyed_lock(room_lock_name(booking.room_id)):
        # The other channel may have settled it while we waited
        db.refresh(booking)
        if attempt is not None:
            db.refresh(attempt)
        result, payment = _settle(
            db, booking, attempt, order_id, success, _reported_amount(amount),
            channel, now or datetime.now(), log,
        )

    if result.outcome == ReconciliationOutcome.PAID:
        try:
            notify(booking, payment)
        except Exception:
            # settlement is committed; a lost confirmation must not trigger redelivery
            log.exception(f"Confirmation dispatch failed | Booking={booking.id}")

    return result


def _settle(db, booking, attempt, order_id, success, reported, channel, settled_at, log):
    if booking.status not in SETTLEABLE_STATUSES:
        return _already_settled(db, booking, attempt, success, reported, channel, log), None

    if not success and booking.momo_order_id != order_id:
        _close_attempt(db, attempt, PaymentStatus.FAILED)
        log.info(f"Superseded attempt failed, booking left as is | Booking={booking.id}")
        return ReconciliationResult(
            outcome=ReconciliationOutcome.SUPERSEDED,
            booking_id=booking.id,
            status=booking.status,
            payment_id=attempt.id,
        ), None

    target = BookingStatus.PAID.value if success else BookingStatus.CANCELLED.value
    payment_status = PaymentStatus.PAID if success else PaymentStatus.FAILED

    conflict = None
    if success and takes_room(booking.status, target):
        conflict = find_conflict(
            db, booking.room_id, booking.check_in, booking.check_out, exclude_booking_id=booking.id
        )
    if conflict is not None:
        target = BookingStatus.CANCELLED.value
        payment_status = PaymentStatus.REFUND_DUE

    booking_id = booking.id

    try:
        swapped = (
            db.query(Booking)
            .filter(Booking.id == booking.id, Booking.status.in_(SETTLEABLE_STATUSES))
            .update({Booking.status: target}, synchronize_session=False)
        )
        if swapped != 1:
            # Changed by an admin since we read it
            db.rollback()
            db.refresh(booking)
            return _already_settled(db, booking, attempt, success, reported, channel, log), None

        charged = reported if reported is not None else booking.charged_amount
        paid_at = settled_at if success else None

        if attempt is not None and attempt.status == PaymentStatus.UNPAID.value:
            payment = attempt
            payment.amount = charged
            payment.status = payment_status.value
            payment.paid_at = paid_at
        else:
            payment = Payment(
                booking_id=booking.id,
                amount=charged,
                method=PaymentMethod.MOMO.value,
                status=payment_status.value,
                order_id=order_id,
                paid_at=paid_at,
            )
            db.add(payment)

        if payment_status == PaymentStatus.PAID:
            db.query(Room).filter(Room.id == booking.room_id).update(
                {Room.is_booked: True}, synchronize_session=False
            )

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception(f"Settlement failed | Booking={booking_id} | channel={channel.value}")
        raise

    db.refresh(booking)
    db.refresh(payment)

    if conflict is not None:
        log.error(
            f"Paid after the room was taken by booking {conflict.id}, manual refund needed "
            f"| Booking={booking.id} | Amount={payment.amount} | channel={channel.value}"
        )
        outcome = ReconciliationOutcome.CONFLICT
    elif success:
        if reported is not None and reported != booking.charged_amount:
            log.warning(
                f"Amount mismatch | Booking={booking.id} | reported={reported} "
                f"| expected={booking.charged_amount}"
            )
        log.info(f"Payment settled | Booking={booking.id} | Amount={payment.amount} | channel={channel.value}")
        outcome = ReconciliationOutcome.PAID
    else:
        log.info(f"Payment failed, booking cancelled | Booking={booking.id} | channel={channel.value}")
        outcome = ReconciliationOutcome.CANCELLED

    return ReconciliationResult(
        outcome=outcome,
        booking_id=booking.id,
        status=booking.status,
        payment_id=payment.id,
    ), payment


def _close_attempt(db: Session, attempt: Payment | None, status: PaymentStatus, amount=None):
    """Record the verdict on an attempt that did not settle its booking."""
    if attempt is None or attempt.status != PaymentStatus.UNPAID.value:
        return
    attempt.status = status.value
    if amount is not None:
        attempt.amount = amount
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def _already_settled(db, booking, attempt, success, reported, channel, log) -> ReconciliationResult:
    if success and attempt is not None and attempt.status == PaymentStatus.UNPAID.value:
        # Money taken on an attempt that cannot settle the booking any more
        _close_attempt(db, attempt, PaymentStatus.REFUND_DUE, reported)
        log.error(
            f"Payment received for a '{booking.status}' booking, manual refund needed "
            f"| Booking={booking.id} | channel={channel.value}"
        )
    elif success and booking.status == BookingStatus.CANCELLED.value:
        log.error(
            f"Success reported for cancelled booking, manual refund needed "
            f"| Booking={booking.id} | channel={channel.value}"
        )
    else:
        if not success:
            _close_attempt(db, attempt, PaymentStatus.FAILED)
        log.info(f"Already settled | Booking={booking.id} | status={booking.status} | channel={channel.value}")

    return ReconciliationResult(
        outcome=ReconciliationOutcome.ALREADY_SETTLED,
        booking_id=booking.id,
        status=booking.status,
        payment_id=attempt.id if attempt is not None else None,
    )


# ---------------------------------------------------------------------
# STATUS VIEW
# ---------------------------------------------------------------------
def payment_state(booking: Booking) -> str:
    """
    paid / refund_due / failed / cancelled / pending.

    "pending" covers both "not paid yet" and "no verdict received"; it is
    never reported as failed.
    """
    if booking.is_paid:
        return "paid"
    if booking.status == BookingStatus.CANCELLED.value:
        if any(p.status == PaymentStatus.REFUND_DUE.value for p in booking.payments):
            return "refund_due"
        if any(
            p.status == PaymentStatus.FAILED.value and p.order_id == booking.momo_order_id
            for p in booking.payments
        ):
            return "failed"
        return "cancelled"
    return "pending"

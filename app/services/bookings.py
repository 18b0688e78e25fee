from datetime import datetime

from sqlalchemy.orm import Session

from app.core.exceptions import (
    ValidationError,
    NotFoundError,
    RoomUnavailableError,
    InvalidTransitionError,
)
from app.core.locks import keyed_lock
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.room import Room
from app.models.enums import BookingStatus, BLOCKING_STATUSES, TERMINAL_STATUSES
from app.utils.availability import is_available, find_conflict
from app.utils.discounts import evaluate, apply_discount
from app.utils.pricing import calculate_base_price

logger = get_logger()

PENDING = BookingStatus.PENDING.value
PAID = BookingStatus.PAID.value
CONFIRMED = BookingStatus.CONFIRMED.value
CHECKED_IN = BookingStatus.CHECKED_IN.value
CHECKED_OUT = BookingStatus.CHECKED_OUT.value
CANCELLED = BookingStatus.CANCELLED.value

# Manual (admin) transitions. Gateway settlement goes through
# app.services.payments.reconcile instead.
ADMIN_TRANSITIONS = {
    PENDING: {PAID, CONFIRMED, CHECKED_IN, CHECKED_OUT, CANCELLED},
    CONFIRMED: {PAID, CHECKED_IN, CHECKED_OUT, CANCELLED},
    PAID: {CHECKED_IN, CHECKED_OUT, CANCELLED},
    CHECKED_IN: {CHECKED_OUT},
    CHECKED_OUT: set(),
    CANCELLED: set(),
}

USER_CANCELLABLE = {PENDING, CONFIRMED}


def room_lock_name(room_id: int) -> str:
    return f"room:{room_id}"


def takes_room(current: str, target: str) -> bool:
    """True when the move makes a booking start holding its room."""
    return current not in BLOCKING_STATUSES and target in BLOCKING_STATUSES


def ensure_room_free(db: Session, booking: Booking):
    """
    Raise RoomUnavailableError if another booking holds the room for any of
    this booking's nights. Call it under the room lock.
    """
    conflict = find_conflict(
        db,
        booking.room_id,
        booking.check_in,
        booking.check_out,
        exclude_booking_id=booking.id,
    )
    if conflict is not None:
        db.rollback()
        raise RoomUnavailableError(
            f"Room is held by booking {conflict.id} for overlapping dates"
        )


# ---------------------------------------------------------------------
# PRICE
# ---------------------------------------------------------------------
def quote_price(db: Session, room: Room, check_in, check_out, discount_code=None, now=None):
    """Return (base, final, evaluation) for a stay."""
    base = calculate_base_price(room, check_in, check_out)
    evaluation = evaluate(db, discount_code, now or datetime.now())
    final = max(apply_discount(base, evaluation), 0)
    return base, final, evaluation


# ---------------------------------------------------------------------
# CREATE BOOKING
# ---------------------------------------------------------------------
def create_booking(
    db: Session,
    user_id: int,
    room_id: int,
    check_in,
    check_out,
    guests: int = 1,
    discount_code: str | None = None,
    now: datetime | None = None,
) -> Booking:
    if check_in is None or check_out is None:
        raise ValidationError("Check-in and check-out dates are required")
    if check_in >= check_out:
        raise ValidationError("Check-out must be after check-in")
    if guests is None or guests < 1:
        raise ValidationError("At least one guest is required")

    # Check and insert must not interleave with another booking for the room
    with keyed_lock(room_lock_name(room_id)):
        room = db.query(Room).filter(Room.id == room_id).with_for_update().first()
        if not room:
            db.rollback()
            raise NotFoundError("Room not found")

        if not is_available(db, room_id, check_in, check_out):
            db.rollback()
            raise RoomUnavailableError("Room is not available for the selected dates")

        base, final, evaluation = quote_price(db, room, check_in, check_out, discount_code, now)

        booking = Booking(
            user_id=user_id,
            room_id=room_id,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            status=PENDING,
            total_price=final,
            discount_code=evaluation.code,
            discount_applied=base - final,
        )

        db.add(booking)
        db.commit()

    db.refresh(booking)

    logger.bind(log_type="booking").info(
        f"Booking Created | Booking={booking.id} | User={user_id} | Room={room_id} "
        f"| {check_in}..{check_out} | Total={booking.total_price} | Discount={booking.discount_code}"
    )

    return booking


# ---------------------------------------------------------------------
# STATUS TRANSITIONS
# ---------------------------------------------------------------------
def _swap_status(db: Session, booking: Booking, target: str):
    """Move booking to `target` only if nobody changed its status since we read it."""
    current = booking.status
    updated = (
        db.query(Booking)
        .filter(Booking.id == booking.id, Booking.status == current)
        .update({Booking.status: target}, synchronize_session=False)
    )
    if updated != 1:
        db.rollback()
        raise InvalidTransitionError("Booking status changed concurrently, reload and retry")
    db.commit()
    db.refresh(booking)
    return current


def admin_set_status(db: Session, booking_id: int, target: str, admin_email: str | None = None) -> Booking:
    if target not in ADMIN_TRANSITIONS:
        raise ValidationError(f"Unknown status '{target}'")

    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError("Booking not found")

    if booking.status == target:
        return booking

    if booking.status in TERMINAL_STATUSES:
        raise InvalidTransitionError(f"A '{booking.status}' booking is final")

    if target not in ADMIN_TRANSITIONS[booking.status]:
        raise InvalidTransitionError(f"Cannot change booking from '{booking.status}' to '{target}'")

    if takes_room(booking.status, target):
        # A confirmed booking does not hold its dates; someone may have taken them
        with keyed_lock(room_lock_name(booking.room_id)):
            ensure_room_free(db, booking)
            previous = _swap_status(db, booking, target)
    else:
        previous = _swap_status(db, booking, target)

    logger.bind(log_type="admin").info(
        f"Booking status | Booking={booking.id} | {previous} -> {target} | Admin={admin_email}"
    )
    return booking


def cancel_by_user(db: Session, booking_id: int, user_id: int) -> Booking:
    booking = db.query(Booking).filter(
        Booking.id == booking_id,
        Booking.user_id == user_id
    ).first()

    if not booking:
        raise NotFoundError("Booking not found")

    if booking.status == CANCELLED:
        return booking

    if booking.status not in USER_CANCELLABLE:
        raise InvalidTransitionError(
            f"A '{booking.status}' booking cannot be cancelled online, please contact the hotel"
        )

    _swap_status(db, booking, CANCELLED)

    logger.bind(log_type="booking").info(f"Booking Cancelled | Booking={booking.id} | User={user_id}")
    return booking

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import availability_fail_open
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.enums import BLOCKING_STATUSES

logger = get_logger()


# ---------------------------------------------------------------------
# OVERLAP CHECK
# ---------------------------------------------------------------------
def find_conflict(db: Session, room_id: int, check_in, check_out, exclude_booking_id=None):
    """First blocking booking overlapping [check_in, check_out), or None."""
    query = db.query(Booking).filter(
        Booking.room_id == room_id,
        Booking.status.in_(BLOCKING_STATUSES),
        Booking.check_in < check_out,
        Booking.check_out > check_in,
    )
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)
    return query.first()


def is_available(db: Session, room_id: int, check_in, check_out, fail_open: bool | None = None) -> bool:
    if check_in is None or check_out is None or check_in >= check_out:
        return False

    try:
        return find_conflict(db, room_id, check_in, check_out) is None
    except SQLAlchemyError as e:
        if fail_open is None:
            fail_open = availability_fail_open()
        logger.error(
            f"Availability lookup failed | Room={room_id} | "
            f"{check_in}..{check_out} | fail_open={fail_open} | {e}"
        )
        db.rollback()
        return fail_open

from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"
    REFUND_DUE = "refund_due"


class PaymentMethod(str, Enum):
    MOMO = "momo"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


# Statuses that hold the room for overlap purposes
BLOCKING_STATUSES = (
    BookingStatus.PENDING.value,
    BookingStatus.PAID.value,
    BookingStatus.CHECKED_IN.value,
)

# Statuses for which the booking counts as paid
PAID_STATUSES = (
    BookingStatus.PAID.value,
    BookingStatus.CHECKED_IN.value,
    BookingStatus.CHECKED_OUT.value,
)

TERMINAL_STATUSES = (
    BookingStatus.CANCELLED.value,
    BookingStatus.CHECKED_OUT.value,
)

from app.core.logging_config import payment_logger


def send_booking_confirmation(booking, payment):
    """
    Confirmation for a freshly settled booking.

    Email transport lives outside this service; the payment log is the
    hand-off point it tails.
    """
    email = booking.user.email if booking.user else "unknown"
    payment_logger(booking.momo_order_id).info(
        f"Booking confirmed | Booking={booking.id} | Room={booking.room_id} "
        f"| User={email} | Amount={payment.amount} | PaidAt={payment.paid_at}"
    )

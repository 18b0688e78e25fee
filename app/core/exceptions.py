class BookingError(Exception):
    """Base class for booking / payment domain errors."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(BookingError):
    status_code = 400


class NotFoundError(BookingError):
    status_code = 404


class RoomUnavailableError(BookingError):
    status_code = 409


class InvalidTransitionError(BookingError):
    status_code = 409


class GatewayError(BookingError):
    """The gateway answered but did not hand back a payUrl, or was unreachable."""

    status_code = 502


class GatewayTimeout(BookingError):
    """No answer in time. The payment outcome is unknown, not failed."""

    status_code = 504


class LockUnavailable(BookingError):
    """Another request holds the room / order lock for too long."""

    status_code = 503

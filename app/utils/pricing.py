import math
from datetime import date, datetime, timedelta

ONE_DAY = timedelta(days=1).total_seconds()


def _as_datetime(value):
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, datetime.min.time())


def count_nights(check_in, check_out) -> int:
    """Nights between two dates, rounded up. Zero or negative ranges count as one night."""
    seconds = (_as_datetime(check_out) - _as_datetime(check_in)).total_seconds()
    nights = math.ceil(seconds / ONE_DAY)
    return nights if nights > 0 else 1


def calculate_base_price(room, check_in, check_out):
    return room.price * count_nights(check_in, check_out)


def to_gateway_amount(amount) -> str:
    """Gateway amounts are whole currency units sent as strings."""
    return str(int(round(amount)))


def parse_price_param(raw):
    """
    Parse user price input such as "250.000", "250,5" or "250000".

    Dots are thousand separators, a comma is the decimal mark.
    Returns None for empty or unparseable input.
    """
    if raw is None:
        return None
    s = "".join(str(raw).split())
    if not s:
        return None
    s = s.replace(".", "").replace(",", ".")
    try:
        n = float(s)
    except ValueError:
        return None
    if math.isnan(n) or math.isinf(n):
        return None
    return n

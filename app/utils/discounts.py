from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.models.discount import Discount


@dataclass(frozen=True)
class DiscountEvaluation:
    valid: bool
    code: str | None = None
    percent: float | None = None
    value: float | None = None


INVALID = DiscountEvaluation(valid=False)


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


def is_valid_at(discount: Discount, at_time: datetime) -> bool:
    # Window bounds are inclusive
    if not discount.active:
        return False
    if discount.start_date is not None and at_time < discount.start_date:
        return False
    if discount.end_date is not None and at_time > discount.end_date:
        return False
    return True


def evaluate_discount(discount: Discount | None, at_time: datetime) -> DiscountEvaluation:
    if discount is None or not is_valid_at(discount, at_time):
        return INVALID
    return DiscountEvaluation(
        valid=True,
        code=discount.code,
        percent=discount.percent,
        value=discount.value,
    )


def evaluate(db: Session, code: str | None, at_time: datetime) -> DiscountEvaluation:
    """Look up a coupon by its uppercased code and check it at `at_time`."""
    normalized = normalize_code(code)
    if not normalized:
        return INVALID

    discount = db.query(Discount).filter(Discount.code == normalized).first()
    return evaluate_discount(discount, at_time)


def apply_discount(price: float, evaluation: DiscountEvaluation) -> float:
    if not evaluation.valid:
        return price
    if evaluation.percent is not None:
        return max(price - price * evaluation.percent / 100, 0)
    if evaluation.value is not None:
        return max(price - evaluation.value, 0)
    return price

from datetime import datetime, timedelta

import pytest

from app.utils.discounts import evaluate, apply_discount, DiscountEvaluation

START = datetime(2030, 1, 1, 0, 0, 0)
END = datetime(2030, 1, 31, 23, 59, 59)
ONE_MS = timedelta(milliseconds=1)


@pytest.fixture
def windowed(make_discount):
    return make_discount(code="WINTER", percent=20, start_date=START, end_date=END)


def test_valid_inside_window(db, windowed):
    result = evaluate(db, "WINTER", datetime(2030, 1, 15))
    assert result.valid
    assert result.percent == 20
    assert result.code == "WINTER"


def test_window_bounds_are_inclusive(db, windowed):
    assert evaluate(db, "WINTER", START).valid
    assert evaluate(db, "WINTER", END).valid


def test_one_millisecond_outside_window_is_invalid(db, windowed):
    assert not evaluate(db, "WINTER", START - ONE_MS).valid
    assert not evaluate(db, "WINTER", END + ONE_MS).valid


def test_code_lookup_is_case_insensitive(db, windowed):
    assert evaluate(db, "  winter ", datetime(2030, 1, 2)).valid


def test_unknown_empty_and_inactive_codes_are_invalid(db, make_discount, now):
    make_discount(code="OFF", percent=50, active=False)

    assert not evaluate(db, "NOPE", now).valid
    assert not evaluate(db, "", now).valid
    assert not evaluate(db, None, now).valid
    assert not evaluate(db, "OFF", now).valid


def test_unbounded_window(db, make_discount, now):
    make_discount(code="ALWAYS", percent=5)
    assert evaluate(db, "ALWAYS", now).valid
    assert evaluate(db, "ALWAYS", datetime(1999, 1, 1)).valid


def test_evaluate_does_not_mutate_discount(db, windowed):
    evaluate(db, "WINTER", END + ONE_MS)
    db.refresh(windowed)
    assert windowed.active is True
    assert windowed.percent == 20


def test_apply_percent_discount():
    assert apply_discount(1500000, DiscountEvaluation(valid=True, percent=10)) == 1350000


def test_apply_flat_discount_clamps_at_zero():
    assert apply_discount(300, DiscountEvaluation(valid=True, value=100)) == 200
    assert apply_discount(300, DiscountEvaluation(valid=True, value=500)) == 0


def test_apply_full_percent_discount_is_zero():
    assert apply_discount(1000, DiscountEvaluation(valid=True, percent=100)) == 0


def test_invalid_evaluation_leaves_price():
    assert apply_discount(1000, DiscountEvaluation(valid=False)) == 1000

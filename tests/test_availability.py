from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.utils.availability import is_available


def d(day):
    return date(2024, 1, day)


@pytest.fixture
def existing(make_booking):
    return make_booking(check_in=d(10), check_out=d(12), status="pending")


def test_overlapping_request_is_blocked(db, room, existing):
    assert not is_available(db, room.id, d(11), d(13))


def test_adjacent_request_is_free(db, room, existing):
    assert is_available(db, room.id, d(12), d(14))
    assert is_available(db, room.id, d(8), d(10))


def test_enclosing_request_is_blocked(db, room, existing):
    assert not is_available(db, room.id, d(1), d(20))


@pytest.mark.parametrize("status", ["pending", "paid", "checked_in"])
def test_blocking_statuses(db, room, make_booking, status):
    make_booking(check_in=d(10), check_out=d(12), status=status)
    assert not is_available(db, room.id, d(10), d(12))


@pytest.mark.parametrize("status", ["cancelled", "checked_out"])
def test_finished_or_cancelled_stays_do_not_block(db, room, make_booking, status):
    make_booking(check_in=d(10), check_out=d(12), status=status)
    assert is_available(db, room.id, d(10), d(12))


def test_other_rooms_do_not_block(db, room, make_room, existing):
    other = make_room(room_number="102")
    assert is_available(db, other.id, d(10), d(12))


def test_empty_or_inverted_range_is_unavailable(db, room):
    assert not is_available(db, room.id, d(10), d(10))
    assert not is_available(db, room.id, d(12), d(10))


def test_lookup_error_fails_closed_by_default(db, room, monkeypatch):
    monkeypatch.delenv("AVAILABILITY_FAIL_OPEN", raising=False)
    with patch("app.utils.availability.find_conflict", side_effect=OperationalError("SELECT", {}, Exception("down"))):
        assert is_available(db, room.id, d(10), d(12)) is False


def test_lookup_error_fails_open_when_configured(db, room, monkeypatch):
    monkeypatch.setenv("AVAILABILITY_FAIL_OPEN", "true")
    with patch("app.utils.availability.find_conflict", side_effect=OperationalError("SELECT", {}, Exception("down"))):
        assert is_available(db, room.id, d(10), d(12)) is True


def test_explicit_fail_mode_overrides_config(db, room, monkeypatch):
    monkeypatch.setenv("AVAILABILITY_FAIL_OPEN", "true")
    with patch("app.utils.availability.find_conflict", side_effect=OperationalError("SELECT", {}, Exception("down"))):
        assert is_available(db, room.id, d(10), d(12), fail_open=False) is False

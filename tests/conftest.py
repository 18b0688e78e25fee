import os
import tempfile

os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="hotel-logs-")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.pop("REDIS_URL", None)

from datetime import date, datetime
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.db.session import Base
from app.core.config import MomoConfig
from app.core.dependencies import get_db, get_momo_client
from app.core.jwt import create_access_token
from app.core.security import hash_password
from app.models.user import User
from app.models.room import Room
from app.models.discount import Discount
from app.models.booking import Booking
from app.utils.momo_client import MomoClient


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def engine(tmp_path):
    """File backed SQLite so several sessions / threads see the same data."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# GATEWAY
# ============================================================================

@pytest.fixture
def momo_config():
    return MomoConfig(
        partner_code="MOMO",
        access_key="F8BBA842ECF85",
        secret_key="test-secret-key",
        endpoint="https://gateway.test/v2/gateway/api/create",
        redirect_url="http://localhost:8000/payment/momo/return",
        ipn_url="http://localhost:8000/payment/momo/notify",
        timeout=5,
    )


@pytest.fixture
def gateway_http():
    """Stands in for `requests`; answers every create call with a payUrl."""
    http = Mock()
    http.post.return_value = Mock(
        status_code=200,
        json=Mock(return_value={"payUrl": "https://gateway.test/pay/abc", "resultCode": 0}),
    )
    return http


@pytest.fixture
def momo_client(momo_config, gateway_http):
    return MomoClient(momo_config, http=gateway_http)


# ============================================================================
# API CLIENT
# ============================================================================

@pytest.fixture
def client(session_factory, momo_client):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_momo_client] = lambda: momo_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ============================================================================
# DATA
# ============================================================================

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role="user", email=None, blocked=False):
        counter["n"] += 1
        user = User(
            name=f"Guest {counter['n']}",
            email=email or f"guest{counter['n']}@example.com",
            password_hash=hash_password("secret123"),
            role=role,
            is_blocked=blocked,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role="admin", email="admin@example.com")


def auth_headers(user):
    token = create_access_token({"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def make_room(db):
    def _make(room_number="101", type="Deluxe", price=500000.0, description="Sea view"):
        room = Room(room_number=room_number, type=type, price=price, description=description)
        db.add(room)
        db.commit()
        db.refresh(room)
        return room

    return _make


@pytest.fixture
def room(make_room):
    return make_room()


@pytest.fixture
def make_discount(db):
    def _make(code="SUMMER10", percent=10, value=None, start_date=None, end_date=None, active=True):
        discount = Discount(
            code=code,
            percent=percent,
            value=value,
            start_date=start_date,
            end_date=end_date,
            active=active,
        )
        db.add(discount)
        db.commit()
        db.refresh(discount)
        return discount

    return _make


@pytest.fixture
def make_booking(db, user, room):
    def _make(check_in=date(2030, 1, 10), check_out=date(2030, 1, 12), status="pending",
              room_id=None, user_id=None, order_id=None, total_price=1000000.0):
        booking = Booking(
            user_id=user_id or user.id,
            room_id=room_id or room.id,
            check_in=check_in,
            check_out=check_out,
            guests=1,
            status=status,
            total_price=total_price,
            momo_order_id=order_id,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def now():
    return datetime(2030, 1, 1, 12, 0, 0)

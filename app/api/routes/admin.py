from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, require_admin
from app.core.exceptions import BookingError
from app.core.logging_config import get_logger
from app.core.redis import delete_cache_prefix
from app.models.booking import Booking
from app.models.discount import Discount
from app.models.payment import Payment
from app.models.room import Room
from app.models.user import User
from app.models.enums import PaymentStatus
from app.schemas.booking import BookingOut, BookingStatusUpdate
from app.schemas.discount import DiscountCreate, DiscountOut
from app.schemas.room import RoomCreate, RoomOut
from app.schemas.user import UserOut
from app.services import bookings as booking_service
from app.api.routes.rooms import SEARCH_CACHE_PREFIX

router = APIRouter(prefix="/admin", tags=["Admin"])
logger = get_logger()


# ==================================================
# DASHBOARD
# ==================================================
@router.get("/stats")
def admin_stats(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    today = date.today()

    revenue = db.query(func.sum(Payment.amount)).filter(
        Payment.status == PaymentStatus.PAID.value
    ).scalar()

    return {
        "total_rooms": db.query(Room).count(),
        "total_users": db.query(User).count(),
        "total_bookings": db.query(Booking).count(),
        "in_house_today": db.query(Booking).filter(
            Booking.is_paid,
            Booking.check_in <= today,
            Booking.check_out > today,
        ).count(),
        "total_revenue": float(revenue or 0),
    }


# ==================================================
# BOOKINGS
# ==================================================
@router.get("/bookings", response_model=list[BookingOut])
def list_bookings(
    status: Optional[str] = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Booking)
    if status:
        query = query.filter(Booking.status == status)
    return query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()


@router.post("/bookings/{booking_id}/status", response_model=BookingOut)
def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        return booking_service.admin_set_status(db, booking_id, data.status, admin.email)
    except BookingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)


# ==================================================
# ROOMS
# ==================================================
@router.post("/rooms", response_model=RoomOut, status_code=201)
def create_room(data: RoomCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    room = Room(**data.model_dump())

    db.add(room)
    db.commit()
    db.refresh(room)

    delete_cache_prefix(SEARCH_CACHE_PREFIX)
    logger.bind(log_type="admin").info(f"Room created | Room={room.room_number} | Admin={admin.email}")
    return room


# ==================================================
# DISCOUNTS
# ==================================================
@router.get("/discounts", response_model=list[DiscountOut])
def list_discounts(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return db.query(Discount).order_by(Discount.id.desc()).all()


@router.post("/discounts", response_model=DiscountOut, status_code=201)
def create_discount(data: DiscountCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    if db.query(Discount).filter(Discount.code == data.code).first():
        raise HTTPException(status_code=400, detail="Discount code already exists")

    discount = Discount(**data.model_dump())

    db.add(discount)
    db.commit()
    db.refresh(discount)

    logger.bind(log_type="admin").info(f"Discount created | Code={discount.code} | Admin={admin.email}")
    return discount


# ==================================================
# USERS
# ==================================================
@router.get("/users", response_model=list[UserOut])
def get_all_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return db.query(User).order_by(User.id).all()


@router.post("/users/{user_id}/toggle-block", response_model=UserOut)
def toggle_block(user_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot block yourself")

    user.is_blocked = not user.is_blocked
    db.commit()
    db.refresh(user)

    logger.bind(log_type="admin").info(f"User block toggled | User={user.email} | Blocked={user.is_blocked}")
    return user

import re
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from app.core.dependencies import get_db
from app.core.redis import get_cache, set_cache
from app.models.room import Room
from app.schemas.room import RoomOut, RoomSearchOut
from app.utils.availability import is_available
from app.utils.pricing import parse_price_param

router = APIRouter(prefix="/rooms", tags=["Rooms"])

SEARCH_CACHE_PREFIX = "rooms:search:"

SORTS = {
    "priceAsc": Room.price.asc(),
    "priceDesc": Room.price.desc(),
    "newest": Room.created_at.desc(),
}


def _normalize_image(image):
    if image and not image.startswith(("/", "http://", "https://")):
        return "/" + image
    return image


def _search_catalogue(db: Session, q: str, type_: str, min_price, max_price, sort: str):
    """Rooms matching the text / type / price filters, as plain dicts."""
    cache_key = f"{SEARCH_CACHE_PREFIX}{q}|{type_}|{min_price}|{max_price}|{sort}"
    cached = get_cache(cache_key)
    if cached is not None:
        return cached

    query = db.query(Room)

    if q:
        terms = [t for t in re.split(r"\s+", q) if t]
        clauses = []
        for term in terms:
            pattern = f"%{term.lower()}%"
            clauses.extend([
                func.lower(Room.type).like(pattern),
                func.lower(Room.room_number).like(pattern),
                func.lower(Room.description).like(pattern),
            ])
        query = query.filter(or_(*clauses))

    if type_:
        query = query.filter(func.lower(Room.type) == type_.lower())

    if min_price is not None:
        query = query.filter(Room.price >= min_price)
    if max_price is not None:
        query = query.filter(Room.price <= max_price)

    if sort in SORTS:
        query = query.order_by(SORTS[sort], Room.id)
    else:
        query = query.order_by(Room.id)

    rooms = []
    for r in query.all():
        data = RoomOut.model_validate(r).model_dump()
        data["image"] = _normalize_image(data["image"])
        rooms.append(data)

    set_cache(cache_key, rooms, ttl=60)
    return rooms


# =====================================================================
# SEARCH
# =====================================================================
@router.get("/search", response_model=list[RoomSearchOut])
def search_rooms(
    q: str = "",
    type: str = "",
    min: Optional[str] = None,
    max: Optional[str] = None,
    check_in: Optional[date] = None,
    check_out: Optional[date] = None,
    sort: str = "",
    db: Session = Depends(get_db),
):
    q = q.strip()
    type_ = type.strip()
    min_price = parse_price_param(min)
    max_price = parse_price_param(max)

    has_query = bool(q or type_ or min_price is not None or max_price is not None or check_in or check_out)
    if not has_query:
        return []

    rooms = _search_catalogue(db, q, type_, min_price, max_price, sort.strip())

    # Availability is annotated per request, never cached
    if check_in and check_out:
        for r in rooms:
            r["is_available_for_range"] = is_available(db, r["id"], check_in, check_out)

    return rooms


# =====================================================================
# DETAIL
# =====================================================================
@router.get("/{room_id}", response_model=RoomOut)
def get_room(room_id: int, db: Session = Depends(get_db)):
    room = db.query(Room).filter(Room.id == room_id).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


# =====================================================================
# AVAILABILITY
# =====================================================================
@router.get("/{room_id}/availability")
def room_availability(
    room_id: int,
    check_in: date = Query(...),
    check_out: date = Query(...),
    db: Session = Depends(get_db),
):
    if not db.query(Room.id).filter(Room.id == room_id).first():
        raise HTTPException(status_code=404, detail="Room not found")

    return {
        "room_id": room_id,
        "check_in": check_in,
        "check_out": check_out,
        "available": is_available(db, room_id, check_in, check_out),
    }

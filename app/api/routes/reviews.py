from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, get_current_user
from app.core.logging_config import get_logger
from app.models.review import Review
from app.models.room import Room
from app.models.user import User
from app.schemas.review import ReviewCreate, ReviewOut, RoomReviewsOut

router = APIRouter(prefix="/reviews", tags=["Reviews"])
logger = get_logger()


def _get_room(db: Session, room_id: int) -> Room:
    room = db.query(Room).filter(Room.id == room_id).first()
    if not room:
        raise HTTPException(status_code=404, detail="Room not found")
    return room


def _room_name(room: Room) -> str:
    if room.type:
        return f"{room.type} - Room {room.room_number}"
    return f"Room {room.room_number}"


# =====================================================================
# LIST (public)
# =====================================================================
@router.get("/{room_id}", response_model=RoomReviewsOut)
def room_reviews(room_id: int, db: Session = Depends(get_db)):
    room = _get_room(db, room_id)

    reviews = (
        db.query(Review)
        .filter(Review.room_id == room.id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )

    average = None
    if reviews:
        average = round(sum(r.rating for r in reviews) / len(reviews), 1)

    return RoomReviewsOut(
        room_id=room.id,
        room_name=_room_name(room),
        count=len(reviews),
        average_rating=average,
        reviews=[ReviewOut.model_validate(r) for r in reviews],
    )


# =====================================================================
# CREATE (logged in users)
# =====================================================================
@router.post("/{room_id}", response_model=ReviewOut, status_code=201)
def create_review(
    room_id: int,
    data: ReviewCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    room = _get_room(db, room_id)

    review = Review(
        room_id=room.id,
        user_id=user.id,
        rating=data.rating,
        comment=data.comment.strip(),
    )

    db.add(review)
    db.commit()
    db.refresh(review)

    logger.info(f"Review added | Room={room.room_number} | User={user.email} | Rating={review.rating}")
    return review

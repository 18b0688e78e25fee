from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(default="", max_length=2000)


class ReviewOut(BaseModel):
    id: int
    room_id: int
    user_id: int
    user_name: Optional[str] = None
    rating: int
    comment: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RoomReviewsOut(BaseModel):
    room_id: int
    room_name: str
    count: int
    average_rating: Optional[float] = None
    reviews: list[ReviewOut] = []

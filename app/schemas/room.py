from pydantic import BaseModel, Field
from typing import Optional


class RoomBase(BaseModel):
    room_number: str
    type: str
    price: float = Field(ge=0)
    description: str = ""
    image: Optional[str] = None


class RoomCreate(RoomBase):
    pass


class RoomOut(RoomBase):
    id: int
    is_booked: bool

    model_config = {
        "from_attributes": True
    }


class RoomSearchOut(RoomOut):
    # None when no date range was searched
    is_available_for_range: Optional[bool] = None

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class DiscountCreate(BaseModel):
    code: str = Field(min_length=1)
    percent: Optional[float] = Field(default=None, ge=1, le=100)
    value: Optional[float] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    active: bool = True

    @field_validator("code")
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def check_amount_and_window(self):
        if (self.percent is None) == (self.value is None):
            raise ValueError("Provide either percent or value")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class DiscountOut(BaseModel):
    id: int
    code: str
    percent: Optional[float]
    value: Optional[float]
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    active: bool

    model_config = {"from_attributes": True}


class DiscountCheck(BaseModel):
    code: str


class DiscountCheckOut(BaseModel):
    valid: bool
    code: Optional[str] = None
    percent: Optional[float] = None
    value: Optional[float] = None
    message: Optional[str] = None

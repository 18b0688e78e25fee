from pydantic import BaseModel, EmailStr, Field

class UserBase(BaseModel):
    name: str
    email: EmailStr

    class Config:
        from_attributes = True


class UserCreate(UserBase):
    password: str = Field(min_length=6)
    phone: str = ""


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(UserBase):
    id: int
    role: str
    is_blocked: bool

# academy_api/schemas/user.py
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from academy_api.models.user import UserRole


class UserBase(BaseModel):
    username: str = Field(..., max_length=50)
    email: EmailStr
    name: Optional[str] = Field(None, max_length=100)
    document_number: Optional[str] = Field(None, max_length=20)


class UserCreate(UserBase):
    password: str = Field(..., min_length=4)
    role: UserRole = UserRole.STUDENT
    academy_id: Optional[int] = None


class UserRead(UserBase):
    id: int
    role: str
    academy_id: Optional[int] = None
    is_active: bool

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str
    user_info: UserRead

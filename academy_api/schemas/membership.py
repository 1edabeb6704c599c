# academy_api/schemas/membership.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MembershipCreate(BaseModel):
    user_id: int
    academy_id: int
    name: str = Field(..., max_length=100)
    credits_remaining: Optional[int] = Field(None, ge=0)
    valid_until: Optional[datetime] = None


class MembershipRead(MembershipCreate):
    id: int
    is_active: bool

    class Config:
        from_attributes = True

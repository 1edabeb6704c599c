# academy_api/schemas/academy.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AcademyBase(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = True


class AcademyCreate(AcademyBase):
    pass


class AcademyRead(AcademyBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

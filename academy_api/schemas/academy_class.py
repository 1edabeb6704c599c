# -*- coding: utf-8 -*-
"""
Schemas Pydantic para a entidade Class (turma).
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ClassBase(BaseModel):
    name: str = Field(..., max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    teacher_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    capacity: int = Field(..., ge=0)
    is_active: Optional[bool] = True


class ClassCreate(ClassBase):
    academy_id: int


# enrolled_count is deliberately absent: only the capacity ledger moves it
class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=255)
    teacher_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    capacity: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class ClassRead(ClassBase):
    id: int
    academy_id: int
    currency: str
    enrolled_count: int
    available_seats: int

    class Config:
        from_attributes = True

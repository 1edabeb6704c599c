# academy_api/schemas/inscription.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from academy_api.models.inscription import InscriptionStatus, PaymentType


class InscriptionCreate(BaseModel):
    student_id: int
    class_id: int
    payment_type: PaymentType
    amount_paid: Optional[float] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    user_membership_id: Optional[int] = None
    admin_notes: Optional[str] = None


class InscriptionUpdate(BaseModel):
    status: Optional[InscriptionStatus] = None
    admin_notes: Optional[str] = None


class InscriptionCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class InscriptionRead(BaseModel):
    id: int
    student_id: int
    class_id: int
    academy_id: int
    processed_by_admin_id: int
    reservation_request_id: Optional[int] = None
    status: str
    requested_payment_type: str
    payment_type: str
    effective_payment_type: str
    payment_type_reclassified: bool
    payment_id: Optional[int] = None
    user_membership_id: Optional[int] = None
    amount_paid: Optional[float] = None
    currency: Optional[str] = None
    admin_notes: Optional[str] = None
    inscription_date: Optional[datetime] = None

    class Config:
        from_attributes = True

# academy_api/schemas/reservation.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from academy_api.models.inscription import PaymentType
from academy_api.models.reservation_request import ReservationStatus


class ReservationCreate(BaseModel):
    class_id: int
    student_notes: Optional[str] = Field(None, max_length=500)


class PaymentDetails(BaseModel):
    """How the admin covers the cost of the seat when approving a request."""

    payment_type: PaymentType
    amount_paid: Optional[float] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    user_membership_id: Optional[int] = None
    admin_notes: Optional[str] = None


class ReservationProcess(BaseModel):
    decision: ReservationStatus
    admin_notes: Optional[str] = Field(None, max_length=500)
    payment_details: Optional[PaymentDetails] = None


class ReservationRead(BaseModel):
    id: int
    student_id: int
    class_id: int
    academy_id: int
    status: str
    request_date: Optional[datetime] = None
    student_notes: Optional[str] = None
    admin_notes: Optional[str] = None
    processed_by_admin_id: Optional[int] = None
    processed_at: Optional[datetime] = None
    inscription_id: Optional[int] = None

    class Config:
        from_attributes = True

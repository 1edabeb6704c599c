# academy_api/schemas/payment.py
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class PaymentRead(BaseModel):
    id: int
    user_id: int
    item_id: int
    item_type: str
    academy_id: int
    description: str
    amount: float
    currency: str
    status: str
    gateway_payment_intent_id: Optional[str] = None
    gateway_charge_id: Optional[str] = None
    payment_method: Optional[str] = None
    related_inscription_id: Optional[int] = None
    payment_metadata: Optional[Dict[str, Any]] = None
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PixCharge(BaseModel):
    payment_id: int
    gateway_payment_id: Optional[str] = None
    status: Optional[str] = None
    qr_code: Optional[str] = None  # texto "copia e cola"
    qr_code_base64: Optional[str] = None

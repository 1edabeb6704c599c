# academy_api/models/payment.py
import enum
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.ext.mutable import MutableDict

from academy_api.database import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentItemType(str, enum.Enum):
    CLASS_INSCRIPTION = "class_inscription"  # item_id is the class
    INSCRIPTION = "inscription"  # item_id is the inscription itself


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    item_id = Column(Integer, nullable=False, index=True)
    item_type = Column(String(30), nullable=False, default=PaymentItemType.CLASS_INSCRIPTION.value)
    academy_id = Column(Integer, ForeignKey("academies.id"), nullable=False, index=True)
    description = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    gateway_payment_intent_id = Column(String(100), unique=True, nullable=True)
    gateway_charge_id = Column(String(100), unique=True, nullable=True)
    payment_method = Column(String(50), nullable=True)
    # Explicit back-link to the inscription this payment settles
    related_inscription_id = Column(Integer, nullable=True, index=True)
    processed_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    # "metadata" is reserved by the declarative API
    payment_metadata = Column("metadata", MutableDict.as_mutable(JSON), nullable=True, default=dict)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def add_metadata(self, **values):
        merged = dict(self.payment_metadata or {})
        merged.update(values)
        self.payment_metadata = merged

# -*- coding: utf-8 -*-
"""
SQLAlchemy model for Inscription, the authoritative enrollment record.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship

from academy_api.database import Base


class InscriptionStatus(str, enum.Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    ATTENDED = "attended"
    NO_SHOW = "no_show"
    CANCELLED_BY_ADMIN = "cancelled_by_admin"


class PaymentType(str, enum.Enum):
    PAID_PER_CLASS = "paid_per_class"
    MEMBERSHIP = "membership"
    COMPLIMENTARY = "complimentary"


# A student may hold only one of these per class
ACTIVE_STATUSES = (
    InscriptionStatus.CONFIRMED,
    InscriptionStatus.PENDING_PAYMENT,
    InscriptionStatus.ATTENDED,
)

# Everything that has not been cancelled still occupies a seat
SEAT_HOLDING_STATUSES = (
    InscriptionStatus.PENDING_PAYMENT,
    InscriptionStatus.CONFIRMED,
    InscriptionStatus.ATTENDED,
    InscriptionStatus.NO_SHOW,
)

_ACTIVE_ONLY = text("status IN ('confirmed', 'pending_payment', 'attended')")


class Inscription(Base):
    __tablename__ = "inscriptions"
    __table_args__ = (
        Index(
            "uq_inscriptions_active_student_class",
            "student_id",
            "class_id",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    academy_id = Column(Integer, ForeignKey("academies.id"), nullable=False, index=True)
    processed_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reservation_request_id = Column(
        Integer, ForeignKey("reservation_requests.id"), nullable=True, unique=True
    )
    status = Column(String(30), nullable=False, default=InscriptionStatus.CONFIRMED.value)
    payment_type = Column(String(30), nullable=False)
    requested_payment_type = Column(String(30), nullable=False)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True)
    user_membership_id = Column(Integer, ForeignKey("user_memberships.id"), nullable=True)
    amount_paid = Column(Float, nullable=True)
    currency = Column(String(3), nullable=True)
    admin_notes = Column(Text, nullable=True)
    inscription_date = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    student = relationship("User", foreign_keys=[student_id])
    academy_class = relationship("AcademyClass", back_populates="inscriptions")
    payment = relationship("Payment", foreign_keys=[payment_id])

    @property
    def effective_payment_type(self):
        return self.payment_type

    @property
    def payment_type_reclassified(self):
        return self.payment_type != self.requested_payment_type

    def append_note(self, note):
        self.admin_notes = f"{self.admin_notes or ''}\n{note}".strip()

# -*- coding: utf-8 -*-
"""
SQLAlchemy model for a class (turma): a scheduled offering with finite seats.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from academy_api import config
from academy_api.database import Base


class AcademyClass(Base):
    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint("capacity >= 0", name="ck_classes_capacity_non_negative"),
        CheckConstraint("enrolled_count >= 0", name="ck_classes_enrolled_non_negative"),
        CheckConstraint("enrolled_count <= capacity", name="ck_classes_enrolled_le_capacity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    academy_id = Column(Integer, ForeignKey("academies.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    teacher_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    price = Column(Float, nullable=True)  # None ou 0 -> aula gratuita / coberta por plano
    currency = Column(String(3), nullable=False, default=config.DEFAULT_CURRENCY)
    capacity = Column(Integer, nullable=False, default=0)
    # Only the capacity ledger writes this column
    enrolled_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    academy = relationship("Academy", back_populates="classes")
    teacher = relationship("User")
    inscriptions = relationship("Inscription", back_populates="academy_class")

    @property
    def available_seats(self):
        return max((self.capacity or 0) - (self.enrolled_count or 0), 0)

    @property
    def is_paid(self):
        return bool(self.price and self.price > 0)

# academy_api/models/membership.py
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from academy_api.database import Base


class UserMembership(Base):
    """Class credits a student bought from an academy (plano)."""

    __tablename__ = "user_memberships"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    academy_id = Column(Integer, ForeignKey("academies.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    credits_remaining = Column(Integer, nullable=True)  # None = ilimitado
    valid_until = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="memberships")

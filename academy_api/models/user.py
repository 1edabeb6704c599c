# academy_api/models/user.py
import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from academy_api.database import Base


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ACADEMY_ADMIN = "academy_admin"
    STUDENT = "student"
    PENDING = "pending"  # conta criada, aguardando aprovação


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(100))
    document_number = Column(String(20), nullable=True)  # CPF, exigido pelo PIX
    hashed_password = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.PENDING.value)
    academy_id = Column(Integer, ForeignKey("academies.id"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    academy = relationship("Academy", back_populates="users")
    memberships = relationship("UserMembership", back_populates="user")

# academy_api/models/reservation_request.py
import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from academy_api.database import Base


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED_BY_USER = "cancelled_by_user"


# A request in one of these never changes again
TERMINAL_STATUSES = (
    ReservationStatus.APPROVED.value,
    ReservationStatus.REJECTED.value,
    ReservationStatus.CANCELLED_BY_USER.value,
)

_PENDING_ONLY = text("status = 'pending'")


class ReservationRequest(Base):
    __tablename__ = "reservation_requests"
    __table_args__ = (
        # No more than one pending request per student and class
        Index(
            "uq_reservation_requests_pending_student_class",
            "student_id",
            "class_id",
            unique=True,
            sqlite_where=_PENDING_ONLY,
            postgresql_where=_PENDING_ONLY,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    academy_id = Column(Integer, ForeignKey("academies.id"), nullable=False, index=True)
    status = Column(String(30), nullable=False, default=ReservationStatus.PENDING.value)
    request_date = Column(DateTime, default=datetime.utcnow)
    student_notes = Column(String(500), nullable=True)
    admin_notes = Column(String(500), nullable=True)
    processed_by_admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    processed_at = Column(DateTime, nullable=True)
    # Read-only link; the inscription owns the enrollment
    inscription_id = Column(Integer, nullable=True, index=True)

    student = relationship("User", foreign_keys=[student_id])
    academy_class = relationship("AcademyClass")

    @property
    def is_pending(self):
        return self.status == ReservationStatus.PENDING.value

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

# Importing every model here registers the tables on Base.metadata
from academy_api.models.academy import Academy
from academy_api.models.user import User, UserRole
from academy_api.models.academy_class import AcademyClass
from academy_api.models.membership import UserMembership
from academy_api.models.reservation_request import ReservationRequest, ReservationStatus
from academy_api.models.inscription import (
    Inscription,
    InscriptionStatus,
    PaymentType,
    ACTIVE_STATUSES,
    SEAT_HOLDING_STATUSES,
)
from academy_api.models.payment import Payment, PaymentStatus, PaymentItemType

__all__ = [
    "Academy",
    "User",
    "UserRole",
    "AcademyClass",
    "UserMembership",
    "ReservationRequest",
    "ReservationStatus",
    "Inscription",
    "InscriptionStatus",
    "PaymentType",
    "ACTIVE_STATUSES",
    "SEAT_HOLDING_STATUSES",
    "Payment",
    "PaymentStatus",
    "PaymentItemType",
]

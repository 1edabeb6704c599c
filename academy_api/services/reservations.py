# -*- coding: utf-8 -*-
"""
Reservation requests: a student asks for a seat, an admin decides.

A request is PENDING until it is approved, rejected or withdrawn by the
student, and it never changes again after that. Approval creates the
inscription (and takes the seat) before the request itself is updated, so a
full class leaves the request PENDING for the admin to reject or retry.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from academy_api.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError, validate_id
from academy_api.models.reservation_request import ReservationRequest, ReservationStatus
from academy_api.services import inscriptions
from academy_api.services.classes import get_class
from academy_api.services.users import get_user

logger = logging.getLogger(__name__)

DECISIONS = (ReservationStatus.APPROVED, ReservationStatus.REJECTED)


def get_reservation(db, request_id):
    request_id = validate_id(request_id, "reservation request id")
    reservation = db.query(ReservationRequest).filter(ReservationRequest.id == request_id).first()
    if reservation is None:
        raise NotFoundError(f"Reservation request {request_id} not found.", code="reservation_not_found")
    return reservation


def list_reservations(db, academy_id=None, class_id=None, student_id=None, status=None, skip=0, limit=100):
    query = db.query(ReservationRequest)
    if academy_id is not None:
        query = query.filter(ReservationRequest.academy_id == academy_id)
    if class_id is not None:
        query = query.filter(ReservationRequest.class_id == class_id)
    if student_id is not None:
        query = query.filter(ReservationRequest.student_id == student_id)
    if status is not None:
        query = query.filter(ReservationRequest.status == status)
    return (
        query.order_by(ReservationRequest.request_date.desc(), ReservationRequest.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


def list_student_reservations(db, student_id, status=None, skip=0, limit=100):
    return list_reservations(db, student_id=student_id, status=status, skip=skip, limit=limit)


def create_reservation(db, student_id, class_id, notes=None):
    student = get_user(db, student_id, "student")
    academy_class = get_class(db, class_id)
    if not academy_class.is_active:
        raise ValidationError(f'Class "{academy_class.name}" is not active.', code="class_inactive")

    pending = (
        db.query(ReservationRequest)
        .filter(
            ReservationRequest.student_id == student.id,
            ReservationRequest.class_id == academy_class.id,
            ReservationRequest.status == ReservationStatus.PENDING.value,
        )
        .first()
    )
    if pending:
        raise ConflictError(
            "You already have a pending request for this class.", code=ConflictError.DUPLICATE_REQUEST
        )

    if inscriptions.find_active_by_student_and_class(db, student.id, academy_class.id):
        raise ConflictError("You are already enrolled in this class.", code=ConflictError.ALREADY_ENROLLED)

    reservation = ReservationRequest(
        student_id=student.id,
        class_id=academy_class.id,
        academy_id=academy_class.academy_id,
        status=ReservationStatus.PENDING.value,
        student_notes=notes,
    )
    db.add(reservation)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "You already have a pending request for this class.", code=ConflictError.DUPLICATE_REQUEST
        ) from exc

    db.refresh(reservation)
    logger.info("Reservation request %s created: student %s, class %s.", reservation.id, student.id, academy_class.id)
    return reservation


def process_reservation(db, request_id, admin_id, decision, admin_notes=None, payment_details=None):
    """
    Approve or reject a pending request. Approval enrolls the student and
    fails with the inscription's error (class full, already enrolled...)
    without touching the request.
    """
    reservation = get_reservation(db, request_id)
    admin = get_user(db, admin_id, "admin")

    try:
        decision = ReservationStatus(decision)
    except ValueError:
        raise ValidationError(f"Unknown decision: {decision!r}", code="invalid_decision")
    if decision not in DECISIONS:
        raise ValidationError(
            f"Decision must be approved or rejected, not {decision.value}.", code="invalid_decision"
        )

    if reservation.is_terminal:
        raise ConflictError(
            f"Request has already been processed (current status: {reservation.status}).",
            code=ConflictError.INVALID_STATE,
        )

    if decision == ReservationStatus.APPROVED:
        inscription = inscriptions.create_from_reservation(db, reservation, admin.id, payment_details)
        reservation.inscription_id = inscription.id

    reservation.status = decision.value
    reservation.admin_notes = admin_notes
    reservation.processed_by_admin_id = admin.id
    reservation.processed_at = datetime.utcnow()
    db.commit()
    db.refresh(reservation)

    logger.info("Reservation request %s %s by admin %s.", reservation.id, decision.value, admin.id)
    return reservation


def cancel_reservation(db, request_id, student_id):
    """Withdraw a pending request. Only the student who made it may do so."""
    reservation = get_reservation(db, request_id)
    student_id = validate_id(student_id, "student id")

    if reservation.student_id != student_id:
        raise PermissionDeniedError("You cannot cancel a request that is not yours.", code="not_owner")
    if reservation.is_terminal:
        raise ConflictError(
            f"Only pending requests can be cancelled (current status: {reservation.status}).",
            code=ConflictError.INVALID_STATE,
        )

    reservation.status = ReservationStatus.CANCELLED_BY_USER.value
    db.commit()
    db.refresh(reservation)

    logger.info("Reservation request %s cancelled by student %s.", reservation.id, student_id)
    return reservation

# -*- coding: utf-8 -*-
"""
Inscriptions: the authoritative "student holds a seat in a class" record.

Every inscription is created through ``_create_inscription``, which takes the
seat from the capacity ledger first and gives it back if anything after that
fails. Cancelling an inscription is the only way to give a seat back outside
that routine.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from academy_api.exceptions import ConflictError, NotFoundError, ValidationError, validate_id
from academy_api.models.inscription import ACTIVE_STATUSES, Inscription, InscriptionStatus, PaymentType
from academy_api.models.payment import Payment, PaymentStatus
from academy_api.services import capacity, memberships, payments
from academy_api.services.classes import get_class
from academy_api.services.users import get_user

logger = logging.getLogger(__name__)

ACTIVE_STATUS_VALUES = [s.value for s in ACTIVE_STATUSES]

# Statuses an admin may set by hand after the fact
ATTENDANCE_STATUSES = (InscriptionStatus.ATTENDED, InscriptionStatus.NO_SHOW)


def _parse_payment_type(value):
    try:
        return PaymentType(value)
    except ValueError:
        raise ValidationError(f"Unsupported payment type: {value!r}", code="unsupported_payment_type")


def get_inscription(db, inscription_id):
    inscription_id = validate_id(inscription_id, "inscription id")
    inscription = db.query(Inscription).filter(Inscription.id == inscription_id).first()
    if inscription is None:
        raise NotFoundError(f"Inscription {inscription_id} not found.", code="inscription_not_found")
    return inscription


def find_active_by_student_and_class(db, student_id, class_id):
    return (
        db.query(Inscription)
        .filter(
            Inscription.student_id == student_id,
            Inscription.class_id == class_id,
            Inscription.status.in_(ACTIVE_STATUS_VALUES),
        )
        .first()
    )


def list_inscriptions(
    db, academy_id=None, class_id=None, student_id=None, status=None, payment_type=None, skip=0, limit=100
):
    query = db.query(Inscription)
    if academy_id is not None:
        query = query.filter(Inscription.academy_id == academy_id)
    if class_id is not None:
        query = query.filter(Inscription.class_id == class_id)
    if student_id is not None:
        query = query.filter(Inscription.student_id == student_id)
    if status is not None:
        query = query.filter(Inscription.status == status)
    if payment_type is not None:
        query = query.filter(Inscription.payment_type == payment_type)
    return query.order_by(Inscription.created_at.desc(), Inscription.id.desc()).offset(skip).limit(limit).all()


def list_student_inscriptions(db, student_id, status=None, skip=0, limit=100):
    return list_inscriptions(db, student_id=student_id, status=status, skip=skip, limit=limit)


def _create_inscription(
    db,
    student_id,
    class_id,
    admin_id,
    payment_type,
    amount_paid=None,
    currency=None,
    membership_id=None,
    reservation_request_id=None,
    admin_notes=None,
):
    student_id = validate_id(student_id, "student id")
    class_id = validate_id(class_id, "class id")
    admin_id = validate_id(admin_id, "admin id")
    requested_type = _parse_payment_type(payment_type)
    if requested_type == PaymentType.MEMBERSHIP:
        if membership_id is None:
            raise ValidationError(
                "A membership id is required for membership inscriptions.", code="membership_required"
            )
        membership_id = validate_id(membership_id, "membership id")
    elif requested_type == PaymentType.PAID_PER_CLASS and (amount_paid is not None or currency):
        # Settled offline by the admin: both amount and currency, nothing defaulted
        if amount_paid is None or amount_paid <= 0 or not currency:
            raise ValidationError(
                "A manual settlement needs a positive amount_paid and a currency.", code="invalid_manual_payment"
            )

    get_user(db, student_id, "student")
    get_user(db, admin_id, "admin")

    academy_class = get_class(db, class_id)
    if not academy_class.is_active:
        raise ValidationError(f'Class "{academy_class.name}" is not active.', code="class_inactive")

    if find_active_by_student_and_class(db, student_id, class_id):
        raise ConflictError(
            f"Student {student_id} is already enrolled in class {class_id}.",
            code=ConflictError.ALREADY_ENROLLED,
        )

    if not capacity.try_reserve_seat(db, class_id):
        raise ConflictError(
            f'No capacity available in class "{academy_class.name}".', code=ConflictError.CLASS_FULL
        )

    # From here on the seat is ours: any failure must give it back
    try:
        inscription = Inscription(
            student_id=student_id,
            class_id=class_id,
            academy_id=academy_class.academy_id,
            processed_by_admin_id=admin_id,
            reservation_request_id=reservation_request_id,
            status=InscriptionStatus.CONFIRMED.value,
            payment_type=requested_type.value,
            requested_payment_type=requested_type.value,
            admin_notes=admin_notes,
        )
        db.add(inscription)

        if requested_type == PaymentType.PAID_PER_CLASS:
            if not academy_class.is_paid:
                logger.warning(
                    "Class %s has no price; inscription requested as %s is recorded as complimentary.",
                    class_id, requested_type.value,
                )
                inscription.payment_type = PaymentType.COMPLIMENTARY.value
            elif amount_paid is not None:
                inscription.amount_paid = amount_paid
                inscription.currency = currency.upper()
            else:
                inscription.status = InscriptionStatus.PENDING_PAYMENT.value
                db.flush()
                payment = payments.create_pending_payment(
                    db,
                    user_id=student_id,
                    item_id=class_id,
                    academy_id=academy_class.academy_id,
                    amount=academy_class.price,
                    currency=academy_class.currency,
                    description=f"Inscription to class: {academy_class.name}",
                    related_inscription_id=inscription.id,
                    processed_by_admin_id=admin_id,
                    commit=False,
                )
                inscription.payment_id = payment.id

        elif requested_type == PaymentType.MEMBERSHIP:
            memberships.consume_class_credit(db, student_id, membership_id, academy_class)
            inscription.user_membership_id = membership_id

        db.commit()
    except IntegrityError as exc:
        db.rollback()
        capacity.release_seat(db, class_id)
        logger.warning(
            "Inscription of student %s in class %s hit a uniqueness constraint; seat released.",
            student_id, class_id,
        )
        raise ConflictError(
            f"Student {student_id} is already enrolled in class {class_id}.",
            code=ConflictError.ALREADY_ENROLLED,
        ) from exc
    except Exception:
        db.rollback()
        capacity.release_seat(db, class_id)
        logger.error(
            "Inscription of student %s in class %s failed after taking a seat; seat released.",
            student_id, class_id,
        )
        raise

    db.refresh(inscription)
    logger.info(
        "Inscription %s created: student %s, class %s, %s, status %s.",
        inscription.id, student_id, class_id, inscription.payment_type, inscription.status,
    )
    return inscription


def create_direct_inscription(
    db,
    admin_id,
    student_id,
    class_id,
    payment_type,
    amount=None,
    currency=None,
    membership_id=None,
    admin_notes=None,
):
    """Enroll a student without a prior reservation request."""
    logger.info("Admin %s enrolling student %s directly in class %s.", admin_id, student_id, class_id)
    return _create_inscription(
        db,
        student_id=student_id,
        class_id=class_id,
        admin_id=admin_id,
        payment_type=payment_type,
        amount_paid=amount,
        currency=currency,
        membership_id=membership_id,
        admin_notes=admin_notes,
    )


def create_from_reservation(db, reservation, admin_id, payment_details=None):
    """
    Turn an approved reservation request into an inscription.

    Paid classes need ``payment_details``; for free classes they default to
    complimentary.
    """
    if payment_details is None:
        academy_class = get_class(db, reservation.class_id)
        if academy_class.is_paid:
            raise ValidationError(
                "Payment details are required to approve a request for a paid class.",
                code="payment_details_required",
            )
        payment_type = PaymentType.COMPLIMENTARY
        amount = currency = membership_id = notes = None
    else:
        payment_type = payment_details.payment_type
        amount = payment_details.amount_paid
        currency = payment_details.currency
        membership_id = payment_details.user_membership_id
        notes = payment_details.admin_notes

    return _create_inscription(
        db,
        student_id=reservation.student_id,
        class_id=reservation.class_id,
        admin_id=admin_id,
        payment_type=payment_type,
        amount_paid=amount,
        currency=currency,
        membership_id=membership_id,
        reservation_request_id=reservation.id,
        admin_notes=notes,
    )


def admin_cancel_inscription(db, inscription_id, admin_id, reason=None):
    inscription = get_inscription(db, inscription_id)
    admin_id = validate_id(admin_id, "admin id")

    if inscription.status == InscriptionStatus.CANCELLED_BY_ADMIN.value:
        raise ConflictError(
            f"Inscription {inscription.id} is already cancelled.", code=ConflictError.INVALID_STATE
        )

    # Only one of two concurrent cancellations may release the seat
    claimed = (
        db.query(Inscription)
        .filter(
            Inscription.id == inscription.id,
            Inscription.status != InscriptionStatus.CANCELLED_BY_ADMIN.value,
        )
        .update({Inscription.status: InscriptionStatus.CANCELLED_BY_ADMIN.value}, synchronize_session=False)
    )
    if not claimed:
        db.rollback()
        raise ConflictError(
            f"Inscription {inscription.id} is already cancelled.", code=ConflictError.INVALID_STATE
        )

    inscription.status = InscriptionStatus.CANCELLED_BY_ADMIN.value
    inscription.processed_by_admin_id = admin_id
    note = f"Cancelled by admin {admin_id} on {datetime.utcnow().isoformat()}"
    inscription.append_note(f"{note}. Reason: {reason}" if reason else f"{note}.")

    if inscription.payment_type == PaymentType.PAID_PER_CLASS.value:
        payment = None
        if inscription.payment_id:
            payment = db.query(Payment).filter(Payment.id == inscription.payment_id).first()
        if payment is not None and payment.status == PaymentStatus.COMPLETED.value:
            payments.request_refund(db, payment, reason=reason or "Inscription cancelled")
        elif payment is not None and payment.status in payments.PAYABLE_STATUSES:
            payments.cancel_pending_payment(db, payment, reason=reason or "Inscription cancelled")
        elif payment is None and inscription.amount_paid:
            logger.warning(
                "Inscription %s was paid offline (%s %.2f); refund must be handled manually.",
                inscription.id, inscription.currency, inscription.amount_paid,
            )

    elif inscription.payment_type == PaymentType.MEMBERSHIP.value and inscription.user_membership_id:
        memberships.return_class_credit(db, inscription.user_membership_id)

    db.commit()
    capacity.release_seat(db, inscription.class_id)
    db.refresh(inscription)

    logger.info("Inscription %s cancelled by admin %s.", inscription.id, admin_id)
    return inscription


def admin_update_inscription(db, inscription_id, admin_id, status=None, admin_notes=None):
    """Record attendance and/or append a note. Cancellation has its own operation."""
    inscription = get_inscription(db, inscription_id)
    admin_id = validate_id(admin_id, "admin id")

    if status is not None:
        try:
            new_status = InscriptionStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown inscription status: {status!r}", code="invalid_status")
        if new_status not in ATTENDANCE_STATUSES:
            raise ValidationError(
                f"Status {new_status.value} cannot be set here.", code="status_not_allowed"
            )
        if inscription.status == InscriptionStatus.CANCELLED_BY_ADMIN.value:
            raise ConflictError(
                f"Inscription {inscription.id} is cancelled.", code=ConflictError.INVALID_STATE
            )
        inscription.status = new_status.value

    if admin_notes:
        inscription.append_note(f"[{datetime.utcnow().isoformat()} by admin {admin_id}]: {admin_notes}")

    inscription.processed_by_admin_id = admin_id
    db.commit()
    db.refresh(inscription)
    return inscription


def confirm_payment_and_update_status(db, inscription_id, payment_id):
    """
    Called once the gateway reports the money. Only a PENDING_PAYMENT
    inscription moves to CONFIRMED; anything else is left as it is.
    """
    inscription = db.query(Inscription).filter(Inscription.id == inscription_id).first()
    if inscription is None:
        logger.error("Payment %s points at inscription %s, which does not exist.", payment_id, inscription_id)
        raise NotFoundError(f"Inscription {inscription_id} not found.", code="inscription_not_found")

    confirmed = (
        db.query(Inscription)
        .filter(
            Inscription.id == inscription.id,
            Inscription.status == InscriptionStatus.PENDING_PAYMENT.value,
        )
        .update(
            {
                Inscription.status: InscriptionStatus.CONFIRMED.value,
                Inscription.payment_id: payment_id,
            },
            synchronize_session=False,
        )
    )
    db.commit()
    db.refresh(inscription)

    if not confirmed:
        logger.warning(
            "Inscription %s is %s, not pending payment; payment %s left it unchanged.",
            inscription.id, inscription.status, payment_id,
        )
        return inscription

    logger.info("Inscription %s confirmed by payment %s.", inscription.id, payment_id)
    return inscription

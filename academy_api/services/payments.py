# -*- coding: utf-8 -*-
"""
Payment ledger and gateway callbacks.

A payment starts PENDING and leaves that state through a gateway callback
(COMPLETED or FAILED) or through the cancellation of the inscription it was
meant to settle (CANCELLED, or REFUNDED once money had been received).

Callbacks are delivered at least once, so every handler here is idempotent:
a second "succeeded" event for the same payment is logged and ignored.
"""

import logging
from datetime import datetime

from academy_api import config
from academy_api.exceptions import (
    ConflictError,
    GatewayError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    validate_id,
)
from academy_api.models.inscription import Inscription
from academy_api.models.payment import Payment, PaymentItemType, PaymentStatus
from academy_api.services import gateway

logger = logging.getLogger(__name__)

EVENT_PAYMENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_PAYMENT_FAILED = "payment_intent.payment_failed"

MP_SUCCESS_STATUSES = ("approved",)
MP_FAILURE_STATUSES = ("rejected", "cancelled")

EXTERNAL_REFERENCE_PREFIX = "payment_"

# A failed charge can be retried; anything else is settled or closed
PAYABLE_STATUSES = (PaymentStatus.PENDING.value, PaymentStatus.FAILED.value)


def create_pending_payment(
    db,
    user_id,
    item_id,
    academy_id,
    amount,
    currency,
    description,
    related_inscription_id=None,
    processed_by_admin_id=None,
    item_type=PaymentItemType.CLASS_INSCRIPTION,
    commit=True,
):
    """
    Record a payment the student still has to make.

    With ``commit=False`` the row is only flushed (so it has an id) and the
    caller's transaction decides whether it survives.
    """
    if amount is None or amount <= 0:
        raise ValidationError("A pending payment needs a positive amount.", code="invalid_amount")

    payment = Payment(
        user_id=user_id,
        item_id=item_id,
        item_type=PaymentItemType(item_type).value,
        academy_id=academy_id,
        description=description,
        amount=amount,
        currency=(currency or config.DEFAULT_CURRENCY).upper(),
        status=PaymentStatus.PENDING.value,
        payment_method="pending_student_action",
        related_inscription_id=related_inscription_id,
        processed_by_admin_id=processed_by_admin_id,
        payment_metadata={},
    )
    db.add(payment)

    if commit:
        db.commit()
        db.refresh(payment)
    else:
        db.flush()

    logger.info(
        "Pending payment %s created for user %s: %s %.2f (%s).",
        payment.id, user_id, payment.currency, amount, description,
    )
    return payment


def get_payment(db, payment_id):
    payment_id = validate_id(payment_id, "payment id")
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if payment is None:
        raise NotFoundError(f"Payment {payment_id} not found.", code="payment_not_found")
    return payment


def list_user_payments(db, user_id, status=None, skip=0, limit=100):
    query = db.query(Payment).filter(Payment.user_id == user_id)
    if status is not None:
        query = query.filter(Payment.status == status)
    return query.order_by(Payment.created_at.desc()).offset(skip).limit(limit).all()


def _inscription_id_for(db, payment):
    if payment.related_inscription_id:
        return payment.related_inscription_id
    if payment.item_type == PaymentItemType.INSCRIPTION.value:
        return payment.item_id
    inscription = db.query(Inscription.id).filter(Inscription.payment_id == payment.id).first()
    return inscription[0] if inscription else None


def process_successful_payment(
    db, payment_id, gateway_payment_intent_id=None, gateway_charge_id=None, payment_method="gateway"
):
    """
    Mark the payment COMPLETED and confirm the inscription it settles.

    The payment is committed before the inscription is touched. If the
    inscription cannot be confirmed the error is logged and not raised, so the
    gateway does not keep redelivering an event whose money is already ours;
    the inconsistency is left for manual follow-up.
    """
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if payment is None:
        logger.warning("Success callback for unknown payment %s ignored.", payment_id)
        return None

    if payment.status == PaymentStatus.COMPLETED.value:
        logger.info("Payment %s is already completed; duplicate callback ignored.", payment.id)
        return payment

    if payment.status in (PaymentStatus.CANCELLED.value, PaymentStatus.REFUNDED.value):
        logger.warning(
            "Payment %s received money while %s; it may need a manual refund.", payment.id, payment.status
        )

    values = {
        Payment.status: PaymentStatus.COMPLETED.value,
        Payment.processed_at: datetime.utcnow(),
        Payment.payment_method: payment_method,
    }
    if gateway_payment_intent_id:
        values[Payment.gateway_payment_intent_id] = str(gateway_payment_intent_id)
    if gateway_charge_id:
        values[Payment.gateway_charge_id] = str(gateway_charge_id)

    # Two deliveries racing each other: only one moves the row
    claimed = (
        db.query(Payment)
        .filter(Payment.id == payment.id, Payment.status != PaymentStatus.COMPLETED.value)
        .update(values, synchronize_session=False)
    )
    db.commit()
    db.refresh(payment)

    if not claimed:
        logger.info("Payment %s was completed concurrently; duplicate callback ignored.", payment.id)
        return payment

    logger.info("Payment %s completed (gateway id %s).", payment.id, gateway_payment_intent_id)

    inscription_id = _inscription_id_for(db, payment)
    if inscription_id is None:
        logger.warning("Payment %s completed but is not linked to any inscription.", payment.id)
        return payment

    # Local import: inscriptions imports this module
    from academy_api.services import inscriptions

    try:
        inscriptions.confirm_payment_and_update_status(db, inscription_id, payment.id)
    except Exception:
        db.rollback()
        logger.exception(
            "Payment %s is completed but inscription %s could not be confirmed; manual reconciliation needed.",
            payment.id, inscription_id,
        )
    return payment


def process_failed_payment(db, payment_id, gateway_payment_intent_id=None, reason=None):
    """
    The inscription stays PENDING_PAYMENT and keeps its seat; the student
    can pay again by opening a new charge with ``create_pix_charge``.
    """
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if payment is None:
        logger.warning("Failure callback for unknown payment %s ignored.", payment_id)
        return None

    if payment.status == PaymentStatus.COMPLETED.value:
        logger.warning("Failure callback for completed payment %s ignored.", payment.id)
        return payment

    payment.status = PaymentStatus.FAILED.value
    if gateway_payment_intent_id:
        payment.gateway_payment_intent_id = str(gateway_payment_intent_id)
    payment.add_metadata(failure_reason=reason or "Unknown failure")
    db.commit()
    db.refresh(payment)

    logger.warning("Payment %s failed: %s", payment.id, reason or "Unknown failure")
    return payment


def handle_gateway_event(db, event):
    """
    Dispatch a normalized gateway event. Unknown event types and payloads
    without a usable payment id are logged and ignored.
    """
    if not isinstance(event, dict):
        logger.warning("Gateway event ignored: payload is not an object.")
        return None

    event_type = event.get("type")
    data = event.get("data") if isinstance(event.get("data"), dict) else {}
    intent = data.get("object") if isinstance(data.get("object"), dict) else {}
    metadata = intent.get("metadata") if isinstance(intent.get("metadata"), dict) else {}

    logger.info("Gateway event %s received (type=%s).", event.get("id"), event_type)

    if event_type not in (EVENT_PAYMENT_SUCCEEDED, EVENT_PAYMENT_FAILED):
        logger.info("Unhandled gateway event type: %s", event_type)
        return None

    try:
        payment_id = validate_id(metadata.get("payment_id"), "payment id")
    except ValidationError:
        logger.warning("Gateway event %s carries no usable payment id; ignored.", event.get("id"))
        return None

    if event_type == EVENT_PAYMENT_SUCCEEDED:
        return process_successful_payment(db, payment_id, intent.get("id"), intent.get("latest_charge"))

    error = intent.get("last_payment_error") if isinstance(intent.get("last_payment_error"), dict) else {}
    return process_failed_payment(db, payment_id, intent.get("id"), error.get("message"))


def external_reference_for(payment):
    return f"{EXTERNAL_REFERENCE_PREFIX}{payment.id}"


def _payment_id_from_reference(reference):
    if not reference or not reference.startswith(EXTERNAL_REFERENCE_PREFIX):
        return None
    try:
        return validate_id(reference[len(EXTERNAL_REFERENCE_PREFIX):], "payment id")
    except ValidationError:
        return None


def handle_mercadopago_notification(db, topic, gateway_payment_id):
    """
    Fetch the Mercado Pago payment behind a notification and feed its
    outcome into the same success and failure handlers as normalized events.
    """
    if topic != "payment" or not gateway_payment_id:
        logger.info("Mercado Pago notification ignored (topic=%s, id=%s).", topic, gateway_payment_id)
        return None

    info = gateway.fetch_payment(gateway_payment_id)
    reference = info.get("external_reference")
    payment_id = _payment_id_from_reference(reference)
    if payment_id is None:
        logger.error("Unrecognised external_reference in Mercado Pago payment %s: %s", gateway_payment_id, reference)
        return None

    mp_status = info.get("status")
    if mp_status in MP_SUCCESS_STATUSES:
        method = info.get("payment_method_id") or "mercadopago"
        return process_successful_payment(db, payment_id, info.get("id") or gateway_payment_id, payment_method=method)
    if mp_status in MP_FAILURE_STATUSES:
        return process_failed_payment(db, payment_id, info.get("id") or gateway_payment_id, info.get("status_detail"))

    logger.info("Mercado Pago payment %s is %s; nothing to do yet.", gateway_payment_id, mp_status)
    return None


def create_pix_charge(db, payment_id, user):
    """
    Open a PIX charge at the gateway for a payment owned by ``user``.

    A FAILED payment (expired or rejected PIX) may be charged again: it goes
    back to PENDING and its failure reason moves to ``previous_failures`` in
    the metadata.
    """
    payment = get_payment(db, payment_id)
    if payment.user_id != user.id:
        raise PermissionDeniedError("This payment does not belong to you.", code="not_owner")
    if payment.status not in PAYABLE_STATUSES:
        raise ConflictError(
            f"Payment {payment.id} is {payment.status}; only pending or failed payments can be paid.",
            code=ConflictError.INVALID_STATE,
        )

    body = gateway.create_pix_charge(
        amount=payment.amount,
        description=payment.description,
        payer_email=user.email,
        payer_first_name=user.name or user.username,
        external_reference=external_reference_for(payment),
        doc_number=user.document_number,
    )

    if payment.status == PaymentStatus.FAILED.value:
        metadata = dict(payment.payment_metadata or {})
        failures = list(metadata.pop("previous_failures", []))
        failures.append({
            "reason": metadata.pop("failure_reason", None),
            "gateway_payment_id": payment.gateway_payment_intent_id,
            "retried_at": datetime.utcnow().isoformat(),
        })
        metadata["previous_failures"] = failures
        payment.payment_metadata = metadata
        payment.status = PaymentStatus.PENDING.value
        logger.info("Failed payment %s reopened for a new PIX charge.", payment.id)

    payment.gateway_payment_intent_id = str(body.get("id"))
    payment.payment_method = "pix"
    db.commit()
    db.refresh(payment)

    transaction_data = (body.get("point_of_interaction") or {}).get("transaction_data") or {}
    logger.info("PIX charge %s opened for payment %s.", body.get("id"), payment.id)
    return {
        "payment_id": payment.id,
        "gateway_payment_id": payment.gateway_payment_intent_id,
        "status": body.get("status"),
        "qr_code": transaction_data.get("qr_code"),
        "qr_code_base64": transaction_data.get("qr_code_base64"),
    }


def request_refund(db, payment, reason=None):
    """
    Ask the gateway to give back a completed payment. Does not commit.

    A gateway failure never blocks the caller: the request is recorded in
    the payment metadata for manual processing instead.
    """
    if payment.status != PaymentStatus.COMPLETED.value:
        logger.info("Refund skipped for payment %s in status %s.", payment.id, payment.status)
        return payment

    now = datetime.utcnow().isoformat()

    if payment.gateway_payment_intent_id and gateway.is_configured():
        try:
            gateway.refund_payment(payment.gateway_payment_intent_id)
        except GatewayError as exc:
            logger.error("Gateway refund of payment %s failed: %s", payment.id, exc.message)
            payment.add_metadata(refund_error=exc.message)
        else:
            payment.status = PaymentStatus.REFUNDED.value
            payment.add_metadata(refunded_at=now, refund_reason=reason)
            logger.info("Payment %s refunded through the gateway.", payment.id)
            return payment

    payment.add_metadata(refund_requested=True, refund_requested_at=now, refund_reason=reason)
    logger.warning("Refund of payment %s needs manual processing.", payment.id)
    return payment


def cancel_pending_payment(db, payment, reason=None):
    """Closes a pending or failed payment so it can no longer be charged. Does not commit."""
    if payment.status not in PAYABLE_STATUSES:
        return payment
    previous_status = payment.status
    payment.status = PaymentStatus.CANCELLED.value
    payment.add_metadata(cancel_reason=reason, cancelled_at=datetime.utcnow().isoformat())
    logger.info("Payment %s cancelled (was %s).", payment.id, previous_status)
    return payment

# -*- coding: utf-8 -*-
"""
Thin wrapper over the Mercado Pago SDK.

Every call returns the SDK's ``response`` body and raises GatewayError when
the SDK is not configured or the gateway answers with an error status.
"""

import logging
import uuid
from datetime import datetime, timedelta

import mercadopago
from mercadopago.config import RequestOptions

from academy_api import config
from academy_api.exceptions import GatewayError

logger = logging.getLogger(__name__)

NOTIFICATION_PATH = "/api/v1/payments/mercadopago/webhook"


def is_configured():
    return bool(config.MP_ACCESS_TOKEN)


# Inicializa o SDK
def get_sdk():
    if not config.MP_ACCESS_TOKEN:
        logger.error("MP_ACCESS_TOKEN is not set; payment gateway unavailable.")
        raise GatewayError("Payment gateway is not configured.", code="gateway_not_configured")
    return mercadopago.SDK(config.MP_ACCESS_TOKEN)


def _idempotent_options():
    request_options = RequestOptions()
    request_options.custom_headers = {"x-idempotency-key": str(uuid.uuid4())}
    return request_options


def _unwrap(result, expected, action):
    body = result.get("response") or {}
    if result.get("status") not in expected:
        logger.error("Mercado Pago %s failed (HTTP %s): %s", action, result.get("status"), body)
        message = body.get("message") if isinstance(body, dict) else None
        raise GatewayError(message or f"Payment gateway could not {action}.")
    return body


def create_pix_charge(amount, description, payer_email, payer_first_name, external_reference, doc_number=None):
    """
    Create a direct PIX payment through Mercado Pago's transparent checkout.

    Returns the gateway payment body; the QR code lives under
    ``point_of_interaction.transaction_data``.
    """
    sdk = get_sdk()

    payer = {"email": payer_email, "first_name": payer_first_name}
    if doc_number:
        payer["identification"] = {"type": "CPF", "number": doc_number}

    expires_at = datetime.utcnow() + timedelta(minutes=config.PIX_EXPIRATION_MINUTES)
    payment_data = {
        "transaction_amount": float(amount),
        "description": description,
        "payment_method_id": "pix",
        "payer": payer,
        # Deve ser HTTPS público em produção
        "notification_url": f"{config.BACKEND_URL}{NOTIFICATION_PATH}",
        "external_reference": external_reference,
        "date_of_expiration": expires_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
    }

    try:
        result = sdk.payment().create(payment_data, _idempotent_options())
    except Exception as exc:
        logger.error("Error talking to Mercado Pago while creating PIX charge: %s", exc)
        raise GatewayError("Payment gateway is unreachable.") from exc
    return _unwrap(result, (200, 201), "create the PIX charge")


def fetch_payment(gateway_payment_id):
    sdk = get_sdk()
    try:
        result = sdk.payment().get(gateway_payment_id)
    except Exception as exc:
        logger.error("Error fetching Mercado Pago payment %s: %s", gateway_payment_id, exc)
        raise GatewayError("Payment gateway is unreachable.") from exc
    return _unwrap(result, (200,), "fetch the payment")


def refund_payment(gateway_payment_id, amount=None):
    """Full refund unless ``amount`` is given."""
    sdk = get_sdk()
    refund_data = {"amount": float(amount)} if amount is not None else None
    try:
        result = sdk.refund().create(gateway_payment_id, refund_data, _idempotent_options())
    except Exception as exc:
        logger.error("Error refunding Mercado Pago payment %s: %s", gateway_payment_id, exc)
        raise GatewayError("Payment gateway is unreachable.") from exc
    return _unwrap(result, (200, 201), "refund the payment")

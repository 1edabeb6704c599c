# -*- coding: utf-8 -*-
"""
Signature checks for inbound gateway webhooks.

The gateway signs the raw request body with HMAC-SHA256 using the shared
``GATEWAY_WEBHOOK_SECRET`` and sends the hex digest in the
``X-Gateway-Signature`` header (optionally prefixed with ``sha256=``). The
body is verified byte for byte before anything parses it.
"""

import hashlib
import hmac
import logging

from fastapi import Request

from academy_api import config
from academy_api.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Gateway-Signature"
SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, payload: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def is_valid_signature(payload: bytes, signature: str, secret: str) -> bool:
    if not secret or not signature:
        return False
    if signature.startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX):]
    return hmac.compare_digest(compute_signature(secret, payload), signature.strip().lower())


async def verified_gateway_body(request: Request) -> bytes:
    """
    FastAPI dependency returning the raw webhook body once its signature
    checks out. Raises 401 otherwise, including when no secret is configured.
    """
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER, "")
    secret = config.GATEWAY_WEBHOOK_SECRET

    if not secret:
        logger.error("Gateway webhook rejected: GATEWAY_WEBHOOK_SECRET is not configured.")
        raise UnauthorizedError("Webhook signing is not configured.", code="webhook_not_configured")
    if not signature:
        logger.warning("Gateway webhook rejected: missing %s header.", SIGNATURE_HEADER)
        raise UnauthorizedError("Missing webhook signature.", code="missing_signature")
    if not is_valid_signature(raw_body, signature, secret):
        logger.warning("Gateway webhook rejected: signature mismatch (%d bytes).", len(raw_body))
        raise UnauthorizedError("Invalid webhook signature.", code="invalid_signature")

    return raw_body

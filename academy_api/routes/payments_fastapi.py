# -*- coding: utf-8 -*-
"""
Rotas FastAPI para Pagamentos: consulta, cobrança PIX e webhooks do gateway.
"""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from academy_api import auth, webhook_security
from academy_api.database import get_db
from academy_api.exceptions import GatewayError
from academy_api.models.payment import PaymentStatus
from academy_api.models.user import User
from academy_api.schemas.payment import PaymentRead, PixCharge
from academy_api.services import payments

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["Payments"],
    responses={404: {"description": "Payment not found"}},
)


@router.get("/me", response_model=List[PaymentRead])
def read_my_payments(
    status_filter: Optional[PaymentStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    return payments.list_user_payments(
        db, current_user.id, status=status_filter.value if status_filter else None, skip=skip, limit=limit
    )


@router.post("/webhook")
def gateway_webhook(
    raw_body: bytes = Depends(webhook_security.verified_gateway_body),
    db: Session = Depends(get_db),
):
    """
    Normalized gateway events, signed with the shared webhook secret.
    Unsigned or badly signed calls get 401 and change nothing. A signed
    event always answers 200 once handled or ignored, so the gateway stops
    redelivering it.
    """
    try:
        event = json.loads(raw_body or b"null")
    except ValueError:
        logger.warning("Gateway webhook body is not valid JSON; ignored.")
        event = None
    payments.handle_gateway_event(db, event)
    return {"status": "ok"}


@router.post("/mercadopago/webhook")
def mercadopago_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Recebe o aviso do Mercado Pago e confirma o pagamento no banco.
    """
    params = request.query_params
    topic = params.get("topic") or params.get("type")
    data_id = params.get("id") or params.get("data.id")
    try:
        payments.handle_mercadopago_notification(db, topic, data_id)
    except GatewayError as exc:
        # Retornamos OK para o Mercado Pago não ficar reenviando em caso de erro nosso
        logger.error("Mercado Pago notification %s could not be processed: %s", data_id, exc.message)
        return {"status": "ok", "detail": "handled_with_error"}
    return {"status": "ok"}


@router.get("/{payment_id}", response_model=PaymentRead)
def read_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    payment = payments.get_payment(db, payment_id)
    auth.ensure_owner_or_can_act(current_user, payment.user_id, auth.VIEW_ACADEMY_RECORDS, payment.academy_id)
    return payment


@router.post("/{payment_id}/pix", response_model=PixCharge)
def create_pix_charge(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    return payments.create_pix_charge(db, payment_id, current_user)

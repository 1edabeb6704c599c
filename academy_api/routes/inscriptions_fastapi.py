# -*- coding: utf-8 -*-
"""
Rotas FastAPI para Inscrições em turmas.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from academy_api import auth
from academy_api.database import get_db
from academy_api.models.inscription import InscriptionStatus, PaymentType
from academy_api.models.user import User
from academy_api.schemas.inscription import InscriptionCancel, InscriptionCreate, InscriptionRead, InscriptionUpdate
from academy_api.services import inscriptions
from academy_api.services.classes import get_class

router = APIRouter(
    tags=["Inscriptions"],
    responses={404: {"description": "Inscription not found"}},
)


@router.post("", response_model=InscriptionRead, status_code=status.HTTP_201_CREATED)
def create_inscription(
    body: InscriptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    """
    Inscrição direta feita pelo administrador, sem pedido de reserva.
    """
    academy_class = get_class(db, body.class_id)
    auth.ensure_can_act(current_user, auth.MANAGE_INSCRIPTIONS, academy_class.academy_id)
    return inscriptions.create_direct_inscription(
        db,
        admin_id=current_user.id,
        student_id=body.student_id,
        class_id=body.class_id,
        payment_type=body.payment_type,
        amount=body.amount_paid,
        currency=body.currency,
        membership_id=body.user_membership_id,
        admin_notes=body.admin_notes,
    )


@router.get("", response_model=List[InscriptionRead])
def read_inscriptions(
    academy_id: Optional[int] = None,
    class_id: Optional[int] = None,
    student_id: Optional[int] = None,
    status_filter: Optional[InscriptionStatus] = None,
    payment_type: Optional[PaymentType] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    academy_id = auth.scoped_academy_id(current_user, academy_id)
    return inscriptions.list_inscriptions(
        db,
        academy_id=academy_id,
        class_id=class_id,
        student_id=student_id,
        status=status_filter.value if status_filter else None,
        payment_type=payment_type.value if payment_type else None,
        skip=skip,
        limit=limit,
    )


@router.get("/me", response_model=List[InscriptionRead])
def read_my_inscriptions(
    status_filter: Optional[InscriptionStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    return inscriptions.list_student_inscriptions(
        db, current_user.id, status=status_filter.value if status_filter else None, skip=skip, limit=limit
    )


@router.get("/{inscription_id}", response_model=InscriptionRead)
def read_inscription(
    inscription_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    inscription = inscriptions.get_inscription(db, inscription_id)
    auth.ensure_owner_or_can_act(current_user, inscription.student_id, auth.VIEW_ACADEMY_RECORDS, inscription.academy_id)
    return inscription


@router.patch("/{inscription_id}", response_model=InscriptionRead)
def update_inscription(
    inscription_id: int,
    body: InscriptionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    inscription = inscriptions.get_inscription(db, inscription_id)
    auth.ensure_can_act(current_user, auth.MANAGE_INSCRIPTIONS, inscription.academy_id)
    return inscriptions.admin_update_inscription(
        db,
        inscription_id,
        current_user.id,
        status=body.status,
        admin_notes=body.admin_notes,
    )


@router.post("/{inscription_id}/cancel", response_model=InscriptionRead)
def cancel_inscription(
    inscription_id: int,
    body: Optional[InscriptionCancel] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    inscription = inscriptions.get_inscription(db, inscription_id)
    auth.ensure_can_act(current_user, auth.MANAGE_INSCRIPTIONS, inscription.academy_id)
    return inscriptions.admin_cancel_inscription(
        db, inscription_id, current_user.id, reason=body.reason if body else None
    )

# -*- coding: utf-8 -*-
"""
Rotas FastAPI para pedidos de reserva de vaga (reservation requests).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from academy_api import auth
from academy_api.database import get_db
from academy_api.models.reservation_request import ReservationStatus
from academy_api.models.user import User
from academy_api.schemas.reservation import ReservationCreate, ReservationProcess, ReservationRead
from academy_api.services import reservations
from academy_api.services.classes import get_class

router = APIRouter(
    tags=["Reservation Requests"],
    responses={404: {"description": "Reservation request not found"}},
)


@router.post("", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
def create_reservation_request(
    body: ReservationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    academy_class = get_class(db, body.class_id)
    auth.ensure_can_act(current_user, auth.REQUEST_RESERVATION, academy_class.academy_id)
    return reservations.create_reservation(db, current_user.id, body.class_id, body.student_notes)


@router.get("", response_model=List[ReservationRead])
def read_reservation_requests(
    academy_id: Optional[int] = None,
    class_id: Optional[int] = None,
    student_id: Optional[int] = None,
    status_filter: Optional[ReservationStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    academy_id = auth.scoped_academy_id(current_user, academy_id)
    return reservations.list_reservations(
        db,
        academy_id=academy_id,
        class_id=class_id,
        student_id=student_id,
        status=status_filter.value if status_filter else None,
        skip=skip,
        limit=limit,
    )


@router.get("/me", response_model=List[ReservationRead])
def read_my_reservation_requests(
    status_filter: Optional[ReservationStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    return reservations.list_student_reservations(
        db, current_user.id, status=status_filter.value if status_filter else None, skip=skip, limit=limit
    )


@router.get("/{request_id}", response_model=ReservationRead)
def read_reservation_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    reservation = reservations.get_reservation(db, request_id)
    auth.ensure_owner_or_can_act(current_user, reservation.student_id, auth.VIEW_ACADEMY_RECORDS, reservation.academy_id)
    return reservation


@router.post("/{request_id}/process", response_model=ReservationRead)
def process_reservation_request(
    request_id: int,
    body: ReservationProcess,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    reservation = reservations.get_reservation(db, request_id)
    auth.ensure_can_act(current_user, auth.PROCESS_RESERVATIONS, reservation.academy_id)
    return reservations.process_reservation(
        db,
        request_id,
        current_user.id,
        body.decision,
        admin_notes=body.admin_notes,
        payment_details=body.payment_details,
    )


@router.post("/{request_id}/cancel", response_model=ReservationRead)
def cancel_reservation_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    return reservations.cancel_reservation(db, request_id, current_user.id)

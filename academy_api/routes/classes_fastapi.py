# -*- coding: utf-8 -*-
"""
Rotas FastAPI para o CRUD de Turmas (classes).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from academy_api import auth
from academy_api.database import get_db
from academy_api.models.user import User
from academy_api.schemas.academy_class import ClassCreate, ClassRead, ClassUpdate
from academy_api.services import classes

router = APIRouter(
    tags=["Classes"],
    responses={404: {"description": "Class not found"}},
)


@router.post("", response_model=ClassRead, status_code=status.HTTP_201_CREATED)
def create_class(
    academy_class: ClassCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    auth.ensure_can_act(current_user, auth.MANAGE_CLASSES, academy_class.academy_id)
    return classes.create_class(db, academy_class)


@router.get("", response_model=List[ClassRead])
def read_classes(
    academy_id: Optional[int] = None,
    is_active: Optional[bool] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    return classes.list_classes(db, academy_id=academy_id, is_active=is_active, skip=skip, limit=limit)


@router.get("/{class_id}", response_model=ClassRead)
def read_class(
    class_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    return classes.get_class(db, class_id)


@router.put("/{class_id}", response_model=ClassRead)
def update_class(
    class_id: int,
    academy_class: ClassUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    db_class = classes.get_class(db, class_id)
    auth.ensure_can_act(current_user, auth.MANAGE_CLASSES, db_class.academy_id)
    return classes.update_class(db, class_id, academy_class)


@router.delete("/{class_id}", response_model=ClassRead)
def deactivate_class(
    class_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    """
    Desativa a turma. Inscriptions already made are kept, so the row is never
    physically deleted.
    """
    db_class = classes.get_class(db, class_id)
    auth.ensure_can_act(current_user, auth.MANAGE_CLASSES, db_class.academy_id)
    return classes.deactivate_class(db, class_id)

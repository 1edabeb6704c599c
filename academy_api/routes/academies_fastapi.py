# -*- coding: utf-8 -*-
"""
Rotas FastAPI para o CRUD de Academias (tenants).
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from academy_api import auth
from academy_api.database import get_db
from academy_api.models.academy import Academy
from academy_api.models.user import User
from academy_api.schemas.academy import AcademyCreate, AcademyRead

router = APIRouter(
    tags=["Academies"],
    responses={404: {"description": "Academy not found"}},
)


@router.post("", response_model=AcademyRead, status_code=status.HTTP_201_CREATED)
def create_academy(
    academy: AcademyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    auth.ensure_can_act(current_user, auth.MANAGE_ACADEMIES)
    if db.query(Academy).filter(Academy.name == academy.name).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="An academy with this name already exists")

    db_academy = Academy(**academy.dict())
    db.add(db_academy)
    db.commit()
    db.refresh(db_academy)
    return db_academy


@router.get("", response_model=List[AcademyRead])
def read_academies(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    return db.query(Academy).order_by(Academy.name).offset(skip).limit(limit).all()


@router.get("/{academy_id}", response_model=AcademyRead)
def read_academy(
    academy_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    db_academy = db.query(Academy).filter(Academy.id == academy_id).first()
    if db_academy is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Academy not found")
    return db_academy

# academy_api/routes/memberships_fastapi.py
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from academy_api import auth
from academy_api.database import get_db
from academy_api.models.user import User, UserRole
from academy_api.schemas.membership import MembershipCreate, MembershipRead
from academy_api.services import memberships
from academy_api.services.users import get_user

router = APIRouter(tags=["Memberships"])


@router.post("", response_model=MembershipRead, status_code=status.HTTP_201_CREATED)
def create_membership(
    membership: MembershipCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    auth.ensure_can_act(current_user, auth.MANAGE_MEMBERSHIPS, membership.academy_id)
    get_user(db, membership.user_id, "student")
    return memberships.create_membership(db, membership)


@router.get("", response_model=List[MembershipRead])
def read_memberships(
    user_id: Optional[int] = None,
    academy_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    if current_user.role == UserRole.STUDENT.value:
        # Alunos só veem os próprios planos
        return memberships.list_memberships(db, user_id=current_user.id, academy_id=academy_id)

    if current_user.role != UserRole.SUPER_ADMIN.value:
        academy_id = academy_id or current_user.academy_id
    auth.ensure_can_act(current_user, auth.VIEW_ACADEMY_RECORDS, academy_id)
    return memberships.list_memberships(db, user_id=user_id, academy_id=academy_id)

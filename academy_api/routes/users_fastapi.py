# academy_api/routes/users_fastapi.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from academy_api import auth, database
from academy_api.models.user import User, UserRole
from academy_api.schemas import user as schemas_user
from academy_api.services.users import get_user

router = APIRouter(
    prefix="/api/v1/users",
    tags=["Users"]
)


@router.post("", response_model=schemas_user.UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    user: schemas_user.UserCreate,
    db: Session = Depends(database.get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    auth.ensure_can_act(current_user, auth.MANAGE_USERS, user.academy_id)
    # Academy admins cannot mint super admins or users outside their academy
    if current_user.role != UserRole.SUPER_ADMIN.value:
        if user.role == UserRole.SUPER_ADMIN or user.academy_id != current_user.academy_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to create this user")

    if db.query(User).filter((User.username == user.username) | (User.email == user.email)).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username or email already registered")

    db_user = User(
        username=user.username,
        email=user.email,
        name=user.name,
        document_number=user.document_number,
        hashed_password=auth.get_password_hash(user.password),
        role=user.role.value,
        academy_id=user.academy_id,
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


@router.get("/{user_id}", response_model=schemas_user.UserRead)
def read_user(
    user_id: int,
    db: Session = Depends(database.get_db),
    current_user: User = Depends(auth.get_current_active_user),
):
    db_user = get_user(db, user_id)
    if db_user.id != current_user.id:
        auth.ensure_can_act(current_user, auth.MANAGE_USERS, db_user.academy_id)
    return db_user

# academy_api/auth.py
from datetime import datetime, timedelta

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from academy_api import config, database
from academy_api.exceptions import PermissionDeniedError
from academy_api.models.user import User, UserRole

# --- CONFIGURAÇÃO DE SEGURANÇA ---
SECRET_KEY = config.SECRET_KEY
ALGORITHM = config.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = config.ACCESS_TOKEN_EXPIRE_MINUTES

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


# --- PERMISSÕES ---
# Actions the routers ask about. The workflow services never look at roles.
MANAGE_ACADEMIES = "manage_academies"
MANAGE_USERS = "manage_users"
MANAGE_CLASSES = "manage_classes"
MANAGE_MEMBERSHIPS = "manage_memberships"
PROCESS_RESERVATIONS = "process_reservations"
MANAGE_INSCRIPTIONS = "manage_inscriptions"
VIEW_ACADEMY_RECORDS = "view_academy_records"
REQUEST_RESERVATION = "request_reservation"
VIEW_OWN_RECORDS = "view_own_records"

ADMIN_ACTIONS = {
    MANAGE_USERS,
    MANAGE_CLASSES,
    MANAGE_MEMBERSHIPS,
    PROCESS_RESERVATIONS,
    MANAGE_INSCRIPTIONS,
    VIEW_ACADEMY_RECORDS,
}

STUDENT_ACTIONS = {REQUEST_RESERVATION, VIEW_OWN_RECORDS}


def can_act(user, action, academy_id=None):
    """
    Is ``user`` allowed to perform ``action`` inside ``academy_id``?

    Super admins act everywhere. Academy admins act only inside their own
    academy. Students may request seats in their academy (or any academy when
    they are not bound to one) and read their own records.
    """
    if user is None or not user.is_active:
        return False

    if user.role == UserRole.SUPER_ADMIN.value:
        return True

    if user.role == UserRole.ACADEMY_ADMIN.value:
        if action == VIEW_OWN_RECORDS:
            return True
        if action not in ADMIN_ACTIONS:
            return False
        return academy_id is None or academy_id == user.academy_id

    if user.role == UserRole.STUDENT.value:
        if action not in STUDENT_ACTIONS:
            return False
        if academy_id is None or user.academy_id is None:
            return True
        return academy_id == user.academy_id

    return False


def ensure_can_act(user, action, academy_id=None):
    if not can_act(user, action, academy_id):
        raise PermissionDeniedError(f"User {user.id} may not {action.replace('_', ' ')} here.")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_minutes=None):
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes or ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_user(db: Session, username: str):
    return db.query(User).filter(User.username == username).first()


def authenticate_user(db: Session, username: str, password: str):
    user = get_user(db, username)
    if not user or not user.hashed_password or not verify_password(password, user.hashed_password):
        return None
    return user


# --- DEPENDÊNCIAS DE AUTENTICAÇÃO E AUTORIZAÇÃO ---
async def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(database.get_db)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    user = get_user(db, username=username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)):
    """
    Blocks disabled accounts and accounts still waiting for approval.
    """
    if not current_user.is_active or current_user.role == UserRole.PENDING.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account is pending approval by an administrator.",
        )
    return current_user


def scoped_academy_id(user, academy_id=None, action=VIEW_ACADEMY_RECORDS):
    """
    Academy filter for admin listings: super admins see what they ask for,
    academy admins are pinned to their own academy.
    """
    if user.role != UserRole.SUPER_ADMIN.value:
        academy_id = academy_id or user.academy_id
    ensure_can_act(user, action, academy_id)
    return academy_id


def ensure_owner_or_can_act(user, owner_id, action, academy_id):
    if user.id == owner_id:
        return
    ensure_can_act(user, action, academy_id)

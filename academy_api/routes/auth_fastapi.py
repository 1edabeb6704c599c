# academy_api/routes/auth_fastapi.py
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from academy_api import auth, database
from academy_api.models.user import User
from academy_api.schemas import user as schemas_user

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["Authentication"]
)


@router.post("/token", response_model=schemas_user.Token)
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(database.get_db)):
    user = auth.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = auth.create_access_token(data={"sub": user.username, "role": user.role})

    user_info = schemas_user.UserRead.model_validate(user)
    return {"access_token": access_token, "token_type": "bearer", "user_info": user_info}


@router.get("/me", response_model=schemas_user.UserRead)
async def read_users_me(current_user: User = Depends(auth.get_current_active_user)):
    return current_user

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.api import deps
from app.core.security import create_access_token
from app.crud import crud_user
from app.schemas.token import Token
from app.schemas.user import User as UserSchema, UserCreate

logger = logging.getLogger("flagpole.auth")

router = APIRouter()


@router.post("/login/access-token", response_model=Token)
def login_access_token(
    db: Session = Depends(deps.get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> Any:
    """OAuth2 compatible token login; the username field accepts an email or username."""
    user = crud_user.authenticate(db, login=form_data.username, password=form_data.password)
    if not user:
        logger.info("Failed login for %s", form_data.username)
        raise HTTPException(status_code=400, detail="Incorrect email or password")
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return Token(access_token=create_access_token(user.id), user=UserSchema.model_validate(user))


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
def register(
    *,
    db: Session = Depends(deps.get_db),
    user_in: UserCreate,
) -> Any:
    if crud_user.get_by_email(db, email=user_in.email):
        raise HTTPException(status_code=409, detail="Email already registered")
    if crud_user.get_by_username(db, username=user_in.username):
        raise HTTPException(status_code=409, detail="Username already taken")
    user = crud_user.create(db, obj_in=user_in)
    logger.info("Registered user %s", user.id)
    return Token(access_token=create_access_token(user.id), user=UserSchema.model_validate(user))

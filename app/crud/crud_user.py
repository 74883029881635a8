from typing import Optional
from uuid import UUID
from sqlalchemy import or_
from sqlalchemy.orm import Session
from app.core.security import get_password_hash, verify_password
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate


def get(db: Session, user_id: UUID) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_by_email(db: Session, *, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_by_login(db: Session, *, login: str) -> Optional[User]:
    """Look a user up by email or username."""
    return db.query(User).filter(or_(User.email == login, User.username == login)).first()


def get_by_username(db: Session, *, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def create(db: Session, *, obj_in: UserCreate, is_superuser: bool = False) -> User:
    db_obj = User(
        email=obj_in.email,
        username=obj_in.username,
        first_name=obj_in.first_name,
        last_name=obj_in.last_name,
        hashed_password=get_password_hash(obj_in.password),
        is_superuser=is_superuser,
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update(db: Session, *, db_obj: User, obj_in: UserUpdate) -> User:
    update_data = obj_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def authenticate(db: Session, *, login: str, password: str) -> Optional[User]:
    user = get_by_login(db, login=login)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user

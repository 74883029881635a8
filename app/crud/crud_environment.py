from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session
from app.models.environment import Environment, generate_api_key
from app.models.feature_flag import FeatureFlag, FlagState
from app.schemas.environment import EnvironmentCreate, EnvironmentUpdate


def get(db: Session, environment_id: UUID) -> Optional[Environment]:
    return db.query(Environment).filter(Environment.id == environment_id).first()


def get_by_api_key(db: Session, *, api_key: str) -> Optional[Environment]:
    return db.query(Environment).filter(Environment.api_key == api_key).first()


def get_by_key(
    db: Session, *, project_id: UUID, key: str, exclude_id: Optional[UUID] = None
) -> Optional[Environment]:
    query = db.query(Environment).filter(
        Environment.project_id == project_id, Environment.key == key
    )
    if exclude_id:
        query = query.filter(Environment.id != exclude_id)
    return query.first()


def get_by_project(db: Session, *, project_id: UUID) -> List[Environment]:
    return (
        db.query(Environment)
        .filter(Environment.project_id == project_id)
        .order_by(Environment.created_at.asc())
        .all()
    )


def create(db: Session, *, project_id: UUID, obj_in: EnvironmentCreate) -> Environment:
    """Create the environment and a disabled flag state for every flag of the project."""
    db_obj = Environment(
        project_id=project_id,
        key=obj_in.key,
        name=obj_in.name,
        require_confirmation=obj_in.require_confirmation,
    )
    db.add(db_obj)
    db.flush()

    flag_ids = db.query(FeatureFlag.id).filter(FeatureFlag.project_id == project_id).all()
    for (flag_id,) in flag_ids:
        db.add(FlagState(flag_id=flag_id, environment_id=db_obj.id, is_enabled=False, rules={}))
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update(db: Session, *, db_obj: Environment, obj_in: EnvironmentUpdate) -> Environment:
    update_data = obj_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def rotate_api_key(db: Session, *, db_obj: Environment) -> Environment:
    db_obj.api_key = generate_api_key()
    db.commit()
    db.refresh(db_obj)
    return db_obj


def remove(db: Session, *, db_obj: Environment) -> None:
    db.delete(db_obj)
    db.commit()

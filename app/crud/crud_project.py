from typing import Dict, List, Optional
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload
from app.config import settings
from app.models.environment import Environment
from app.models.feature_flag import FeatureFlag
from app.models.project import Project, project_members
from app.models.segment import Segment
from app.models.user import User
from app.schemas.project import ProjectCreate, ProjectUpdate


def get_by_key(db: Session, *, key: str, exclude_id: Optional[UUID] = None) -> Optional[Project]:
    query = db.query(Project).filter(Project.key == key)
    if exclude_id:
        query = query.filter(Project.id != exclude_id)
    return query.first()


def get_for_user(db: Session, *, project_id: UUID, user_id: UUID) -> Optional[Project]:
    """Return the project only when the user is one of its members."""
    return (
        db.query(Project)
        .join(project_members, project_members.c.project_id == Project.id)
        .filter(Project.id == project_id, project_members.c.user_id == user_id)
        .first()
    )


def get_multi_for_user(db: Session, *, user_id: UUID) -> List[Project]:
    return (
        db.query(Project)
        .join(project_members, project_members.c.project_id == Project.id)
        .filter(project_members.c.user_id == user_id)
        .options(selectinload(Project.environments))
        .order_by(Project.created_at.desc())
        .all()
    )


def get_counts(db: Session, project_id: UUID) -> Dict[str, int]:
    def _count(model) -> int:
        return db.query(func.count(model.id)).filter(model.project_id == project_id).scalar() or 0

    return {
        "flags": db.query(func.count(FeatureFlag.id)).filter(
            FeatureFlag.project_id == project_id, FeatureFlag.is_archived == False  # noqa: E712
        ).scalar() or 0,
        "environments": _count(Environment),
        "segments": _count(Segment),
    }


def create(db: Session, *, obj_in: ProjectCreate, owner: User) -> Project:
    """Create the project, link the owner and add the default environments."""
    db_obj = Project(
        name=obj_in.name,
        key=obj_in.key,
        description=obj_in.description,
    )
    db_obj.members.append(owner)
    db.add(db_obj)
    db.flush()

    for key in settings.DEFAULT_ENVIRONMENTS:
        db.add(
            Environment(
                project_id=db_obj.id,
                key=key,
                name=key.capitalize(),
                require_confirmation=key in settings.CONFIRMATION_ENVIRONMENTS,
            )
        )
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update(db: Session, *, db_obj: Project, obj_in: ProjectUpdate) -> Project:
    update_data = obj_in.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def remove(db: Session, *, db_obj: Project) -> None:
    # Environments, flags, flag states and segments go with the project
    db.delete(db_obj)
    db.commit()


def add_member(db: Session, *, db_obj: Project, user: User) -> Project:
    if user not in db_obj.members:
        db_obj.members.append(user)
        db.commit()
        db.refresh(db_obj)
    return db_obj


def remove_member(db: Session, *, db_obj: Project, user: User) -> Project:
    if user in db_obj.members:
        db_obj.members.remove(user)
        db.commit()
        db.refresh(db_obj)
    return db_obj

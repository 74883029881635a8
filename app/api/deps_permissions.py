"""
Ownership and role checks shared by the endpoint modules.

Projects are only visible to their members; every nested resource
(environment, flag, segment) is resolved through its project so the same
membership rule applies.
"""
from uuid import UUID
from fastapi import HTTPException, Depends, Header, status
from sqlalchemy.orm import Session
from app.api import deps
from app.crud import crud_environment, crud_flag, crud_project, crud_segment
from app.logging_config import project_id_ctx
from app.models.environment import Environment
from app.models.feature_flag import FeatureFlag
from app.models.project import Project
from app.models.segment import Segment
from app.models.user import User


def require_superuser(current_user: User = Depends(deps.get_current_active_user)) -> User:
    """Dependency: require current user to be a superuser."""
    if not current_user.is_superuser:
        raise HTTPException(status_code=403, detail="Superuser access required")
    return current_user


def get_member_project(db: Session, *, project_id: UUID, user: User) -> Project:
    project = crud_project.get_for_user(db, project_id=project_id, user_id=user.id)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Project with ID {project_id} not found",
        )
    project_id_ctx.set(str(project.id))
    return project


def get_member_environment(db: Session, *, environment_id: UUID, user: User) -> Environment:
    environment = crud_environment.get(db, environment_id=environment_id)
    if not environment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Environment with ID {environment_id} not found",
        )
    get_member_project(db, project_id=environment.project_id, user=user)
    return environment


def get_member_flag(db: Session, *, flag_id: UUID, user: User) -> FeatureFlag:
    flag = crud_flag.get(db, flag_id=flag_id)
    if not flag:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Feature flag with ID {flag_id} not found",
        )
    get_member_project(db, project_id=flag.project_id, user=user)
    return flag


def get_member_segment(db: Session, *, segment_id: UUID, user: User) -> Segment:
    segment = crud_segment.get(db, segment_id=segment_id)
    if not segment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Segment with ID {segment_id} not found",
        )
    get_member_project(db, project_id=segment.project_id, user=user)
    return segment


def get_sdk_environment(
    x_environment_key: str = Header(...),
    db: Session = Depends(deps.get_db),
) -> Environment:
    """Dependency: resolve the environment from its SDK key."""
    environment = crud_environment.get_by_api_key(db, api_key=x_environment_key)
    if not environment:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid environment key")
    project_id_ctx.set(str(environment.project_id))
    return environment

from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api import deps
from app.api.deps_permissions import get_member_environment, get_member_project
from app.config import settings
from app.crud import crud_audit, crud_environment
from app.models.user import User
from app.schemas.environment import Environment, EnvironmentCreate, EnvironmentUpdate

router = APIRouter()


@router.get("/projects/{project_id}/environments", response_model=List[Environment])
def list_environments(
    project_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    get_member_project(db, project_id=project_id, user=current_user)
    return crud_environment.get_by_project(db, project_id=project_id)


@router.post(
    "/projects/{project_id}/environments",
    response_model=Environment,
    status_code=status.HTTP_201_CREATED,
)
def create_environment(
    project_id: UUID,
    environment_in: EnvironmentCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    get_member_project(db, project_id=project_id, user=current_user)
    if crud_environment.get_by_key(db, project_id=project_id, key=environment_in.key):
        raise HTTPException(
            status_code=409, detail="Environment key already exists in this project"
        )
    environment = crud_environment.create(db, project_id=project_id, obj_in=environment_in)
    crud_audit.create_audit_log(
        db,
        action="ENVIRONMENT_CREATED",
        entity="Environment",
        entity_id=environment.id,
        user_id=current_user.id,
        project_id=project_id,
        payload={"name": environment.name, "key": environment.key},
    )
    return environment


@router.patch("/environments/{environment_id}", response_model=Environment)
def update_environment(
    environment_id: UUID,
    environment_in: EnvironmentUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    environment = get_member_environment(db, environment_id=environment_id, user=current_user)
    if environment_in.key and crud_environment.get_by_key(
        db, project_id=environment.project_id, key=environment_in.key, exclude_id=environment.id
    ):
        raise HTTPException(
            status_code=409, detail="Environment key already exists in this project"
        )
    environment = crud_environment.update(db, db_obj=environment, obj_in=environment_in)
    crud_audit.create_audit_log(
        db,
        action="ENVIRONMENT_UPDATED",
        entity="Environment",
        entity_id=environment.id,
        user_id=current_user.id,
        project_id=environment.project_id,
        payload=environment_in.model_dump(exclude_unset=True, mode="json"),
    )
    return environment


@router.post("/environments/{environment_id}/rotate-key", response_model=Environment)
def rotate_environment_key(
    environment_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """Issue a new SDK key; the previous key stops working immediately."""
    environment = get_member_environment(db, environment_id=environment_id, user=current_user)
    environment = crud_environment.rotate_api_key(db, db_obj=environment)
    crud_audit.create_audit_log(
        db,
        action="ENVIRONMENT_KEY_ROTATED",
        entity="Environment",
        entity_id=environment.id,
        user_id=current_user.id,
        project_id=environment.project_id,
    )
    return environment


@router.delete("/environments/{environment_id}")
def delete_environment(
    environment_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    environment = get_member_environment(db, environment_id=environment_id, user=current_user)
    if environment.key in settings.DEFAULT_ENVIRONMENTS:
        raise HTTPException(
            status_code=403,
            detail=f"Default environments ({', '.join(settings.DEFAULT_ENVIRONMENTS)}) cannot be deleted",
        )
    project_id = environment.project_id
    payload = {"name": environment.name, "key": environment.key}
    crud_environment.remove(db, db_obj=environment)
    crud_audit.create_audit_log(
        db,
        action="ENVIRONMENT_DELETED",
        entity="Environment",
        entity_id=environment_id,
        user_id=current_user.id,
        project_id=project_id,
        payload=payload,
    )
    return {"message": "Environment deleted successfully"}

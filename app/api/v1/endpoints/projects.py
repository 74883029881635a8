"""Project management API.

Projects are only visible to their members. Creating a project makes the
caller a member and adds the default environments.
"""
import logging
from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api import deps
from app.api.deps_permissions import get_member_project
from app.crud import crud_audit, crud_project, crud_user
from app.models.user import User
from app.schemas.project import (
    ProjectCounts,
    ProjectCreate,
    ProjectDetail,
    ProjectMemberAdd,
    ProjectUpdate,
    ProjectWithCounts,
)

logger = logging.getLogger("flagpole.projects")

router = APIRouter()


@router.get("/", response_model=List[ProjectWithCounts])
def list_projects(
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    projects = crud_project.get_multi_for_user(db, user_id=current_user.id)
    return [
        ProjectWithCounts.model_validate(p).model_copy(
            update={"counts": ProjectCounts(**crud_project.get_counts(db, p.id))}
        )
        for p in projects
    ]


@router.post("/", response_model=ProjectDetail, status_code=status.HTTP_201_CREATED)
def create_project(
    *,
    db: Session = Depends(deps.get_db),
    project_in: ProjectCreate,
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    if crud_project.get_by_key(db, key=project_in.key):
        raise HTTPException(status_code=409, detail="Project key already exists")
    project = crud_project.create(db, obj_in=project_in, owner=current_user)
    crud_audit.create_audit_log(
        db,
        action="PROJECT_CREATED",
        entity="Project",
        entity_id=project.id,
        user_id=current_user.id,
        project_id=project.id,
        payload={"name": project.name, "key": project.key},
    )
    logger.info("Project %s created with %d environments", project.key, len(project.environments))
    return project


@router.get("/{project_id}", response_model=ProjectDetail)
def read_project(
    project_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return get_member_project(db, project_id=project_id, user=current_user)


@router.patch("/{project_id}", response_model=ProjectDetail)
def update_project(
    project_id: UUID,
    project_in: ProjectUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    project = get_member_project(db, project_id=project_id, user=current_user)
    if project_in.key and crud_project.get_by_key(db, key=project_in.key, exclude_id=project.id):
        raise HTTPException(status_code=409, detail="Project key already exists")
    project = crud_project.update(db, db_obj=project, obj_in=project_in)
    crud_audit.create_audit_log(
        db,
        action="PROJECT_UPDATED",
        entity="Project",
        entity_id=project.id,
        user_id=current_user.id,
        project_id=project.id,
        payload=project_in.model_dump(exclude_unset=True, mode="json"),
    )
    return project


@router.delete("/{project_id}")
def delete_project(
    project_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    project = get_member_project(db, project_id=project_id, user=current_user)
    payload = {"name": project.name, "key": project.key}
    crud_project.remove(db, db_obj=project)
    crud_audit.create_audit_log(
        db,
        action="PROJECT_DELETED",
        entity="Project",
        entity_id=project_id,
        user_id=current_user.id,
        project_id=project_id,
        payload=payload,
    )
    logger.info("Project %s deleted", payload["key"])
    return {"message": "Project deleted successfully"}


# ═══════════════════════════════════════════
#  Members
# ═══════════════════════════════════════════

@router.post("/{project_id}/members", response_model=ProjectDetail)
def add_project_member(
    project_id: UUID,
    member_in: ProjectMemberAdd,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    project = get_member_project(db, project_id=project_id, user=current_user)
    user = crud_user.get_by_email(db, email=member_in.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    project = crud_project.add_member(db, db_obj=project, user=user)
    crud_audit.create_audit_log(
        db,
        action="PROJECT_MEMBER_ADDED",
        entity="Project",
        entity_id=project.id,
        user_id=current_user.id,
        project_id=project.id,
        payload={"member_id": str(user.id)},
    )
    return project


@router.delete("/{project_id}/members/{user_id}", response_model=ProjectDetail)
def remove_project_member(
    project_id: UUID,
    user_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    project = get_member_project(db, project_id=project_id, user=current_user)
    member = next((m for m in project.members if m.id == user_id), None)
    if member is None:
        raise HTTPException(status_code=404, detail="User is not a member of this project")
    if len(project.members) == 1:
        raise HTTPException(status_code=400, detail="A project must keep at least one member")
    project = crud_project.remove_member(db, db_obj=project, user=member)
    crud_audit.create_audit_log(
        db,
        action="PROJECT_MEMBER_REMOVED",
        entity="Project",
        entity_id=project.id,
        user_id=current_user.id,
        project_id=project.id,
        payload={"member_id": str(user_id)},
    )
    return project

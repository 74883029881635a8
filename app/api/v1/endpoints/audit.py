from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api import deps
from app.api.deps_permissions import get_member_project
from app.config import settings
from app.crud import crud_audit, crud_project
from app.models.user import User
from app.schemas.audit import AuditLog

router = APIRouter()


@router.get("/audit-logs", response_model=List[AuditLog])
def get_audit_logs(
    db: Session = Depends(deps.get_db),
    entity: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.AUDIT_LOG_DEFAULT_LIMIT, ge=1),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """
    Audit trail, newest first.
    - Superusers see every entry
    - Other users see entries of the projects they belong to
    """
    project_ids = None
    if not current_user.is_superuser:
        project_ids = [p.id for p in crud_project.get_multi_for_user(db, user_id=current_user.id)]

    return crud_audit.get_audit_logs(
        db,
        project_ids=project_ids,
        entity=entity,
        entity_id=entity_id,
        action=action,
        skip=skip,
        limit=min(limit, settings.AUDIT_LOG_MAX_LIMIT),
    )


@router.get("/projects/{project_id}/audit-logs", response_model=List[AuditLog])
def get_project_audit_logs(
    project_id: UUID,
    db: Session = Depends(deps.get_db),
    action: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.AUDIT_LOG_DEFAULT_LIMIT, ge=1),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    get_member_project(db, project_id=project_id, user=current_user)
    return crud_audit.get_audit_logs(
        db,
        project_id=project_id,
        action=action,
        skip=skip,
        limit=min(limit, settings.AUDIT_LOG_MAX_LIMIT),
    )

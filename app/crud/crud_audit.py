from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.orm import Session
from app.models.audit import AuditLog


def create_audit_log(
    db: Session,
    *,
    action: str,
    entity: str,
    entity_id: Any,
    user_id: Optional[UUID],
    project_id: Optional[UUID] = None,
    payload: Optional[Dict] = None,
) -> AuditLog:
    db_obj = AuditLog(
        action=action,
        entity=entity,
        entity_id=str(entity_id),
        user_id=user_id,
        project_id=project_id,
        payload=payload or {},
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def get_by_entity(db: Session, *, entity: str, entity_id: Any) -> List[AuditLog]:
    return (
        db.query(AuditLog)
        .filter(AuditLog.entity == entity, AuditLog.entity_id == str(entity_id))
        .order_by(AuditLog.created_at.desc())
        .all()
    )


def get_audit_logs(
    db: Session,
    *,
    project_id: Optional[UUID] = None,
    project_ids: Optional[List[UUID]] = None,
    entity: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    skip: int = 0,
    limit: int = 100
) -> List[AuditLog]:
    query = db.query(AuditLog)

    if project_id:
        query = query.filter(AuditLog.project_id == project_id)
    if project_ids is not None:
        query = query.filter(AuditLog.project_id.in_(project_ids))
    if entity:
        query = query.filter(AuditLog.entity == entity)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)
    if action:
        query = query.filter(AuditLog.action == action)

    return query.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()

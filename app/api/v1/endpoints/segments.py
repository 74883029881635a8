"""Segment management API.

A segment is a named, reusable set of attribute conditions. Flags target
segments from their per-environment targeting; a segment referenced there is
resolved by id at evaluation time.
"""
import logging
from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api import deps
from app.api.deps_permissions import get_member_project, get_member_segment
from app.crud import crud_audit, crud_segment
from app.models.segment import Segment as SegmentModel
from app.models.user import User
from app.schemas.segment import Segment, SegmentCreate, SegmentUpdate

logger = logging.getLogger("flagpole.segments")

router = APIRouter()


def _audit(db: Session, segment: SegmentModel, action: str, user: User, payload: Any = None) -> None:
    crud_audit.create_audit_log(
        db,
        action=action,
        entity="Segment",
        entity_id=segment.id,
        user_id=user.id,
        project_id=segment.project_id,
        payload=payload,
    )


@router.get("/projects/{project_id}/segments", response_model=List[Segment])
def list_segments(
    project_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    get_member_project(db, project_id=project_id, user=current_user)
    return crud_segment.get_by_project(db, project_id=project_id)


@router.post(
    "/projects/{project_id}/segments",
    response_model=Segment,
    status_code=status.HTTP_201_CREATED,
)
def create_segment(
    project_id: UUID,
    segment_in: SegmentCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    get_member_project(db, project_id=project_id, user=current_user)
    if crud_segment.get_by_key(db, project_id=project_id, key=segment_in.key):
        raise HTTPException(status_code=409, detail="Segment key already exists in this project")
    segment = crud_segment.create(db, project_id=project_id, obj_in=segment_in)
    _audit(db, segment, "SEGMENT_CREATED", current_user, {"name": segment.name, "key": segment.key})
    return segment


@router.get("/segments/{segment_id}", response_model=Segment)
def get_segment(
    segment_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return get_member_segment(db, segment_id=segment_id, user=current_user)


@router.patch("/segments/{segment_id}", response_model=Segment)
def update_segment(
    segment_id: UUID,
    segment_in: SegmentUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    segment = get_member_segment(db, segment_id=segment_id, user=current_user)
    if segment_in.key and crud_segment.get_by_key(
        db, project_id=segment.project_id, key=segment_in.key, exclude_id=segment.id
    ):
        raise HTTPException(status_code=409, detail="Segment key already exists in this project")
    segment = crud_segment.update(db, db_obj=segment, obj_in=segment_in)
    _audit(
        db, segment, "SEGMENT_UPDATED", current_user,
        segment_in.model_dump(exclude_unset=True, by_alias=True, mode="json"),
    )
    return segment


@router.delete("/segments/{segment_id}")
def delete_segment(
    segment_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    segment = get_member_segment(db, segment_id=segment_id, user=current_user)
    payload = {"name": segment.name, "key": segment.key}
    project_id = segment.project_id
    crud_segment.remove(db, db_obj=segment)
    crud_audit.create_audit_log(
        db,
        action="SEGMENT_DELETED",
        entity="Segment",
        entity_id=segment_id,
        user_id=current_user.id,
        project_id=project_id,
        payload=payload,
    )
    # Flags still targeting it skip the entry during evaluation
    logger.info("Segment %s deleted", payload["key"])
    return {"message": "Segment deleted successfully"}

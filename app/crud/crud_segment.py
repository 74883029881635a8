from typing import List, Optional
from uuid import UUID
from sqlalchemy.orm import Session
from app.models.segment import Segment
from app.schemas.segment import SegmentCreate, SegmentUpdate


def get(db: Session, segment_id: UUID) -> Optional[Segment]:
    return db.query(Segment).filter(Segment.id == segment_id).first()


def get_by_key(
    db: Session, *, project_id: UUID, key: str, exclude_id: Optional[UUID] = None
) -> Optional[Segment]:
    query = db.query(Segment).filter(Segment.project_id == project_id, Segment.key == key)
    if exclude_id:
        query = query.filter(Segment.id != exclude_id)
    return query.first()


def get_by_project(db: Session, *, project_id: UUID) -> List[Segment]:
    return (
        db.query(Segment)
        .filter(Segment.project_id == project_id)
        .order_by(Segment.created_at.desc())
        .all()
    )


def create(db: Session, *, project_id: UUID, obj_in: SegmentCreate) -> Segment:
    db_obj = Segment(
        project_id=project_id,
        key=obj_in.key,
        name=obj_in.name,
        description=obj_in.description,
        rules=[r.model_dump(by_alias=True) for r in obj_in.rules],
    )
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update(db: Session, *, db_obj: Segment, obj_in: SegmentUpdate) -> Segment:
    update_data = obj_in.model_dump(exclude_unset=True, exclude={"rules"})
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    if obj_in.rules is not None:
        db_obj.rules = [r.model_dump(by_alias=True) for r in obj_in.rules]
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def remove(db: Session, *, db_obj: Segment) -> None:
    db.delete(db_obj)
    db.commit()

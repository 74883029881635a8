from typing import Any, Dict, List, Optional
from uuid import UUID
from sqlalchemy.orm import Session, selectinload
from app.models.environment import Environment
from app.models.feature_flag import FeatureFlag, FlagState
from app.schemas.feature_flag import FeatureFlagCreate, FeatureFlagUpdate, Variation


def _with_states(query):
    return query.options(selectinload(FeatureFlag.flag_states).selectinload(FlagState.environment))


def get(db: Session, flag_id: UUID) -> Optional[FeatureFlag]:
    return _with_states(db.query(FeatureFlag)).filter(FeatureFlag.id == flag_id).first()


def get_by_key(db: Session, *, key: str, exclude_id: Optional[UUID] = None) -> Optional[FeatureFlag]:
    query = db.query(FeatureFlag).filter(FeatureFlag.key == key)
    if exclude_id:
        query = query.filter(FeatureFlag.id != exclude_id)
    return query.first()


def get_by_project(
    db: Session, *, project_id: UUID, archived: bool = False
) -> List[FeatureFlag]:
    query = _with_states(db.query(FeatureFlag)).filter(
        FeatureFlag.project_id == project_id, FeatureFlag.is_archived == archived
    )
    if archived:
        return query.order_by(FeatureFlag.updated_at.desc()).all()
    return query.order_by(FeatureFlag.created_at.desc()).all()


def get_by_keys(db: Session, *, project_id: UUID, keys: List[str]) -> List[FeatureFlag]:
    return (
        db.query(FeatureFlag)
        .filter(FeatureFlag.project_id == project_id, FeatureFlag.key.in_(keys))
        .all()
    )


def _dump_variations(variations: List[Variation]) -> List[Dict[str, Any]]:
    return [v.model_dump(mode="json", exclude_none=True) for v in variations]


def create(
    db: Session, *, project_id: UUID, obj_in: FeatureFlagCreate, variations: List[Variation]
) -> FeatureFlag:
    """Create the flag and one disabled flag state per project environment."""
    db_obj = FeatureFlag(
        project_id=project_id,
        name=obj_in.name,
        key=obj_in.key,
        description=obj_in.description,
        type=obj_in.type.value,
        default_value=obj_in.default_value,
        variations=_dump_variations(variations),
        is_archived=False,
    )
    db.add(db_obj)
    db.flush()

    environments = db.query(Environment.id).filter(Environment.project_id == project_id).all()
    for (environment_id,) in environments:
        db.add(FlagState(flag_id=db_obj.id, environment_id=environment_id, is_enabled=False, rules={}))
    db.commit()
    db.refresh(db_obj)
    return db_obj


def update(db: Session, *, db_obj: FeatureFlag, obj_in: FeatureFlagUpdate) -> FeatureFlag:
    update_data = obj_in.model_dump(exclude_unset=True, exclude={"variations"})
    for field, value in update_data.items():
        setattr(db_obj, field, value)
    if obj_in.variations is not None:
        db_obj.variations = _dump_variations(obj_in.variations)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def set_variations(db: Session, *, db_obj: FeatureFlag, variations: List[Variation]) -> FeatureFlag:
    # Reassign so the JSON column change is detected
    db_obj.variations = _dump_variations(variations)
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def set_archived(db: Session, *, db_obj: FeatureFlag, archived: bool) -> FeatureFlag:
    db_obj.is_archived = archived
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj


def remove(db: Session, *, db_obj: FeatureFlag) -> None:
    db.delete(db_obj)
    db.commit()


# ═══════════════════════════════════════════
#  Flag states
# ═══════════════════════════════════════════

def get_state(db: Session, *, flag_id: UUID, environment_id: UUID) -> Optional[FlagState]:
    return (
        db.query(FlagState)
        .options(selectinload(FlagState.environment))
        .filter(FlagState.flag_id == flag_id, FlagState.environment_id == environment_id)
        .first()
    )


def get_states_for_environment(db: Session, *, environment_id: UUID) -> Dict[UUID, FlagState]:
    states = db.query(FlagState).filter(FlagState.environment_id == environment_id).all()
    return {s.flag_id: s for s in states}


def update_state(
    db: Session,
    *,
    db_obj: FlagState,
    is_enabled: Optional[bool] = None,
    rules: Optional[Dict[str, Any]] = None,
) -> FlagState:
    if is_enabled is not None:
        db_obj.is_enabled = is_enabled
    if rules is not None:
        db_obj.rules = rules
    db.add(db_obj)
    db.commit()
    db.refresh(db_obj)
    return db_obj

"""Feature Flag management API.

Endpoints:
- GET    /projects/{project_id}/flags                     → active flags
- GET    /projects/{project_id}/flags/archived            → archived flags
- POST   /projects/{project_id}/flags                     → create flag (+ one state per environment)
- GET    /flags/{id}                                      → single flag with states
- PATCH  /flags/{id}                                      → update flag
- POST   /flags/{id}/archive | /unarchive                 → soft delete / restore
- DELETE /flags/{id}                                      → hard delete (superuser, archived only)
- POST   /flags/{id}/variations                           → add variation
- PATCH  /flags/{id}/variations/{variation_id}            → edit variation
- DELETE /flags/{id}/variations/{variation_id}            → remove variation
- PATCH  /flags/{id}/environments/{environment_id}        → update flag state
- POST   /flags/{id}/environments/{environment_id}/rules  → append one targeting entry
- POST   /flags/{id}/environments/{environment_id}/evaluate → evaluate for a context
- GET    /flags/{id}/audits                               → audit history
"""
import logging
import uuid
from typing import Annotated, Any, List
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api import deps
from app.api.deps_permissions import get_member_flag, get_member_project
from app.crud import crud_audit, crud_flag, crud_segment
from app.middleware.metrics import record_evaluation
from app.models.feature_flag import FeatureFlag as FeatureFlagModel
from app.models.user import User
from app.schemas.audit import AuditLog
from app.schemas.feature_flag import (
    EvaluationRequest,
    FeatureFlag,
    FeatureFlagCreate,
    FeatureFlagEvaluation,
    FeatureFlagUpdate,
    FlagState,
    FlagStateUpdate,
    FlagType,
    Variation,
    VariationUpdate,
)
from app.schemas.targeting import (
    AttributeRule,
    FlagRules,
    IndividualOverride,
    SegmentRule,
    TargetingRule,
)
from app.services.feature_flags import evaluate_models
from app.services.variations import (
    CanonicalVariationRequired,
    EvaluationError,
    InvalidVariationValue,
    coerce_value,
    default_boolean_variations,
    ensure_canonical_variations,
    is_canonical,
    normalize_variations,
)

logger = logging.getLogger("flagpole.flags")

router = APIRouter()


def _audit(db: Session, flag: FeatureFlagModel, action: str, user: User, payload: Any = None) -> None:
    crud_audit.create_audit_log(
        db,
        action=action,
        entity="FeatureFlag",
        entity_id=flag.id,
        user_id=user.id,
        project_id=flag.project_id,
        payload=payload,
    )


def _validated_variations(variations: List[Variation], flag_type: Any) -> List[Variation]:
    """Run write-side checks, translating failures to HTTP errors."""
    try:
        variations = normalize_variations(variations, flag_type)
        ensure_canonical_variations(variations, flag_type)
    except InvalidVariationValue as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except CanonicalVariationRequired as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return variations


def _validate_default_value(value: Any, flag_type: Any) -> None:
    if value is None:
        return
    try:
        coerce_value(value, flag_type)
    except InvalidVariationValue as exc:
        raise HTTPException(status_code=422, detail=f"Invalid default value: {exc}")


def _current_variations(flag: FeatureFlagModel) -> List[Variation]:
    return [Variation.model_validate(v) for v in (flag.variations or [])]


def _validate_references(db: Session, flag: FeatureFlagModel, rules: FlagRules) -> None:
    """Targeting may only point at this flag's variations and its project's segments."""
    variation_ids = {v.id for v in _current_variations(flag)}
    unknown = [i for i in rules.targeting.referenced_variation_ids() if i not in variation_ids]
    if unknown:
        raise HTTPException(status_code=422, detail=f"Unknown variation id(s): {', '.join(unknown)}")

    segment_ids = {str(s.id) for s in crud_segment.get_by_project(db, project_id=flag.project_id)}
    missing = [t.segment_id for t in rules.targeting.segments if t.segment_id not in segment_ids]
    if missing:
        raise HTTPException(status_code=422, detail=f"Unknown segment id(s): {', '.join(missing)}")


# ═══════════════════════════════════════════
#  Flags
# ═══════════════════════════════════════════

@router.get("/projects/{project_id}/flags", response_model=List[FeatureFlag])
def list_feature_flags(
    project_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    get_member_project(db, project_id=project_id, user=current_user)
    return crud_flag.get_by_project(db, project_id=project_id)


@router.get("/projects/{project_id}/flags/archived", response_model=List[FeatureFlag])
def list_archived_feature_flags(
    project_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    get_member_project(db, project_id=project_id, user=current_user)
    return crud_flag.get_by_project(db, project_id=project_id, archived=True)


@router.post(
    "/projects/{project_id}/flags",
    response_model=FeatureFlag,
    status_code=status.HTTP_201_CREATED,
)
def create_feature_flag(
    project_id: UUID,
    body: FeatureFlagCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    get_member_project(db, project_id=project_id, user=current_user)
    if crud_flag.get_by_key(db, key=body.key):
        raise HTTPException(status_code=409, detail="Flag key already exists")

    variations = body.variations
    if body.type == FlagType.BOOLEAN and not variations:
        variations = default_boolean_variations()
    variations = _validated_variations(variations, body.type)
    _validate_default_value(body.default_value, body.type)

    flag = crud_flag.create(db, project_id=project_id, obj_in=body, variations=variations)
    _audit(db, flag, "FLAG_CREATED", current_user, {"name": flag.name, "key": flag.key})
    logger.info("Flag %s created with %d flag states", flag.key, len(flag.flag_states))
    return crud_flag.get(db, flag_id=flag.id)


@router.get("/flags/{flag_id}", response_model=FeatureFlag)
def get_feature_flag(
    flag_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    return get_member_flag(db, flag_id=flag_id, user=current_user)


@router.patch("/flags/{flag_id}", response_model=FeatureFlag)
def update_feature_flag(
    flag_id: UUID,
    body: FeatureFlagUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    if body.key and crud_flag.get_by_key(db, key=body.key, exclude_id=flag.id):
        raise HTTPException(status_code=409, detail="Flag key already exists")

    if body.variations is not None:
        body.variations = _validated_variations(body.variations, flag.type)
    if "default_value" in body.model_fields_set:
        _validate_default_value(body.default_value, flag.type)

    flag = crud_flag.update(db, db_obj=flag, obj_in=body)
    _audit(db, flag, "FLAG_UPDATED", current_user, body.model_dump(exclude_unset=True, mode="json"))
    return crud_flag.get(db, flag_id=flag.id)


@router.post("/flags/{flag_id}/archive", response_model=FeatureFlag)
def archive_feature_flag(
    flag_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    flag = crud_flag.set_archived(db, db_obj=flag, archived=True)
    _audit(db, flag, "FLAG_ARCHIVED", current_user)
    return flag


@router.post("/flags/{flag_id}/unarchive", response_model=FeatureFlag)
def unarchive_feature_flag(
    flag_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    flag = crud_flag.set_archived(db, db_obj=flag, archived=False)
    _audit(db, flag, "FLAG_UNARCHIVED", current_user)
    return flag


@router.delete("/flags/{flag_id}")
def delete_feature_flag(
    flag_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    if not current_user.is_superuser:
        raise HTTPException(status_code=403, detail="Only superusers can delete flags")
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    if not flag.is_archived:
        raise HTTPException(status_code=409, detail="Flag must be archived before deletion")

    payload = {"name": flag.name, "key": flag.key}
    project_id = flag.project_id
    crud_flag.remove(db, db_obj=flag)
    crud_audit.create_audit_log(
        db,
        action="FLAG_DELETED",
        entity="FeatureFlag",
        entity_id=flag_id,
        user_id=current_user.id,
        project_id=project_id,
        payload=payload,
    )
    logger.info("Flag %s deleted", payload["key"])
    return {"message": "Feature flag deleted successfully"}


# ═══════════════════════════════════════════
#  Variations
# ═══════════════════════════════════════════

@router.post("/flags/{flag_id}/variations", response_model=FeatureFlag, status_code=status.HTTP_201_CREATED)
def add_variation(
    flag_id: UUID,
    variation_in: Variation,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    variations = _validated_variations([*_current_variations(flag), variation_in], flag.type)
    flag = crud_flag.set_variations(db, db_obj=flag, variations=variations)
    _audit(db, flag, "VARIATION_CREATED", current_user, variations[-1].model_dump(mode="json"))
    return flag


@router.patch("/flags/{flag_id}/variations/{variation_id}", response_model=FeatureFlag)
def update_variation(
    flag_id: UUID,
    variation_id: str,
    variation_in: VariationUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    variations = _current_variations(flag)
    index = next((i for i, v in enumerate(variations) if v.id == variation_id), None)
    if index is None:
        raise HTTPException(status_code=404, detail="Variation not found")

    changes = variation_in.model_dump(exclude_unset=True)
    variations[index] = Variation.model_validate({**variations[index].model_dump(), **changes})
    variations = _validated_variations(variations, flag.type)
    flag = crud_flag.set_variations(db, db_obj=flag, variations=variations)
    _audit(
        db, flag, "VARIATION_UPDATED", current_user,
        {"id": variation_id, **variation_in.model_dump(exclude_unset=True, mode="json")},
    )
    return flag


@router.delete("/flags/{flag_id}/variations/{variation_id}", response_model=FeatureFlag)
def delete_variation(
    flag_id: UUID,
    variation_id: str,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    variations = _current_variations(flag)
    target = next((v for v in variations if v.id == variation_id), None)
    if target is None:
        raise HTTPException(status_code=404, detail="Variation not found")
    if flag.type == FlagType.BOOLEAN.value and is_canonical(target):
        raise HTTPException(
            status_code=400,
            detail=f'The default "{target.name}" variation of a boolean flag cannot be deleted.',
        )

    remaining = [v for v in variations if v.id != variation_id]
    flag = crud_flag.set_variations(db, db_obj=flag, variations=remaining)
    _audit(db, flag, "VARIATION_DELETED", current_user, {"id": variation_id, "name": target.name})
    return flag


# ═══════════════════════════════════════════
#  Flag states
# ═══════════════════════════════════════════

def _get_state(db: Session, flag: FeatureFlagModel, environment_id: UUID):
    state = crud_flag.get_state(db, flag_id=flag.id, environment_id=environment_id)
    if not state:
        raise HTTPException(status_code=404, detail="Flag state not found")
    return state


def _audit_state(db: Session, flag: FeatureFlagModel, state, user: User) -> None:
    _audit(
        db, flag, "FLAG_STATE_UPDATED", user,
        {
            "environment": state.environment.key,
            "isEnabled": state.is_enabled,
            "rules": state.rules,
        },
    )


@router.patch("/flags/{flag_id}/environments/{environment_id}", response_model=FlagState)
def update_flag_state(
    flag_id: UUID,
    environment_id: UUID,
    body: FlagStateUpdate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    state = _get_state(db, flag, environment_id)

    rules = None
    if body.rules is not None:
        _validate_references(db, flag, body.rules)
        rules = body.rules.to_stored()

    state = crud_flag.update_state(db, db_obj=state, is_enabled=body.is_enabled, rules=rules)
    _audit_state(db, flag, state, current_user)
    logger.info(
        "Flag %s in %s is now %s",
        flag.key, state.environment.key, "on" if state.is_enabled else "off",
    )
    return state


@router.post(
    "/flags/{flag_id}/environments/{environment_id}/rules",
    response_model=FlagState,
    status_code=status.HTTP_201_CREATED,
)
def append_targeting_rule(
    flag_id: UUID,
    environment_id: UUID,
    rule: Annotated[TargetingRule, Body(discriminator="kind")],
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """Append one targeting entry; its kind decides which ordered list it joins."""
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    state = _get_state(db, flag, environment_id)

    rules = FlagRules.from_stored(state.rules)
    targeting = rules.targeting
    if isinstance(rule, AttributeRule):
        if not rule.id:
            rule = rule.model_copy(update={"id": str(uuid.uuid4())})
        targeting.rules.append(rule)
    elif isinstance(rule, SegmentRule):
        targeting.segments.append(rule)
    elif isinstance(rule, IndividualOverride):
        targeting.individual.append(rule)
    _validate_references(db, flag, rules)

    state = crud_flag.update_state(db, db_obj=state, rules=rules.to_stored())
    _audit_state(db, flag, state, current_user)
    return state


@router.post(
    "/flags/{flag_id}/environments/{environment_id}/evaluate",
    response_model=FeatureFlagEvaluation,
)
def evaluate_feature_flag(
    flag_id: UUID,
    environment_id: UUID,
    body: EvaluationRequest,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """Evaluate the flag in one environment for the given context."""
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    state = _get_state(db, flag, environment_id)
    segments = crud_segment.get_by_project(db, project_id=flag.project_id)
    try:
        result = evaluate_models(flag, state, segments, body.context)
    except EvaluationError as exc:
        logger.error("Flag %s is misconfigured: %s", flag.key, exc)
        raise HTTPException(status_code=409, detail=str(exc))
    record_evaluation(result.reason)
    return FeatureFlagEvaluation(
        key=flag.key, value=result.value, variation_id=result.variation_id, reason=result.reason
    )


@router.get("/flags/{flag_id}/audits", response_model=List[AuditLog])
def get_feature_flag_audits(
    flag_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    flag = get_member_flag(db, flag_id=flag_id, user=current_user)
    return crud_audit.get_by_entity(db, entity="FeatureFlag", entity_id=flag.id)

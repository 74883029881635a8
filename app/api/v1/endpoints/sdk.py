"""SDK evaluation API.

Client SDKs authenticate with an environment key (``X-Environment-Key``)
instead of a user token and receive the evaluated value of every active
flag, or of the requested keys, for one context. A misconfigured flag is
reported on its own entry and never fails the whole request.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api import deps
from app.api.deps_permissions import get_sdk_environment
from app.crud import crud_flag, crud_segment
from app.middleware.metrics import record_evaluation
from app.models.environment import Environment
from app.schemas.feature_flag import (
    FeatureFlagEvaluation,
    SDKEvaluationRequest,
    SDKEvaluationResponse,
)
from app.services.feature_flags import evaluate_models
from app.services.variations import EvaluationError

logger = logging.getLogger("flagpole.sdk")

router = APIRouter()


@router.post("/sdk/evaluate", response_model=SDKEvaluationResponse)
def sdk_evaluate(
    body: SDKEvaluationRequest,
    db: Session = Depends(deps.get_db),
    environment: Environment = Depends(get_sdk_environment),
) -> Any:
    project_id = environment.project_id
    if body.flag_keys is None:
        flags = crud_flag.get_by_project(db, project_id=project_id)
    else:
        flags = [
            f for f in crud_flag.get_by_keys(db, project_id=project_id, keys=body.flag_keys)
            if not f.is_archived
        ]
    states = crud_flag.get_states_for_environment(db, environment_id=environment.id)
    segments = crud_segment.get_by_project(db, project_id=project_id)

    results = {}
    for flag in flags:
        try:
            result = evaluate_models(flag, states.get(flag.id), segments, body.context)
        except EvaluationError as exc:
            logger.error("Flag %s is misconfigured in %s: %s", flag.key, environment.key, exc)
            results[flag.key] = FeatureFlagEvaluation(key=flag.key, error=str(exc))
            continue
        record_evaluation(result.reason)
        results[flag.key] = FeatureFlagEvaluation(
            key=flag.key,
            value=result.value,
            variation_id=result.variation_id,
            reason=result.reason,
        )

    for key in body.flag_keys or []:
        if key not in results:
            results[key] = FeatureFlagEvaluation(key=key, error="Flag not found")

    logger.debug("Evaluated %d flags in %s", len(results), environment.key)
    return SDKEvaluationResponse(environment=environment.key, flags=results)

from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth, users, projects, environments, feature_flags, segments, audit, sdk,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])

# Nested resources use full paths (/projects/{id}/..., /flags/{id}/...)
api_router.include_router(environments.router, tags=["environments"])
api_router.include_router(feature_flags.router, tags=["feature-flags"])
api_router.include_router(segments.router, tags=["segments"])
api_router.include_router(audit.router, tags=["audit"])
api_router.include_router(sdk.router, tags=["sdk"])

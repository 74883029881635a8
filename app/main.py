from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.api.v1.api import api_router
from app.db.session import get_pool_status
from app.middleware.request_logging import RequestLoggingMiddleware
from app.middleware.metrics import PrometheusMiddleware, metrics_endpoint, set_app_info
from app.logging_config import setup_logging

__version__ = "1.0.0"

# ── Initialize structured logging ──
setup_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=__version__,
    openapi_url=f"{settings.API_V1_STR}/openapi.json"
)

# Set all CORS enabled origins
cors_origins = ["http://localhost:3000", "http://localhost:5173", "http://localhost:8000"]
if settings.BACKEND_CORS_ORIGINS:
    cors_origins.extend([origin.strip() for origin in settings.BACKEND_CORS_ORIGINS.split(",") if origin.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request logging middleware – request ID, timing, context
app.add_middleware(RequestLoggingMiddleware)

# Prometheus metrics middleware – request count, latency, in-progress
app.add_middleware(PrometheusMiddleware)

app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    return {"message": f"Welcome to {settings.APP_NAME} API", "docs": "/docs"}


@app.get("/health")
def health_check():
    return {"status": "ok", "env": settings.APP_ENV, "database": get_pool_status()}


app.add_route("/metrics", metrics_endpoint)
set_app_info(version=__version__, env=settings.APP_ENV)

"""
Database session and connection pool setup.

Pool parameters (PostgreSQL only, SQLite uses SQLAlchemy's defaults):
- pool_size: persistent connections (default 10, fits a 4-worker uvicorn)
- max_overflow: extra connections allowed at peak
- pool_timeout: max seconds to wait for a free connection
- pool_recycle: recycle period so idle connections are not dropped server side
- pool_pre_ping: check the connection is alive before use
"""

import logging
import time
from typing import Any, Dict

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings

logger = logging.getLogger("flagpole.db")

SLOW_QUERY_THRESHOLD_MS = settings.SLOW_QUERY_THRESHOLD_MS


def engine_options(url: str) -> Dict[str, Any]:
    """Build create_engine keyword arguments suitable for the given URL."""
    if url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Every session must see the same in-memory database
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }


engine = create_engine(
    settings.database_url,
    echo=settings.DB_ECHO,
    **engine_options(settings.database_url),
)


# ---------------------------------------------------------------------------
# Slow query monitoring
# ---------------------------------------------------------------------------
@event.listens_for(engine, "before_cursor_execute")
def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault("query_start_time", []).append(time.perf_counter())


@event.listens_for(engine, "after_cursor_execute")
def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    total_ms = (time.perf_counter() - conn.info["query_start_time"].pop()) * 1000

    if total_ms >= SLOW_QUERY_THRESHOLD_MS:
        stmt_preview = statement[:500] + "..." if len(statement) > 500 else statement
        logger.warning(
            "Slow query detected",
            extra={
                "duration_ms": round(total_ms, 2),
                "statement": stmt_preview,
                "threshold_ms": SLOW_QUERY_THRESHOLD_MS,
            },
        )


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_pool_status() -> dict:
    """Connection pool status, exposed on /health."""
    pool = engine.pool
    status = {"pool": type(pool).__name__}
    if hasattr(pool, "checkedout"):
        status.update(
            {
                "pool_size": pool.size(),
                "checked_in": pool.checkedin(),
                "checked_out": pool.checkedout(),
                "overflow": pool.overflow(),
            }
        )
    return status

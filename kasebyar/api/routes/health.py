"""
Health endpoints.

``/api/health`` is the liveness check; ``/api/health/db`` also touches the
database and reports schema version and write-pool counters.
"""

import time
from dataclasses import asdict

from fastapi import APIRouter

from kasebyar import __version__
from kasebyar.application.dto.responses import HealthResponse
from kasebyar.config import get_logger, get_settings

logger = get_logger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])

_started = time.monotonic()


@router.get("", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=get_settings().environment,
    )


@router.get("/db", response_model=HealthResponse)
async def db_health() -> HealthResponse:
    """Query SQLite; an unreachable database reports ``unhealthy`` rather than failing."""
    from kasebyar.infrastructure.storage.sqlite import get_pool
    from kasebyar.infrastructure.storage.sqlite.migrations.migrator import get_current_version

    database: dict = {
        "name": "sqlite",
        "available": False,
        "uptime_seconds": round(time.monotonic() - _started, 1),
    }
    try:
        pool = await get_pool()
        start = time.perf_counter()
        async with pool.acquire() as conn:
            await conn.execute("SELECT 1")
            version = await get_current_version(conn)
        database.update(
            available=True,
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
            schema_version=version,
            pool=asdict(pool.stats()),
        )
    except Exception as e:
        logger.warning("db_health_failed", error=str(e))
        database["error"] = str(e)

    return HealthResponse(
        status="healthy" if database["available"] else "unhealthy",
        version=__version__,
        environment=get_settings().environment,
        database=database,
    )

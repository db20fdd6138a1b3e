from fastapi import APIRouter, Query

from tabi.core.db import check_db_health
from tabi.core.settings import settings
from tabi.utils.metrics import get_metrics_registry

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def read_healthz() -> dict:
    """Liveness probe plus a cached database round-trip."""

    database = await check_db_health()
    status = "ok" if database["status"] == "ok" else "degraded"
    return {
        "status": status,
        "app": settings.app_name,
        "version": settings.app_version,
        "database": database,
    }


@router.get("/healthz/metrics")
def read_metrics(
    window_seconds: int = Query(default=0, ge=0, alias="windowSeconds"),
) -> dict:
    """Per-route request counts and latencies recorded by the middleware."""

    return get_metrics_registry().snapshot_window(window_seconds)

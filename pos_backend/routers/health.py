"""
Health Router: readiness and configuration checks.
"""
from fastapi import APIRouter, Request, Response, status

from pos_backend.scheduler.cron_tasks import scheduler
from pos_backend.utils.config import settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, response: Response):
    """
    Readiness probe. Returns 503 while the app is still starting up.
    Remote systems are not pinged; only their configuration is reported.
    """
    if not getattr(request.app.state, "is_ready", False):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "initializing", "message": "Application is starting up"}

    checks = {
        "woocommerce": "configured" if settings.woo_configured else "missing",
        "baserow": "configured" if settings.baserow_configured else "missing",
        "scheduler": "running" if scheduler.running else "stopped",
    }
    cache = getattr(request.app.state, "catalog_cache", None)
    overall = "healthy" if all(v != "missing" for v in checks.values()) else "degraded"

    return {
        "status": overall,
        "services": checks,
        "cache_entries": len(cache) if cache is not None else 0,
    }

"""
Sync Router: manual trigger for the reconciliation jobs.
"""
from fastapi import APIRouter, Depends

from pos_backend.routers.dependencies import require_auth
from pos_backend.scheduler.cron_tasks import run_sync_now

router = APIRouter(dependencies=[Depends(require_auth)])


@router.post("/sync/run")
async def run_sync():
    """Run order and customer sync once and return both reports."""
    return {"success": True, "data": await run_sync_now()}

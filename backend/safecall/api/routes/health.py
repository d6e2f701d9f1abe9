"""Health Probes: liveness and database readiness for the SafeCall API.

Invariants:
    - GET /api/v1/health/ answers 200 whenever the process is serving
    - GET /api/v1/health/ready answers 503 until the lifespan has built a
      DatabaseSessionManager and that manager can run a query
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from safecall import __version__
from safecall.infrastructure.database import DatabaseSessionManager, get_db_manager

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def liveness():
    return {"status": "healthy", "service": "safecall-api", "version": __version__}


@router.get("/ready")
async def readiness(
    db_manager: DatabaseSessionManager | None = Depends(get_db_manager),
):
    """Database round-trip; 503 with a reason when it cannot be made."""
    if db_manager is None:
        reason = "database_not_initialized"
    elif not await db_manager.health_check():
        reason = "database_unavailable"
    else:
        return {"status": "ready", "checks": {"database": "healthy"}}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "reason": reason},
    )

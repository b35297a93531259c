"""Health & Readiness Probes — process liveness and database readiness.

Invariants:
    - GET /health/ is 200 whenever the process can serve requests
    - GET /health/ready is 503 until the database answers SELECT 1
    - Neither probe touches a ledger or takes a crowdsale lock
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import crowdsale.infrastructure.database as database
from crowdsale.services.crowdsale_service import live_ledger_count

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {
        "status": "healthy",
        "service": "crowdsale-api",
        "live_ledgers": live_ledger_count(),
    }


@router.get("/ready")
async def readiness_check():
    """Ready once the session manager exists and the database responds."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": {"database": "unavailable"}},
        )
    return {"status": "ready", "checks": {"database": "healthy"}}

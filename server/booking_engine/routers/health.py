"""Health check router."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.observability import SERVICE_VERSION
from ..schemas.health import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])

DB_DEPENDENCY = Depends(get_db)


@router.get("/ping", response_model=HealthResponse)
async def health_ping() -> JSONResponse:
    """
    Liveness check.

    Returns current service status and timestamp.
    """
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(timezone.utc),
        version=SERVICE_VERSION
    )

    logger.debug(
        "Health check requested",
        extra={
            "status": response_data.status,
            "timestamp": response_data.timestamp.isoformat()
        }
    )

    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/ready", response_model=HealthResponse)
async def health_ready(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Readiness check that verifies the booking store answers."""
    checks = {"database": "ok"}
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Readiness check failed", extra={"check": "database", "error": str(e)})
        checks["database"] = "unavailable"

    healthy = all(value == "ok" for value in checks.values())
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY if healthy else HealthStatus.DEGRADED,
        timestamp=datetime.now(timezone.utc),
        version=SERVICE_VERSION,
        checks=checks,
    )
    return JSONResponse(
        status_code=200 if healthy else 503,
        content=response_data.model_dump(mode="json")
    )

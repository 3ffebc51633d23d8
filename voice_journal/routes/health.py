"""
Health check endpoint for monitoring.
"""
from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException, status, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from voice_journal.schemas.entry import HealthResponse
from voice_journal.database import get_db
from voice_journal.utils.logger import get_logger

logger = get_logger("health")
router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check application and database health status",
    responses={
        200: {"description": "Service is healthy"},
        503: {"description": "Service is unhealthy"}
    }
)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """
    Liveness plus a database round trip.

    Returns:
        HealthResponse (200 if healthy, 503 if the database is unreachable)
    """
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database connection failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "status": "degraded",
                "database": "disconnected",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        )

    return HealthResponse(
        status="healthy",
        database="connected",
        timestamp=datetime.now(timezone.utc)
    )

"""Health endpoints for liveness and dependency checks."""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.api.schemas.system import HealthResponse
from carehome.core.database import get_db
from carehome.core.logging import get_logger, sanitize_error
from carehome.core.redis import RedisClient, get_redis_optional

logger = get_logger(__name__)

router = APIRouter(tags=["system"])


async def check_database_health(db: AsyncSession) -> dict[str, Any]:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {sanitize_error(e)}")
        return {"status": "unhealthy", "message": f"Database error: {sanitize_error(e)}"}
    return {"status": "healthy", "message": "Database operational"}


async def check_redis_health(redis: RedisClient | None) -> dict[str, Any]:
    """Check Redis connectivity.

    Args:
        redis: Redis client, or None if the connection failed during injection
    """
    if redis is None:
        return {"status": "unhealthy", "message": "Redis unavailable: connection failed"}
    health = await redis.health_check()
    if health.get("status") == "healthy":
        return {"status": "healthy", "message": "Redis connected"}
    return {"status": "unhealthy", "message": f"Redis error: {health.get('error', 'unknown')}"}


@router.get("/health")
async def liveness() -> dict[str, str]:
    """Liveness probe: the process is up and serving requests."""
    return {"status": "alive"}


@router.get("/api/system/health", response_model=HealthResponse)
async def readiness(
    response: Response,
    db: AsyncSession = Depends(get_db),
    redis: RedisClient | None = Depends(get_redis_optional),
) -> HealthResponse:
    """Readiness probe covering the database and Redis.

    The database is required; Redis only carries the realtime feed, so its
    loss degrades the service instead of failing it.
    """
    services = {
        "database": await check_database_health(db),
        "redis": await check_redis_health(redis),
    }
    if services["database"]["status"] != "healthy":
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif services["redis"]["status"] != "healthy":
        overall = "degraded"
    else:
        overall = "healthy"
    return HealthResponse(status=overall, services=services, timestamp=datetime.now(UTC))

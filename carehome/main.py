"""FastAPI application entry point for the CareHome facility platform."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from carehome.api.exception_handlers import register_exception_handlers
from carehome.api.middleware import RequestIDMiddleware, RouteGuardMiddleware
from carehome.api.routes import (
    activity,
    auth,
    clinical,
    dashboard,
    files,
    messaging,
    people,
    policy,
    profiles,
    system,
    websocket,
)
from carehome.core import close_db, get_settings, init_db
from carehome.core.logging import get_logger, setup_logging
from carehome.core.redis import close_redis, init_redis
from carehome.policy import get_policy_set

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle - startup and shutdown events."""
    # Logging first, so startup problems are recorded
    setup_logging()

    settings = get_settings()
    await init_db()
    logger.info("Database initialized")

    # Build the policy set now so weakening options are logged at startup
    policies = get_policy_set()
    logger.info(f"Access policies loaded: {len(policies.policies)} rules")

    try:
        await init_redis()
        logger.info(f"Redis initialized: {settings.redis_url}")
    except (RedisError, OSError) as e:
        logger.warning(f"Redis connection failed, realtime feed unavailable: {e}")

    yield

    await close_db()
    logger.info("Database connections closed")
    await close_redis()
    logger.info("Redis connection closed")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Residents, staff, families and care records behind role-based access policies",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Dashboard navigation guard; API routes authorize through the policy set
    app.add_middleware(RouteGuardMiddleware)

    # Request ID middleware for log correlation
    app.add_middleware(RequestIDMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(profiles.router)
    app.include_router(people.router)
    app.include_router(clinical.router)
    app.include_router(activity.router)
    app.include_router(messaging.router)
    app.include_router(files.router)
    app.include_router(policy.router)
    app.include_router(dashboard.router)
    app.include_router(websocket.router)
    app.include_router(system.router)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"status": "ok", "message": settings.app_name}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "carehome.main:app",
        host=get_settings().api_host,
        port=get_settings().api_port,
        reload=get_settings().debug,
    )

"""
POS API main application.
Entry point for the FastAPI server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text

from pos_api.models import Base
from pos_api.routers import catalog_router, orders_router
from shared.config.logging import pos_api_logger as logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.infrastructure.db import SessionLocal, engine, ensure_sqlite_directory
from shared.infrastructure.events import (
    RedisChangeRelay,
    close_redis_sync_client,
    get_order_change_bus,
    get_redis_sync_client,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    setup_logging()

    config_errors = settings.validate_production_settings()
    if config_errors:
        for error in config_errors:
            logger.error("Configuration error", error=error)
        if settings.environment == "production":
            raise RuntimeError(f"Production configuration errors: {'; '.join(config_errors)}")

    logger.info("Starting POS API", port=settings.api_port, env=settings.environment)

    ensure_sqlite_directory(settings.database_url)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    relay = None
    if settings.redis_url:
        relay = RedisChangeRelay(get_redis_sync_client)
        relay.attach(get_order_change_bus())

    yield

    logger.info("Shutting down POS API")
    if relay is not None:
        relay.detach()
        close_redis_sync_client()


app = FastAPI(
    title="POS API",
    description="Cart, order aggregation and pricing for the point-of-sale terminal",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# Health Check
# =============================================================================


@app.get("/api/health")
def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "pos-api",
        "environment": settings.environment,
    }


@app.get("/api/health/detailed")
def detailed_health_check():
    """
    Health check that verifies connectivity to the database and, when a
    relay is configured, Redis.
    """
    checks = {
        "service": "pos-api",
        "environment": settings.environment,
        "dependencies": {},
    }
    all_healthy = True

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        checks["dependencies"]["database"] = {"status": "healthy"}
    except Exception as e:
        checks["dependencies"]["database"] = {"status": "unhealthy", "error": str(e)}
        all_healthy = False

    if settings.redis_url:
        try:
            get_redis_sync_client().ping()
            checks["dependencies"]["redis"] = {"status": "healthy"}
        except Exception as e:
            checks["dependencies"]["redis"] = {"status": "unhealthy", "error": str(e)}
            all_healthy = False

    checks["status"] = "healthy" if all_healthy else "degraded"
    if not all_healthy:
        return JSONResponse(content=checks, status_code=503)
    return checks


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(orders_router)
app.include_router(catalog_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pos_api.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        reload=settings.debug,
    )

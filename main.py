import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_platform.infrastructure.cache.redis_cache import CacheService
from tenant_platform.infrastructure.config.settings import get_settings
from tenant_platform.infrastructure.messaging.event_publisher import (
    EventPublisher,
    get_event_publisher,
    set_event_publisher,
)
from tenant_platform.infrastructure.persistence.database import engine, get_db
from tenant_platform.presentation.api.dependencies import (
    get_cache_service,
    get_tenant_service,
    set_cache_service,
)
from tenant_platform.presentation.api.errors import register_exception_handlers
from tenant_platform.presentation.api.v1.routes import tenant_validation, tenants
from tenant_platform.presentation.middleware.correlation import CorrelationIDMiddleware
from tenant_platform.presentation.middleware.tenant_context import TenantContextMiddleware
from tenant_platform.presentation.middleware.timeout import TimeoutMiddleware
from tenant_platform.shared.telemetry.logging import setup_logging
from tenant_platform.shared.telemetry.telemetry import Telemetry, get_telemetry, set_telemetry

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for application initialization and cleanup"""
    setup_logging()

    # Database schema is managed outside the app (migrations / create_all)

    if settings.telemetry_enabled:
        telemetry = Telemetry(settings)
        if telemetry.start():
            telemetry.instrument(app, engine)
            set_telemetry(telemetry)
        else:
            logger.warning("Continuing without tracing")
    else:
        logger.info("Distributed tracing disabled in configuration")

    # Redis backs the cache (idempotency keys) and the event bus
    if settings.redis_enabled:
        cache_service = CacheService()
        await cache_service.connect()
        set_cache_service(cache_service)

        publisher = EventPublisher()
        await publisher.connect()
        set_event_publisher(publisher)
        logger.info(
            "Redis initialized: cache=%s events=%s",
            cache_service.is_available(),
            publisher.is_available(),
        )
    else:
        logger.info("Redis disabled in configuration; events will not be published")

    yield

    telemetry_instance = get_telemetry()
    if telemetry_instance:
        telemetry_instance.shutdown()
        set_telemetry(None)

    if settings.redis_enabled:
        await get_cache_service().disconnect()
        await get_event_publisher().disconnect()
        logger.info("Redis disconnected")

    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Middleware (order matters - the last one added runs first)
# 1. Tenant context, innermost so the scope covers only the endpoint
app.add_middleware(
    TenantContextMiddleware,
    tenant_service_provider=get_tenant_service,
    header_name=settings.tenant_header_name,
    base_domain=settings.tenant_base_domain,
)

# 2. Request timeout
app.add_middleware(TimeoutMiddleware, timeout=settings.request_timeout)

# 3. Correlation ID for request tracing
app.add_middleware(CorrelationIDMiddleware)

# 4. CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(tenants.router, prefix="/api/v1/tenants", tags=["tenants"])
app.include_router(
    tenant_validation.router, prefix="/api/v1/tenant-validation", tags=["tenant-validation"]
)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint for load balancers and monitoring.

    Validates:
    - Database connectivity
    - Redis cache availability (optional, never fails the check)

    Returns:
    - 200 OK if healthy
    - 503 Service Unavailable if unhealthy
    """
    checks: dict[str, Any] = {
        "api": True,
        "database": False,
        "cache": None,  # None = not configured, True = healthy, False = unhealthy
    }

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except SQLAlchemyError as e:
        logger.error("Health check database ping failed: %s", e)
        checks["error"] = "database unavailable"

    if settings.redis_enabled:
        checks["cache"] = get_cache_service().is_available()

    if checks["database"]:
        return {"status": "healthy", "checks": checks}
    return JSONResponse(status_code=503, content={"status": "unhealthy", "checks": checks})

"""
FastAPI Application Entry Point.

Wires the courier API: middleware, global error handlers, the v1 router and
the health probe.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from courier_backend.app.core.config import settings
from courier_backend.app.api.v1.router import router as api_v1_router
from courier_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from courier_backend.app.core import redis_client
from courier_backend.app.db.session import engine, Base
from courier_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from courier_backend.app.models.user import User  # noqa: F401
from courier_backend.app.models.branch import Branch  # noqa: F401
from courier_backend.app.models.shipment import Shipment  # noqa: F401
from courier_backend.app.models.proof_of_delivery import ProofOfDelivery  # noqa: F401
from courier_backend.app.models.invoice import Invoice  # noqa: F401
from courier_backend.app.models.audit_log import AuditLog  # noqa: F401

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; release the cache connection on shutdown."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await redis_client.close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Shipment lifecycle, proof of delivery and billing for a courier service",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Liveness probe.

    The stats cache is optional, so a Redis outage reports "degraded"
    rather than failing the probe.
    """
    cache_up = await redis_client.ping_redis()
    return {
        "status": "healthy" if cache_up else "degraded",
        "cache": "up" if cache_up else "down",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


app.include_router(api_v1_router, prefix=f"/{settings.api_version}")

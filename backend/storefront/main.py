"""
Storefront Backend - FastAPI Application

Catalog attributes and categories, customer accounts and their order/bill
history, kept consistent by per-entity persistence hooks.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from storefront.config import get_settings
from storefront.core.errors import CascadeError, ValidationError
from storefront.core.log_config import setup_logging
from storefront.database.connections import (
    close_connections,
    get_database,
    get_redis_client,
)
from storefront.database.registry import create_indexes
from storefront.events.bus import EventBus
from storefront.events.subscribers import register_subscribers
from storefront.routers import attributes, auth, categories, health, users
from storefront.wiring import build_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Initialize database connections
    - Create indexes and record the schema version
    - Wire event subscribers and services

    Shutdown:
    - Wait for pending event handlers
    - Close all database connections
    """
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("Starting up Storefront Backend...")

    db = await get_database()
    try:
        await create_indexes(db)
    except Exception as e:
        logger.warning("Database initialization warning: %s", e)

    bus = EventBus()
    register_subscribers(bus, settings, await get_redis_client())
    app.state.services = build_services(db, bus, settings)

    yield

    logger.info("Shutting down Storefront Backend...")
    await bus.drain()
    await close_connections()
    logger.info("Database connections closed")


app = FastAPI(
    title="Storefront API",
    description="""
## Storefront API

- **Attributes**: changes propagate to the attribute filters embedded in categories
- **Categories**: attribute filters, one per attribute
- **Users**: hashed credentials; deleting a user anonymizes its orders and bills
- **Auth**: JWT login, token passed as `?token=` query parameter
    """,
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc), "errors": exc.errors},
    )


@app.exception_handler(CascadeError)
async def cascade_error_handler(request: Request, exc: CascadeError):
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(attributes.router)
app.include_router(categories.router)
app.include_router(users.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Storefront API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }

"""
FastAPI application with New Relic APM, CORS, lifespan, booking error handlers and routers.
"""
import asyncio
import logging
import os

# New Relic must be initialized BEFORE any other imports that it instruments.
if os.getenv("NEW_RELIC_LICENSE_KEY"):
    import newrelic.agent
    newrelic.agent.initialize("newrelic.ini")

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ridebook.config import get_settings
from ridebook.database import AsyncSessionLocal, create_all
from ridebook.errors import (
    BookingError,
    InvalidTransitionError,
    NoDriverAvailableError,
    NotFoundError,
    StoreUnavailableError,
    UnauthenticatedError,
    ValidationError,
)
from ridebook.redis_client import get_redis, close_redis
from ridebook.routers import bookings, drivers
from ridebook.runtime import build_runtime
from ridebook.services.driver_pool import DriverPool, seed_demo_drivers
from ridebook.services.durable_store import SqlDurableStore
from ridebook.services.notifications import RedisEventPublisher

settings = get_settings()
logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s [%s]", settings.app_name, settings.env)
    await create_all()
    if settings.seed_demo_drivers:
        await seed_demo_drivers(AsyncSessionLocal)

    pool = DriverPool(session_factory=AsyncSessionLocal)
    await pool.refresh()
    pool_refresher = asyncio.create_task(pool.refresh_forever(settings.driver_pool_refresh_seconds))
    runtime = build_runtime(
        SqlDurableStore(AsyncSessionLocal),
        pool,
        window_seconds=settings.dispatch_window_seconds,
    )
    if settings.publish_events:
        runtime.store.subscribe(RedisEventPublisher(await get_redis()))
    if settings.dispatch_reconcile_on_startup:
        await runtime.scheduler.reconcile(runtime.durable)
    app.state.runtime = runtime

    yield

    pool_refresher.cancel()
    await asyncio.gather(pool_refresher, return_exceptions=True)
    await runtime.scheduler.shutdown()
    await close_redis()
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description="Ride booking lifecycle and driver dispatch service",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Booking errors → HTTP
ERROR_STATUS: dict[type[BookingError], int] = {
    ValidationError: 422,
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    NoDriverAvailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    StoreUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    code = next(
        (c for cls, c in ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    if code >= 500:
        logger.error("Booking error on %s: %s", request.url, exc)
    return JSONResponse(
        status_code=code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


# Global error handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s: %s", request.url, exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# Health check (no auth)
@app.get("/health", tags=["Health"])
async def health():
    return {"status": "ok"}


# Register routers
app.include_router(bookings.router)
app.include_router(drivers.router)

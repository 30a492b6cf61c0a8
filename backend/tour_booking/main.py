"""
Tour Booking API - Main Application Entry Point

A tour marketplace backend demonstrating:
- Seat inventory that never oversells, via a conditional atomic decrement
- Booking insert and seat decrement committed as one transaction
- Redis caching of public trip listings with invalidation on seat changes
- Structured logging with request correlation and a background audit trail
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tour_booking.core.config import get_settings
from tour_booking.core.logging import setup_logging, get_logger
from tour_booking.core.metrics import metrics_endpoint
from tour_booking.api.errors import register_exception_handlers
from tour_booking.api.router import api_router
from tour_booking.api.middleware import RequestLoggingMiddleware
from tour_booking.db.session import engine
from tour_booking.services.cache_service import get_redis, close_redis

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    # Initialize Redis connection
    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    yield

    # Cleanup
    await close_redis()
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Tour booking API with consistent seat inventory",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Response-Time"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Routes
app.include_router(api_router)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "success": True,
        "message": f"Welcome to {settings.APP_NAME}",
        "data": {"version": settings.APP_VERSION, "docs": "/docs", "health": "/api/v1/health"},
    }

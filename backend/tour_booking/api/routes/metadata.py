"""
Health check and reference data.
"""

import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.core.config import get_settings
from tour_booking.core.logging import get_logger
from tour_booking.db.base import utcnow
from tour_booking.db.session import get_db
from tour_booking.schemas.common import ApiResponse, success_response
from tour_booking.schemas.trip import CurrencyInfo
from tour_booking.services.cache_service import get_cache_stats
from tour_booking.services.trip_service import list_destinations

logger = get_logger(__name__)
router = APIRouter(tags=["Health"])
settings = get_settings()

STARTED_AT = time.monotonic()

CURRENCIES = [
    {"code": "USD", "name": "US Dollar", "symbol": "$"},
    {"code": "EUR", "name": "Euro", "symbol": "€"},
    {"code": "GBP", "name": "British Pound", "symbol": "£"},
    {"code": "SAR", "name": "Saudi Riyal", "symbol": "ر.س"},
    {"code": "AED", "name": "UAE Dirham", "symbol": "د.إ"},
    {"code": "EGP", "name": "Egyptian Pound", "symbol": "E£"},
]


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint for Docker and load balancers. 503 when the database is down."""
    health = {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 2),
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }

    try:
        await db.execute(text("SELECT 1"))
        health["database"] = "connected"
    except Exception as e:
        logger.error("health_check_database_failed", error=str(e))
        health["database"] = "disconnected"
        health["status"] = "degraded"

    health["cache"] = await get_cache_stats()

    status_code = 200 if health["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content={"success": True, "data": health})


@router.get("/metadata/currencies", response_model=ApiResponse[list[CurrencyInfo]])
async def get_currencies():
    return success_response(CURRENCIES, "Currencies retrieved successfully")


@router.get("/metadata/destinations", response_model=ApiResponse[list[str]])
async def get_destinations(db: AsyncSession = Depends(get_db)):
    destinations = await list_destinations(db)
    return success_response(destinations, "Destinations retrieved successfully")

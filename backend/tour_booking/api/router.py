"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from tour_booking.api.routes import admin, auth, bookings, metadata, notifications, trips

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(metadata.router)
api_router.include_router(auth.router)
api_router.include_router(trips.router)
api_router.include_router(bookings.router)
api_router.include_router(admin.router)
api_router.include_router(notifications.router)

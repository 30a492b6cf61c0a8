"""
Trip endpoints with Redis caching on the public listing.
"""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.api.deps import AuditRecorder, get_audit_recorder
from tour_booking.core.logging import get_logger
from tour_booking.core.security import get_current_user, require_admin
from tour_booking.db.session import get_db
from tour_booking.models.user import User
from tour_booking.schemas.booking import BookingCreate, BookingResponse
from tour_booking.schemas.common import ApiResponse, PaginatedResponse, paginated_response, success_response
from tour_booking.schemas.trip import TripAvailability, TripCreate, TripResponse, TripSort, TripUpdate
from tour_booking.services import booking_service, trip_service
from tour_booking.services.audit_service import AuditActions
from tour_booking.services.cache_service import get_cached_trips, invalidate_trip_cache, set_cached_trips

logger = get_logger(__name__)
router = APIRouter(prefix="/trips", tags=["Trips"])


def split_tags(tags: Optional[str]) -> Optional[list[str]]:
    if not tags:
        return None
    return [tag.strip() for tag in tags.split(",") if tag.strip()] or None


@router.get("", response_model=PaginatedResponse[TripResponse])
async def list_trips_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, max_length=200),
    destination: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    price_min: Optional[float] = Query(None, alias="priceMin", ge=0),
    price_max: Optional[float] = Query(None, alias="priceMax", ge=0),
    duration_min: Optional[int] = Query(None, alias="durationMin", ge=1),
    duration_max: Optional[int] = Query(None, alias="durationMax", ge=1),
    tags: Optional[str] = Query(None, description="Comma separated tags"),
    sort: TripSort = "newest",
    db: AsyncSession = Depends(get_db),
):
    """
    List published trips with filters and pagination.
    Results are cached in Redis; the cache is invalidated whenever a trip
    or its seat count changes.
    """
    params = {
        "page": page,
        "limit": limit,
        "q": q,
        "destination": destination,
        "startDate": start_date.isoformat() if start_date else None,
        "endDate": end_date.isoformat() if end_date else None,
        "priceMin": price_min,
        "priceMax": price_max,
        "durationMin": duration_min,
        "durationMax": duration_max,
        "tags": tags,
        "sort": sort,
    }

    # Try cache first
    cached = await get_cached_trips(params)
    if cached:
        logger.info("trips_list_cache_hit", page=page)
        return cached

    trips, total = await trip_service.list_trips(
        db,
        page=page,
        limit=limit,
        q=q,
        destination=destination,
        start_date=start_date,
        end_date=end_date,
        price_min=price_min,
        price_max=price_max,
        duration_min=duration_min,
        duration_max=duration_max,
        tags=split_tags(tags),
        sort=sort,
    )

    response_data = PaginatedResponse[TripResponse].model_validate(
        paginated_response(trips, page, limit, total, "Trips retrieved successfully"),
        from_attributes=True,
    ).model_dump(mode="json", by_alias=True)

    # Store in cache for next request
    await set_cached_trips(params, response_data)
    return response_data


@router.post("", response_model=ApiResponse[TripResponse], status_code=status.HTTP_201_CREATED)
async def create_trip_endpoint(
    trip_data: TripCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Create a DRAFT trip. Admin only."""
    trip = await trip_service.create_trip(db, trip_data, admin.id)
    await invalidate_trip_cache()
    audit.record(admin.id, AuditActions.TRIP_CREATED, "Trip", trip.id, {"title": trip.title})
    return success_response(trip, "Trip created successfully")


@router.get("/{id_or_slug}", response_model=ApiResponse[TripResponse])
async def get_trip_endpoint(id_or_slug: str, db: AsyncSession = Depends(get_db)):
    """Get a single trip by id or slug. Not cached (needs real-time seat counts)."""
    trip = await trip_service.get_trip(db, id_or_slug)
    return success_response(trip, "Trip retrieved successfully")


@router.put("/{trip_id}", response_model=ApiResponse[TripResponse])
async def update_trip_endpoint(
    trip_id: uuid.UUID,
    trip_data: TripUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    trip = await trip_service.update_trip(db, trip_id, trip_data)
    await invalidate_trip_cache()
    audit.record(
        admin.id,
        AuditActions.TRIP_UPDATED,
        "Trip",
        trip.id,
        {"fields": sorted(trip_data.model_fields_set)},
    )
    return success_response(trip, "Trip updated successfully")


@router.delete("/{trip_id}", response_model=ApiResponse[None])
async def delete_trip_endpoint(
    trip_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Archive a trip. Existing bookings keep pointing at it."""
    trip = await trip_service.archive_trip(db, trip_id)
    await invalidate_trip_cache()
    audit.record(admin.id, AuditActions.TRIP_DELETED, "Trip", trip.id, {"title": trip.title})
    return success_response(None, "Trip deleted successfully")


@router.post("/{trip_id}/publish", response_model=ApiResponse[TripResponse])
async def publish_trip_endpoint(
    trip_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    trip = await trip_service.publish_trip(db, trip_id)
    await invalidate_trip_cache()
    audit.record(admin.id, AuditActions.TRIP_PUBLISHED, "Trip", trip.id)
    return success_response(trip, "Trip published successfully")


@router.post("/{trip_id}/unpublish", response_model=ApiResponse[TripResponse])
async def unpublish_trip_endpoint(
    trip_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    trip = await trip_service.unpublish_trip(db, trip_id)
    await invalidate_trip_cache()
    audit.record(admin.id, AuditActions.TRIP_UNPUBLISHED, "Trip", trip.id)
    return success_response(trip, "Trip unpublished successfully")


@router.get("/{trip_id}/availability", response_model=ApiResponse[TripAvailability])
async def trip_availability_endpoint(trip_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    availability = await trip_service.get_trip_availability(db, trip_id)
    return success_response(availability, "Availability retrieved successfully")


@router.post(
    "/{trip_id}/bookings",
    response_model=ApiResponse[BookingResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_booking_endpoint(
    trip_id: uuid.UUID,
    booking_data: BookingCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """
    Book seats on a published trip, one seat per passenger (at least one).

    The seat decrement is a single conditional UPDATE, so concurrent requests
    for the last seats can never oversell the trip.
    """
    booking = await booking_service.create_booking(
        db,
        trip_id,
        user.id,
        passengers=booking_data.passengers,
        booking_date=booking_data.booking_date,
    )
    # Invalidate trip list cache since seats_available changed
    await invalidate_trip_cache()
    audit.record(
        user.id,
        AuditActions.BOOKING_CREATED,
        "Booking",
        booking.id,
        {
            "bookingReference": booking.booking_reference,
            "tripId": str(trip_id),
            "passengers": booking.passenger_count,
        },
    )
    return success_response(booking, "Booking created successfully")

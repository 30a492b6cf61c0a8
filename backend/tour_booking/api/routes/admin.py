"""
Admin endpoints: cross-user booking and trip listings, the seat override,
user provisioning and the audit trail.
"""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.api.deps import AuditRecorder, get_audit_recorder
from tour_booking.core.security import require_admin
from tour_booking.db.session import get_db
from tour_booking.models.user import User
from tour_booking.schemas.audit import AuditLogResponse
from tour_booking.schemas.booking import BookingResponse, BookingStatus
from tour_booking.schemas.common import ApiResponse, PaginatedResponse, paginated_response, success_response
from tour_booking.schemas.trip import SeatOverride, TripResponse, TripSeats, TripSort, TripStatus
from tour_booking.schemas.user import AdminUserCreate, UserResponse
from tour_booking.services import audit_service, auth_service, booking_service, trip_service
from tour_booking.services.audit_service import AuditActions
from tour_booking.services.cache_service import invalidate_trip_cache

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/bookings", response_model=PaginatedResponse[BookingResponse])
async def list_all_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[BookingStatus] = None,
    trip_id: Optional[uuid.UUID] = Query(None, alias="tripId"),
    user_id: Optional[uuid.UUID] = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
):
    bookings, total = await booking_service.get_admin_bookings(
        db, page, limit, status=status, trip_id=trip_id, user_id=user_id
    )
    return paginated_response(bookings, page, limit, total, "Bookings retrieved successfully")


@router.get("/trips", response_model=PaginatedResponse[TripResponse])
async def list_all_trips(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    q: Optional[str] = Query(None, max_length=200),
    destination: Optional[str] = None,
    status: Optional[TripStatus] = None,
    sort: TripSort = "newest",
    db: AsyncSession = Depends(get_db),
):
    """All trips, including drafts and archived ones. Never cached."""
    trips, total = await trip_service.list_trips(
        db,
        page=page,
        limit=limit,
        q=q,
        destination=destination,
        status=status,
        sort=sort,
        include_unpublished=True,
    )
    return paginated_response(trips, page, limit, total, "Trips retrieved successfully")


@router.put("/trips/{trip_id}/override-availability", response_model=ApiResponse[TripSeats])
async def override_availability(
    trip_id: uuid.UUID,
    body: SeatOverride,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Set seats_available directly, bypassing the booking engine."""
    trip = await trip_service.override_seats(db, trip_id, body.seats_available)
    await invalidate_trip_cache()
    audit.record(
        admin.id,
        AuditActions.TRIP_AVAILABILITY_OVERRIDDEN,
        "Trip",
        trip.id,
        {"seatsAvailable": body.seats_available},
    )
    return success_response(trip, "Availability updated successfully")


@router.post("/users", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: AdminUserCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    user = await auth_service.create_user_by_admin(db, user_data)
    audit.record(
        admin.id,
        AuditActions.USER_CREATED_BY_ADMIN,
        "User",
        user.id,
        {"email": user.email, "role": user.role},
    )
    return success_response(user, "User created successfully")


@router.get("/audit-logs", response_model=PaginatedResponse[AuditLogResponse])
async def list_audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    actor_id: Optional[uuid.UUID] = Query(None, alias="actorId"),
    action: Optional[str] = None,
    target_type: Optional[str] = Query(None, alias="targetType"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
):
    logs, total = await audit_service.get_audit_logs(
        db,
        page=page,
        limit=limit,
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        start_date=start_date,
        end_date=end_date,
    )
    return paginated_response(logs, page, limit, total, "Audit logs retrieved successfully")

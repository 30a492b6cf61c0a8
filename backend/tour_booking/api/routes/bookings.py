"""
Booking endpoints. Creation lives under /trips/{trip_id}/bookings.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.api.deps import AuditRecorder, get_actor, get_audit_recorder
from tour_booking.core.permissions import Actor
from tour_booking.core.security import require_admin
from tour_booking.db.session import get_db
from tour_booking.models.user import User
from tour_booking.schemas.booking import BookingCancel, BookingResponse, BookingStatus, BookingUpdate
from tour_booking.schemas.common import ApiResponse, PaginatedResponse, paginated_response, success_response
from tour_booking.services import booking_service, email_service
from tour_booking.services.audit_service import AuditActions
from tour_booking.services.cache_service import invalidate_trip_cache

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("", response_model=PaginatedResponse[BookingResponse])
async def list_my_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    status: Optional[BookingStatus] = None,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Get the authenticated user's bookings, newest first."""
    bookings, total = await booking_service.get_user_bookings(db, actor.id, page, limit, status)
    return paginated_response(bookings, page, limit, total, "Bookings retrieved successfully")


@router.get("/{booking_id}", response_model=ApiResponse[BookingResponse])
async def get_booking_endpoint(
    booking_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    booking = await booking_service.get_booking_by_id(db, booking_id, actor)
    return success_response(booking, "Booking retrieved successfully")


@router.put("/{booking_id}", response_model=ApiResponse[BookingResponse])
async def update_booking_endpoint(
    booking_id: uuid.UUID,
    booking_data: BookingUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Edit passengers or the booking date of a pending booking."""
    booking = await booking_service.update_booking(
        db,
        booking_id,
        actor,
        passengers=booking_data.passengers,
        booking_date=booking_data.booking_date,
    )
    return success_response(booking, "Booking updated successfully")


@router.put("/{booking_id}/cancel", response_model=ApiResponse[BookingResponse])
async def cancel_booking_endpoint(
    booking_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    body: Optional[BookingCancel] = None,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Cancel a booking and release its seats back to the trip."""
    reason = body.reason if body else None
    booking = await booking_service.cancel_booking(db, booking_id, actor, reason)
    await invalidate_trip_cache()

    audit.record(
        actor.id,
        AuditActions.BOOKING_CANCELLED,
        "Booking",
        booking.id,
        {"reason": reason, "seatsRestored": booking.passenger_count},
    )
    background_tasks.add_task(
        email_service.send_booking_cancellation, booking, booking.user, booking.trip
    )
    return success_response(booking, "Booking cancelled successfully")


@router.post("/{booking_id}/confirm", response_model=ApiResponse[BookingResponse])
async def confirm_booking_endpoint(
    booking_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    booking = await booking_service.confirm_booking(db, booking_id)

    audit.record(admin.id, AuditActions.BOOKING_CONFIRMED, "Booking", booking.id)
    background_tasks.add_task(
        email_service.send_booking_confirmation, booking, booking.user, booking.trip
    )
    return success_response(booking, "Booking confirmed successfully")


@router.delete("/{booking_id}", response_model=ApiResponse[None])
async def delete_booking_endpoint(
    booking_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit_recorder),
):
    """Hard delete. Seats are not restored."""
    booking = await booking_service.delete_booking(db, booking_id)
    audit.record(
        admin.id,
        AuditActions.BOOKING_DELETED,
        "Booking",
        booking.id,
        {"bookingReference": booking.booking_reference},
    )
    return success_response(None, "Booking deleted successfully")

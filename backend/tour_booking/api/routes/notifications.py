"""
Admin-triggered email notifications for existing bookings.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.core.permissions import Actor
from tour_booking.core.security import require_admin
from tour_booking.db.session import get_db
from tour_booking.models.user import User
from tour_booking.schemas.booking import BookingNotificationRequest, BookingReminderRequest, NotificationResult
from tour_booking.schemas.common import ApiResponse, success_response
from tour_booking.services import booking_service, email_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


async def _load_booking(db: AsyncSession, booking_id: uuid.UUID, admin: User):
    return await booking_service.get_booking_by_id(db, booking_id, Actor.from_user(admin))


@router.post("/email/booking-confirmation", response_model=ApiResponse[NotificationResult])
async def send_confirmation_email(
    body: BookingNotificationRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    booking = await _load_booking(db, body.booking_id, admin)
    result = await email_service.send_booking_confirmation(booking, booking.user, booking.trip)
    return success_response({"sent": True, "message_id": result["message_id"]}, "Confirmation email sent")


@router.post("/email/booking-cancellation", response_model=ApiResponse[NotificationResult])
async def send_cancellation_email(
    body: BookingNotificationRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    booking = await _load_booking(db, body.booking_id, admin)
    result = await email_service.send_booking_cancellation(booking, booking.user, booking.trip)
    return success_response({"sent": True, "message_id": result["message_id"]}, "Cancellation email sent")


@router.post("/email/booking-reminder", response_model=ApiResponse[NotificationResult])
async def send_reminder_email(
    body: BookingReminderRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    booking = await _load_booking(db, body.booking_id, admin)
    result = await email_service.send_booking_reminder(
        booking, booking.user, booking.trip, body.days_until_trip
    )
    return success_response({"sent": True, "message_id": result["message_id"]}, "Reminder email sent")

"""
Transactional email.

No provider is wired in: `send_email` emits an `email_sent` log event and
returns a development message id. Templates are plain HTML strings; every
user-supplied value is escaped before it is interpolated.
"""

import time
from html import escape
from typing import Any

from tour_booking.core.config import get_settings
from tour_booking.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

FOOTER = (
    '<hr><p style="color: #6b7280; font-size: 12px;">'
    "This is an automated email. Please do not reply directly to this message.</p>"
)


async def send_email(to: str, subject: str, html: str) -> dict[str, Any]:
    message_id = f"dev-{int(time.time() * 1000)}"
    logger.info("email_sent", to=to, subject=subject, message_id=message_id, size=len(html))
    return {"success": True, "message_id": message_id}


def _booking_date(booking) -> str:
    return booking.booking_date.strftime("%Y-%m-%d") if booking.booking_date else "TBD"


async def send_booking_confirmation(booking, user, trip) -> dict[str, Any]:
    subject = f"Booking Confirmation - {trip.title}"
    html = f"""
    <h1>Booking Confirmed!</h1>
    <p>Dear {escape(user.name)},</p>
    <p>Your booking has been confirmed. Here are the details:</p>
    <h2>{escape(trip.title)}</h2>
    <p><strong>Booking Reference:</strong> {booking.booking_reference}</p>
    <p><strong>Date:</strong> {_booking_date(booking)}</p>
    <p><strong>Duration:</strong> {trip.duration_days} days</p>
    <p><strong>Total Price:</strong> {trip.currency} {booking.total_price}</p>
    <p><strong>Passengers:</strong> {booking.passenger_count}</p>
    {FOOTER}
    """
    return await send_email(user.email, subject, html)


async def send_booking_cancellation(booking, user, trip) -> dict[str, Any]:
    subject = f"Booking Cancelled - {trip.title}"
    reason = (
        f"<p><strong>Reason:</strong> {escape(booking.cancellation_reason)}</p>"
        if booking.cancellation_reason
        else ""
    )
    html = f"""
    <h1>Booking Cancelled</h1>
    <p>Dear {escape(user.name)},</p>
    <p>Your booking has been cancelled. Here are the details:</p>
    <h2>{escape(trip.title)}</h2>
    <p><strong>Booking Reference:</strong> {booking.booking_reference}</p>
    {reason}
    <p>If you have any questions about your refund, please contact our support team.</p>
    {FOOTER}
    """
    return await send_email(user.email, subject, html)


async def send_booking_reminder(booking, user, trip, days_until_trip: int) -> dict[str, Any]:
    subject = f"Your trip starts in {days_until_trip} days - {trip.title}"
    html = f"""
    <h1>Your adventure is coming up!</h1>
    <p>Dear {escape(user.name)},</p>
    <p>{escape(trip.title)} starts in <strong>{days_until_trip} days</strong>.</p>
    <p><strong>Booking Reference:</strong> {booking.booking_reference}</p>
    <p><strong>Date:</strong> {_booking_date(booking)}</p>
    {FOOTER}
    """
    return await send_email(user.email, subject, html)


async def send_password_reset_email(email: str, token: str) -> dict[str, Any]:
    reset_url = f"{settings.FRONTEND_URL}/reset-password?token={token}"
    html = f"""
    <h1>Reset Your Password</h1>
    <p>You requested to reset your password. Open the link below to proceed:</p>
    <p><a href="{reset_url}">{reset_url}</a></p>
    <p><strong>This link will expire in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes.</strong></p>
    <p>If you didn't request this, please ignore this email.</p>
    {FOOTER}
    """
    return await send_email(email, "Reset Your Password", html)


async def send_welcome_email(user) -> dict[str, Any]:
    html = f"""
    <h1>Welcome to {settings.APP_NAME}!</h1>
    <p>Dear {escape(user.name)},</p>
    <p>Thank you for joining. Browse our trips and book your next adventure.</p>
    <p><a href="{settings.FRONTEND_URL}/trips">Explore trips</a></p>
    {FOOTER}
    """
    return await send_email(user.email, "Welcome!", html)

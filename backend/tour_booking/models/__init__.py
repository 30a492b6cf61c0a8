from tour_booking.models.user import User
from tour_booking.models.trip import Trip
from tour_booking.models.booking import Booking
from tour_booking.models.token import RefreshToken, PasswordReset
from tour_booking.models.audit_log import AuditLog

__all__ = ["User", "Trip", "Booking", "RefreshToken", "PasswordReset", "AuditLog"]

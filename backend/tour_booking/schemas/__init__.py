from tour_booking.schemas.common import ApiResponse, PaginatedResponse, Pagination
from tour_booking.schemas.user import (
    UserCreate, AdminUserCreate, UserLogin, UserResponse, UserSummary, AuthPayload, AccessTokenPayload,
)
from tour_booking.schemas.trip import TripCreate, TripUpdate, TripResponse, TripSummary, TripAvailability
from tour_booking.schemas.booking import BookingCreate, BookingUpdate, BookingCancel, BookingResponse
from tour_booking.schemas.audit import AuditLogResponse

__all__ = [
    "ApiResponse", "PaginatedResponse", "Pagination",
    "UserCreate", "AdminUserCreate", "UserLogin", "UserResponse", "UserSummary",
    "AuthPayload", "AccessTokenPayload",
    "TripCreate", "TripUpdate", "TripResponse", "TripSummary", "TripAvailability",
    "BookingCreate", "BookingUpdate", "BookingCancel", "BookingResponse",
    "AuditLogResponse",
]

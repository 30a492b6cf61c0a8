"""
Pydantic schemas for booking-related request/response validation.
"""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import EmailStr, Field, field_validator

from tour_booking.schemas.common import CamelModel
from tour_booking.schemas.trip import TripSummary
from tour_booking.schemas.user import UserSummary

BookingStatus = Literal["PENDING", "CONFIRMED", "CANCELLED", "REFUNDED"]


class Passenger(CamelModel):
    name: str = Field(..., max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=32)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Passenger name is required")
        return value


class BookingCreate(CamelModel):
    passengers: Optional[list[Passenger]] = Field(None, max_length=50)
    booking_date: Optional[datetime] = None


class BookingUpdate(CamelModel):
    passengers: Optional[list[Passenger]] = Field(None, max_length=50)
    booking_date: Optional[datetime] = None


class BookingCancel(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else None


class BookingResponse(CamelModel):
    id: uuid.UUID
    booking_reference: str
    trip_id: uuid.UUID
    user_id: uuid.UUID
    passengers: list[Passenger]
    total_price: float
    status: str
    payment_status: str
    booking_date: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    trip: Optional[TripSummary] = None
    user: Optional[UserSummary] = None


class BookingNotificationRequest(CamelModel):
    booking_id: uuid.UUID


class BookingReminderRequest(BookingNotificationRequest):
    days_until_trip: int = Field(..., ge=1)


class NotificationResult(CamelModel):
    sent: bool
    message_id: Optional[str] = None

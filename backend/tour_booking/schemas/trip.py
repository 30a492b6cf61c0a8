"""
Pydantic schemas for trip-related request/response validation.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field, model_validator

from tour_booking.schemas.common import CamelModel

Currency = Literal["USD", "EUR", "GBP", "SAR", "AED", "EGP"]
TripStatus = Literal["DRAFT", "PUBLISHED", "ARCHIVED"]
TripSort = Literal["newest", "oldest", "price-asc", "price-desc", "duration-asc", "duration-desc"]


class TripCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10)
    itinerary: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    currency: Currency = "USD"
    duration_days: int = Field(..., ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    destinations: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    total_seats: int = Field(..., ge=1)
    occupancy_policy: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_date_window(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class TripUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=10)
    itinerary: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    currency: Optional[Currency] = None
    duration_days: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    destinations: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    total_seats: Optional[int] = Field(None, ge=1)
    occupancy_policy: Optional[str] = Field(None, max_length=500)


class SeatOverride(CamelModel):
    seats_available: int = Field(..., ge=0)


class TripSummary(CamelModel):
    id: uuid.UUID
    title: str
    slug: str
    price: float
    currency: str
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    duration_days: int


class TripResponse(CamelModel):
    id: uuid.UUID
    title: str
    slug: str
    description: str
    itinerary: Optional[str] = None
    price: float
    currency: str
    duration_days: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    destinations: list[str]
    tags: list[str]
    total_seats: int
    seats_available: int
    occupancy_policy: Optional[str] = None
    status: str
    created_by_id: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime


class TripSeats(CamelModel):
    id: uuid.UUID
    title: str
    seats_available: int
    total_seats: int


class TripAvailability(CamelModel):
    id: uuid.UUID
    title: str
    status: str
    seats_available: int
    total_seats: int
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    active_bookings: int
    is_available: bool


class CurrencyInfo(CamelModel):
    code: str
    name: str
    symbol: str

"""
Trip model with seat inventory tracking.

Key design decisions:
- `seats_available` is denormalized (avoids COUNT over bookings) and only
  written by the booking engine's guarded updates or the admin override
- CHECK constraints keep 0 <= seats_available <= total_seats at the DB level
- `slug` is unique and derived from the title
- destinations/tags are JSON lists so the schema stays portable
"""

import uuid

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from tour_booking.db.base import Base, TimestampMixin

TRIP_STATUSES = ("DRAFT", "PUBLISHED", "ARCHIVED")
CURRENCIES = ("USD", "EUR", "GBP", "SAR", "AED", "EGP")


class Trip(Base, TimestampMixin):
    __tablename__ = "trips"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False)
    itinerary = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    duration_days = Column(Integer, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    destinations = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)
    total_seats = Column(Integer, nullable=False)
    seats_available = Column(Integer, nullable=False)
    occupancy_policy = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default="DRAFT")
    created_by_id = Column(Uuid, ForeignKey("users.id"), nullable=True)

    # Relationships
    created_by = relationship("User")
    bookings = relationship("Booking", back_populates="trip", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("seats_available >= 0", name="check_trip_seats_non_negative"),
        CheckConstraint("total_seats > 0", name="check_trip_total_seats_positive"),
        CheckConstraint("seats_available <= total_seats", name="check_trip_seats_lte_total"),
        CheckConstraint(
            "status IN ('DRAFT', 'PUBLISHED', 'ARCHIVED')", name="check_trip_status"
        ),
        # Public listing: published trips, newest first
        Index("ix_trips_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Trip(id={self.id}, slug={self.slug}, available={self.seats_available}/{self.total_seats})>"

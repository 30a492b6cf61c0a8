"""
Booking model representing a user's reservation of seats on a trip.

Key design decisions:
- Seat count is not stored: it is `len(passengers) or 1`, recomputed when a
  booking is cancelled
- Status field allows cancellation without deleting records
- `booking_reference` is unique; a collision aborts the booking transaction
"""

import uuid

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import relationship

from tour_booking.db.base import Base, TimestampMixin

BOOKING_STATUSES = ("PENDING", "CONFIRMED", "CANCELLED", "REFUNDED")
PAYMENT_STATUSES = ("PENDING", "PAID", "FAILED", "REFUNDED")
TERMINAL_STATUSES = ("CANCELLED", "REFUNDED")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_reference = Column(String(32), nullable=False, unique=True, index=True)
    trip_id = Column(Uuid, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    passengers = Column(JSON, nullable=False, default=list)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="PENDING")
    payment_status = Column(String(20), nullable=False, default="PENDING")
    booking_date = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(String(500), nullable=True)

    # Relationships
    trip = relationship("Trip", back_populates="bookings")
    user = relationship("User", back_populates="bookings")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'REFUNDED')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('PENDING', 'PAID', 'FAILED', 'REFUNDED')",
            name="check_booking_payment_status",
        ),
    )

    @property
    def passenger_count(self) -> int:
        return len(self.passengers or []) or 1

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, ref={self.booking_reference}, trip={self.trip_id}, status={self.status})>"

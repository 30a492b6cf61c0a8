"""
Booking service with concurrency-safe seat reservation.

CONCURRENCY STRATEGY: Conditional Atomic Decrement
==================================================

Problem:
  Two users try to book the last seat simultaneously.
  Both read seats_available=1, both decrement to 0, both succeed.
  Result: Overbooking.

Solution:
  The capacity check and the write are the same statement:

  1. UPDATE trips SET seats_available = seats_available - N
     WHERE id = :trip_id AND status = 'PUBLISHED' AND seats_available >= N
  2. If rows_affected == 0, roll back and report why (missing trip,
     unpublished trip, or not enough seats)
  3. Otherwise insert the booking and commit both writes together

  The database serializes writers on the trip row, so of two requests for
  the last seat exactly one UPDATE matches. No version column, no retries.
  DB CHECK constraints are the final safety net (seats_available >= 0).

Cancellation runs the reverse in one transaction. The status change is itself
a conditional UPDATE (WHERE status is not terminal), so of two concurrent
cancels only one matches and only that one adds the passenger count back to
the trip. Confirmation is guarded the same way (WHERE status = 'PENDING').
"""

import secrets
import time
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tour_booking.core.exceptions import BadRequestError, ConflictError, NotFoundError
from tour_booking.core.logging import get_logger
from tour_booking.core.metrics import record_booking_attempt, record_cancellation
from tour_booking.core.permissions import Actor, ensure_access
from tour_booking.db.base import utcnow
from tour_booking.models.booking import TERMINAL_STATUSES, Booking
from tour_booking.schemas.booking import Passenger
from tour_booking.services import trip_service

logger = get_logger(__name__)

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _to_base36(number: int) -> str:
    digits = ""
    while number:
        number, remainder = divmod(number, 36)
        digits = _BASE36[remainder] + digits
    return digits or "0"


def generate_booking_reference() -> str:
    """ST-<base36 ms timestamp>-<6 hex chars>, e.g. ST-LXK2J9QA-3F09C1."""
    timestamp = _to_base36(int(time.time() * 1000))
    return f"ST-{timestamp}-{secrets.token_hex(3).upper()}"


def _serialize_passengers(passengers: Optional[list[Passenger]]) -> list[dict]:
    return [p.model_dump(mode="json") for p in passengers or []]


async def _get_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    result = await db.execute(
        select(Booking)
        .options(selectinload(Booking.trip), selectinload(Booking.user))
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


async def _raise_booking_rejected(db: AsyncSession, trip_id: uuid.UUID, seats: int) -> None:
    """Work out why the conditional decrement matched no row and raise it."""
    try:
        trip = await trip_service.find_published_trip(db, trip_id)
    except NotFoundError:
        record_booking_attempt("not_found")
        raise
    except BadRequestError:
        record_booking_attempt("not_published")
        raise

    logger.warning(
        "booking_failed_no_seats",
        trip_id=str(trip_id),
        requested=seats,
        available=trip.seats_available,
    )
    record_booking_attempt("no_seats")
    raise BadRequestError(f"Only {trip.seats_available} seats available")


async def create_booking(
    db: AsyncSession,
    trip_id: uuid.UUID,
    user_id: uuid.UUID,
    passengers: Optional[list[Passenger]] = None,
    booking_date: Optional[datetime] = None,
) -> Booking:
    """
    Reserve seats on a published trip and create a PENDING booking.
    The seat decrement and the booking insert commit together or not at all.
    """
    passenger_rows = _serialize_passengers(passengers)
    seats = len(passenger_rows) or 1

    # Step 1: take the seats (first write of the transaction)
    if not await trip_service.decrement_seats(db, trip_id, seats):
        await db.rollback()
        await _raise_booking_rejected(db, trip_id, seats)

    # Step 2: price from the trip row and insert the booking
    trip = await trip_service.get_trip_by_id(db, trip_id)
    booking = Booking(
        booking_reference=generate_booking_reference(),
        trip_id=trip_id,
        user_id=user_id,
        passengers=passenger_rows,
        total_price=trip.price * seats,
        status="PENDING",
        payment_status="PENDING",
        booking_date=booking_date,
    )
    db.add(booking)

    try:
        await db.commit()
    except IntegrityError:
        # Decrement and insert are discarded together
        await db.rollback()
        logger.error("booking_insert_failed", trip_id=str(trip_id), user_id=str(user_id))
        raise ConflictError("Booking could not be created, please try again")

    record_booking_attempt("success")
    logger.info(
        "booking_created",
        booking_id=str(booking.id),
        reference=booking.booking_reference,
        user_id=str(user_id),
        trip_id=str(trip_id),
        seats=seats,
    )
    return await _get_booking(db, booking.id)


async def get_user_bookings(
    db: AsyncSession,
    user_id: uuid.UUID,
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
) -> tuple[list[Booking], int]:
    """Bookings of one user, newest first."""
    query = select(Booking).where(Booking.user_id == user_id)
    if status:
        query = query.where(Booking.status == status)

    return await _paginate(db, query, page, limit)


async def get_booking_by_id(db: AsyncSession, booking_id: uuid.UUID, actor: Actor) -> Booking:
    booking = await _get_booking(db, booking_id)
    ensure_access(actor, booking.user_id, "view")
    return booking


async def get_admin_bookings(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    status: Optional[str] = None,
    trip_id: Optional[uuid.UUID] = None,
    user_id: Optional[uuid.UUID] = None,
) -> tuple[list[Booking], int]:
    query = select(Booking)
    if status:
        query = query.where(Booking.status == status)
    if trip_id:
        query = query.where(Booking.trip_id == trip_id)
    if user_id:
        query = query.where(Booking.user_id == user_id)

    return await _paginate(db, query, page, limit)


async def _paginate(db: AsyncSession, query, page: int, limit: int) -> tuple[list[Booking], int]:
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()

    result = await db.execute(
        query.options(selectinload(Booking.trip), selectinload(Booking.user))
        .order_by(Booking.created_at.desc(), Booking.id)
        .offset((page - 1) * limit)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all()), total


async def update_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    actor: Actor,
    passengers: Optional[list[Passenger]] = None,
    booking_date: Optional[datetime] = None,
) -> Booking:
    """
    Edit passenger details or the booking date of a PENDING booking.
    Seats and price are left as booked, so growing the passenger list here
    means a later cancel returns more seats than were taken (bounded by the
    total_seats CHECK).
    """
    booking = await _get_booking(db, booking_id)
    ensure_access(actor, booking.user_id, "update")

    if booking.status != "PENDING":
        raise BadRequestError("Only pending bookings can be updated")

    if passengers is not None:
        booking.passengers = _serialize_passengers(passengers)
    if booking_date is not None:
        booking.booking_date = booking_date

    await db.commit()
    logger.info("booking_updated", booking_id=str(booking.id), actor_id=str(actor.id))
    return await _get_booking(db, booking.id)


async def cancel_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    actor: Actor,
    reason: Optional[str] = None,
) -> Booking:
    """
    Cancel a booking and release its seats back to the trip.
    Status change and seat restoration commit in one transaction.
    """
    booking = await _get_booking(db, booking_id)
    ensure_access(actor, booking.user_id, "cancel")

    if booking.status in TERMINAL_STATUSES:
        raise BadRequestError("Booking is already cancelled")

    seats = booking.passenger_count
    trip_id = booking.trip_id

    # Only the cancel that flips the status may restore seats
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status.notin_(TERMINAL_STATUSES))
        .values(status="CANCELLED", cancelled_at=utcnow(), cancellation_reason=reason)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.warning("booking_cancel_conflict", booking_id=str(booking_id), actor_id=str(actor.id))
        raise BadRequestError("Booking is already cancelled")

    await trip_service.increment_seats(db, trip_id, seats)
    await db.commit()

    record_cancellation(actor.is_admin, seats)
    logger.info(
        "booking_cancelled",
        booking_id=str(booking_id),
        actor_id=str(actor.id),
        trip_id=str(trip_id),
        seats_restored=seats,
    )
    return await _get_booking(db, booking_id)


async def confirm_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    """Mark a PENDING booking as CONFIRMED and paid."""
    booking = await _get_booking(db, booking_id)

    if booking.status == "PENDING":
        result = await db.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == "PENDING")
            .values(status="CONFIRMED", payment_status="PAID")
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            await db.commit()
            logger.info("booking_confirmed", booking_id=str(booking_id))
            return await _get_booking(db, booking_id)

        # Lost a race with a concurrent cancel or confirm
        await db.rollback()
        booking = await _get_booking(db, booking_id)

    raise BadRequestError(f"Cannot confirm a booking with status {booking.status}")


async def delete_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    """Hard delete. Seats are not returned to the trip."""
    booking = await _get_booking(db, booking_id)
    await db.delete(booking)
    await db.commit()

    logger.warning("booking_deleted", booking_id=str(booking.id), trip_id=str(booking.trip_id))
    return booking

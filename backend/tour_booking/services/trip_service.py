"""
Trip service: catalogue CRUD, publication lifecycle and the seat inventory
accessors used by the booking engine.

Seat counters are only written through:
  - decrement_seats / increment_seats, inside the booking engine's transaction
  - override_seats, the admin escape hatch
"""

import re
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, cast, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.core.exceptions import BadRequestError, NotFoundError
from tour_booking.core.logging import get_logger
from tour_booking.models.booking import Booking
from tour_booking.models.trip import Trip
from tour_booking.schemas.trip import TripCreate, TripUpdate

logger = get_logger(__name__)

SORT_OPTIONS = {
    "newest": Trip.created_at.desc(),
    "oldest": Trip.created_at.asc(),
    "price-asc": Trip.price.asc(),
    "price-desc": Trip.price.desc(),
    "duration-asc": Trip.duration_days.asc(),
    "duration-desc": Trip.duration_days.desc(),
}

REQUIRED_TRIP_FIELDS = {"description", "price", "currency", "duration_days", "destinations", "tags"}


def generate_slug(title: str) -> str:
    slug = title.lower()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-") or "trip"


async def ensure_unique_slug(
    db: AsyncSession,
    base_slug: str,
    exclude_id: Optional[uuid.UUID] = None,
) -> str:
    """Append -1, -2, ... until the slug is free (ignoring the trip being renamed)."""
    slug = base_slug
    counter = 1
    while True:
        result = await db.execute(select(Trip.id).where(Trip.slug == slug))
        existing_id = result.scalar_one_or_none()
        if existing_id is None or existing_id == exclude_id:
            return slug
        slug = f"{base_slug}-{counter}"
        counter += 1


async def create_trip(db: AsyncSession, trip_data: TripCreate, created_by_id: uuid.UUID) -> Trip:
    """Create a DRAFT trip with every seat available."""
    slug = await ensure_unique_slug(db, generate_slug(trip_data.title))

    trip = Trip(
        title=trip_data.title,
        slug=slug,
        description=trip_data.description,
        itinerary=trip_data.itinerary,
        price=trip_data.price,
        currency=trip_data.currency,
        duration_days=trip_data.duration_days,
        start_date=trip_data.start_date,
        end_date=trip_data.end_date,
        destinations=trip_data.destinations,
        tags=trip_data.tags,
        total_seats=trip_data.total_seats,
        seats_available=trip_data.total_seats,
        occupancy_policy=trip_data.occupancy_policy,
        created_by_id=created_by_id,
        status="DRAFT",
    )
    db.add(trip)
    await db.commit()
    await db.refresh(trip)

    logger.info("trip_created", trip_id=str(trip.id), slug=trip.slug, seats=trip.total_seats)
    return trip


def _json_list_contains(column, value: str):
    # JSON arrays are matched on their serialized form so the filter works on
    # both PostgreSQL json and SQLite text storage.
    return cast(column, String).like(f'%"{value}"%')


async def list_trips(
    db: AsyncSession,
    page: int = 1,
    limit: int = 20,
    q: Optional[str] = None,
    destination: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    price_min: Optional[float] = None,
    price_max: Optional[float] = None,
    duration_min: Optional[int] = None,
    duration_max: Optional[int] = None,
    tags: Optional[list[str]] = None,
    status: Optional[str] = None,
    sort: str = "newest",
    include_unpublished: bool = False,
) -> tuple[list[Trip], int]:
    """
    List trips with filters and pagination.
    The public listing only ever shows PUBLISHED trips.
    """
    query = select(Trip)

    if not include_unpublished:
        query = query.where(Trip.status == "PUBLISHED")
    elif status:
        query = query.where(Trip.status == status)

    if q:
        pattern = f"%{q}%"
        query = query.where(
            or_(
                Trip.title.ilike(pattern),
                Trip.description.ilike(pattern),
                Trip.itinerary.ilike(pattern),
            )
        )
    if destination:
        query = query.where(_json_list_contains(Trip.destinations, destination))
    if start_date:
        query = query.where(Trip.start_date >= start_date)
    if end_date:
        query = query.where(Trip.end_date <= end_date)
    if price_min is not None:
        query = query.where(Trip.price >= price_min)
    if price_max is not None:
        query = query.where(Trip.price <= price_max)
    if duration_min is not None:
        query = query.where(Trip.duration_days >= duration_min)
    if duration_max is not None:
        query = query.where(Trip.duration_days <= duration_max)
    if tags:
        query = query.where(or_(*[_json_list_contains(Trip.tags, tag) for tag in tags]))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    trips_query = (
        query
        .order_by(SORT_OPTIONS.get(sort, SORT_OPTIONS["newest"]), Trip.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(trips_query)
    return list(result.scalars().all()), total


async def get_trip_by_id(db: AsyncSession, trip_id: uuid.UUID) -> Trip:
    # populate_existing: seat counters are changed by bulk UPDATEs that bypass
    # the identity map, so always reload the row
    result = await db.execute(
        select(Trip).where(Trip.id == trip_id).execution_options(populate_existing=True)
    )
    trip = result.scalar_one_or_none()

    if not trip:
        raise NotFoundError("Trip not found")
    return trip


async def get_trip(db: AsyncSession, identifier: str) -> Trip:
    """Get a trip by UUID or by slug."""
    try:
        trip_id = uuid.UUID(identifier)
    except ValueError:
        result = await db.execute(
            select(Trip).where(Trip.slug == identifier).execution_options(populate_existing=True)
        )
        trip = result.scalar_one_or_none()
        if not trip:
            raise NotFoundError("Trip not found")
        return trip
    return await get_trip_by_id(db, trip_id)


async def update_trip(db: AsyncSession, trip_id: uuid.UUID, trip_data: TripUpdate) -> Trip:
    """
    Update catalogue fields. A title change regenerates the slug.
    Changing total_seats shifts seats_available by the same delta so seats
    already sold stay sold.
    """
    trip = await get_trip_by_id(db, trip_id)
    changes = trip_data.model_dump(exclude_unset=True)

    title = changes.pop("title", None)
    if title and title != trip.title:
        trip.title = title
        trip.slug = await ensure_unique_slug(db, generate_slug(title), exclude_id=trip.id)

    total_seats = changes.pop("total_seats", None)
    if total_seats is not None and total_seats != trip.total_seats:
        seats_sold = trip.total_seats - trip.seats_available
        if total_seats < seats_sold:
            raise BadRequestError(
                f"Total seats cannot be lower than the {seats_sold} seats already booked"
            )
        trip.seats_available = total_seats - seats_sold
        trip.total_seats = total_seats

    for field, value in changes.items():
        # explicit nulls only clear optional columns
        if value is None and field in REQUIRED_TRIP_FIELDS:
            continue
        setattr(trip, field, value)

    await db.commit()
    await db.refresh(trip)

    logger.info("trip_updated", trip_id=str(trip.id), fields=sorted(trip_data.model_fields_set))
    return trip


async def archive_trip(db: AsyncSession, trip_id: uuid.UUID) -> Trip:
    """Soft delete: the trip is kept for existing bookings but hidden."""
    trip = await get_trip_by_id(db, trip_id)
    trip.status = "ARCHIVED"
    await db.commit()
    logger.info("trip_archived", trip_id=str(trip.id))
    return trip


async def publish_trip(db: AsyncSession, trip_id: uuid.UUID) -> Trip:
    trip = await get_trip_by_id(db, trip_id)
    if trip.status == "PUBLISHED":
        raise BadRequestError("Trip is already published")

    trip.status = "PUBLISHED"
    await db.commit()
    await db.refresh(trip)
    logger.info("trip_published", trip_id=str(trip.id))
    return trip


async def unpublish_trip(db: AsyncSession, trip_id: uuid.UUID) -> Trip:
    trip = await get_trip_by_id(db, trip_id)
    if trip.status != "PUBLISHED":
        raise BadRequestError("Trip is not published")

    trip.status = "DRAFT"
    await db.commit()
    await db.refresh(trip)
    logger.info("trip_unpublished", trip_id=str(trip.id))
    return trip


async def get_trip_availability(db: AsyncSession, trip_id: uuid.UUID) -> dict:
    trip = await get_trip_by_id(db, trip_id)

    active_bookings = (
        await db.execute(
            select(func.count())
            .select_from(Booking)
            .where(Booking.trip_id == trip_id, Booking.status.in_(("PENDING", "CONFIRMED")))
        )
    ).scalar()

    return {
        "id": trip.id,
        "title": trip.title,
        "status": trip.status,
        "seats_available": trip.seats_available,
        "total_seats": trip.total_seats,
        "start_date": trip.start_date,
        "end_date": trip.end_date,
        "active_bookings": active_bookings,
        "is_available": trip.seats_available > 0 and trip.status == "PUBLISHED",
    }


async def list_destinations(db: AsyncSession) -> list[str]:
    """Sorted unique destinations across published trips."""
    result = await db.execute(select(Trip.destinations).where(Trip.status == "PUBLISHED"))
    destinations = {d for row in result.scalars().all() for d in (row or [])}
    return sorted(destinations)


# ---------------------------------------------------------------------------
# Seat inventory accessors
# ---------------------------------------------------------------------------


async def find_published_trip(db: AsyncSession, trip_id: uuid.UUID) -> Trip:
    trip = await get_trip_by_id(db, trip_id)
    if trip.status != "PUBLISHED":
        raise BadRequestError("This trip is not available for booking")
    return trip


async def decrement_seats(db: AsyncSession, trip_id: uuid.UUID, seats: int) -> bool:
    """
    Take `seats` from a published trip in one conditional UPDATE.

    The WHERE clause re-checks status and remaining capacity in the same
    statement that writes, so two concurrent requests for the last seat
    cannot both match. Returns False when no row was updated. Does not commit.
    """
    result = await db.execute(
        update(Trip)
        .where(
            Trip.id == trip_id,
            Trip.status == "PUBLISHED",
            Trip.seats_available >= seats,
        )
        .values(seats_available=Trip.seats_available - seats)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def increment_seats(db: AsyncSession, trip_id: uuid.UUID, seats: int) -> None:
    """Return seats to a trip. Does not commit."""
    await db.execute(
        update(Trip)
        .where(Trip.id == trip_id)
        .values(seats_available=Trip.seats_available + seats)
        .execution_options(synchronize_session=False)
    )


async def override_seats(db: AsyncSession, trip_id: uuid.UUID, seats_available: int) -> Trip:
    """
    Admin escape hatch: set seats_available directly.
    Not checked against total_seats here; the table's CHECK constraints
    still reject values outside 0..total_seats.
    """
    trip = await get_trip_by_id(db, trip_id)
    previous = trip.seats_available
    trip.seats_available = seats_available
    await db.commit()
    await db.refresh(trip)

    logger.warning(
        "trip_seats_overridden",
        trip_id=str(trip.id),
        previous=previous,
        seats_available=seats_available,
        total_seats=trip.total_seats,
    )
    return trip

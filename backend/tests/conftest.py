"""
Pytest fixtures for test database, client, and authentication.

Tests run against a SQLite file database through aiosqlite; tables are
created and dropped per test for isolation. Settings are read from the
environment at import time, so the test environment is set up before the
application is imported.
"""

import os

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///./test_tour_booking.db")

os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from typing import AsyncGenerator, Optional  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from tour_booking.core.security import create_access_token, hash_password  # noqa: E402
from tour_booking.db.base import Base  # noqa: E402
from tour_booking.db.session import get_db, get_session_factory  # noqa: E402
from tour_booking.main import app  # noqa: E402
from tour_booking.models import Trip, User  # noqa: E402

PASSWORD = "Password123"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestSessionLocal

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(db: AsyncSession, email: str, name: str = "Test User", role: str = "USER") -> User:
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(PASSWORD),
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


async def create_trip(
    db: AsyncSession,
    creator: User,
    title: str = "Desert Safari",
    total_seats: int = 10,
    seats_available: Optional[int] = None,
    status: str = "PUBLISHED",
    price: str = "150.00",
) -> Trip:
    trip = Trip(
        title=title,
        slug=title.lower().replace(" ", "-"),
        description="Three days across the dunes with local guides.",
        price=Decimal(price),
        currency="USD",
        duration_days=3,
        start_date=datetime.now(timezone.utc) + timedelta(days=30),
        end_date=datetime.now(timezone.utc) + timedelta(days=33),
        destinations=["Dubai", "Liwa"],
        tags=["adventure", "desert"],
        total_seats=total_seats,
        seats_available=total_seats if seats_available is None else seats_available,
        status=status,
        created_by_id=creator.id,
    )
    db.add(trip)
    await db.commit()
    await db.refresh(trip)
    return trip


async def seats_of(db: AsyncSession, trip: Trip) -> int:
    """Current seat counter, reloaded from the database."""
    await db.refresh(trip)
    return trip.seats_available


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "test@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "other@example.com", name="Other User")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "admin@example.com", name="Admin User", role="ADMIN")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token."""
    return headers_for(test_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest_asyncio.fixture
async def published_trip(db_session: AsyncSession, admin_user: User) -> Trip:
    """A published trip with 10 seats at 150.00 USD."""
    return await create_trip(db_session, admin_user)


@pytest_asyncio.fixture
async def small_trip(db_session: AsyncSession, admin_user: User) -> Trip:
    """A published trip with only 2 seats."""
    return await create_trip(db_session, admin_user, title="Private Boat Tour", total_seats=2, price="500.00")


@pytest_asyncio.fixture
async def draft_trip(db_session: AsyncSession, admin_user: User) -> Trip:
    return await create_trip(db_session, admin_user, title="Secret Draft", status="DRAFT")


@pytest_asyncio.fixture
async def pending_booking(client: AsyncClient, auth_headers: dict, published_trip: Trip) -> dict:
    """A PENDING booking for two passengers on the published trip, as returned by the API."""
    response = await client.post(
        f"/api/v1/trips/{published_trip.id}/bookings",
        json={"passengers": [{"name": "Alice"}, {"name": "Bob"}]},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()["data"]


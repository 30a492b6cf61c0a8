"""
Tests for booking endpoints: seat inventory, lifecycle and ownership.
"""

import re

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from conftest import create_trip, seats_of
from tour_booking.db.session import get_session_factory
from tour_booking.main import app
from tour_booking.models.audit_log import AuditLog


def booking_url(trip) -> str:
    return f"/api/v1/trips/{trip.id}/bookings"


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, db_session, auth_headers, published_trip):
    """Booking N passengers takes N seats and starts PENDING."""
    response = await client.post(
        booking_url(published_trip),
        json={"passengers": [{"name": "Alice"}, {"name": "Bob", "email": "bob@example.com"}]},
        headers=auth_headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["status"] == "PENDING"
    assert data["paymentStatus"] == "PENDING"
    assert data["totalPrice"] == 300.0
    assert len(data["passengers"]) == 2
    assert data["trip"]["id"] == str(published_trip.id)
    assert data["user"]["email"] == "test@example.com"
    assert re.fullmatch(r"ST-[0-9A-Z]+-[0-9A-F]{6}", data["bookingReference"])

    assert await seats_of(db_session, published_trip) == 8


@pytest.mark.asyncio
async def test_create_booking_without_passengers_takes_one_seat(
    client: AsyncClient, db_session, auth_headers, published_trip
):
    response = await client.post(booking_url(published_trip), json={}, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["data"]["totalPrice"] == 150.0
    assert await seats_of(db_session, published_trip) == 9


@pytest.mark.asyncio
async def test_create_booking_unauthenticated(client: AsyncClient, published_trip):
    response = await client.post(booking_url(published_trip), json={})
    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_create_booking_not_enough_seats(client: AsyncClient, db_session, auth_headers, small_trip):
    """Asking for more seats than remain fails and leaves the counter alone."""
    response = await client.post(
        booking_url(small_trip),
        json={"passengers": [{"name": "A"}, {"name": "B"}, {"name": "C"}]},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Only 2 seats available"
    assert await seats_of(db_session, small_trip) == 2


@pytest.mark.asyncio
async def test_create_booking_on_draft_trip(client: AsyncClient, db_session, auth_headers, draft_trip):
    response = await client.post(booking_url(draft_trip), json={}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "This trip is not available for booking"
    assert await seats_of(db_session, draft_trip) == 10


@pytest.mark.asyncio
async def test_create_booking_unknown_trip(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/trips/00000000-0000-0000-0000-000000000000/bookings",
        json={},
        headers=auth_headers,
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_booking_rejects_blank_passenger_name(client: AsyncClient, auth_headers, published_trip):
    response = await client.post(
        booking_url(published_trip),
        json={"passengers": [{"name": "   "}]},
        headers=auth_headers,
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["message"] == "Validation failed"
    assert error["details"][0]["field"].startswith("passengers")


@pytest.mark.asyncio
async def test_two_seat_trip_scenario(client: AsyncClient, db_session, auth_headers, other_headers, small_trip):
    """Book both seats, get refused, cancel, and see both seats come back."""
    booked = await client.post(
        booking_url(small_trip),
        json={"passengers": [{"name": "Alice"}, {"name": "Bob"}]},
        headers=auth_headers,
    )
    assert booked.status_code == 201
    assert await seats_of(db_session, small_trip) == 0

    refused = await client.post(
        booking_url(small_trip),
        json={"passengers": [{"name": "Carol"}]},
        headers=other_headers,
    )
    assert refused.status_code == 400
    assert await seats_of(db_session, small_trip) == 0

    booking_id = booked.json()["data"]["id"]
    cancelled = await client.put(f"/api/v1/bookings/{booking_id}/cancel", json={}, headers=auth_headers)
    assert cancelled.status_code == 200
    assert await seats_of(db_session, small_trip) == 2


@pytest.mark.asyncio
async def test_cancel_booking(client: AsyncClient, db_session, auth_headers, published_trip, pending_booking):
    """Cancellation restores the booked seats and records when and why."""
    assert await seats_of(db_session, published_trip) == 8

    response = await client.put(
        f"/api/v1/bookings/{pending_booking['id']}/cancel",
        json={"reason": "  Change of plans  "},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "CANCELLED"
    assert data["cancelledAt"] is not None
    assert data["cancellationReason"] == "Change of plans"

    assert await seats_of(db_session, published_trip) == 10


@pytest.mark.asyncio
async def test_cancel_confirmed_booking(
    client: AsyncClient, db_session, auth_headers, admin_headers, published_trip, pending_booking
):
    confirm = await client.post(f"/api/v1/bookings/{pending_booking['id']}/confirm", headers=admin_headers)
    assert confirm.status_code == 200

    response = await client.put(f"/api/v1/bookings/{pending_booking['id']}/cancel", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "CANCELLED"
    assert await seats_of(db_session, published_trip) == 10


@pytest.mark.asyncio
async def test_cancel_already_cancelled(client: AsyncClient, db_session, auth_headers, published_trip, pending_booking):
    """A second cancel is an error, not a no-op, and returns no extra seats."""
    url = f"/api/v1/bookings/{pending_booking['id']}/cancel"
    first = await client.put(url, json={}, headers=auth_headers)
    assert first.status_code == 200

    second = await client.put(url, json={}, headers=auth_headers)
    assert second.status_code == 400
    assert second.json()["error"]["message"] == "Booking is already cancelled"
    assert await seats_of(db_session, published_trip) == 10


@pytest.mark.asyncio
async def test_confirm_booking(client: AsyncClient, db_session, admin_headers, published_trip, pending_booking):
    """Confirmation marks the booking paid without touching seats."""
    response = await client.post(f"/api/v1/bookings/{pending_booking['id']}/confirm", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "CONFIRMED"
    assert data["paymentStatus"] == "PAID"
    assert await seats_of(db_session, published_trip) == 8


@pytest.mark.asyncio
async def test_confirm_non_pending_booking(client: AsyncClient, admin_headers, pending_booking):
    url = f"/api/v1/bookings/{pending_booking['id']}/confirm"
    assert (await client.post(url, headers=admin_headers)).status_code == 200

    response = await client.post(url, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_confirm_requires_admin(client: AsyncClient, auth_headers, pending_booking):
    response = await client.post(f"/api/v1/bookings/{pending_booking['id']}/confirm", headers=auth_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_other_user_cannot_touch_booking(client: AsyncClient, db_session, other_headers, published_trip, pending_booking):
    """Non-owners get 403 on read, update and cancel."""
    url = f"/api/v1/bookings/{pending_booking['id']}"

    read = await client.get(url, headers=other_headers)
    assert read.status_code == 403
    assert read.json()["error"]["message"] == "You can only view your own bookings"

    update = await client.put(url, json={"passengers": [{"name": "Mallory"}]}, headers=other_headers)
    assert update.status_code == 403

    cancel = await client.put(f"{url}/cancel", json={}, headers=other_headers)
    assert cancel.status_code == 403
    assert await seats_of(db_session, published_trip) == 8


@pytest.mark.asyncio
async def test_admin_can_read_and_cancel_any_booking(client: AsyncClient, admin_headers, pending_booking):
    url = f"/api/v1/bookings/{pending_booking['id']}"
    assert (await client.get(url, headers=admin_headers)).status_code == 200

    response = await client.put(f"{url}/cancel", json={"reason": "Weather"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"]["cancellationReason"] == "Weather"


@pytest.mark.asyncio
async def test_update_booking_passengers(client: AsyncClient, db_session, auth_headers, published_trip, pending_booking):
    """Passenger edits do not change seats or price."""
    response = await client.put(
        f"/api/v1/bookings/{pending_booking['id']}",
        json={"passengers": [{"name": "Alice Smith"}, {"name": "Bob Smith", "phone": "+971500000000"}]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert [p["name"] for p in data["passengers"]] == ["Alice Smith", "Bob Smith"]
    assert data["totalPrice"] == pending_booking["totalPrice"]
    assert await seats_of(db_session, published_trip) == 8


@pytest.mark.asyncio
async def test_update_cancelled_booking(client: AsyncClient, auth_headers, pending_booking):
    url = f"/api/v1/bookings/{pending_booking['id']}"
    await client.put(f"{url}/cancel", json={}, headers=auth_headers)

    response = await client.put(url, json={"passengers": [{"name": "Late"}]}, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_user_bookings(client: AsyncClient, auth_headers, other_headers, published_trip):
    """Users only see their own bookings, newest first, with pagination metadata."""
    for _ in range(3):
        await client.post(booking_url(published_trip), json={}, headers=auth_headers)
    await client.post(booking_url(published_trip), json={}, headers=other_headers)

    response = await client.get("/api/v1/bookings", params={"limit": 2}, headers=auth_headers)
    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 2
    assert body["pagination"] == {
        "page": 1,
        "limit": 2,
        "totalItems": 3,
        "totalPages": 2,
        "hasNextPage": True,
        "hasPrevPage": False,
    }


@pytest.mark.asyncio
async def test_list_user_bookings_status_filter(client: AsyncClient, auth_headers, published_trip, pending_booking):
    await client.post(booking_url(published_trip), json={}, headers=auth_headers)
    await client.put(f"/api/v1/bookings/{pending_booking['id']}/cancel", json={}, headers=auth_headers)

    response = await client.get("/api/v1/bookings", params={"status": "CANCELLED"}, headers=auth_headers)
    data = response.json()["data"]
    assert len(data) == 1
    assert data[0]["id"] == pending_booking["id"]


@pytest.mark.asyncio
async def test_delete_booking_keeps_seats_taken(client: AsyncClient, db_session, admin_headers, published_trip, pending_booking):
    response = await client.delete(f"/api/v1/bookings/{pending_booking['id']}", headers=admin_headers)
    assert response.status_code == 200

    missing = await client.get(f"/api/v1/bookings/{pending_booking['id']}", headers=admin_headers)
    assert missing.status_code == 404
    assert await seats_of(db_session, published_trip) == 8


@pytest.mark.asyncio
async def test_booking_lifecycle_is_audited(client: AsyncClient, db_session, auth_headers, admin_headers, pending_booking):
    await client.post(f"/api/v1/bookings/{pending_booking['id']}/confirm", headers=admin_headers)
    await client.put(f"/api/v1/bookings/{pending_booking['id']}/cancel", json={}, headers=auth_headers)

    result = await db_session.execute(
        select(AuditLog.action).where(AuditLog.target_id == pending_booking["id"]).order_by(AuditLog.timestamp)
    )
    assert result.scalars().all() == ["BOOKING_CREATED", "BOOKING_CONFIRMED", "BOOKING_CANCELLED"]


@pytest.mark.asyncio
async def test_failing_audit_writer_does_not_fail_booking(client: AsyncClient, db_session, auth_headers, published_trip):
    def broken_factory():
        raise RuntimeError("audit store unavailable")

    app.dependency_overrides[get_session_factory] = lambda: broken_factory

    response = await client.post(booking_url(published_trip), json={}, headers=auth_headers)
    assert response.status_code == 201
    assert await seats_of(db_session, published_trip) == 9


@pytest.mark.asyncio
async def test_seat_counter_stays_in_bounds(client: AsyncClient, db_session, auth_headers, admin_user):
    """Draining a trip one seat at a time never goes below zero."""
    trip = await create_trip(db_session, admin_user, title="Tiny Trip", total_seats=3)
    # Rejected bookings roll back the shared session and expire `trip`
    url = booking_url(trip)

    statuses = [
        (await client.post(url, json={}, headers=auth_headers)).status_code
        for _ in range(5)
    ]
    assert statuses == [201, 201, 201, 400, 400]
    assert await seats_of(db_session, trip) == 0

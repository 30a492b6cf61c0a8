"""
Tests for trip catalogue endpoints.
"""

import pytest
from datetime import datetime, timezone, timedelta
from httpx import AsyncClient

from conftest import create_trip, seats_of


def trip_payload(**overrides) -> dict:
    start = datetime.now(timezone.utc) + timedelta(days=60)
    payload = {
        "title": "Nile Cruise",
        "description": "Five nights between Luxor and Aswan.",
        "price": "899.99",
        "currency": "EGP",
        "durationDays": 5,
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=5)).isoformat(),
        "destinations": ["Luxor", "Aswan"],
        "tags": ["river", "history"],
        "totalSeats": 40,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_trip(client: AsyncClient, admin_headers):
    """New trips start as drafts with every seat available."""
    response = await client.post("/api/v1/trips", json=trip_payload(), headers=admin_headers)
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["slug"] == "nile-cruise"
    assert data["status"] == "DRAFT"
    assert data["totalSeats"] == 40
    assert data["seatsAvailable"] == 40
    assert data["price"] == 899.99


@pytest.mark.asyncio
async def test_create_trip_slug_collision(client: AsyncClient, admin_headers):
    slugs = []
    for _ in range(3):
        response = await client.post("/api/v1/trips", json=trip_payload(), headers=admin_headers)
        slugs.append(response.json()["data"]["slug"])
    assert slugs == ["nile-cruise", "nile-cruise-1", "nile-cruise-2"]


@pytest.mark.asyncio
async def test_create_trip_requires_admin(client: AsyncClient, auth_headers):
    unauthenticated = await client.post("/api/v1/trips", json=trip_payload())
    assert unauthenticated.status_code == 401

    forbidden = await client.post("/api/v1/trips", json=trip_payload(), headers=auth_headers)
    assert forbidden.status_code == 403
    assert forbidden.json()["error"]["message"] == "You do not have permission to perform this action"


@pytest.mark.asyncio
async def test_create_trip_validation(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/trips",
        json=trip_payload(totalSeats=0, currency="JPY"),
        headers=admin_headers,
    )
    assert response.status_code == 400
    fields = {detail["field"] for detail in response.json()["error"]["details"]}
    assert {"totalSeats", "currency"} <= fields


@pytest.mark.asyncio
async def test_public_listing_only_shows_published(client: AsyncClient, published_trip, draft_trip):
    response = await client.get("/api/v1/trips")
    assert response.status_code == 200
    body = response.json()
    assert [trip["id"] for trip in body["data"]] == [str(published_trip.id)]
    assert body["pagination"]["totalItems"] == 1


@pytest.mark.asyncio
async def test_listing_filters(client: AsyncClient, db_session, admin_user):
    await create_trip(db_session, admin_user, title="Cheap Desert Day", price="50.00")
    await create_trip(db_session, admin_user, title="Luxury Desert Week", price="2000.00")

    cheap = await client.get("/api/v1/trips", params={"priceMax": 100})
    assert [t["title"] for t in cheap.json()["data"]] == ["Cheap Desert Day"]

    searched = await client.get("/api/v1/trips", params={"q": "luxury"})
    assert [t["title"] for t in searched.json()["data"]] == ["Luxury Desert Week"]

    by_destination = await client.get("/api/v1/trips", params={"destination": "Liwa"})
    assert by_destination.json()["pagination"]["totalItems"] == 2

    by_tag = await client.get("/api/v1/trips", params={"tags": "beach,adventure"})
    assert by_tag.json()["pagination"]["totalItems"] == 2

    nothing = await client.get("/api/v1/trips", params={"destination": "Cairo"})
    assert nothing.json()["data"] == []

    sorted_by_price = await client.get("/api/v1/trips", params={"sort": "price-desc"})
    assert [t["title"] for t in sorted_by_price.json()["data"]] == ["Luxury Desert Week", "Cheap Desert Day"]


@pytest.mark.asyncio
async def test_get_trip_by_id_and_slug(client: AsyncClient, published_trip):
    by_id = await client.get(f"/api/v1/trips/{published_trip.id}")
    by_slug = await client.get(f"/api/v1/trips/{published_trip.slug}")
    assert by_id.status_code == by_slug.status_code == 200
    assert by_id.json()["data"]["id"] == by_slug.json()["data"]["id"]

    missing = await client.get("/api/v1/trips/no-such-trip")
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": {"message": "Trip not found"}}


@pytest.mark.asyncio
async def test_update_trip_regenerates_slug(client: AsyncClient, admin_headers, published_trip):
    response = await client.put(
        f"/api/v1/trips/{published_trip.id}",
        json={"title": "Desert Safari Deluxe", "price": "175.50"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["slug"] == "desert-safari-deluxe"
    assert data["price"] == 175.5


@pytest.mark.asyncio
async def test_update_total_seats_keeps_sold_seats(client: AsyncClient, db_session, admin_headers, published_trip, pending_booking):
    """Two seats are sold; growing the trip to 20 leaves 18 available."""
    response = await client.put(
        f"/api/v1/trips/{published_trip.id}",
        json={"totalSeats": 20},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["seatsAvailable"] == 18

    too_small = await client.put(
        f"/api/v1/trips/{published_trip.id}",
        json={"totalSeats": 1},
        headers=admin_headers,
    )
    assert too_small.status_code == 400
    assert await seats_of(db_session, published_trip) == 18


@pytest.mark.asyncio
async def test_publish_and_unpublish(client: AsyncClient, admin_headers, draft_trip):
    url = f"/api/v1/trips/{draft_trip.id}"

    published = await client.post(f"{url}/publish", headers=admin_headers)
    assert published.status_code == 200
    assert published.json()["data"]["status"] == "PUBLISHED"

    again = await client.post(f"{url}/publish", headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "Trip is already published"

    unpublished = await client.post(f"{url}/unpublish", headers=admin_headers)
    assert unpublished.json()["data"]["status"] == "DRAFT"

    not_published = await client.post(f"{url}/unpublish", headers=admin_headers)
    assert not_published.status_code == 400


@pytest.mark.asyncio
async def test_delete_trip_archives_it(client: AsyncClient, admin_headers, published_trip):
    response = await client.delete(f"/api/v1/trips/{published_trip.id}", headers=admin_headers)
    assert response.status_code == 200

    trip = await client.get(f"/api/v1/trips/{published_trip.id}")
    assert trip.json()["data"]["status"] == "ARCHIVED"

    listing = await client.get("/api/v1/trips")
    assert listing.json()["data"] == []


@pytest.mark.asyncio
async def test_trip_availability(client: AsyncClient, published_trip, pending_booking):
    response = await client.get(f"/api/v1/trips/{published_trip.id}/availability")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["seatsAvailable"] == 8
    assert data["totalSeats"] == 10
    assert data["activeBookings"] == 1
    assert data["isAvailable"] is True


@pytest.mark.asyncio
async def test_metadata_endpoints(client: AsyncClient, published_trip, draft_trip):
    currencies = await client.get("/api/v1/metadata/currencies")
    assert [c["code"] for c in currencies.json()["data"]] == ["USD", "EUR", "GBP", "SAR", "AED", "EGP"]

    destinations = await client.get("/api/v1/metadata/destinations")
    assert destinations.json()["data"] == ["Dubai", "Liwa"]


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert data["cache"] == {"status": "disabled"}
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client: AsyncClient):
    response = await client.get("/api/v1/nowhere")
    assert response.status_code == 404
    assert response.json()["success"] is False

"""
Tests for the trip listing cache, using an in-memory stand-in for Redis.
"""

import pytest
from httpx import AsyncClient

from tour_booking.services import cache_service
from tour_booking.services.cache_service import LIST_KEY_PREFIX, make_trip_list_key


class FakeRedis:
    def __init__(self):
        self.store = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = value

    async def delete(self, *keys):
        return sum(self.store.pop(key, None) is not None for key in keys)

    async def scan_iter(self, match=None, count=None):
        prefix = match.rstrip("*")
        for key in list(self.store):
            if key.startswith(prefix):
                yield key


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()

    async def get_redis():
        return fake

    monkeypatch.setattr(cache_service, "get_redis", get_redis)
    return fake


def test_list_key_is_order_independent_and_skips_empty_params():
    first = make_trip_list_key({"page": 1, "q": None, "sort": "price-asc"})
    second = make_trip_list_key({"sort": "price-asc", "page": 1})
    assert first == second == f"{LIST_KEY_PREFIX}page=1&sort=price-asc"


@pytest.mark.asyncio
async def test_disabled_cache_is_a_no_op():
    assert await cache_service.get_cached_trips({"page": 1}) is None
    await cache_service.set_cached_trips({"page": 1}, {"data": []})
    await cache_service.invalidate_trip_cache()


@pytest.mark.asyncio
async def test_listing_is_served_from_cache(client: AsyncClient, fake_redis, published_trip):
    first = await client.get("/api/v1/trips")
    assert first.status_code == 200
    assert len(fake_redis.store) == 1

    # Mutate the stored copy; a hit must return it verbatim
    key = next(iter(fake_redis.store))
    fake_redis.store[key] = fake_redis.store[key].replace("Desert Safari", "Cached Safari")

    second = await client.get("/api/v1/trips")
    assert second.json()["data"][0]["title"] == "Cached Safari"


@pytest.mark.asyncio
async def test_booking_invalidates_listing_cache(client: AsyncClient, fake_redis, auth_headers, published_trip):
    await client.get("/api/v1/trips")
    assert fake_redis.store

    response = await client.post(f"/api/v1/trips/{published_trip.id}/bookings", json={}, headers=auth_headers)
    assert response.status_code == 201
    assert fake_redis.store == {}

    listing = await client.get("/api/v1/trips")
    assert listing.json()["data"][0]["seatsAvailable"] == 9

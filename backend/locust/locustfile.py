"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Trip setup needs an existing admin account:
  LOCUST_ADMIN_EMAIL=admin@example.com LOCUST_ADMIN_PASSWORD=Admin123pass locust -f locustfile.py
"""

import os
import random
import string
from locust import HttpUser, task, between, tag, events
from datetime import datetime, timezone, timedelta

ADMIN_EMAIL = os.environ.get("LOCUST_ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.environ.get("LOCUST_ADMIN_PASSWORD", "Admin123pass")
PASSWORD = "Load123pass"

# Shared state
TRIP_IDS = []
CONCURRENCY_TRIP_ID = None


def random_email():
    return f"load_{random.randint(10000, 99999)}_{random.randint(0, 999)}@test.com"


def random_name():
    return "Load " + "".join(random.choices(string.ascii_lowercase, k=8))


def trip_payload(title, seats):
    start = datetime.now(timezone.utc) + timedelta(days=random.randint(10, 90))
    return {
        "title": title,
        "description": "Generated by the load test",
        "price": "120.00",
        "currency": "USD",
        "durationDays": 3,
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=3)).isoformat(),
        "destinations": ["Dubai"],
        "tags": ["load-test"],
        "totalSeats": seats,
    }


def register(client):
    """Register a fresh traveller and return auth headers (empty on failure)."""
    resp = client.post("/api/v1/auth/register", json={
        "name": random_name(),
        "email": random_email(),
        "password": PASSWORD,
    })
    if resp.status_code == 201:
        return {"Authorization": f"Bearer {resp.json()['data']['accessToken']}"}
    return {}


def admin_headers(client):
    resp = client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['data']['accessToken']}"}
    return {}


def create_published_trip(client, headers, title, seats):
    resp = client.post("/api/v1/trips", json=trip_payload(title, seats), headers=headers)
    if resp.status_code != 201:
        return None
    trip_id = resp.json()["data"]["id"]
    client.post(f"/api/v1/trips/{trip_id}/publish", headers=headers)
    return trip_id


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print("SETUP: Creating concurrency test trip...")
    print("="*60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users → 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM bookings WHERE trip_id = X AND status <> 'CANCELLED';
    Should be ≤ 10, and trips.seats_available should be 0
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register(self.client)

        if not CONCURRENCY_TRIP_ID:
            headers = admin_headers(self.client)
            if headers:
                trip_id = create_published_trip(self.client, headers, "Concurrency Test Trip", 10)
                if trip_id:
                    globals()["CONCURRENCY_TRIP_ID"] = trip_id
                    print(f"\n✓ Created trip {CONCURRENCY_TRIP_ID} with 10 seats\n")

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All users fight for the same 10 seats."""
        if not CONCURRENCY_TRIP_ID or not self.headers:
            return

        with self.client.post(f"/api/v1/trips/{CONCURRENCY_TRIP_ID}/bookings",
            json={},
            headers=self.headers,
            name="/api/v1/trips/{id}/bookings",
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400:
                resp.success()  # Expected: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_trips_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/trips?page={page}&limit=20",
            name="/api/v1/trips [cached]")

    @tag("throughput", "read")
    @task(3)
    def get_trip_detail(self):
        if TRIP_IDS:
            self.client.get(f"/api/v1/trips/{random.choice(TRIP_IDS)}",
                name="/api/v1/trips/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/api/v1/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register(self.client)

    @tag("edge")
    @task
    def unknown_trip(self):
        with self.client.post("/api/v1/trips/00000000-0000-0000-0000-000000000000/bookings",
            json={},
            headers=self.headers,
            name="/api/v1/trips/{unknown}/bookings",
            catch_response=True
        ) as resp:
            if resp.status_code in [404, 400]:
                resp.success()
            else:
                resp.failure(f"Expected 404/400, got {resp.status_code}")

    @tag("edge")
    @task
    def blank_passenger(self):
        if not TRIP_IDS:
            return
        with self.client.post(f"/api/v1/trips/{random.choice(TRIP_IDS)}/bookings",
            json={"passengers": [{"name": "   "}]},
            headers=self.headers,
            name="/api/v1/trips/{id}/bookings [invalid]",
            catch_response=True
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")

    @tag("edge")
    @task
    def too_many_passengers(self):
        if not TRIP_IDS:
            return
        passengers = [{"name": f"Guest {i}"} for i in range(51)]
        with self.client.post(f"/api/v1/trips/{random.choice(TRIP_IDS)}/bookings",
            json={"passengers": passengers},
            headers=self.headers,
            name="/api/v1/trips/{id}/bookings [invalid]",
            catch_response=True
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/auth/login",
            data="not json at all",
            headers={"Content-Type": "application/json"},
            catch_response=True
        ) as resp:
            if resp.status_code == 400:
                resp.success()
            else:
                resp.failure(f"Expected 400, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.get("/api/v1/bookings", catch_response=True) as resp:
            if resp.status_code == 401:
                resp.success()
            else:
                resp.failure(f"Expected 401, got {resp.status_code}")


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some bookings, occasional cancellations.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register(self.client)
        self.booking_ids = []

    @task(50)
    def browse_trips(self):
        resp = self.client.get("/api/v1/trips?page=1&limit=20")
        if resp.status_code == 200:
            for trip in resp.json().get("data", []):
                if trip["id"] not in TRIP_IDS:
                    TRIP_IDS.append(trip["id"])

    @task(20)
    def view_trip(self):
        if TRIP_IDS:
            self.client.get(f"/api/v1/trips/{random.choice(TRIP_IDS)}", name="/api/v1/trips/{id}")

    @task(10)
    def book_trip(self):
        if TRIP_IDS and self.headers:
            passengers = [{"name": random_name()} for _ in range(random.randint(1, 3))]
            resp = self.client.post(f"/api/v1/trips/{random.choice(TRIP_IDS)}/bookings",
                json={"passengers": passengers},
                headers=self.headers,
                name="/api/v1/trips/{id}/bookings")
            if resp.status_code == 201:
                self.booking_ids.append(resp.json()["data"]["id"])

    @task(3)
    def cancel_booking(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop()
            self.client.put(f"/api/v1/bookings/{booking_id}/cancel",
                json={"reason": "Change of plans"},
                headers=self.headers,
                name="/api/v1/bookings/{id}/cancel")

"""
Locust Load Test Suite

Offerings come from the catalog, so seed them first and point the
concurrency scenario at a small one:

  CONCURRENCY_OFFERING_ID=42 locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from locust import HttpUser, task, between, tag, events

# Shared state
OFFERING_IDS = []
CONCURRENCY_OFFERING_ID = int(os.environ.get("CONCURRENCY_OFFERING_ID", "0")) or None


def participant_headers():
    return {"X-Participant-ID": str(random.randint(1, 10_000_000))}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: concurrency offering = {CONCURRENCY_OFFERING_ID or 'first listed'}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many paying participants, few seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      POST /api/v1/reconciliation/offerings/{id}/sync  -> was_fixed must be false
      GET  /api/v1/offerings/{id}/participants/count   -> occupancy <= capacity
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = participant_headers()
        if not CONCURRENCY_OFFERING_ID:
            resp = self.client.get("/api/v1/offerings/?page=1&page_size=1")
            if resp.status_code == 200 and resp.json()["offerings"]:
                globals()["CONCURRENCY_OFFERING_ID"] = resp.json()["offerings"][0]["id"]

    @tag("concurrency")
    @task
    def book_paid_seat(self):
        """All users fight for the same seats with pre-paid bookings."""
        if not CONCURRENCY_OFFERING_ID:
            return

        with self.client.post("/api/v1/bookings/",
            json={"offering_id": CONCURRENCY_OFFERING_ID, "payment_status": "completed"},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: class_full or already_booked
            elif resp.status_code == 503:
                resp.success()  # Expected under contention: system_busy
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("concurrency")
    @task
    def pay_then_cancel(self):
        """Pending booking, payment callback, then cancellation."""
        if not CONCURRENCY_OFFERING_ID:
            return

        headers = participant_headers()
        resp = self.client.post("/api/v1/bookings/",
            json={"offering_id": CONCURRENCY_OFFERING_ID},
            headers=headers)
        if resp.status_code != 201:
            return
        booking_id = resp.json()["id"]

        with self.client.patch(f"/api/v1/bookings/{booking_id}/payment",
            json={"payment_status": "completed"},
            name="/api/v1/bookings/{id}/payment",
            catch_response=True
        ) as pay:
            if pay.status_code in [200, 409, 503]:
                pay.success()
            else:
                pay.failure(f"Unexpected: {pay.status_code}")

        self.client.delete(f"/api/v1/bookings/{booking_id}",
            headers=headers,
            name="/api/v1/bookings/{id}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the API, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_offerings_cached(self):
        """Hammer the cached endpoint."""
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/offerings/?page={page}&page_size=20",
            name="/api/v1/offerings/ [cached]")
        if resp.status_code == 200:
            for offering in resp.json().get("offerings", []):
                if offering["id"] not in OFFERING_IDS:
                    OFFERING_IDS.append(offering["id"])

    @tag("throughput", "read")
    @task(3)
    def get_availability(self):
        """Live availability, never cached."""
        if OFFERING_IDS:
            offering_id = random.choice(OFFERING_IDS)
            self.client.get(f"/api/v1/offerings/{offering_id}/availability",
                headers=participant_headers(),
                name="/api/v1/offerings/{id}/availability")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = participant_headers()

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_offering_id(self):
        """Book non-existent offering."""
        with self.client.post("/api/v1/bookings/",
            json={"offering_id": 999999},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def negative_offering_id(self):
        with self.client.post("/api/v1/bookings/",
            json={"offering_id": -5},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def unknown_payment_status(self):
        with self.client.post("/api/v1/bookings/",
            json={"offering_id": 1, "payment_status": "maybe"},
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [422])

    @tag("edge")
    @task
    def illegal_payment_transition(self):
        """Refund a booking that never paid."""
        if not OFFERING_IDS:
            return
        created = self.client.post("/api/v1/bookings/",
            json={"offering_id": random.choice(OFFERING_IDS)},
            headers=participant_headers())
        if created.status_code != 201:
            return
        with self.client.patch(f"/api/v1/bookings/{created.json()['id']}/payment",
            json={"payment_status": "refunded"},
            name="/api/v1/bookings/{id}/payment [invalid]",
            catch_response=True
        ) as resp:
            self._expect(resp, [409])

    @tag("edge")
    @task
    def malformed_json(self):
        """Send garbage data."""
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_participant(self):
        """Try booking without the participant header."""
        with self.client.post("/api/v1/bookings/",
            json={"offering_id": 1},
            catch_response=True
        ) as resp:
            self._expect(resp, [422])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Simulates real traffic:
      - Mostly browsing
      - Some bookings and payments
      - Occasional cancellations
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = participant_headers()
        self.booking_ids = []

    @task(50)
    def browse_offerings(self):
        resp = self.client.get("/api/v1/offerings/?page=1&page_size=20")
        if resp.status_code == 200:
            for offering in resp.json().get("offerings", []):
                if offering["id"] not in OFFERING_IDS:
                    OFFERING_IDS.append(offering["id"])

    @task(20)
    def view_offering(self):
        if OFFERING_IDS:
            self.client.get(f"/api/v1/offerings/{random.choice(OFFERING_IDS)}",
                name="/api/v1/offerings/{id}")

    @task(10)
    def book(self):
        if OFFERING_IDS:
            resp = self.client.post("/api/v1/bookings/",
                json={"offering_id": random.choice(OFFERING_IDS)},
                headers=self.headers)
            if resp.status_code == 201:
                self.booking_ids.append(resp.json()["id"])

    @task(8)
    def pay(self):
        if self.booking_ids:
            self.client.patch(f"/api/v1/bookings/{random.choice(self.booking_ids)}/payment",
                json={"payment_status": random.choice(["completed", "failed"])},
                name="/api/v1/bookings/{id}/payment")

    @task(3)
    def cancel(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop()
            self.client.delete(f"/api/v1/bookings/{booking_id}",
                headers=self.headers,
                name="/api/v1/bookings/{id}")

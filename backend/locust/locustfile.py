"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double-booking
  locust -f locustfile.py --tags throughput   # Test schedule cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import random
from datetime import datetime, timedelta, timezone

from locust import HttpUser, between, tag, task

# One contested window per test run, two days out at 10:00 UTC
_CONTESTED_DAY = (datetime.now(timezone.utc) + timedelta(days=2)).date()
CONTESTED_PROVIDER_ID = random.randint(100000, 999999)
CONTESTED_START = datetime(_CONTESTED_DAY.year, _CONTESTED_DAY.month, _CONTESTED_DAY.day, 10, tzinfo=timezone.utc)

RESERVATION_IDS = []


def reservation_body(provider_id, start, minutes=30, **overrides):
    body = {
        "provider_id": provider_id,
        "slot_id": 1,
        "scheduled_start": start.isoformat(),
        "scheduled_end": (start + timedelta(minutes=minutes)).isoformat(),
        "service_name": "Haircut",
        "service_price": "40.00",
        "customer_id": random.randint(1, 100000),
    }
    body.update(overrides)
    return body


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users → 1 window

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM reservations
      WHERE provider_id = X AND status IN ('pending', 'confirmed', 'in_progress');
    Should be exactly 1
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def reserve_contested_window(self):
        """All users fight for the same 10:00-10:30 window."""
        offset = random.choice([0, 5, 10, 15, 20, 25])
        start = CONTESTED_START + timedelta(minutes=offset)
        with self.client.post("/api/v1/reservations/",
            json=reservation_body(CONTESTED_PROVIDER_ID, start),
            name="/api/v1/reservations/ [contested]",
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: slot taken
            elif resp.status_code == 503:
                resp.success()  # lock wait timed out, retryable
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Schedule cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare avg response time, requests/sec, P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def provider_schedule_cached(self):
        provider_id = random.randint(1, 20)
        self.client.get(f"/api/v1/providers/{provider_id}/schedule?day={_CONTESTED_DAY.isoformat()}",
            name="/api/v1/providers/{id}/schedule [cached]")

    @tag("throughput", "read")
    @task(3)
    def conflict_preview(self):
        start = CONTESTED_START + timedelta(minutes=15 * random.randint(0, 30))
        self.client.get(f"/api/v1/providers/{random.randint(1, 20)}/conflicts",
            params={"start": start.isoformat(), "end": (start + timedelta(minutes=30)).isoformat()},
            name="/api/v1/providers/{id}/conflicts")

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

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def window_in_the_past(self):
        start = datetime.now(timezone.utc) - timedelta(hours=2)
        with self.client.post("/api/v1/reservations/",
            json=reservation_body(1, start), catch_response=True) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def end_before_start(self):
        with self.client.post("/api/v1/reservations/",
            json=reservation_body(1, CONTESTED_START, minutes=-30), catch_response=True) as resp:
            self._expect(resp, (400,))

    @tag("edge")
    @task
    def discount_above_price(self):
        with self.client.post("/api/v1/reservations/",
            json=reservation_body(1, CONTESTED_START, discount_amount="500.00"),
            catch_response=True) as resp:
            self._expect(resp, (400, 409))

    @tag("edge")
    @task
    def unknown_status(self):
        with self.client.post("/api/v1/reservations/1/status",
            json={"status": "teleported"}, catch_response=True) as resp:
            self._expect(resp, (400, 404))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/reservations/",
            data="not json at all", catch_response=True) as resp:
            self._expect(resp, (400, 422))


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly schedule browsing, some reservations, occasional lifecycle moves.
    """
    wait_time = between(1, 3)

    @task(50)
    def browse_schedule(self):
        self.client.get(f"/api/v1/providers/{random.randint(1, 20)}/schedule")

    @task(10)
    def reserve(self):
        day = datetime.now(timezone.utc) + timedelta(days=random.randint(1, 20))
        start = day.replace(hour=random.randint(8, 17), minute=random.choice([0, 30]), second=0, microsecond=0)
        resp = self.client.post("/api/v1/reservations/",
            json=reservation_body(random.randint(1, 20), start),
            name="/api/v1/reservations/")
        if resp.status_code == 201:
            RESERVATION_IDS.append(resp.json()["id"])

    @task(5)
    def confirm(self):
        if RESERVATION_IDS:
            self.client.post(f"/api/v1/reservations/{random.choice(RESERVATION_IDS)}/status",
                json={"status": "confirmed", "actor": {"role": "provider"}},
                name="/api/v1/reservations/{id}/status")

    @task(2)
    def cancel(self):
        if RESERVATION_IDS:
            self.client.post(f"/api/v1/reservations/{random.choice(RESERVATION_IDS)}/cancel",
                json={"actor": {"role": "customer"}, "reason": "load test"},
                name="/api/v1/reservations/{id}/cancel")

"""
Cart Registry Load Testing with Locust

Run with:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5001

Or headless:
    locust -f tests/stress/locustfile.py --host http://127.0.0.1:5001 \
           --users 10 --spawn-rate 2 --run-time 60s --headless

Environment:
    ADMIN_STATIC_KEY   static admin key configured on the server
    STRESS_SERIALS     number of serials to contend on (default 5)

A small serial pool keeps trade-ins and used sales colliding on the same
carts, so write conflicts and retries are exercised. 409s from exhausted
retries are counted but not treated as failures.

Pass thresholds:
- p95 response time < 500ms for reads
- p95 response time < 1000ms for writes
- Error rate < 1%
"""

import os
import time
import random
import uuid
from typing import Dict, List

from locust import HttpUser, task, between, events


# =============================================================================
# CONFIGURATION
# =============================================================================

ADMIN_STATIC_KEY = os.environ.get("ADMIN_STATIC_KEY", "")
SERIAL_POOL = [f"LOAD-{i:03d}" for i in range(int(os.environ.get("STRESS_SERIALS", "5")))]
MODELS = ["VERTX", "X10 Bianco", "Q Follow Carbon"]


# =============================================================================
# METRICS TRACKING
# =============================================================================

class MetricsCollector:
    """Collect and report metrics."""

    def __init__(self):
        self.request_counts: Dict[str, int] = {}
        self.error_counts: Dict[str, int] = {}
        self.conflict_counts: Dict[str, int] = {}
        self.response_times: Dict[str, List[float]] = {}

    def record(self, name: str, response_time: float, status_code: int, ok_codes: tuple):
        if name not in self.request_counts:
            self.request_counts[name] = 0
            self.error_counts[name] = 0
            self.conflict_counts[name] = 0
            self.response_times[name] = []

        self.request_counts[name] += 1
        if status_code == 409:
            self.conflict_counts[name] += 1
        elif status_code not in ok_codes:
            self.error_counts[name] += 1
        self.response_times[name].append(response_time)

    def get_summary(self) -> Dict:
        summary = {}
        for name in self.request_counts:
            times = sorted(self.response_times[name])
            count = len(times)
            if count == 0:
                continue

            p95_idx = int(count * 0.95)

            summary[name] = {
                "count": self.request_counts[name],
                "errors": self.error_counts[name],
                "conflicts": self.conflict_counts[name],
                "error_rate": self.error_counts[name] / self.request_counts[name] * 100,
                "avg_ms": sum(times) / count,
                "p95_ms": times[p95_idx] if p95_idx < count else times[-1],
            }
        return summary


metrics = MetricsCollector()


# =============================================================================
# USER BEHAVIORS
# =============================================================================

class RegistryUser(HttpUser):
    abstract = True
    wait_time = between(0.2, 1)

    def admin_headers(self) -> Dict:
        return {"Content-Type": "application/json", "X-Admin-Key": ADMIN_STATIC_KEY}

    def timed(self, name: str, ok_codes: tuple, send):
        start = time.time()
        response = send()
        metrics.record(name, (time.time() - start) * 1000, response.status_code, ok_codes)
        return response


class CustomerUser(RegistryUser):
    """Public traffic: warranty form submissions and status lookups."""
    weight = 3

    @task(5)
    def lookup_warranty(self):
        serial = random.choice(SERIAL_POOL)
        self.timed(
            "warranty/lookup", (200,),
            lambda: self.client.get(f"/api/warranty/{serial}", name="warranty/lookup"),
        )

    @task(2)
    def register_new_sale(self):
        order_ref = f"LOAD-{uuid.uuid4().hex[:12]}"
        self.timed(
            "registrations/create", (201,),
            lambda: self.client.post(
                "/api/registrations",
                json={
                    "serial": random.choice(SERIAL_POOL),
                    "model": random.choice(MODELS),
                    "customer": {"name": "Load Test", "email": f"{order_ref.lower()}@load.test"},
                    "location": "Load Shop",
                    "purchase_date": "2025-01-15",
                    "order_ref": order_ref,
                },
                name="registrations/create",
            ),
        )

    @task(1)
    def health_check(self):
        self.timed("system/health", (200,), lambda: self.client.get("/health", name="system/health"))


class DealerUser(RegistryUser):
    """Dealer traffic: trade-ins and used sales contending on the same carts."""
    weight = 2

    @task(2)
    def trade_in(self):
        serial = random.choice(SERIAL_POOL)
        self.timed(
            "carts/trade_in", (200,),
            lambda: self.client.post(
                f"/api/carts/{serial}/trade-in",
                json={"model": random.choice(MODELS), "note": "load test"},
                headers=self.admin_headers(),
                name="carts/trade_in",
            ),
        )

    @task(2)
    def used_sale(self):
        serial = random.choice(SERIAL_POOL)
        self.timed(
            "carts/used_sale", (201,),
            lambda: self.client.post(
                f"/api/carts/{serial}/used-sale",
                json={
                    "customer": {"name": "Load Buyer", "email": "buyer@load.test"},
                    "warranty_months": 6,
                    "model": random.choice(MODELS),
                },
                headers=self.admin_headers(),
                name="carts/used_sale",
            ),
        )

    @task(1)
    def cart_events(self):
        serial = random.choice(SERIAL_POOL)
        self.timed(
            "carts/events", (200,),
            lambda: self.client.get(
                f"/api/carts/{serial}/events", headers=self.admin_headers(), name="carts/events"
            ),
        )


# =============================================================================
# EVENT HANDLERS
# =============================================================================

@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    """Print summary when test stops."""
    print("\n" + "=" * 90)
    print("LOAD TEST SUMMARY")
    print("=" * 90)

    summary = metrics.get_summary()

    print(f"\n{'Endpoint':<26} {'Count':>8} {'Errors':>8} {'409s':>8} {'Err%':>8} {'Avg(ms)':>10} {'P95(ms)':>10}")
    print("-" * 90)

    total_requests = 0
    total_errors = 0
    all_pass = True

    for name, stats in sorted(summary.items()):
        total_requests += stats["count"]
        total_errors += stats["errors"]

        p95_threshold = 500 if name in ("warranty/lookup", "carts/events", "system/health") else 1000
        passed = stats["p95_ms"] < p95_threshold and stats["error_rate"] < 1

        status = "PASS" if passed else "FAIL"
        if not passed:
            all_pass = False

        print(
            f"{name:<26} {stats['count']:>8} {stats['errors']:>8} {stats['conflicts']:>8} "
            f"{stats['error_rate']:>7.2f}% {stats['avg_ms']:>9.1f} {stats['p95_ms']:>9.1f} [{status}]"
        )

    print("-" * 90)
    print(f"{'TOTAL':<26} {total_requests:>8} {total_errors:>8} {'':>8} {total_errors/max(total_requests,1)*100:>7.2f}%")
    print("=" * 90)

    if all_pass:
        print("\n[PASS] All endpoints within thresholds")
    else:
        print("\n[FAIL] Some endpoints exceeded thresholds")
        print("  - Reads (lookup/events): P95 < 500ms, Error rate < 1%")
        print("  - Writes (create/trade-in/used-sale): P95 < 1000ms, Error rate < 1%")

    print("=" * 90)

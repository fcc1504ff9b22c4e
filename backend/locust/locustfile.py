"""
Locust Load Test Suite

Setup (once per run, against the seeded admin account):
  - creates an active event
  - registers, approves and funds one shared seller with QUOTA tickets
  - pre-issues a pool of tickets for the redemption race

Run scenarios:
  locust -f locustfile.py --tags quota        # Concurrent issuance vs one quota
  locust -f locustfile.py --tags redemption   # Concurrent scans of the same codes
  locust -f locustfile.py --tags throughput   # Public ticket views
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

Environment:
  PARTYPASS_ADMIN_EMAIL / PARTYPASS_ADMIN_PASSWORD  (default: seeded admin)
  PARTYPASS_QUOTA                                   (default: 50)
"""

import os
import random
import uuid

import requests
from locust import HttpUser, between, events, tag, task

ADMIN_EMAIL = os.getenv("PARTYPASS_ADMIN_EMAIL", "admin@party.com")
ADMIN_PASSWORD = os.getenv("PARTYPASS_ADMIN_PASSWORD", "admin123")
QUOTA = int(os.getenv("PARTYPASS_QUOTA", "50"))
REDEMPTION_POOL = 20

# Shared state, filled in by on_test_start
STATE = {
    "admin_headers": None,
    "seller_headers": None,
    "seller_id": None,
    "event_id": None,
    "codes": [],
}


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    base = environment.host.rstrip("/") + "/api"
    print("\n" + "=" * 60)
    print("SETUP: admin login, event, seller and ticket pool")
    print("=" * 60)

    admin = requests.post(f"{base}/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    admin.raise_for_status()
    admin_headers = _bearer(admin.json()["token"])

    event = requests.post(
        f"{base}/events",
        json={"name": "Load Test Night", "date": "2030-01-01", "time": "22:00", "venue": "Benchmark Hall"},
        headers=admin_headers,
    )
    event.raise_for_status()

    email = f"load_{uuid.uuid4().hex[:10]}@partypass.io"
    registered = requests.post(
        f"{base}/register",
        json={"name": "Load Seller", "email": email, "password": "loadtest123", "whatsapp": "+15550000000"},
    )
    registered.raise_for_status()
    seller_id = registered.json()["id"]

    requests.patch(f"{base}/sellers/{seller_id}/approve", headers=admin_headers).raise_for_status()
    requests.patch(
        f"{base}/sellers/{seller_id}/limit",
        json={"ticket_limit": QUOTA + REDEMPTION_POOL},
        headers=admin_headers,
    ).raise_for_status()

    seller = requests.post(f"{base}/login", json={"email": email, "password": "loadtest123"})
    seller.raise_for_status()
    seller_headers = _bearer(seller.json()["token"])

    codes = []
    for i in range(REDEMPTION_POOL):
        ticket = requests.post(
            f"{base}/tickets",
            json={"event_id": event.json()["id"], "customer_name": f"Pool {i}", "customer_whatsapp": "+15559990000"},
            headers=seller_headers,
        )
        ticket.raise_for_status()
        codes.append(ticket.json()["ticket_code"])

    STATE.update(
        admin_headers=admin_headers,
        seller_headers=seller_headers,
        seller_id=seller_id,
        event_id=event.json()["id"],
        codes=codes,
    )
    print(f"Seller {seller_id}: {QUOTA} tickets of quota left, {len(codes)} codes pooled for scanning")


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    if not STATE["seller_id"]:
        return
    base = environment.host.rstrip("/") + "/api"
    summary = requests.get(f"{base}/sellers/{STATE['seller_id']}/summary", headers=STATE["admin_headers"])
    if summary.ok:
        data = summary.json()
        print("\n" + "=" * 60)
        print(f"Seller summary: {data}")
        print(f"Quota respected: {data['sold'] <= data['limit']}")
        print("=" * 60)


class QuotaRaceUser(HttpUser):
    """
    TEST 1: Many clients issue against one seller's quota.

    Run: locust -f locustfile.py --tags quota -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT tickets_sold, ticket_limit FROM users WHERE id = X;
      SELECT COUNT(*) FROM tickets WHERE seller_id = X;
    Both counts must match and never exceed ticket_limit.
    """

    wait_time = between(0, 0.1)

    @tag("quota")
    @task
    def issue_ticket(self):
        if not STATE["seller_headers"]:
            return
        with self.client.post(
            "/api/tickets",
            json={
                "event_id": STATE["event_id"],
                "customer_name": f"Guest {random.randint(1, 10**6)}",
                "customer_whatsapp": "+15559990000",
            },
            headers=STATE["seller_headers"],
            name="/api/tickets [issue]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400 and resp.json().get("error") == "Ticket limit reached":
                resp.success()  # Expected once the quota is spent
            else:
                resp.failure(f"Unexpected: {resp.status_code} {resp.text}")


class RedemptionRaceUser(HttpUser):
    """
    TEST 2: Door staff hammering the same small pool of codes.

    Run: locust -f locustfile.py --tags redemption -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT ticket_code, COUNT(*) FROM scan_logs GROUP BY ticket_code HAVING COUNT(*) > 1;
    Must return no rows.
    """

    wait_time = between(0, 0.05)

    @tag("redemption")
    @task
    def scan(self):
        if not STATE["codes"]:
            return
        with self.client.post(
            "/api/scan",
            json={"ticket_code": random.choice(STATE["codes"])},
            headers=STATE["admin_headers"],
            name="/api/scan",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code} {resp.text}")


class ThroughputUser(HttpUser):
    """
    TEST 3: Public ticket views and QR images.
    The public view is rate limited, so 429s are expected at high rates.
    """

    wait_time = between(0.1, 0.5)

    @tag("throughput")
    @task(3)
    def view_ticket(self):
        if not STATE["codes"]:
            return
        with self.client.get(
            f"/api/tickets/{random.choice(STATE['codes'])}",
            name="/api/tickets/[code]",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 429):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("throughput")
    @task(1)
    def qr_image(self):
        if not STATE["codes"]:
            return
        self.client.get(f"/api/tickets/{random.choice(STATE['codes'])}/qr.png", name="/api/tickets/[code]/qr.png")

    @tag("throughput")
    @task(1)
    def health(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """TEST 4: Invalid input must be rejected cleanly, never 500."""

    wait_time = between(0.5, 1)

    def _expect(self, resp, *codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def blank_scan(self):
        with self.client.post(
            "/api/scan", json={"ticket_code": ""}, headers=STATE["admin_headers"],
            name="/api/scan [blank]", catch_response=True,
        ) as resp:
            self._expect(resp, 400, 429)

    @tag("edge")
    @task
    def unknown_code(self):
        with self.client.post(
            "/api/scan", json={"ticket_code": "PP-nope-000000"}, headers=STATE["admin_headers"],
            name="/api/scan [unknown]", catch_response=True,
        ) as resp:
            self._expect(resp, 404, 429)

    @tag("edge")
    @task
    def negative_limit(self):
        if not STATE["seller_id"]:
            return
        with self.client.patch(
            f"/api/sellers/{STATE['seller_id']}/limit", json={"ticket_limit": -5},
            headers=STATE["admin_headers"], name="/api/sellers/[id]/limit [negative]", catch_response=True,
        ) as resp:
            self._expect(resp, 400)

    @tag("edge")
    @task
    def unauthenticated_issue(self):
        with self.client.post(
            "/api/tickets", json={"event_id": 1, "customer_name": "x", "customer_whatsapp": "y"},
            name="/api/tickets [no auth]", catch_response=True,
        ) as resp:
            self._expect(resp, 401)

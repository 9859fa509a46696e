"""
Locust load script for the StageLink booking API.

Simulates an artist working through a booking month:
- Login via /auth/login (OAuth2 form)
- Ensure an artist profile exists and is active
- Browse venues (/api/v1/profiles?type=venue)
- Check the merged month view (/api/v1/availability)
- Send booking requests and list them
- Poll the notification badge (/api/v1/notifications/unread-count)

Configure with env vars or Locust UI:
- HOST: pass via `--host http://localhost:8000`
- STAGELINK_TEST_USERS: CSV of `email:password` pairs (overrides defaults)
- STAGELINK_BOOKING_RATE: weight of the booking-request task (default 1)

Run:
  locust -f load/locustfile.py --host http://localhost:8000
"""

from __future__ import annotations

import logging
import os
import random
import time
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from locust import HttpUser, between, events, task


DEFAULT_USERS = [
    ("loadtest1@stagelink.test", "11111111"),
    ("loadtest2@stagelink.test", "11111111"),
    ("loadtest3@stagelink.test", "11111111"),
]


def _load_users() -> List[Tuple[str, str]]:
    raw = os.getenv("STAGELINK_TEST_USERS", "").strip()
    if not raw:
        return DEFAULT_USERS
    out: List[Tuple[str, str]] = []
    for piece in raw.split(","):
        piece = piece.strip()
        if ":" not in piece:
            continue
        email, pwd = (s.strip() for s in piece.split(":", 1))
        if email and pwd:
            out.append((email, pwd))
    return out or DEFAULT_USERS


TEST_USERS = _load_users()
BOOKING_RATE = int(os.getenv("STAGELINK_BOOKING_RATE", "1") or 1)


def _auth_header(token: Optional[str]) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


def _safe_json(resp):
    try:
        return resp.json()
    except ValueError:
        return {}


class ArtistUser(HttpUser):
    wait_time = between(1, 3)

    token: Optional[str] = None
    artist_id: Optional[int] = None
    venue_ids: List[int] = []
    auth_failures: int = 0
    login_cooldown_until: float = 0.0

    def on_start(self):
        email, password = random.choice(TEST_USERS)
        self._login(email, password)
        if self.token:
            self._ensure_artist_profile(email)

    # ---- session helpers ----

    def _login(self, email: str, password: str) -> None:
        r = self.client.post(
            "/auth/login", data={"username": email, "password": password}, name="/auth/login"
        )
        if r.status_code != 200:
            self.token = None
            self.auth_failures += 1
            self.login_cooldown_until = time.time() + min(120.0, 2 ** min(self.auth_failures, 5))
            return
        self.token = _safe_json(r).get("access_token")
        self.auth_failures = 0

    def _ensure_auth(self) -> bool:
        if self.token:
            return True
        if time.time() < self.login_cooldown_until:
            return False
        email, password = random.choice(TEST_USERS)
        self._login(email, password)
        return bool(self.token)

    def _ensure_artist_profile(self, email: str) -> None:
        headers = _auth_header(self.token)
        r = self.client.get("/api/v1/profiles/me", headers=headers, name="/profiles/me")
        for p in _safe_json(r) or []:
            if p.get("type") == "artist" and p.get("deleted_at") is None:
                self.artist_id = p["id"]
                break
        if self.artist_id is None:
            r = self.client.post(
                "/api/v1/profiles",
                json={"type": "artist", "name": f"Load Band {email.split('@')[0]}"},
                headers=headers,
                name="/profiles [create]",
            )
            if r.status_code != 201:
                return
            self.artist_id = _safe_json(r).get("id")
        self.client.post(
            f"/api/v1/profiles/{self.artist_id}/activate",
            headers=headers,
            name="/profiles/[id]/activate",
        )

    def _check_unauthorized(self, resp) -> bool:
        if resp.status_code == 401:
            self.token = None
            return True
        return False

    # ---- tasks ----

    @task(3)
    def browse_venues(self):
        if not self._ensure_auth():
            return
        r = self.client.get(
            "/api/v1/profiles",
            params={"type": "venue", "limit": 50},
            headers=_auth_header(self.token),
            name="/profiles?type=venue",
        )
        if self._check_unauthorized(r) or r.status_code != 200:
            return
        ids = [p["id"] for p in _safe_json(r) or [] if "id" in p]
        if ids:
            self.venue_ids = ids

    @task(6)
    def month_availability(self):
        if not self._ensure_auth() or not self.artist_id:
            return
        params = {"artistId": self.artist_id}
        if self.venue_ids:
            params["venueId"] = random.choice(self.venue_ids)
        target = date.today() + timedelta(days=random.randint(0, 180))
        params.update({"month": target.month, "year": target.year})
        r = self.client.get(
            "/api/v1/availability",
            params=params,
            headers=_auth_header(self.token),
            name="/availability",
        )
        self._check_unauthorized(r)

    @task(BOOKING_RATE)
    def send_booking_request(self):
        if not self._ensure_auth() or not self.artist_id or not self.venue_ids:
            return
        event_date = date.today() + timedelta(days=random.randint(14, 180))
        r = self.client.post(
            "/api/v1/booking-requests",
            json={
                "venue_id": random.choice(self.venue_ids),
                "event_date": event_date.isoformat(),
                "event_time": "20:00",
                "message": "Load test booking",
            },
            headers=_auth_header(self.token),
            name="/booking-requests [create]",
        )
        self._check_unauthorized(r)

    @task(4)
    def list_booking_requests(self):
        if not self._ensure_auth():
            return
        r = self.client.get(
            "/api/v1/booking-requests",
            headers=_auth_header(self.token),
            name="/booking-requests",
        )
        self._check_unauthorized(r)

    @task(3)
    def unread_notifications(self):
        if not self._ensure_auth():
            return
        r = self.client.get(
            "/api/v1/notifications/unread-count",
            headers=_auth_header(self.token),
            name="/notifications/unread-count",
        )
        self._check_unauthorized(r)


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    users = ", ".join(u for u, _ in TEST_USERS)
    logging.getLogger("locust").info("Starting test with users: %s", users)


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    logging.getLogger("locust").info("Test finished")

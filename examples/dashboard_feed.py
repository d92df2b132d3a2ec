#!/usr/bin/env python3
"""
Campus Gate example: push a few portal events to the admin dashboard.

Mints an admin token with the local signing key, checks the gateway is up,
then publishes an enrolment and a course update. Open the admin dashboard
(or any WebSocket client joined to "admin-dashboard") to watch them arrive.

Run with: python examples/dashboard_feed.py
Gateway must be running: uvicorn campusgate.main:app --port 3000
"""

import sys

import httpx

from campusgate.auth.jwt import Role, create_access_token
from campusgate.events import types

BASE = "http://localhost:3000/api/v1"


def main():
    token = create_access_token("example-admin", Role.ADMIN, expires_minutes=5)
    client = httpx.Client(
        base_url=BASE,
        headers={"Authorization": f"Bearer {token}"},
        timeout=10,
    )

    # ── Health check ──────────────────────────────────────────────
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Gateway not reachable at {BASE}")
        sys.exit(1)
    print(f"Gateway up, {resp.json()['connections']} live connection(s)")

    # ── Publish ───────────────────────────────────────────────────
    events = [
        (types.STUDENT_ENROLLED, {"id": 42, "name": "Ada Lovelace", "course_id": 7}),
        (types.COURSE_UPDATED, {"id": 7, "title": "Analytical Engines", "capacity": 30}),
    ]
    for event_type, payload in events:
        resp = client.post(
            "/admin/events",
            json={"room": "admin-dashboard", "type": event_type, "payload": payload},
        )
        resp.raise_for_status()
        status = "sent" if resp.json()["accepted"] else "rejected"
        print(f"  {event_type}: {status}")

    # ── Room stats ────────────────────────────────────────────────
    stats = client.get("/admin/realtime").json()
    for room, count in stats["rooms"].items():
        print(f"  {room}: {count} member(s)")


if __name__ == "__main__":
    main()

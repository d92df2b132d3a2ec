"""Campus Gate CLI — mint dev tokens, push events, inspect live rooms.

Usage:
    campusgate token --role admin --subject 1         # Print a signed token
    campusgate publish admin-dashboard studentEnrolled --payload '{"id": 42}'
    campusgate stats                                  # Connections and rooms
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from campusgate import __version__
from campusgate.auth.jwt import Role, create_access_token

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3000"


def _api_url() -> str:
    return os.environ.get("CAMPUSGATE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: str) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the gateway, with admin auth."""
    return httpx.AsyncClient(
        base_url=_api_url(),
        headers={"Authorization": f"Bearer {token}"},
        timeout=10.0,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous click handler."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _token_from_ctx(token: Optional[str]) -> str:
    """Resolve the admin token from flag or CAMPUSGATE_TOKEN env var."""
    value = token or os.environ.get("CAMPUSGATE_TOKEN")
    if not value:
        click.secho(
            "Error: --token required (or set CAMPUSGATE_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return value


def _check(r: httpx.Response) -> dict:
    if r.status_code in (401, 403):
        click.secho(f"Error: {r.json().get('detail', 'not authorized')}", fg="red", err=True)
        sys.exit(1)
    r.raise_for_status()
    return r.json()


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="campusgate")
def main():
    """Campus Gate — real-time notifications for the admin dashboard."""


@main.command()
@click.option(
    "--role", "-r",
    type=click.Choice([r.value for r in Role]),
    default=Role.ADMIN.value,
    show_default=True,
)
@click.option("--subject", "-s", required=True, help="Subject (user) id")
@click.option("--minutes", "-m", type=int, default=None, help="Lifetime in minutes")
def token(role: str, subject: str, minutes: Optional[int]):
    """Print a signed access token (uses CAMPUSGATE_JWT_SECRET)."""
    click.echo(create_access_token(subject, role, expires_minutes=minutes))


@main.command()
@click.argument("room")
@click.argument("event_type")
@click.option("--payload", "-p", default="{}", help="JSON payload")
@click.option("--token", "-t", "auth_token", help="Admin token (or set CAMPUSGATE_TOKEN)")
def publish(room: str, event_type: str, payload: str, auth_token: Optional[str]):
    """Publish EVENT_TYPE with a JSON payload to ROOM."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        click.secho(f"Error: payload is not valid JSON ({e})", fg="red", err=True)
        sys.exit(1)
    _run(_publish_impl(room, event_type, data, _token_from_ctx(auth_token)))


async def _publish_impl(room: str, event_type: str, data, auth_token: str):
    async with _client(auth_token) as c:
        r = await c.post(
            "/api/v1/admin/events",
            json={"room": room, "type": event_type, "payload": data},
        )
        body = _check(r)
    if body["accepted"]:
        click.secho(f"Published {event_type} to {room}", fg="green")
    else:
        click.secho(f"Rejected {event_type}: payload does not match its schema", fg="red")
        sys.exit(1)


@main.command()
@click.option("--token", "-t", "auth_token", help="Admin token (or set CAMPUSGATE_TOKEN)")
def stats(auth_token: Optional[str]):
    """Show live connections and room membership counts."""
    _run(_stats_impl(_token_from_ctx(auth_token)))


async def _stats_impl(auth_token: str):
    async with _client(auth_token) as c:
        body = _check(await c.get("/api/v1/admin/realtime"))

    click.secho(f"Connections: {body['connections']}", bold=True)
    if not body["rooms"]:
        click.echo("No active rooms")
        return
    click.echo(f"{'ROOM'.ljust(32)}  MEMBERS")
    click.echo("-" * 41)
    for room, count in sorted(body["rooms"].items()):
        click.echo(f"{room[:32].ljust(32)}  {count}")

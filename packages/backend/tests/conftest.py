"""Test fixtures — an in-memory gateway with a recording transport.

Every test gets a fresh gateway (registry, router, publisher, supervisor)
wired to RecordingTransport instead of real sockets, plus helpers that mint
admin/student tokens with the configured signing key.

HTTP tests run the app through httpx's ASGITransport with that same
gateway injected, so tests can open connections on the supervisor and
observe what an HTTP publish delivers.
"""

from typing import Any, Callable, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from campusgate.auth.jwt import Role, TokenVerifier, create_access_token
from campusgate.main import create_app
from campusgate.realtime.gateway import build_gateway


class RecordingTransport:
    """Records sends and closes; can fail chosen connections or hook each send."""

    def __init__(self):
        self.sent: list[tuple[str, str, Any]] = []
        self.fail_for: set[str] = set()
        self.on_send: Optional[Callable[[str], None]] = None
        self.closed: list[str] = []

    async def send(self, connection_id: str, event_type: str, payload: Any) -> bool:
        if self.on_send is not None:
            self.on_send(connection_id)
        if connection_id in self.fail_for:
            return False
        self.sent.append((connection_id, event_type, payload))
        return True

    async def close(self, connection_id: str) -> None:
        self.closed.append(connection_id)

    def sent_to(self, connection_id: str) -> list[tuple[str, Any]]:
        return [(t, p) for cid, t, p in self.sent if cid == connection_id]


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def gateway(transport):
    return build_gateway(
        verifier=TokenVerifier.from_settings(),
        transport=transport,
        admin_room="admin-dashboard",
    )


@pytest.fixture()
def admin_token():
    return create_access_token("admin-1", Role.ADMIN)


@pytest.fixture()
def student_token():
    return create_access_token("student-1", Role.STUDENT)


@pytest.fixture()
def auth_headers():
    """Build an Authorization header for a role."""

    def _headers(role: Role = Role.ADMIN, subject: str = "1") -> dict:
        return {"Authorization": f"Bearer {create_access_token(subject, role)}"}

    return _headers


@pytest.fixture()
def app(gateway):
    return create_app(gateway)


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client bound to the app (no network)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

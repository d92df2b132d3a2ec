"""Gateway supervisor — connection lifecycle and client requests.

Per-connection state machine:

  connecting → unauthenticated → authenticated → closed
                      └────────────────────────────↗

- connecting is the transport handshake (websocket.accept() in websocket.py);
  the connection has no id yet, so the registry never holds it in that state.
- Admission is unconditional: every opened transport gets an id.
- A join request carrying a valid token authenticates the connection.
  The claim is sticky; later tokens on the same connection are ignored.
- An invalid token denies that join; the connection stays open and
  unauthenticated.
- Close from any state unregisters the connection (idempotent), which
  removes it from every room.

Client messages are small JSON dicts; see handle_message() for the set.
"""

from dataclasses import dataclass
from typing import Any, Optional

import structlog

from campusgate.auth.jwt import RejectionReason, Role, TokenVerifier
from campusgate.config import settings
from campusgate.realtime.publisher import EventPublisher
from campusgate.realtime.registry import ConnectionRegistry, ConnectionState
from campusgate.realtime.router import DenialReason, JoinResult, RoomRouter
from campusgate.realtime.transport import Transport, WebSocketTransport

logger = structlog.get_logger()

LEGACY_ADMIN_JOIN = "joinAdminDashboard"


class GatewaySupervisor:
    def __init__(
        self,
        registry: ConnectionRegistry,
        router: RoomRouter,
        verifier: TokenVerifier,
        admin_room: str = "admin-dashboard",
    ):
        self._registry = registry
        self._router = router
        self._verifier = verifier
        self._admin_room = admin_room
        self._default_tokens: dict[str, str] = {}

    # ─── Lifecycle ──────────────────────────────────────────

    def connection_opened(self, default_token: Optional[str] = None) -> str:
        """Admit a connection after the transport handshake.

        default_token (e.g. from ?token=) is kept unverified and only used
        for joins of protected rooms that carry no token of their own.
        """
        connection_id = self._registry.register()
        if default_token:
            self._default_tokens[connection_id] = default_token
        return connection_id

    def connection_closed(self, connection_id: str) -> None:
        self._default_tokens.pop(connection_id, None)
        if self._registry.unregister(connection_id) is not None:
            logger.info("realtime.connection_closed", connection_id=connection_id)

    def state_of(self, connection_id: str) -> ConnectionState:
        connection = self._registry.get(connection_id)
        if connection is None:
            return ConnectionState.CLOSED
        return connection.state

    # ─── Rooms ──────────────────────────────────────────────

    def join_room(
        self, connection_id: str, room: str, token: Optional[str] = None
    ) -> JoinResult:
        connection = self._registry.get(connection_id)
        if connection is None:
            return JoinResult.denied(DenialReason.UNKNOWN_CONNECTION)

        # The unverified connect-time token only backs joins of protected rooms.
        if not token and self._router.required_role(room) is not None:
            token = self._default_tokens.get(connection_id)

        if token and not connection.is_authenticated:
            result = self._verifier.verify(token)
            if isinstance(result, RejectionReason):
                logger.info(
                    "realtime.auth_rejected",
                    connection_id=connection_id,
                    room=room,
                    reason=result.value,
                )
                return JoinResult.denied(result)
            self._registry.set_authenticated(connection_id, result)

        return self._router.join(connection_id, room)

    def leave_room(self, connection_id: str, room: str) -> bool:
        return self._router.leave(connection_id, room)

    # ─── Client protocol ────────────────────────────────────

    def handle_message(self, connection_id: str, message: Any) -> dict:
        """Apply one client message and build the reply.

        joinRoom {room, token?}      → joinResult {room, ok, reason}
        joinAdminDashboard {token?}  → joinResult for the admin room
        leaveRoom {room}             → leaveResult {room, ok}
        ping                         → pong
        """
        if not isinstance(message, dict):
            return {"type": "error", "reason": "invalidMessage"}

        kind = message.get("type")
        if kind == "ping":
            return {"type": "pong"}

        if kind in ("joinRoom", LEGACY_ADMIN_JOIN):
            room = self._admin_room if kind == LEGACY_ADMIN_JOIN else message.get("room")
            if not isinstance(room, str) or not room:
                return {"type": "error", "reason": "invalidRoom"}
            token = message.get("token")
            result = self.join_room(
                connection_id, room, token if isinstance(token, str) else None
            )
            return {
                "type": "joinResult",
                "room": room,
                "ok": result.ok,
                "reason": result.reason.value if result.reason else None,
            }

        if kind == "leaveRoom":
            room = message.get("room")
            if not isinstance(room, str) or not room:
                return {"type": "error", "reason": "invalidRoom"}
            return {
                "type": "leaveResult",
                "room": room,
                "ok": self.leave_room(connection_id, room),
            }

        return {"type": "error", "reason": "unknownMessage"}


@dataclass
class Gateway:
    """Everything the app needs, built once and injected."""

    registry: ConnectionRegistry
    router: RoomRouter
    publisher: EventPublisher
    supervisor: GatewaySupervisor
    transport: Transport


def build_gateway(
    verifier: Optional[TokenVerifier] = None,
    transport: Optional[Transport] = None,
    admin_room: Optional[str] = None,
) -> Gateway:
    """Wire registry → router → publisher → supervisor."""
    admin_room = admin_room or settings.admin_room
    transport = transport if transport is not None else WebSocketTransport()
    registry = ConnectionRegistry()
    router = RoomRouter(registry, transport, protected_rooms={admin_room: Role.ADMIN})
    return Gateway(
        registry=registry,
        router=router,
        publisher=EventPublisher(router),
        supervisor=GatewaySupervisor(
            registry,
            router,
            verifier or TokenVerifier.from_settings(),
            admin_room=admin_room,
        ),
        transport=transport,
    )

"""Connection registry — every live real-time connection and its state.

Each connection is admitted unauthenticated and may later receive a Claim.
Authentication is sticky: once a claim is set it is never replaced, a client
must reconnect to change identity.

Every method is synchronous. Under the single asyncio loop that makes each
call atomic relative to joins, leaves and broadcast snapshots; no locks.

Removal cascades: unregister() calls every listener (the RoomRouter) before
returning, so no room can still list a connection once it is gone.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import structlog

from campusgate.auth.jwt import Claim

logger = structlog.get_logger()


class ConnectionState(str, Enum):
    """States of a registered connection.

    The earlier connecting state is the transport handshake itself; a
    connection only reaches the registry once that has completed.
    """

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


@dataclass
class Connection:
    id: str
    created_at: datetime
    claim: Optional[Claim] = None
    rooms: set[str] = field(default_factory=set)
    state: ConnectionState = ConnectionState.UNAUTHENTICATED

    @property
    def is_authenticated(self) -> bool:
        return self.claim is not None


UnregisterListener = Callable[[Connection], None]


class ConnectionRegistry:
    def __init__(self):
        self._connections: dict[str, Connection] = {}
        self._listeners: list[UnregisterListener] = []

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def add_unregister_listener(self, listener: UnregisterListener) -> None:
        self._listeners.append(listener)

    def register(self) -> str:
        """Admit a new connection in the unauthenticated state."""
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = Connection(
            id=connection_id,
            created_at=datetime.now(timezone.utc),
        )
        logger.info("realtime.connection_registered", connection_id=connection_id)
        return connection_id

    def get(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def set_authenticated(self, connection_id: str, claim: Claim) -> bool:
        """Attach a claim to a connection. Returns False if it already has one."""
        connection = self._connections.get(connection_id)
        if connection is None or connection.claim is not None:
            return False
        connection.claim = claim
        connection.state = ConnectionState.AUTHENTICATED
        logger.info(
            "realtime.connection_authenticated",
            connection_id=connection_id,
            role=claim.role.value,
            subject_id=claim.subject_id,
        )
        return True

    def unregister(self, connection_id: str) -> Optional[Connection]:
        """Remove a connection and cascade to its rooms.

        Idempotent: a second call for the same id is a no-op returning None.
        """
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None

        connection.state = ConnectionState.CLOSED
        for listener in self._listeners:
            listener(connection)
        connection.rooms.clear()

        logger.info("realtime.connection_unregistered", connection_id=connection_id)
        return connection

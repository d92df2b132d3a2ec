"""Outbound transport — the only code that touches sockets.

send() is fire-and-forget from the router's perspective: it reports success
as a bool and never raises, so one dead socket cannot abort a broadcast.
close() ends a connection the gateway has dropped, so the client sees the
close and reconnects instead of talking to a connection that no longer
exists. It never raises either.
"""

from typing import Any, Protocol

import structlog
from starlette.websockets import WebSocket, WebSocketState

logger = structlog.get_logger()

# 1011: server hit an unexpected condition; clients should reconnect.
DROPPED_CLOSE_CODE = 1011


class Transport(Protocol):
    async def send(self, connection_id: str, event_type: str, payload: Any) -> bool:
        ...

    async def close(self, connection_id: str) -> None:
        ...


class WebSocketTransport:
    """Maps connection ids to live Starlette WebSockets."""

    def __init__(self):
        self._sockets: dict[str, WebSocket] = {}

    def attach(self, connection_id: str, websocket: WebSocket) -> None:
        self._sockets[connection_id] = websocket

    def detach(self, connection_id: str) -> None:
        self._sockets.pop(connection_id, None)

    async def send(self, connection_id: str, event_type: str, payload: Any) -> bool:
        websocket = self._sockets.get(connection_id)
        if websocket is None or websocket.client_state != WebSocketState.CONNECTED:
            return False
        try:
            await websocket.send_json({"type": event_type, "payload": payload})
        except Exception as e:
            logger.warning(
                "realtime.send_failed",
                connection_id=connection_id,
                event_type=event_type,
                error=str(e),
            )
            return False
        return True

    async def close(self, connection_id: str) -> None:
        websocket = self._sockets.pop(connection_id, None)
        if websocket is None or websocket.application_state != WebSocketState.CONNECTED:
            return
        try:
            await websocket.close(code=DROPPED_CLOSE_CODE, reason="connection dropped")
        except Exception as e:
            logger.warning(
                "realtime.close_failed", connection_id=connection_id, error=str(e)
            )

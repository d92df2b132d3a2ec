"""WebSocket endpoint — the real-time transport for dashboards.

Each client connects to /ws (optionally /ws?token=JWT). The handler:
1. Accepts unconditionally and registers the connection (unauthenticated)
2. Reads JSON client messages (joinRoom, leaveRoom, ping) and replies
3. On disconnect, unregisters the connection from the registry and all rooms

Events published to a room the client joined arrive as
{"type": <event type>, "payload": {...}}.
"""

import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from campusgate.realtime.gateway import Gateway
from campusgate.realtime.transport import WebSocketTransport

logger = structlog.get_logger()
router = APIRouter()


@router.websocket("/ws")
async def realtime_websocket(websocket: WebSocket):
    gateway: Gateway = websocket.app.state.gateway
    supervisor = gateway.supervisor
    transport = gateway.transport

    await websocket.accept()
    connection_id = supervisor.connection_opened(
        default_token=websocket.query_params.get("token")
    )
    if isinstance(transport, WebSocketTransport):
        transport.attach(connection_id, websocket)

    await websocket.send_json({"type": "connected"})

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "reason": "invalidJson"})
                continue
            await websocket.send_json(supervisor.handle_message(connection_id, message))
    except WebSocketDisconnect:
        pass
    finally:
        supervisor.connection_closed(connection_id)
        if isinstance(transport, WebSocketTransport):
            transport.detach(connection_id)
        if websocket.application_state == WebSocketState.CONNECTED:
            await websocket.close()

"""Real-time infrastructure — connection registry, rooms, publisher, WebSocket.

Events flow one way:
1. Business logic → EventPublisher.publish(room, type, payload)
2. RoomRouter snapshots the room's members and sends to each over the Transport

Connections flow through the GatewaySupervisor:
open → unauthenticated → (join with valid token) → authenticated → closed

All state lives in the ConnectionRegistry and RoomRouter instances built by
build_gateway(); nothing here is module-global.
"""

from campusgate.realtime.gateway import Gateway, GatewaySupervisor, build_gateway

__all__ = ["Gateway", "GatewaySupervisor", "build_gateway"]

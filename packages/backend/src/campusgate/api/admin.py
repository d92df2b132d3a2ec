"""Admin API — push events and inspect real-time state.

The portal's CRUD handlers publish in-process through EventPublisher; this
endpoint exposes the same facade over HTTP for other services and the CLI.
Responses never include connection ids.
"""

from fastapi import APIRouter, Depends, Request

from campusgate.events.schemas import PublishEventRequest
from campusgate.realtime.gateway import Gateway

router = APIRouter()


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


@router.post("/admin/events", status_code=202)
async def publish_event(
    body: PublishEventRequest,
    gateway: Gateway = Depends(get_gateway),
):
    """Publish an event to a room (fire-and-forget)."""
    accepted = gateway.publisher.publish(body.room, body.type, body.payload)
    return {"accepted": accepted, "room": body.room, "type": body.type}


@router.get("/admin/realtime")
async def realtime_stats(gateway: Gateway = Depends(get_gateway)):
    """Live connection count and member count per room."""
    return {
        "connections": len(gateway.registry),
        "rooms": gateway.router.rooms(),
    }

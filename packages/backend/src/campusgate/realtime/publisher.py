"""Event publisher — the one entry point business logic uses.

publish() validates the payload, schedules the broadcast on the running
event loop and returns immediately. Callers never wait for delivery and
never see connection ids. Publishing to a room nobody has joined is a
valid no-op.

Code running off the loop thread (sync route handlers in the threadpool)
can publish too once the app has bound its loop with bind_loop(); the
event is handed to that loop thread-safely.

Like Redis pub/sub, this is fire-and-forget: if nobody is listening the
event is gone. Dashboards reload current state over HTTP on reconnect.
"""

import asyncio
from typing import Any, Optional

import structlog

from campusgate.events.schemas import Event, normalize_payload
from campusgate.realtime.router import RoomRouter

logger = structlog.get_logger()


class EventPublisher:
    def __init__(self, router: RoomRouter):
        self._router = router
        self._pending: set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Remember the app loop so publish() works from other threads."""
        self._loop = loop

    def publish(self, room: str, event_type: str, payload: Any = None) -> bool:
        """Schedule delivery of an event to a room.

        Returns True when the event was scheduled, False when the payload
        was rejected (wrong shape for its type, or not JSON-serializable) or
        no event loop is available to run it.
        """
        try:
            normalized = normalize_payload(event_type, {} if payload is None else payload)
        except (ValueError, TypeError) as e:
            logger.warning(
                "realtime.publish_rejected",
                room=room,
                event_type=event_type,
                error=str(e),
            )
            return False

        event = Event(room=room, type=event_type, payload=normalized)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if self._loop is None or not self._loop.is_running():
                logger.warning(
                    "realtime.publish_without_loop", room=room, event_type=event_type
                )
                return False
            self._loop.call_soon_threadsafe(self._schedule, event)
            return True

        self._schedule(event)
        return True

    def _schedule(self, event: Event) -> None:
        # Runs on the loop thread.
        task = asyncio.get_running_loop().create_task(self._dispatch(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _dispatch(self, event: Event) -> None:
        try:
            await self._router.broadcast(event)
        except Exception:
            logger.exception(
                "realtime.dispatch_error", room=event.room, event_type=event.type
            )

    async def drain(self) -> None:
        """Wait for every scheduled dispatch to finish."""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending)

    @property
    def pending(self) -> int:
        return len(self._pending)

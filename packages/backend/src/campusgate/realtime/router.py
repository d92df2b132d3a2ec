"""Room broadcast router — room membership and fan-out delivery.

Rooms are created on first join and pruned when their last member leaves.
Membership is kept on both sides (room → ids here, connection → rooms on the
Connection) and every mutation updates both in the same synchronous step.

Authorization is re-checked on every join against the protected-room policy
(room name → required role). Rooms not in the policy are open to anyone,
authenticated or not.

broadcast() takes the member snapshot synchronously, then sends. A member
that disconnects after the snapshot is skipped; a member whose send fails
is logged, unregistered and its transport closed. Neither stops delivery
to the others.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

import structlog

from campusgate.auth.jwt import RejectionReason, Role
from campusgate.events.schemas import Event
from campusgate.realtime.registry import Connection, ConnectionRegistry
from campusgate.realtime.transport import Transport

logger = structlog.get_logger()


class DenialReason(str, Enum):
    NOT_AUTHENTICATED = "notAuthenticated"
    FORBIDDEN = "forbidden"
    UNKNOWN_CONNECTION = "unknownConnection"


@dataclass(frozen=True)
class JoinResult:
    ok: bool
    reason: Optional[Union[DenialReason, RejectionReason]] = None

    @classmethod
    def accepted(cls) -> "JoinResult":
        return cls(ok=True)

    @classmethod
    def denied(cls, reason: Union[DenialReason, RejectionReason]) -> "JoinResult":
        return cls(ok=False, reason=reason)


@dataclass
class DeliveryReport:
    room: str
    event_type: str
    delivered: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class RoomRouter:
    def __init__(
        self,
        registry: ConnectionRegistry,
        transport: Transport,
        protected_rooms: Optional[dict[str, Role]] = None,
    ):
        self._registry = registry
        self._transport = transport
        self._protected = dict(protected_rooms or {})
        self._rooms: dict[str, set[str]] = {}
        registry.add_unregister_listener(self._on_unregister)

    # ─── Membership ─────────────────────────────────────────

    def required_role(self, room: str) -> Optional[Role]:
        return self._protected.get(room)

    def join(self, connection_id: str, room: str) -> JoinResult:
        connection = self._registry.get(connection_id)
        if connection is None:
            return JoinResult.denied(DenialReason.UNKNOWN_CONNECTION)

        required = self._protected.get(room)
        if required is not None:
            if connection.claim is None:
                return self._deny(connection_id, room, DenialReason.NOT_AUTHENTICATED)
            if connection.claim.role != required:
                return self._deny(connection_id, room, DenialReason.FORBIDDEN)

        if room in connection.rooms:
            return JoinResult.accepted()

        self._rooms.setdefault(room, set()).add(connection_id)
        connection.rooms.add(room)
        logger.info("realtime.joined", connection_id=connection_id, room=room)
        return JoinResult.accepted()

    def leave(self, connection_id: str, room: str) -> bool:
        """Remove a connection from one room. Returns False if it was not a member."""
        connection = self._registry.get(connection_id)
        members = self._rooms.get(room)
        was_member = members is not None and connection_id in members

        if members is not None:
            members.discard(connection_id)
            self._prune(room)
        if connection is not None:
            connection.rooms.discard(room)

        if was_member:
            logger.info("realtime.left", connection_id=connection_id, room=room)
        return was_member

    def members_of(self, room: str) -> frozenset[str]:
        return frozenset(self._rooms.get(room, ()))

    def rooms(self) -> dict[str, int]:
        return {name: len(members) for name, members in self._rooms.items()}

    # ─── Delivery ───────────────────────────────────────────

    async def broadcast(self, event: Event) -> DeliveryReport:
        """Deliver an event to the room's members as of this call."""
        report = DeliveryReport(room=event.room, event_type=event.type)
        snapshot = self._snapshot(event.room)
        if not snapshot:
            return report

        outcomes = await asyncio.gather(
            *(self._deliver(connection_id, event) for connection_id in snapshot)
        )
        for connection_id, outcome in zip(snapshot, outcomes):
            if outcome is None:
                report.skipped.append(connection_id)
            elif outcome:
                report.delivered.append(connection_id)
            else:
                report.failed.append(connection_id)

        logger.debug(
            "realtime.broadcast",
            room=event.room,
            event_type=event.type,
            delivered=len(report.delivered),
            failed=len(report.failed),
            skipped=len(report.skipped),
        )
        return report

    def _snapshot(self, room: str) -> list[str]:
        members = self._rooms.get(room)
        if not members:
            return []

        snapshot = []
        for connection_id in list(members):
            if connection_id in self._registry:
                snapshot.append(connection_id)
                continue
            # Room references a connection the registry no longer knows.
            logger.error(
                "realtime.registry_inconsistency",
                connection_id=connection_id,
                room=room,
                detail="room member missing from registry, pruning",
            )
            members.discard(connection_id)
        self._prune(room)
        return snapshot

    async def _deliver(self, connection_id: str, event: Event) -> Optional[bool]:
        # Disconnected after the snapshot: deliver nothing.
        if connection_id not in self._registry:
            return None

        sent = await self._transport.send(connection_id, event.type, event.payload)
        if not sent:
            logger.warning(
                "realtime.delivery_failed",
                connection_id=connection_id,
                room=event.room,
                event_type=event.type,
            )
            self._registry.unregister(connection_id)
            await self._transport.close(connection_id)
        return sent

    # ─── Cleanup ────────────────────────────────────────────

    def _on_unregister(self, connection: Connection) -> None:
        for room in list(connection.rooms):
            members = self._rooms.get(room)
            if members is None or connection.id not in members:
                logger.error(
                    "realtime.registry_inconsistency",
                    connection_id=connection.id,
                    room=room,
                    detail="connection lists a room that does not list it",
                )
                continue
            members.discard(connection.id)
            self._prune(room)

    def _prune(self, room: str) -> None:
        if room in self._rooms and not self._rooms[room]:
            del self._rooms[room]

    def _deny(
        self, connection_id: str, room: str, reason: DenialReason
    ) -> JoinResult:
        logger.info(
            "realtime.join_denied",
            connection_id=connection_id,
            room=room,
            reason=reason.value,
        )
        return JoinResult.denied(reason)

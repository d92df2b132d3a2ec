"""Room broadcast router tests.

Tests cover:
1. Join authorization on the protected admin room (notAuthenticated / forbidden)
2. Open rooms, idempotent re-join, leave and pruning
3. Broadcast snapshot semantics: no late joiners, no duplicates,
   no delivery after disconnect
4. Delivery failures are isolated, remove the member and close its transport
5. Self-healing of dangling room references
"""

from datetime import datetime, timedelta, timezone

import pytest

from campusgate.auth.jwt import Claim, Role
from campusgate.events.schemas import Event
from campusgate.realtime.router import DenialReason

ADMIN_ROOM = "admin-dashboard"


def _claim(role: Role) -> Claim:
    return Claim(
        role=role,
        subject_id=f"{role.value}-1",
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


def _connect(gateway, role=None) -> str:
    cid = gateway.registry.register()
    if role is not None:
        gateway.registry.set_authenticated(cid, _claim(role))
    return cid


# ─── Join / leave ────────────────────────────────────────


def test_admin_room_denies_unauthenticated(gateway):
    cid = _connect(gateway)
    result = gateway.router.join(cid, ADMIN_ROOM)
    assert not result.ok
    assert result.reason == DenialReason.NOT_AUTHENTICATED
    assert gateway.router.members_of(ADMIN_ROOM) == frozenset()


def test_admin_room_denies_student(gateway):
    cid = _connect(gateway, Role.STUDENT)
    result = gateway.router.join(cid, ADMIN_ROOM)
    assert not result.ok
    assert result.reason == DenialReason.FORBIDDEN
    assert gateway.registry.get(cid).rooms == set()


def test_admin_room_accepts_admin(gateway):
    cid = _connect(gateway, Role.ADMIN)
    result = gateway.router.join(cid, ADMIN_ROOM)
    assert result.ok
    assert result.reason is None
    assert gateway.router.members_of(ADMIN_ROOM) == {cid}
    assert gateway.registry.get(cid).rooms == {ADMIN_ROOM}


def test_open_room_accepts_anyone(gateway):
    anon = _connect(gateway)
    student = _connect(gateway, Role.STUDENT)
    assert gateway.router.join(anon, "course-101").ok
    assert gateway.router.join(student, "course-101").ok
    assert gateway.router.members_of("course-101") == {anon, student}


def test_rejoin_is_noop(gateway):
    cid = _connect(gateway, Role.ADMIN)
    assert gateway.router.join(cid, ADMIN_ROOM).ok
    assert gateway.router.join(cid, ADMIN_ROOM).ok
    assert gateway.router.rooms() == {ADMIN_ROOM: 1}


def test_join_unknown_connection(gateway):
    result = gateway.router.join("ghost", "course-101")
    assert result.reason == DenialReason.UNKNOWN_CONNECTION
    assert gateway.router.rooms() == {}


def test_leave_prunes_empty_room(gateway):
    cid = _connect(gateway)
    gateway.router.join(cid, "course-101")

    assert gateway.router.leave(cid, "course-101") is True
    assert gateway.router.rooms() == {}
    assert gateway.registry.get(cid).rooms == set()


def test_leave_when_not_member(gateway):
    cid = _connect(gateway)
    assert gateway.router.leave(cid, "course-101") is False


# ─── Broadcast ───────────────────────────────────────────


@pytest.mark.asyncio
async def test_broadcast_reaches_each_member_once(gateway, transport):
    members = [_connect(gateway, Role.ADMIN) for _ in range(3)]
    for cid in members:
        gateway.router.join(cid, ADMIN_ROOM)
    outsider = _connect(gateway)
    gateway.router.join(outsider, "course-101")

    report = await gateway.router.broadcast(
        Event(room=ADMIN_ROOM, type="courseUpdated", payload={"id": 1})
    )

    assert sorted(report.delivered) == sorted(members)
    assert report.failed == []
    assert len(transport.sent) == 3
    for cid in members:
        assert transport.sent_to(cid) == [("courseUpdated", {"id": 1})]
    assert transport.sent_to(outsider) == []


@pytest.mark.asyncio
async def test_broadcast_to_empty_room(gateway, transport):
    report = await gateway.router.broadcast(Event(room="nobody-here", type="x"))
    assert report.delivered == []
    assert transport.sent == []


@pytest.mark.asyncio
async def test_member_removed_before_broadcast_gets_nothing(gateway, transport):
    stays = _connect(gateway)
    leaves = _connect(gateway)
    gateway.router.join(stays, "course-101")
    gateway.router.join(leaves, "course-101")
    gateway.router.leave(leaves, "course-101")

    await gateway.router.broadcast(Event(room="course-101", type="courseUpdated", payload={"id": 1}))

    assert transport.sent_to(stays) != []
    assert transport.sent_to(leaves) == []


@pytest.mark.asyncio
async def test_late_joiner_not_in_snapshot(gateway, transport):
    early = _connect(gateway)
    late = _connect(gateway)
    gateway.router.join(early, "course-101")

    # Joins while the broadcast is already sending
    transport.on_send = lambda _cid: gateway.router.join(late, "course-101")

    report = await gateway.router.broadcast(Event(room="course-101", type="ping"))

    assert report.delivered == [early]
    assert transport.sent_to(late) == []
    assert late in gateway.router.members_of("course-101")


@pytest.mark.asyncio
async def test_disconnect_mid_broadcast_is_skipped(gateway, transport):
    a = _connect(gateway)
    b = _connect(gateway)
    gateway.router.join(a, "course-101")
    gateway.router.join(b, "course-101")

    def disconnect_the_other(cid):
        other = b if cid == a else a
        gateway.registry.unregister(other)
        transport.on_send = None

    transport.on_send = disconnect_the_other

    report = await gateway.router.broadcast(Event(room="course-101", type="ping"))

    assert len(report.delivered) == 1
    assert len(report.skipped) == 1
    skipped = report.skipped[0]
    assert transport.sent_to(skipped) == []
    assert skipped not in gateway.registry


@pytest.mark.asyncio
async def test_failed_delivery_is_isolated_and_removes_member(gateway, transport):
    ok_1 = _connect(gateway, Role.ADMIN)
    broken = _connect(gateway, Role.ADMIN)
    ok_2 = _connect(gateway, Role.ADMIN)
    for cid in (ok_1, broken, ok_2):
        gateway.router.join(cid, ADMIN_ROOM)
    gateway.router.join(broken, "course-101")
    transport.fail_for.add(broken)

    report = await gateway.router.broadcast(Event(room=ADMIN_ROOM, type="ping"))

    assert sorted(report.delivered) == sorted([ok_1, ok_2])
    assert report.failed == [broken]
    assert broken not in gateway.registry
    assert broken not in gateway.router.members_of(ADMIN_ROOM)
    assert "course-101" not in gateway.router.rooms()
    assert transport.closed == [broken]


@pytest.mark.asyncio
async def test_dangling_room_member_is_pruned(gateway, transport):
    cid = _connect(gateway)
    gateway.router.join(cid, "course-101")
    # Simulate a reference the registry never knew about
    gateway.router._rooms["course-101"].add("ghost")

    report = await gateway.router.broadcast(Event(room="course-101", type="ping"))

    assert report.delivered == [cid]
    assert "ghost" not in gateway.router.members_of("course-101")
    assert transport.sent_to("ghost") == []

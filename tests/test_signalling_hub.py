"""
Tests for the Signalling Hub
Room membership, message routing, host rules and idle reaping
"""

import json
import pytest
from typing import List

from sqlalchemy.orm import Session, sessionmaker

from bizops.models import ScreenShare, WebRTCSignal
from bizops.services.signalling import Connection, DatabaseSignalRecorder, SignallingHub


class FakeSocket:
    """Collects frames the hub writes"""

    def __init__(self, fail: bool = False):
        self.sent: List[dict] = []
        self.closed_with = None
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise ConnectionError("socket gone")
        self.sent.append(data)

    async def close(self, code: int = 1000):
        self.closed_with = code

    def types(self) -> List[str]:
        return [m["type"] for m in self.sent]

    def last(self) -> dict:
        return self.sent[-1]


class FakeRecorder:

    def __init__(self, fail: bool = False):
        self.signals = []
        self.screen_shares = []
        self.fail = fail

    async def record_signal(self, **fields):
        if self.fail:
            raise RuntimeError("database down")
        self.signals.append(fields)

    async def record_screen_share(self, **fields):
        self.screen_shares.append(fields)


class FakeClock:

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


async def connect(hub: SignallingHub, user_id: str, organization_id: str = "org-1") -> Connection:
    return await hub.register(FakeSocket(), user_id, organization_id)


async def join(hub: SignallingHub, conn: Connection, room_id: str = "R"):
    await hub.handle_message(conn, {"type": "join-room", "data": {"room_id": room_id}})


def assert_membership_consistent(hub: SignallingHub):
    for room in hub.rooms.values():
        for conn in room.connections.values():
            assert conn.room is room
    for conn in hub.connections.values():
        if conn.room is not None:
            assert conn.id in conn.room.connections


@pytest.fixture
def recorder() -> FakeRecorder:
    return FakeRecorder()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hub(recorder: FakeRecorder, clock: FakeClock) -> SignallingHub:
    return SignallingHub(recorder=recorder, max_peers=3, idle_timeout=90, reap_interval=30,
                         write_timeout=1, clock=clock)


class TestRooms:

    @pytest.mark.asyncio
    async def test_first_joiner_is_host(self, hub: SignallingHub):
        a = await connect(hub, "A")
        await join(hub, a)

        assert a.is_host
        assert a.socket.last()["type"] == "room-joined"
        assert a.socket.last()["data"] == {"room_id": "R", "is_host": True, "peer_count": 1}

    @pytest.mark.asyncio
    async def test_join_announces_to_existing_peers(self, hub: SignallingHub):
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a)
        await join(hub, b)

        announced = a.socket.last()
        assert announced["type"] == "user-joined"
        assert announced["data"]["user_id"] == "B"
        assert announced["data"]["peer_count"] == 2
        assert not b.is_host
        assert "user-joined" not in b.socket.types()
        assert_membership_consistent(hub)

    @pytest.mark.asyncio
    async def test_join_same_room_twice(self, hub: SignallingHub):
        a = await connect(hub, "A")
        await join(hub, a)
        await join(hub, a)

        assert a.socket.last() == {"type": "error", "data": {"error": "Already in room"}}

    @pytest.mark.asyncio
    async def test_join_requires_room_id(self, hub: SignallingHub):
        a = await connect(hub, "A")
        await hub.handle_message(a, {"type": "join-room", "data": {}})

        assert a.socket.last()["data"]["error"] == "Room ID required"

    @pytest.mark.asyncio
    async def test_room_full(self, hub: SignallingHub):
        peers = [await connect(hub, f"U{i}") for i in range(4)]
        for peer in peers:
            await join(hub, peer)

        assert peers[3].room is None
        assert peers[3].socket.last()["data"]["error"] == "Room is full"
        assert len(hub.rooms[("org-1", "R")].connections) == 3

    @pytest.mark.asyncio
    async def test_full_room_keeps_peer_in_current_room(self, hub: SignallingHub):
        peers = [await connect(hub, f"U{i}") for i in range(3)]
        for peer in peers:
            await join(hub, peer, "R")
        mover, partner = await connect(hub, "M"), await connect(hub, "P")
        await join(hub, mover, "R2")
        await join(hub, partner, "R2")

        await join(hub, mover, "R")

        assert mover.socket.last()["data"]["error"] == "Room is full"
        assert mover.room.id == "R2"
        assert mover.id in hub.rooms[("org-1", "R2")].connections
        assert partner.socket.last()["type"] != "user-left"
        assert_membership_consistent(hub)

    @pytest.mark.asyncio
    async def test_joining_another_room_leaves_the_first(self, hub: SignallingHub):
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a, "R1")
        await join(hub, b, "R1")
        await join(hub, b, "R2")

        assert b.room.id == "R2"
        assert list(hub.rooms[("org-1", "R1")].connections) == [a.id]
        assert a.socket.last()["type"] == "user-left"
        assert_membership_consistent(hub)

    @pytest.mark.asyncio
    async def test_rooms_are_per_organization(self, hub: SignallingHub):
        a = await connect(hub, "A", "org-1")
        b = await connect(hub, "B", "org-2")
        await join(hub, a)
        await join(hub, b)

        assert b.is_host
        assert a.room is not b.room
        assert "user-joined" not in a.socket.types()
        assert hub.room_info("org-2", "R")["participant_count"] == 1

    @pytest.mark.asyncio
    async def test_host_leaving_promotes_oldest_peer(self, hub: SignallingHub):
        a, b, c = await connect(hub, "A"), await connect(hub, "B"), await connect(hub, "C")
        for conn in (a, b, c):
            await join(hub, conn)

        await hub.handle_message(a, {"type": "leave-room"})

        assert b.is_host
        assert not c.is_host
        left = c.socket.last()
        assert left["type"] == "user-left"
        assert left["data"]["new_host_id"] == "B"
        assert hub.room_info("org-1", "R")["host_id"] == "B"
        assert_membership_consistent(hub)

    @pytest.mark.asyncio
    async def test_last_peer_leaving_deletes_room(self, hub: SignallingHub):
        a = await connect(hub, "A")
        await join(hub, a)
        await hub.handle_message(a, {"type": "leave-room"})

        assert hub.rooms == {}
        assert a.room is None

    @pytest.mark.asyncio
    async def test_leave_outside_room_is_silent(self, hub: SignallingHub):
        a = await connect(hub, "A")
        await hub.handle_message(a, {"type": "leave-room"})

        assert a.socket.sent == []


class TestRouting:

    @pytest.mark.asyncio
    async def test_targeted_offer_reaches_only_target(self, hub: SignallingHub, recorder: FakeRecorder):
        a, b, c = await connect(hub, "A"), await connect(hub, "B"), await connect(hub, "C")
        for conn in (a, b, c):
            await join(hub, conn)
        before = len(c.socket.sent)

        await hub.handle_message(a, {"type": "offer", "to_user": "B", "data": {"sdp": "v=0"}})

        offer = b.socket.last()
        assert offer["type"] == "offer"
        assert offer["from_user"] == "A"
        assert offer["to_user"] == "B"
        assert offer["data"] == {"sdp": "v=0"}
        assert isinstance(offer["timestamp"], int)
        assert len(c.socket.sent) == before
        assert a.socket.last()["type"] != "offer"

        assert recorder.signals[0]["to_user_id"] == "B"
        assert json.loads(recorder.signals[0]["data"]) == {"sdp": "v=0"}

    @pytest.mark.asyncio
    async def test_untargeted_candidate_broadcasts_to_others(self, hub: SignallingHub):
        a, b, c = await connect(hub, "A"), await connect(hub, "B"), await connect(hub, "C")
        for conn in (a, b, c):
            await join(hub, conn)

        await hub.handle_message(a, {"type": "ice-candidate", "data": {"candidate": "x"}})

        assert b.socket.last()["type"] == "ice-candidate"
        assert c.socket.last()["type"] == "ice-candidate"
        assert a.socket.last()["type"] != "ice-candidate"

    @pytest.mark.asyncio
    async def test_unknown_target(self, hub: SignallingHub):
        a = await connect(hub, "A")
        await join(hub, a)
        await hub.handle_message(a, {"type": "answer", "to_user": "ghost", "data": {}})

        assert a.socket.last()["data"]["error"] == "Target user not in room"

    @pytest.mark.asyncio
    async def test_signal_outside_room(self, hub: SignallingHub):
        a = await connect(hub, "A")
        await hub.handle_message(a, {"type": "offer", "data": {}})

        assert a.socket.last()["data"]["error"] == "Not in a room"

    @pytest.mark.asyncio
    async def test_recorder_failure_does_not_block_relay(self, clock: FakeClock):
        hub = SignallingHub(recorder=FakeRecorder(fail=True), clock=clock)
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a)
        await join(hub, b)

        await hub.handle_message(a, {"type": "offer", "to_user": "B", "data": {}})

        assert b.socket.last()["type"] == "offer"

    @pytest.mark.asyncio
    async def test_media_control_reaches_everyone(self, hub: SignallingHub):
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a)
        await join(hub, b)

        await hub.handle_message(b, {"type": "mute-audio", "data": {"muted": True}})

        assert a.socket.last()["type"] == "mute-audio"
        assert b.socket.last()["type"] == "mute-audio"

    @pytest.mark.asyncio
    async def test_screen_share_is_recorded(self, hub: SignallingHub, recorder: FakeRecorder):
        a = await connect(hub, "A")
        await join(hub, a)
        await hub.handle_message(a, {"type": "screen-share", "data": {}})

        assert recorder.screen_shares == [
            {"organization_id": "org-1", "room_id": "R", "host_id": "A", "status": "active"}
        ]

    @pytest.mark.asyncio
    async def test_bad_json_and_unknown_type(self, hub: SignallingHub):
        a = await connect(hub, "A")
        await hub.handle_raw(a, "{not json")
        assert a.socket.last()["data"]["error"] == "Invalid message format"

        await hub.handle_raw(a, json.dumps({"type": "dance"}))
        assert a.socket.last()["data"]["error"] == "Unknown message type"

    @pytest.mark.asyncio
    async def test_ping_answers_pong(self, hub: SignallingHub, clock: FakeClock):
        a = await connect(hub, "A")
        clock.now += 50
        await hub.handle_message(a, {"type": "ping"})

        assert a.socket.last()["type"] == "pong"
        assert a.last_ping == clock.now


class TestHostControls:

    @pytest.mark.asyncio
    async def test_only_host_controls_recording(self, hub: SignallingHub):
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a)
        await join(hub, b)

        await hub.handle_message(b, {"type": "start-recording"})
        assert b.socket.last()["data"]["error"] == "Only host can control recording"
        assert hub.room_info("org-1", "R")["is_recording"] is False

        await hub.handle_message(a, {"type": "start-recording"})
        assert hub.room_info("org-1", "R")["is_recording"] is True
        assert b.socket.last()["type"] == "start-recording"

    @pytest.mark.asyncio
    async def test_call_end_by_guest_only_leaves(self, hub: SignallingHub):
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a)
        await join(hub, b)

        await hub.handle_message(b, {"type": "call-end"})

        assert b.room is None
        assert a.room is not None
        assert a.socket.last()["type"] == "user-left"

    @pytest.mark.asyncio
    async def test_call_end_by_host_closes_room(self, hub: SignallingHub):
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a)
        await join(hub, b)

        await hub.handle_message(a, {"type": "call-end"})

        assert b.socket.last()["type"] == "call-end"
        assert hub.rooms == {}
        assert a.room is None and b.room is None
        assert b.socket.closed_with is None
        assert_membership_consistent(hub)


class TestLiveness:

    @pytest.mark.asyncio
    async def test_reaper_closes_idle_connections(self, hub: SignallingHub, clock: FakeClock):
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a)
        await join(hub, b)

        clock.now += 60
        await hub.handle_message(b, {"type": "pong"})
        clock.now += 40

        reaped = await hub.reap()

        assert reaped == [a]
        assert a.socket.closed_with == 1001
        assert a.id not in hub.connections
        assert b.is_host
        assert_membership_consistent(hub)

    @pytest.mark.asyncio
    async def test_failed_write_drops_connection(self, hub: SignallingHub):
        a = await connect(hub, "A")
        b = await hub.register(FakeSocket(fail=True), "B", "org-1")
        await join(hub, a)
        await join(hub, b)

        assert b.id not in hub.connections
        assert b.room is None
        assert list(hub.rooms[("org-1", "R")].connections) == [a.id]

    @pytest.mark.asyncio
    async def test_unregister_leaves_room(self, hub: SignallingHub):
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a)
        await join(hub, b)

        await hub.unregister(a)

        assert a.id not in hub.connections
        assert hub.room_info("org-1", "R")["participants"] == [
            {"user_id": "B", "connection_id": b.id, "is_host": True}
        ]

    @pytest.mark.asyncio
    async def test_stop_disconnects_everyone(self, hub: SignallingHub):
        hub.start()
        a = await connect(hub, "A")
        await join(hub, a)

        await hub.stop()

        assert hub.connections == {}
        assert hub.rooms == {}
        assert a.socket.closed_with == 1001


class TestDatabaseRecorder:

    @pytest.mark.asyncio
    async def test_relayed_offer_is_stored(self, db_session: Session, clock: FakeClock):
        recorder = DatabaseSignalRecorder(sessionmaker(bind=db_session.get_bind()))
        hub = SignallingHub(recorder=recorder, clock=clock)
        a, b = await connect(hub, "A"), await connect(hub, "B")
        await join(hub, a)
        await join(hub, b)

        await hub.handle_message(a, {"type": "offer", "to_user": "B", "data": {"sdp": "v=0"}})
        await hub.handle_message(a, {"type": "screen-share", "data": {}})

        signal = db_session.query(WebRTCSignal).one()
        assert (signal.organization_id, signal.session_id, signal.type) == ("org-1", "R", "offer")
        assert (signal.from_user_id, signal.to_user_id) == ("A", "B")
        share = db_session.query(ScreenShare).one()
        assert (share.room_id, share.host_id, share.status) == ("R", "A", "active")

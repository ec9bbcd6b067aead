"""
Signalling Hub
In-memory WebRTC signalling: connections, rooms, message routing and idle reaping
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple
from datetime import datetime
import asyncio
import json
import time

from bizops.core.config import settings
from bizops.core.logging import get_logger
from bizops.models.organization import generate_id

logger = get_logger("signalling")

# Message types
JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
OFFER = "offer"
ANSWER = "answer"
ICE_CANDIDATE = "ice-candidate"
MUTE_AUDIO = "mute-audio"
MUTE_VIDEO = "mute-video"
SCREEN_SHARE = "screen-share"
STOP_SCREEN_SHARE = "stop-screen-share"
START_RECORDING = "start-recording"
STOP_RECORDING = "stop-recording"
CALL_END = "call-end"
PING = "ping"
PONG = "pong"
ERROR = "error"
USER_JOINED = "user-joined"
USER_LEFT = "user-left"
ROOM_JOINED = "room-joined"

SIGNAL_TYPES = (OFFER, ANSWER, ICE_CANDIDATE)
MEDIA_TYPES = (MUTE_AUDIO, MUTE_VIDEO)
SCREEN_TYPES = (SCREEN_SHARE, STOP_SCREEN_SHARE)
RECORDING_TYPES = (START_RECORDING, STOP_RECORDING)

CLOSE_GOING_AWAY = 1001


class SignallingSocket(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class SignalRecorder(Protocol):
    async def record_signal(self, **fields) -> None: ...

    async def record_screen_share(self, **fields) -> None: ...


class Connection:
    """One upgraded socket. Writes are serialized by ``write_lock``."""

    def __init__(self, socket: SignallingSocket, user_id: str, organization_id: str,
                 connection_id: Optional[str] = None, now: Optional[float] = None):
        self.id = connection_id or generate_id()
        self.socket = socket
        self.user_id = user_id
        self.organization_id = organization_id
        self.room: Optional["Room"] = None
        self.is_host = False
        self.last_ping = now if now is not None else time.monotonic()
        self.write_lock = asyncio.Lock()
        self.closed = False

    def __repr__(self):
        return f"<Connection {self.id} user={self.user_id}>"


class Room:
    """Signalling scope. ``connections`` keeps join order."""

    def __init__(self, room_id: str, organization_id: str, host_user_id: str,
                 call_id: Optional[str] = None, max_peers: int = 10):
        self.id = room_id
        self.organization_id = organization_id
        self.call_id = call_id
        self.host_user_id = host_user_id
        self.connections: Dict[str, Connection] = {}
        self.is_recording = False
        self.created_at = datetime.utcnow()
        self.max_peers = max_peers

    @property
    def key(self) -> Tuple[str, str]:
        return self.organization_id, self.id

    def members(self, exclude: Optional[str] = None) -> List[Connection]:
        return [c for cid, c in self.connections.items() if cid != exclude]


class SignallingHub:
    """
    Relays WebRTC control traffic between peers grouped in rooms.

    Rooms are keyed by (organization, room id), so peers of different
    organizations never share a room. Map changes happen under
    ``_connections_lock`` and ``_rooms_lock``; socket writes happen outside
    them so that a slow peer cannot stall other rooms.
    """

    def __init__(
        self,
        recorder: Optional[SignalRecorder] = None,
        max_peers: Optional[int] = None,
        idle_timeout: Optional[float] = None,
        reap_interval: Optional[float] = None,
        write_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.recorder = recorder
        self.max_peers = max_peers or settings.SIGNALLING_MAX_PEERS
        self.idle_timeout = idle_timeout or settings.SIGNALLING_IDLE_TIMEOUT_SECONDS
        self.reap_interval = reap_interval or settings.SIGNALLING_REAP_INTERVAL_SECONDS
        self.write_timeout = write_timeout or settings.SIGNALLING_WRITE_TIMEOUT_SECONDS
        self.clock = clock

        self.connections: Dict[str, Connection] = {}
        self.rooms: Dict[Tuple[str, str], Room] = {}
        self._connections_lock = asyncio.Lock()
        self._rooms_lock = asyncio.Lock()
        self._reaper: Optional[asyncio.Task] = None

        self._handlers: Dict[str, Callable[[Connection, dict], Awaitable[None]]] = {
            JOIN_ROOM: self._join_room,
            LEAVE_ROOM: self._leave_room_message,
            CALL_END: self._call_end,
            PING: self._ping,
            PONG: self._pong,
        }
        for message_type in SIGNAL_TYPES:
            self._handlers[message_type] = self._relay_signal
        for message_type in MEDIA_TYPES:
            self._handlers[message_type] = self._media_control
        for message_type in SCREEN_TYPES:
            self._handlers[message_type] = self._screen_share
        for message_type in RECORDING_TYPES:
            self._handlers[message_type] = self._recording

    # Lifecycle

    def start(self) -> None:
        """Start the idle-connection reaper on the running loop"""
        if self._reaper is None or self._reaper.done():
            self._reaper = asyncio.get_running_loop().create_task(self._run_reaper())

    async def stop(self) -> None:
        if self._reaper is not None:
            self._reaper.cancel()
            try:
                await self._reaper
            except asyncio.CancelledError:
                pass
            self._reaper = None
        for conn in list(self.connections.values()):
            await self.disconnect(conn, close_code=CLOSE_GOING_AWAY)

    async def register(self, socket: SignallingSocket, user_id: str, organization_id: str) -> Connection:
        conn = Connection(socket, user_id, organization_id, now=self.clock())
        async with self._connections_lock:
            self.connections[conn.id] = conn
        logger.info(f"Connection {conn.id} opened for user {user_id}")
        return conn

    async def unregister(self, conn: Connection) -> None:
        """Forget a connection whose socket has gone, leaving its room first"""
        async with self._connections_lock:
            known = self.connections.pop(conn.id, None) is not None
        conn.closed = True
        await self._leave_room(conn)
        if known:
            logger.info(f"Connection {conn.id} removed")

    async def disconnect(self, conn: Connection, close_code: int = 1000) -> None:
        """Unregister and close the socket"""
        already_closed = conn.closed
        await self.unregister(conn)
        if already_closed:
            return
        try:
            await conn.socket.close(code=close_code)
        except Exception as e:
            logger.debug(f"Closing connection {conn.id} failed: {e}")

    # Inbound

    async def handle_raw(self, conn: Connection, raw: str) -> None:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            await self.send_error(conn, "Invalid message format")
            return
        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            await self.send_error(conn, "Invalid message format")
            return
        await self.handle_message(conn, message)

    async def handle_message(self, conn: Connection, message: dict) -> None:
        handler = self._handlers.get(message.get("type"))
        if handler is None:
            logger.debug(f"Unknown message type from {conn.id}: {message.get('type')}")
            await self.send_error(conn, "Unknown message type")
            return
        await handler(conn, message)

    async def _join_room(self, conn: Connection, message: dict) -> None:
        data = message.get("data") or {}
        if not isinstance(data, dict):
            await self.send_error(conn, "Invalid join room data")
            return
        room_id = data.get("room_id") or message.get("room_id")
        if not room_id or not isinstance(room_id, str):
            await self.send_error(conn, "Room ID required")
            return

        if conn.room is not None:
            if conn.room.id == room_id:
                await self.send_error(conn, "Already in room")
                return
            # A full target room must not cost the peer its current call
            target = self.rooms.get((conn.organization_id, room_id))
            if target is not None and len(target.connections) >= target.max_peers:
                await self.send_error(conn, "Room is full")
                return
            await self._leave_room(conn)

        full = False
        async with self._rooms_lock:
            key = (conn.organization_id, room_id)
            room = self.rooms.get(key)
            created = room is None
            if created:
                room = Room(room_id, conn.organization_id, conn.user_id,
                            call_id=data.get("call_id"), max_peers=self.max_peers)
                self.rooms[key] = room
            if len(room.connections) >= room.max_peers:
                full = True
            else:
                room.connections[conn.id] = conn
                conn.room = room
                conn.is_host = created
            peer_count = len(room.connections)

        if full:
            await self.send_error(conn, "Room is full")
            return

        if created:
            logger.info(f"Room {room_id} created by user {conn.user_id}")
        await self.broadcast(room, {
            "type": USER_JOINED,
            "from_user": conn.user_id,
            "room_id": room_id,
            "data": {
                "user_id": conn.user_id,
                "is_host": conn.is_host,
                "room_id": room_id,
                "peer_count": peer_count,
            },
        }, exclude=conn.id)
        await self.send(conn, {
            "type": ROOM_JOINED,
            "room_id": room_id,
            "data": {"room_id": room_id, "is_host": conn.is_host, "peer_count": peer_count},
        })
        logger.info(f"User {conn.user_id} joined room {room_id} ({peer_count} peers)")

    async def _leave_room_message(self, conn: Connection, message: dict) -> None:
        await self._leave_room(conn)

    async def _leave_room(self, conn: Connection) -> None:
        room = conn.room
        if room is None:
            return

        new_host = None
        async with self._rooms_lock:
            room.connections.pop(conn.id, None)
            conn.room = None
            was_host, conn.is_host = conn.is_host, False
            if was_host and room.connections:
                # Oldest remaining peer inherits host duties
                new_host = next(iter(room.connections.values()))
                new_host.is_host = True
                room.host_user_id = new_host.user_id
            peer_count = len(room.connections)
            if peer_count == 0 and self.rooms.get(room.key) is room:
                del self.rooms[room.key]

        logger.info(f"User {conn.user_id} left room {room.id}")
        if peer_count == 0:
            logger.info(f"Room {room.id} deleted (empty)")
            return

        data = {"user_id": conn.user_id, "room_id": room.id, "peer_count": peer_count}
        if new_host is not None:
            data["new_host_id"] = new_host.user_id
        await self.broadcast(room, {
            "type": USER_LEFT,
            "from_user": conn.user_id,
            "room_id": room.id,
            "data": data,
        })

    async def _relay_signal(self, conn: Connection, message: dict) -> None:
        room = conn.room
        if room is None:
            await self.send_error(conn, "Not in a room")
            return

        outbound = self._stamp(conn, message)
        to_user = message.get("to_user")
        if to_user:
            target = next((c for c in room.members(exclude=conn.id) if c.user_id == to_user), None)
            if target is None:
                await self.send_error(conn, "Target user not in room")
            else:
                await self.send(target, outbound)
        else:
            await self.broadcast(room, outbound, exclude=conn.id)

        await self._record("record_signal", dict(
            organization_id=conn.organization_id,
            session_id=room.id,
            from_user_id=conn.user_id,
            to_user_id=to_user,
            type=message["type"],
            data=json.dumps(message.get("data")),
        ))

    async def _media_control(self, conn: Connection, message: dict) -> None:
        if conn.room is None:
            await self.send_error(conn, "Not in a room")
            return
        await self.broadcast(conn.room, self._stamp(conn, message))
        logger.debug(f"User {conn.user_id} {message['type']} in room {conn.room.id}")

    async def _screen_share(self, conn: Connection, message: dict) -> None:
        room = conn.room
        if room is None:
            await self.send_error(conn, "Not in a room")
            return
        await self.broadcast(room, self._stamp(conn, message))
        if message["type"] == SCREEN_SHARE:
            await self._record("record_screen_share", dict(
                organization_id=conn.organization_id,
                room_id=room.id,
                host_id=conn.user_id,
                status="active",
            ))

    async def _recording(self, conn: Connection, message: dict) -> None:
        room = conn.room
        if room is None:
            await self.send_error(conn, "Not in a room")
            return
        if not conn.is_host:
            await self.send_error(conn, "Only host can control recording")
            return
        room.is_recording = message["type"] == START_RECORDING
        logger.info(f"Recording {'started' if room.is_recording else 'stopped'} in room {room.id}")
        await self.broadcast(room, self._stamp(conn, message))

    async def _call_end(self, conn: Connection, message: dict) -> None:
        room = conn.room
        if room is None:
            await self.send_error(conn, "Not in a room")
            return
        if not conn.is_host:
            await self._leave_room(conn)
            return
        await self.broadcast(room, self._stamp(conn, message))
        await self.close_room(room)

    async def _ping(self, conn: Connection, message: dict) -> None:
        conn.last_ping = self.clock()
        await self.send(conn, {"type": PONG, "data": {"timestamp": int(time.time())}})

    async def _pong(self, conn: Connection, message: dict) -> None:
        conn.last_ping = self.clock()

    # Rooms

    async def close_room(self, room: Room) -> None:
        """Detach every member and forget the room. Sockets stay open."""
        async with self._rooms_lock:
            for member in room.connections.values():
                member.room = None
                member.is_host = False
            room.connections.clear()
            if self.rooms.get(room.key) is room:
                del self.rooms[room.key]
        logger.info(f"Room {room.id} closed")

    def room_info(self, organization_id: str, room_id: str) -> Optional[Dict[str, Any]]:
        room = self.rooms.get((organization_id, room_id))
        if room is None:
            return None
        return {
            "room_id": room.id,
            "call_id": room.call_id,
            "host_id": room.host_user_id,
            "is_recording": room.is_recording,
            "created_at": room.created_at,
            "max_peers": room.max_peers,
            "participant_count": len(room.connections),
            "participants": [
                {"user_id": c.user_id, "connection_id": c.id, "is_host": c.is_host}
                for c in room.connections.values()
            ],
        }

    # Outbound

    async def send(self, conn: Connection, message: dict) -> bool:
        """
        Write one frame with a bounded timeout.

        A failed write closes and removes the connection.
        """
        if conn.closed:
            return False
        try:
            async with conn.write_lock:
                await asyncio.wait_for(conn.socket.send_json(message), timeout=self.write_timeout)
            return True
        except Exception as e:
            logger.warning(f"Write to connection {conn.id} failed: {e!r}")
            await self.disconnect(conn)
            return False

    async def broadcast(self, room: Room, message: dict, exclude: Optional[str] = None) -> None:
        for member in room.members(exclude=exclude):
            await self.send(member, message)

    async def send_error(self, conn: Connection, error: str) -> None:
        await self.send(conn, {"type": ERROR, "data": {"error": error}})

    @staticmethod
    def _stamp(conn: Connection, message: dict) -> dict:
        outbound = {
            "type": message["type"],
            "data": message.get("data"),
            "from_user": conn.user_id,
            "timestamp": int(time.time()),
        }
        if conn.room is not None:
            outbound["room_id"] = conn.room.id
        if message.get("to_user"):
            outbound["to_user"] = message["to_user"]
        return outbound

    async def _record(self, method: str, fields: dict) -> None:
        # Persistence is best effort; the live message has already gone out
        if self.recorder is None:
            return
        try:
            await getattr(self.recorder, method)(**fields)
        except Exception as e:
            logger.warning(f"Failed to persist {method.replace('record_', '')}: {e}")

    # Liveness

    async def reap(self) -> List[Connection]:
        """Close connections that have not pinged within the idle timeout"""
        now = self.clock()
        async with self._connections_lock:
            stale = [c for c in self.connections.values() if now - c.last_ping > self.idle_timeout]
        for conn in stale:
            logger.info(f"Removing inactive connection {conn.id}")
            await self.disconnect(conn, close_code=CLOSE_GOING_AWAY)
        return stale

    async def _run_reaper(self) -> None:
        while True:
            await asyncio.sleep(self.reap_interval)
            try:
                await self.reap()
            except Exception as e:
                logger.error(f"Reaper pass failed: {e}", exc_info=True)

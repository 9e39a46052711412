"""
Room membership lifecycle.

A connection is either in no room or in exactly one. Every transition goes
through ``MembershipManager`` so the connection registry and the rooms'
member maps always agree:

    registry.get_room(conn) == room_id  <=>  conn in rooms.get(room_id).members

Create and join first push the connection out of whatever room it was in
(the same routine an explicit leave or a disconnect uses), then add it to
the new room. All mutations happen under ``lock``; sends only enqueue, so
holding it across a broadcast never blocks on a slow client.
"""
import threading
import uuid
from typing import Callable, NamedTuple, Optional

from backend import ConnectionRegistry, MemberInfo, RoomStore, now_ms
from broadcast import BroadcastRouter
from connection import Connection
from errors import RoomGoneError, RoomIdRequiredError, RoomNotFoundError
from logging_config import get_logger
from schemas.messages import ClientInfo, RoomLeftMessage, UserJoinedMessage, UserLeftMessage

logger = get_logger(__name__)


class Membership(NamedTuple):
    room_id: str
    member: MemberInfo


def generate_room_id() -> str:
    return str(uuid.uuid4())


class MembershipManager:
    def __init__(
        self,
        rooms: Optional[RoomStore] = None,
        registry: Optional[ConnectionRegistry] = None,
        broadcaster: Optional[BroadcastRouter] = None,
        id_generator: Callable[[], str] = generate_room_id,
        clock: Callable[[], int] = now_ms,
    ):
        self.rooms = rooms if rooms is not None else RoomStore()
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.broadcaster = broadcaster if broadcaster is not None else BroadcastRouter(self.rooms)
        self.id_generator = id_generator
        self.clock = clock
        self.lock = threading.RLock()

    def _member_info(self, username: Optional[str]) -> MemberInfo:
        joined_at = self.clock()
        return MemberInfo(username=username or f"User_{joined_at}", joined_at=joined_at)

    def connect(self, conn: Connection) -> None:
        with self.lock:
            self.registry.register(conn)
        logger.info(f"Connection {conn.id} attached ({self.registry.connection_count} connected)")

    def remove_from_current_room(self, conn: Connection) -> Optional[Membership]:
        """Take ``conn`` out of its room and tell the remaining members.

        No-op returning None when the connection is not in a room, so calling
        it twice is harmless.
        """
        with self.lock:
            room_id = self.registry.get_room(conn)
            if room_id is None:
                return None
            info = self.rooms.remove_member(room_id, conn)
            self.registry.clear(conn)
            if info is None:
                return None

            logger.info(f"{info.username} ({conn.id}) left room {room_id}")
            self.broadcaster.broadcast_to_room(
                room_id,
                UserLeftMessage(
                    message=f"{info.username} left the room",
                    client_info=ClientInfo(username=info.username, joined_at=info.joined_at),
                ),
                exclude=conn,
            )
            return Membership(room_id, info)

    def _switch_out(self, conn: Connection) -> None:
        previous = self.remove_from_current_room(conn)
        if previous is not None:
            self.broadcaster.send(conn, RoomLeftMessage(message=f"Left room {previous.room_id}"))

    def create_room(self, conn: Connection, username: Optional[str] = None) -> Membership:
        with self.lock:
            self._switch_out(conn)
            info = self._member_info(username)
            room_id = self.id_generator()
            self.rooms.create(room_id, conn, info)
            self.registry.set_room(conn, room_id)
        return Membership(room_id, info)

    def join_room(self, conn: Connection, room_id: Optional[str], username: Optional[str] = None) -> Membership:
        if not room_id:
            raise RoomIdRequiredError()

        with self.lock:
            room = self.rooms.get(room_id)
            if room is None:
                raise RoomNotFoundError()

            if self.registry.get_room(conn) == room_id and conn in room.members:
                logger.debug(f"Connection {conn.id} is already in room {room_id}")
                return Membership(room_id, room.members[conn])

            self._switch_out(conn)
            info = self._member_info(username)
            if not self.rooms.add_member(room_id, conn, info):
                raise RoomGoneError()
            self.registry.set_room(conn, room_id)

            logger.info(f"{info.username} ({conn.id}) joined room {room_id}")
            self.broadcaster.broadcast_to_room(
                room_id,
                UserJoinedMessage(message=f"{info.username} joined the room", joined_at=info.joined_at),
                exclude=conn,
            )
        return Membership(room_id, info)

    def leave_room(self, conn: Connection) -> Optional[Membership]:
        return self.remove_from_current_room(conn)

    def disconnect(self, conn: Connection) -> Optional[Membership]:
        """Cleanup for a connection the transport reports closed or failed. Sends nothing to ``conn``."""
        with self.lock:
            departed = self.remove_from_current_room(conn)
            self.registry.unregister(conn)
        logger.info(f"Connection {conn.id} detached ({self.registry.connection_count} connected)")
        return departed

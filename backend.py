import time
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Optional

from errors import RoomAlreadyExistsError
from logging_config import get_logger

logger = get_logger(__name__)


def now_ms() -> int:
    """Milliseconds since the epoch, the unit every outbound timestamp uses."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class MemberInfo:
    username: str
    joined_at: int


@dataclass
class Room:
    id: str
    created_at: int = field(default_factory=now_ms)
    # connection -> MemberInfo, in join order
    members: Dict[Hashable, MemberInfo] = field(default_factory=dict)

    @property
    def member_count(self) -> int:
        return len(self.members)


class ConnectionRegistry:
    """Connection -> current room id. Also remembers every connection currently attached."""

    def __init__(self):
        self._rooms: Dict[Hashable, str] = {}
        self._connections: Dict[Hashable, None] = {}

    def register(self, conn) -> None:
        self._connections[conn] = None

    def unregister(self, conn) -> None:
        self._connections.pop(conn, None)
        self._rooms.pop(conn, None)

    def set_room(self, conn, room_id: str) -> None:
        self._rooms[conn] = room_id

    def get_room(self, conn) -> Optional[str]:
        return self._rooms.get(conn)

    def clear(self, conn) -> None:
        self._rooms.pop(conn, None)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def __contains__(self, conn) -> bool:
        return conn in self._connections


class RoomStore:
    """Room id -> Room. A room lives exactly as long as it has members."""

    def __init__(self):
        self._rooms: Dict[str, Room] = {}

    def create(self, room_id: str, initial_member, member_info: MemberInfo) -> Room:
        if room_id in self._rooms:
            logger.error(f"Refusing to overwrite existing room {room_id}")
            raise RoomAlreadyExistsError(room_id)
        room = Room(id=room_id)
        room.members[initial_member] = member_info
        self._rooms[room_id] = room
        logger.info(f"Room {room_id} created by {member_info.username}")
        return room

    def get(self, room_id: str) -> Optional[Room]:
        if room_id is None:
            return None
        return self._rooms.get(room_id)

    def add_member(self, room_id: str, conn, info: MemberInfo) -> bool:
        """Returns False (and changes nothing) when the room does not exist."""
        room = self._rooms.get(room_id)
        if room is None:
            logger.debug(f"Cannot add member to room {room_id}: room not found")
            return False
        room.members[conn] = info
        logger.debug(f"{info.username} added to room {room_id} ({room.member_count} members)")
        return True

    def remove_member(self, room_id: str, conn) -> Optional[MemberInfo]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        info = room.members.pop(conn, None)
        if not room.members:
            del self._rooms[room_id]
            logger.info(f"Room {room_id} is empty, deleted")
        elif info is not None:
            logger.debug(f"{info.username} removed from room {room_id} ({room.member_count} members left)")
        return info

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

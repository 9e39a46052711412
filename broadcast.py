from typing import Optional

from backend import RoomStore
from connection import Connection
from logging_config import get_logger
from schemas.messages import OutboundMessage

logger = get_logger(__name__)


class BroadcastRouter:
    """Fire-and-forget delivery to single connections and to whole rooms.

    Closed connections are skipped and failed sends are dropped; nothing is
    retried and one bad recipient never stops delivery to the others.
    """

    def __init__(self, rooms: RoomStore):
        self.rooms = rooms

    def send(self, conn: Connection, message: OutboundMessage) -> bool:
        return self._deliver(conn, message.to_json())

    def broadcast_to_room(
        self,
        room_id: str,
        message: OutboundMessage,
        exclude: Optional[Connection] = None,
    ) -> int:
        """Send ``message`` to every live member of ``room_id`` except ``exclude``.

        Returns the number of connections the frame was handed to. A missing
        room is not an error: it may have emptied out a moment ago.
        """
        room = self.rooms.get(room_id)
        if room is None:
            logger.debug(f"Broadcast to room {room_id} skipped: room not found")
            return 0

        payload = message.to_json()
        # Snapshot so a membership change during delivery cannot affect iteration
        recipients = [conn for conn in list(room.members) if conn is not exclude]
        delivered = 0
        for conn in recipients:
            if self._deliver(conn, payload):
                delivered += 1
        logger.debug(f"Broadcast {message.type} to room {room_id}: {delivered}/{len(recipients)} delivered")
        return delivered

    def _deliver(self, conn: Connection, payload: str) -> bool:
        if not conn.is_open:
            logger.debug(f"Skipping closed connection {conn.id}")
            return False
        try:
            return conn.send(payload) is not False
        except Exception as e:
            logger.debug(f"Dropping frame for connection {conn.id}: {e}")
            return False

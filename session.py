from typing import Callable, Dict, Optional, Union

from pydantic import ValidationError

from connection import Connection
from errors import (
    ChatError,
    EmptyMessageError,
    InvalidMessageError,
    NotInRoomError,
    RoomAlreadyExistsError,
    RoomCreationError,
    RoomGoneError,
)
from logging_config import get_logger
from membership import MembershipManager
from schemas.messages import (
    CHAT,
    CREATE,
    JOIN,
    LEAVE,
    ChatMessage,
    ErrorMessage,
    InboundMessage,
    RoomCreatedMessage,
    RoomJoinedMessage,
    RoomLeftMessage,
    SystemMessage,
)

logger = get_logger(__name__)

WELCOME_MESSAGE = "Welcome to the Chat server!"


class SessionEventHandler:
    """Entry point for the transport: one call per connect, inbound frame, and close/error."""

    def __init__(self, membership: MembershipManager):
        self.membership = membership
        self.router = membership.broadcaster
        self._handlers: Dict[str, Callable[[Connection, InboundMessage], None]] = {
            CREATE: self._handle_create,
            JOIN: self._handle_join,
            CHAT: self._handle_chat,
            LEAVE: self._handle_leave,
        }

    def on_connect(self, conn: Connection) -> None:
        self.membership.connect(conn)
        self.router.send(conn, SystemMessage(message=WELCOME_MESSAGE))

    def on_message(self, conn: Connection, raw: Union[str, bytes]) -> None:
        try:
            message = InboundMessage.model_validate_json(raw)
        except ValidationError as e:
            logger.debug(f"Unparseable frame from connection {conn.id}: {e.error_count()} errors")
            self._reply_error(conn, InvalidMessageError())
            return

        handler = self._handlers.get(message.type)
        if handler is None:
            # Unknown tags are ignored so newer clients keep working
            logger.debug(f"Ignoring message type {message.type!r} from connection {conn.id}")
            return

        logger.debug(f"Handling {message.type} from connection {conn.id}")
        try:
            with self.membership.lock:
                handler(conn, message)
        except ChatError as e:
            logger.debug(f"{message.type} from connection {conn.id} rejected: {e.message}")
            self._reply_error(conn, e)
        except RoomAlreadyExistsError as e:
            logger.error(f"Room id collision on create from connection {conn.id}: {e}")
            self._reply_error(conn, RoomCreationError())

    def on_close(self, conn: Connection) -> None:
        self.membership.disconnect(conn)

    def on_error(self, conn: Connection, exc: Optional[BaseException] = None) -> None:
        logger.warning(f"Transport error on connection {conn.id}: {exc}")
        self.membership.disconnect(conn)

    def _reply_error(self, conn: Connection, error: ChatError) -> None:
        self.router.send(conn, ErrorMessage(message=error.message))

    def _handle_create(self, conn: Connection, message: InboundMessage) -> None:
        room_id, _ = self.membership.create_room(conn, message.username)
        self.router.send(
            conn,
            RoomCreatedMessage(room_id=room_id, message=f"Room created successfully. Room id: {room_id}"),
        )

    def _handle_join(self, conn: Connection, message: InboundMessage) -> None:
        room_id, member = self.membership.join_room(conn, message.room_id, message.username)
        self.router.send(
            conn,
            RoomJoinedMessage(room_id=room_id, message=f"Room {room_id} joined successfully", joined_at=member.joined_at),
        )

    def _handle_chat(self, conn: Connection, message: InboundMessage) -> None:
        room_id = self.membership.registry.get_room(conn)
        if room_id is None:
            raise NotInRoomError()
        room = self.membership.rooms.get(room_id)
        if room is None:
            self.membership.registry.clear(conn)
            raise RoomGoneError()
        sender = room.members.get(conn)
        if sender is None:
            raise NotInRoomError()

        text = message.chat_message
        if not text or not text.strip():
            raise EmptyMessageError()

        self.router.broadcast_to_room(room_id, ChatMessage(message=text, username=sender.username), exclude=conn)

    def _handle_leave(self, conn: Connection, message: InboundMessage) -> None:
        self.membership.leave_room(conn)
        self.router.send(conn, RoomLeftMessage(message="You have left the room."))

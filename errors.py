"""Errors reported back to the originating connection as ``error`` envelopes."""


class ChatError(Exception):
    """Base class; ``message`` is the human-readable text sent to the client."""

    message = "Something went wrong."

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidMessageError(ChatError):
    message = "Invalid message format."


class RoomIdRequiredError(ChatError):
    message = "Room id is required."


class RoomNotFoundError(ChatError):
    message = "Room not found"


class NotInRoomError(ChatError):
    message = "Join a room first."


class RoomGoneError(ChatError):
    # Room vanished between the membership lookup and its use
    message = "Room no longer exists."


class EmptyMessageError(ChatError):
    message = "Chat message cant be empty."


class RoomCreationError(ChatError):
    message = "Could not create room."


class RoomAlreadyExistsError(Exception):
    """Internal invariant violation: the id generator produced an id already in use."""

    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} already exists")

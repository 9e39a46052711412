from typing import Literal, Optional

from pydantic import BaseModel, Field

from backend import now_ms

# Inbound tags the session handler acts on; anything else is ignored
CREATE = "create"
JOIN = "join"
CHAT = "chat"
LEAVE = "leave"


class InboundMessage(BaseModel):
    type: Optional[str] = None
    room_id: Optional[str] = None
    username: Optional[str] = None
    chat_message: Optional[str] = None


class OutboundMessage(BaseModel):
    def to_json(self) -> str:
        return self.model_dump_json()


class SystemMessage(OutboundMessage):
    type: Literal["system"] = "system"
    message: str
    timestamp: int = Field(default_factory=now_ms)


class RoomCreatedMessage(OutboundMessage):
    type: Literal["room_created"] = "room_created"
    room_id: str
    message: str
    timestamp: int = Field(default_factory=now_ms)


class RoomJoinedMessage(OutboundMessage):
    type: Literal["room_joined"] = "room_joined"
    room_id: str
    message: str
    joined_at: int


class UserJoinedMessage(OutboundMessage):
    type: Literal["user_joined"] = "user_joined"
    message: str
    joined_at: int


class ChatMessage(OutboundMessage):
    type: Literal["chat"] = "chat"
    message: str
    username: str
    timestamp: int = Field(default_factory=now_ms)


class RoomLeftMessage(OutboundMessage):
    type: Literal["room_left"] = "room_left"
    message: str
    timestamp: int = Field(default_factory=now_ms)


class ClientInfo(BaseModel):
    username: str
    joined_at: int


class UserLeftMessage(OutboundMessage):
    type: Literal["user_left"] = "user_left"
    message: str
    client_info: ClientInfo
    timestamp: int = Field(default_factory=now_ms)


class ErrorMessage(OutboundMessage):
    type: Literal["error"] = "error"
    message: str
    timestamp: int = Field(default_factory=now_ms)

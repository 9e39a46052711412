from pydantic import BaseModel
from typing import List


class MemberDetails(BaseModel):
    username: str
    joined_at: int


class RoomSummary(BaseModel):
    room_id: str
    created_at: int
    member_count: int


class RoomDetailsResponse(BaseModel):
    room_id: str
    created_at: int
    member_count: int
    members: List[MemberDetails]


class HealthResponse(BaseModel):
    status: str
    rooms: int
    connections: int

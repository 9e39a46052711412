from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from logging_config import get_logger
from membership import MembershipManager
from schemas.rooms import MemberDetails, RoomDetailsResponse, RoomSummary

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_membership(request: Request) -> MembershipManager:
    return request.app.state.membership


@rooms_router.get("", response_model=List[RoomSummary])
async def list_rooms(membership: MembershipManager = Depends(get_membership)):
    with membership.lock:
        rooms = membership.rooms.rooms()
        summaries = [
            RoomSummary(room_id=room.id, created_at=room.created_at, member_count=room.member_count)
            for room in rooms
        ]
    logger.debug(f"Listing {len(summaries)} rooms")
    return summaries


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, membership: MembershipManager = Depends(get_membership)):
    """
    Room details with its current members.

    Rooms disappear as soon as their last member leaves, so a 404 here also
    covers rooms that existed a moment ago.
    """
    with membership.lock:
        room = membership.rooms.get(room_id)
        if not room:
            logger.info(f"Room details failed: Room {room_id} not found")
            raise HTTPException(status_code=404, detail="Room not found")
        members = [MemberDetails(username=info.username, joined_at=info.joined_at) for info in room.members.values()]
        details = RoomDetailsResponse(
            room_id=room.id,
            created_at=room.created_at,
            member_count=room.member_count,
            members=members,
        )
    logger.debug(f"Room details retrieved for {room_id}: {details.member_count} members")
    return details

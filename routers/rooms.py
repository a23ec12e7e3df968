from fastapi import APIRouter, HTTPException
from schemas.rooms import OnlineUser, RoomDetailsResponse
from registry import ConnectionRegistry, room_registry
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def room_details(registry: ConnectionRegistry, room_id: str) -> RoomDetailsResponse:
    members = sorted(registry.members(room_id))
    online_users = [
        OnlineUser(connection_id=conn_id, display_name=registry.display_name_of(conn_id) or conn_id)
        for conn_id in members
    ]
    return RoomDetailsResponse(
        room_id=room_id,
        max_users=registry.capacity or None,
        online_users_count=len(members),
        online_users=online_users,
        is_full=registry.is_full(room_id),
    )


@rooms_router.get("/", response_model=list[RoomDetailsResponse])
async def list_rooms():
    rooms = room_registry.rooms()
    logger.debug(f"Listing {len(rooms)} live rooms")
    return [room_details(room_registry, room_id) for room_id in sorted(rooms)]


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str):
    """
    Get room details including the members currently online.

    Returns:
    - room_id: Room identifier
    - max_users: Maximum members allowed (null when unbounded)
    - online_users_count: Current number of members
    - online_users: connection id and display name of each member
    - is_full: Whether room has reached max capacity
    """
    if room_id not in room_registry.rooms():
        logger.info(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    details = room_details(room_registry, room_id)
    logger.info(f"Room details retrieved for {room_id}: {details.online_users_count}/{details.max_users or 'unbounded'} users online")
    return details

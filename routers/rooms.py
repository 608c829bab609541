from fastapi import APIRouter, Request
from schemas.chat import RoomData
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/{room}", response_model=RoomData)
async def get_room_details(room: str, request: Request):
    """
    Current roster of a room.

    Rooms are derived from who is connected, so an unknown room is simply an
    empty one. The room name is normalized the same way joins normalize it.
    """
    client_host = request.client.host if request.client else "unknown"
    gateway = request.app.state.gateway
    room_data = gateway.room_data(room)
    logger.info(f"Room details request for {room_data.room} from {client_host}: {len(room_data.users)} users online")
    return room_data

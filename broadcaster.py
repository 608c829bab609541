import asyncio
from typing import Any, Dict, Iterable, List, Optional, Set

from backend import normalize
from logging_config import get_logger
from schemas.chat import ChatMessage, RoomData, User

logger = get_logger(__name__)

MESSAGE_EVENT = "message"
ROOM_DATA_EVENT = "roomData"


class RoomBroadcaster:
    """Fans events out to every connection subscribed to a room.

    ``server`` is anything with an async ``emit(event, data, to=sid)``; in
    production that is the Socket.IO server. The room -> connections mapping
    is owned here and changed only by the gateway, next to the matching
    directory change.
    """

    def __init__(self, server: Any):
        self.server = server
        # Format: {room: {connection_id, ...}}
        self._rooms: Dict[str, Set[str]] = {}

    def subscribe(self, connection_id: str, room: str):
        room = normalize(room)
        self._rooms.setdefault(room, set()).add(connection_id)
        logger.debug(f"Subscribed {connection_id} to room {room} ({len(self._rooms[room])} members)")

    def unsubscribe(self, connection_id: str, room: str):
        room = normalize(room)
        members = self._rooms.get(room)
        if not members:
            return
        members.discard(connection_id)
        if not members:
            del self._rooms[room]
            logger.debug(f"Room {room} has no more subscribers")
        else:
            logger.debug(f"Unsubscribed {connection_id} from room {room} ({len(members)} left)")

    def members(self, room: str) -> Set[str]:
        return set(self._rooms.get(normalize(room), ()))

    def clear(self):
        self._rooms.clear()

    async def send_private(self, connection_id: str, message: ChatMessage):
        await self._emit(MESSAGE_EVENT, message.model_dump(), [connection_id])

    async def announce(self, room: str, message: ChatMessage, skip_sid: Optional[str] = None):
        """Send a message to the room, optionally leaving one connection out."""
        targets = [sid for sid in self.members(room) if sid != skip_sid]
        await self._emit(MESSAGE_EVENT, message.model_dump(), targets)

    async def deliver(self, room: str, message: ChatMessage):
        """Send a message to every member of the room, sender included."""
        await self._emit(MESSAGE_EVENT, message.model_dump(), self.members(room))

    async def push_roster(self, room: str, users: List[User]):
        room_data = RoomData(room=normalize(room), users=users)
        await self._emit(ROOM_DATA_EVENT, room_data.model_dump(), self.members(room))

    async def _emit(self, event: str, payload: dict, targets: Iterable[str]):
        targets = list(targets)
        if not targets:
            logger.debug(f"No subscribers for '{event}', nothing to send")
            return

        results = await asyncio.gather(
            *(self.server.emit(event, payload, to=sid) for sid in targets),
            return_exceptions=True,
        )
        for sid, result in zip(targets, results):
            if isinstance(result, Exception):
                # Connection might already be gone
                logger.warning(f"Error sending '{event}' to connection {sid}: {result}")
        logger.debug(f"Sent '{event}' to {len(targets)} connections")

import threading
from typing import Dict, List, Optional

from errors import AlreadyJoinedError, InvalidJoinError, NameTakenError
from logging_config import get_logger
from schemas.chat import User

logger = get_logger(__name__)


def normalize(value: str) -> str:
    """Trimmed, case-folded form used to store and compare names and rooms."""
    return (value or "").strip().casefold()


class PresenceDirectory:
    """In-memory registry of active users keyed by connection id.

    Every mutation runs under one lock, so the (room, name) uniqueness check
    and the insert that follows it cannot interleave with another join.
    Rooms are never stored; they are derived from the users.
    """

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._lock = threading.Lock()
        logger.info("Initializing PresenceDirectory")

    def add_user(self, connection_id: str, name: str, room: str) -> User:
        name = normalize(name)
        room = normalize(room)
        if not name or not room:
            raise InvalidJoinError()

        with self._lock:
            if connection_id in self._users:
                logger.debug(f"Connection {connection_id} already joined room {self._users[connection_id].room}")
                raise AlreadyJoinedError()
            for user in self._users.values():
                if user.room == room and user.name == name:
                    logger.debug(f"Name '{name}' already taken in room {room}")
                    raise NameTakenError()
            user = User(id=connection_id, name=name, room=room)
            self._users[connection_id] = user

        logger.debug(f"User {connection_id} ({name}) added to room {room}")
        return user

    def remove_user(self, connection_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.pop(connection_id, None)
        if user:
            logger.debug(f"User {connection_id} ({user.name}) removed from room {user.room}")
        return user

    def get_user(self, connection_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(connection_id)

    def list_users_in_room(self, room: str) -> List[User]:
        room = normalize(room)
        with self._lock:
            return [user for user in self._users.values() if user.room == room]

    def rooms(self) -> List[str]:
        """Rooms that currently have at least one user."""
        with self._lock:
            return sorted({user.room for user in self._users.values()})

    def clear(self):
        with self._lock:
            count = len(self._users)
            self._users.clear()
        logger.debug(f"Cleared {count} users from the directory")

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

import asyncio
from typing import Any, Optional

from pydantic import ValidationError

import constants
from backend import PresenceDirectory, normalize
from bot import BotReplyPipeline
from broadcaster import RoomBroadcaster
from errors import ChatError, InvalidJoinError, InvalidMessageError, UserNotFoundError
from generation import create_generator
from logging_config import get_logger
from schemas.chat import ChatMessage, JoinRequest, RoomData, SendMessageRequest, User

logger = get_logger(__name__)


class ChatGateway:
    """Maps connection events onto the directory, broadcaster and bot.

    Handlers return ``None`` on success or a user-facing error string, which
    the transport sends back as the event acknowledgment. Join and leave run
    under one lock so a roster snapshot always matches the directory state
    that produced it.
    """

    def __init__(self, directory: PresenceDirectory, broadcaster: RoomBroadcaster, pipeline: BotReplyPipeline):
        self.directory = directory
        self.broadcaster = broadcaster
        self.pipeline = pipeline
        self._membership_lock = asyncio.Lock()

    @classmethod
    def create(cls, server: Any, generator: Any = None, **pipeline_options) -> "ChatGateway":
        """Build an independent gateway around ``server`` using env defaults."""
        if generator is None:
            generator = create_generator(
                api_key=constants.OPENAI_API_KEY,
                model=constants.OPENAI_MODEL,
                timeout_seconds=constants.BOT_REPLY_TIMEOUT,
            )
        pipeline_options.setdefault("delay", constants.BOT_REPLY_DELAY)
        pipeline_options.setdefault("timeout", constants.BOT_REPLY_TIMEOUT)
        pipeline_options.setdefault("prompt_max_chars", constants.BOT_PROMPT_MAX_CHARS)

        broadcaster = RoomBroadcaster(server)
        pipeline = BotReplyPipeline(broadcaster, generator, **pipeline_options)
        return cls(PresenceDirectory(), broadcaster, pipeline)

    async def join(self, connection_id: str, data: Any) -> Optional[str]:
        try:
            request = JoinRequest.model_validate(data)
        except ValidationError:
            logger.warning(f"Join rejected for {connection_id}: {InvalidJoinError.code}, payload {data!r}")
            return InvalidJoinError.message

        async with self._membership_lock:
            try:
                user = self.directory.add_user(connection_id, request.name, request.room)
            except ChatError as e:
                logger.warning(f"Join rejected for {connection_id} (name={request.name!r}, room={request.room!r}): {e.code}")
                return e.message

            self.broadcaster.subscribe(connection_id, user.room)
            await self.broadcaster.send_private(
                connection_id,
                ChatMessage(user=constants.ADMIN_NAME, text=f"{user.name}, welcome to room {user.room}"),
            )
            await self.broadcaster.announce(
                user.room,
                ChatMessage(user=constants.ADMIN_NAME, text=f"{user.name} has joined!"),
                skip_sid=connection_id,
            )
            await self.broadcaster.push_roster(user.room, self.directory.list_users_in_room(user.room))

        logger.info(f"User {connection_id} ({user.name}) joined room {user.room}")
        return None

    async def send_message(self, connection_id: str, data: Any) -> Optional[str]:
        user = self.directory.get_user(connection_id)
        if not user:
            logger.warning(f"Message from unknown connection {connection_id} dropped: {UserNotFoundError.code}")
            return UserNotFoundError.message

        # Clients may send the bare text or {"text": ...}
        if isinstance(data, str):
            data = {"text": data}
        try:
            request = SendMessageRequest.model_validate(data)
        except ValidationError:
            logger.warning(f"Message from {connection_id} rejected: {InvalidMessageError.code}, payload {data!r}")
            return InvalidMessageError.message

        await self.broadcaster.deliver(user.room, ChatMessage(user=user.name, text=request.text))
        self.pipeline.schedule(user.room, user.name, request.text)
        logger.debug(f"Message from {user.name} relayed to room {user.room}")
        return None

    async def leave(self, connection_id: str) -> Optional[str]:
        user = await self._remove(connection_id)
        if not user:
            return UserNotFoundError.message
        return None

    async def disconnect(self, connection_id: str):
        await self._remove(connection_id)

    async def _remove(self, connection_id: str) -> Optional[User]:
        async with self._membership_lock:
            user = self.directory.remove_user(connection_id)
            if not user:
                logger.debug(f"Connection {connection_id} was not in any room")
                return None

            self.broadcaster.unsubscribe(connection_id, user.room)
            await self.broadcaster.announce(
                user.room,
                ChatMessage(user=constants.ADMIN_NAME, text=f"{user.name} has left."),
            )
            await self.broadcaster.push_roster(user.room, self.directory.list_users_in_room(user.room))

        logger.info(f"User {connection_id} ({user.name}) left room {user.room}")
        return user

    def room_data(self, room: str) -> RoomData:
        users = self.directory.list_users_in_room(room)
        return RoomData(room=normalize(room), users=users)

    async def aclose(self):
        await self.pipeline.drain()
        self.directory.clear()
        self.broadcaster.clear()
        close = getattr(self.pipeline.generator, "aclose", None)
        if close is not None:
            await close()
        logger.info("Chat gateway shut down")

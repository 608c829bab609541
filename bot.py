import asyncio
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Set

from constants import BOT_NAME
from errors import GenerationError
from generation import build_prompt
from logging_config import get_logger
from schemas.chat import ChatMessage

logger = get_logger(__name__)

GREETING_KEYWORDS = ("hello", "hi")
TIME_KEYWORDS = ("time",)
JOKE_KEYWORDS = ("joke",)

GREETING_REPLY = "Hi {name}! 👋"
TIME_REPLY = "⏱️ Current time: {time}"
JOKE_REPLY = "😂 Why don't programmers like nature? It has too many bugs!"
APOLOGY_REPLY = "⚠️ Sorry, I couldn't process that."


class ReplyKind(str, Enum):
    GREETING = "greeting"
    TIME = "time"
    JOKE = "joke"
    GENERATIVE = "generative"


def classify(text: str) -> ReplyKind:
    """First matching keyword group wins; anything else goes to the generator."""
    normalized = (text or "").strip().lower()
    if any(keyword in normalized for keyword in GREETING_KEYWORDS):
        return ReplyKind.GREETING
    if any(keyword in normalized for keyword in TIME_KEYWORDS):
        return ReplyKind.TIME
    if any(keyword in normalized for keyword in JOKE_KEYWORDS):
        return ReplyKind.JOKE
    return ReplyKind.GENERATIVE


def format_time(now: datetime) -> str:
    return now.strftime("%I:%M:%S %p").lstrip("0")


class BotReplyPipeline:
    """Turns user messages into one delayed bot reply per message.

    Each reply runs as a detached task: ``schedule`` returns immediately, the
    task sleeps ``delay`` seconds, builds the reply and delivers it to the
    room. The generator call is bounded by ``timeout``; errors and timeouts
    become the apology reply, so every task ends with exactly one delivery.
    """

    def __init__(
        self,
        broadcaster: Any,
        generator: Any,
        delay: float = 0.5,
        timeout: float = 15,
        prompt_max_chars: int = 500,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.broadcaster = broadcaster
        self.generator = generator
        self.delay = delay
        self.timeout = timeout
        self.prompt_max_chars = prompt_max_chars
        self.clock = clock
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, room: str, sender_name: str, text: str) -> asyncio.Task:
        kind = classify(text)
        logger.debug(f"Message from {sender_name} in room {room} classified as {kind.value}")
        task = asyncio.create_task(self._reply(room, sender_name, text, kind))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _reply(self, room: str, sender_name: str, text: str, kind: ReplyKind) -> ChatMessage:
        await asyncio.sleep(self.delay)

        if kind is ReplyKind.GENERATIVE:
            reply_text = await self._generate(room, text)
        else:
            reply_text = self.canned_reply(kind, sender_name)

        message = ChatMessage(user=BOT_NAME, text=reply_text)
        try:
            await self.broadcaster.deliver(room, message)
        except Exception as e:
            logger.error(f"Failed to deliver bot reply to room {room}: {e}", exc_info=True)
        else:
            logger.debug(f"Delivered {kind.value} bot reply to room {room}")
        return message

    def canned_reply(self, kind: ReplyKind, sender_name: str) -> str:
        if kind is ReplyKind.GREETING:
            return GREETING_REPLY.format(name=sender_name)
        if kind is ReplyKind.TIME:
            # Read the clock when the reply fires, not when the message arrived
            return TIME_REPLY.format(time=format_time(self.clock()))
        if kind is ReplyKind.JOKE:
            return JOKE_REPLY
        raise ValueError(f"No canned reply for {kind}")

    async def _generate(self, room: str, text: str) -> str:
        prompt = build_prompt(text, self.prompt_max_chars)
        try:
            return await asyncio.wait_for(self.generator.generate(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Bot reply generation for room {room} timed out after {self.timeout}s")
        except GenerationError as e:
            logger.error(f"Bot reply generation for room {room} failed: {e}", exc_info=True)
        except Exception as e:
            logger.error(f"Unexpected error generating bot reply for room {room}: {e}", exc_info=True)
        return APOLOGY_REPLY

    async def drain(self):
        """Wait for every scheduled reply to be delivered."""
        if not self._tasks:
            return
        logger.info(f"Waiting for {len(self._tasks)} pending bot replies")
        await asyncio.gather(*list(self._tasks), return_exceptions=True)

"""OpenAI-backed text generation for bot replies.

All SDK failures are mapped to ``GenerationError``. Without an API key the
generator still constructs, it just fails every call, so rule-based bot
replies keep working and generative ones fall back to the apology.
"""

from typing import Optional

import openai
from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    RateLimitError,
)

from errors import GenerationError
from logging_config import get_logger

logger = get_logger(__name__)

PROMPT_TEMPLATE = "Reply to this message in 1–2 short sentences: {text}"


def build_prompt(text: str, max_chars: int) -> str:
    """Bounded prompt for a chat message; long messages are cut at ``max_chars``."""
    text = (text or "").strip()
    if len(text) > max_chars:
        text = text[:max_chars].rstrip() + "…"
    return PROMPT_TEMPLATE.format(text=text)


class OpenAIGenerator:
    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 15,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        if client is not None:
            self.client = client
        elif api_key:
            # SDK retries are off; the pipeline bounds the whole call anyway
            self.client = AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        else:
            self.client = None
            logger.warning("OPENAI_API_KEY is not set, generated bot replies are disabled")

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def generate(self, prompt: str) -> str:
        if self.client is None:
            raise GenerationError("Text generation is not configured")

        try:
            response = await self.client.responses.create(model=self.model, input=prompt)
        except APITimeoutError as e:
            raise GenerationError("OpenAI request timed out") from e
        except RateLimitError as e:
            raise GenerationError("OpenAI rate limit exceeded") from e
        except APIConnectionError as e:
            raise GenerationError(f"Could not reach OpenAI: {e}") from e
        except APIStatusError as e:
            raise GenerationError(f"OpenAI returned status {e.status_code}") from e
        except APIError as e:
            raise GenerationError(f"OpenAI error: {e}") from e

        text = (response.output_text or "").strip()
        if not text:
            raise GenerationError("OpenAI returned an empty reply")
        logger.debug(f"Generated reply with model {self.model} ({len(text)} chars)")
        return text

    async def aclose(self):
        if self.client is not None:
            await self.client.close()


def create_generator(api_key: Optional[str], model: str, timeout_seconds: float) -> OpenAIGenerator:
    logger.info(f"Using OpenAI model {model} for bot replies (openai {openai.__version__})")
    return OpenAIGenerator(api_key=api_key, model=model, timeout_seconds=timeout_seconds)

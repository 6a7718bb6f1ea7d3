"""Anthropic Messages API implementation of the LLM client."""

import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp
from pydantic import BaseModel, Field, SecretStr, ValidationError

from pr_test_generator.clients.base import LLMClient, LLMError, ModelTier
from pr_test_generator.config import ModelSettings

log = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicConfig(BaseModel):
    """Configuration for the Anthropic client."""

    api_key: SecretStr
    api_base_url: str = "https://api.anthropic.com"
    models: ModelSettings = Field(default_factory=ModelSettings)
    request_timeout: float = 300


class ContentBlock(BaseModel):
    """One block of a message response."""

    type: str
    text: str | None = None


class MessageResponse(BaseModel):
    """Response from the messages API."""

    content: Sequence[ContentBlock]


@dataclass(frozen=True, kw_only=True)
class AnthropicClient(LLMClient):
    """LLM client backed by the Anthropic Messages API."""

    config: AnthropicConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: AnthropicConfig
    ) -> AsyncGenerator["AnthropicClient", None]:
        """Create client with managed session lifecycle."""
        headers = {
            "x-api-key": config.api_key.get_secret_value(),
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }
        async with aiohttp.ClientSession(
            base_url=config.api_base_url,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=config.request_timeout),
        ) as session:
            yield cls(config=config, session=session)

    async def complete(self, prompt: str, max_tokens: int, model: ModelTier) -> str:
        """Send a single-turn prompt and return the text of the reply."""
        model_id = getattr(self.config.models, model)
        payload = {
            "model": model_id,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        log.debug("Requesting completion: model=%s max_tokens=%d", model_id, max_tokens)

        try:
            async with self.session.post("/v1/messages", json=payload) as response:
                if response.status != 200:
                    text = await response.text()
                    raise LLMError(
                        f"Claude API error: {response.status} {response.reason} - {text}"
                    )
                data = await response.json()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise LLMError(f"Claude API request failed: {e!r}") from e
        except ValueError as e:
            raise LLMError(f"Malformed Claude API response: {e}") from e

        try:
            message = MessageResponse.model_validate(data)
        except ValidationError as e:
            raise LLMError(f"Malformed Claude API response: {e}") from e

        texts = [block.text for block in message.content if block.type == "text" and block.text]
        if not texts:
            raise LLMError("Claude API response contained no text")
        return "".join(texts)

"""Text generation using Claude."""

import asyncio
import logging

import anthropic
from anthropic import Anthropic

logger = logging.getLogger(__name__)

# Errors worth another attempt: timeouts, rate limits, dropped connections, 5xx
TRANSIENT_ERRORS = (
    anthropic.APITimeoutError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)


class ClaudeTextGenerator:
    """Generates text with the Anthropic messages API."""

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-20250514", timeout: float = 120.0):
        self.client = Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model

    async def generate(
        self,
        prompt: str,
        system: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.5,
    ) -> str:
        """Send one prompt and return the text of the reply.

        The SDK call blocks, so it runs in a worker thread to keep other
        jobs moving.
        """
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        response = await asyncio.to_thread(self.client.messages.create, **kwargs)

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        if not text.strip():
            raise ValueError("Empty response from Claude")

        logger.debug(f"Claude returned {len(text)} chars (stop_reason={response.stop_reason})")
        return text


def is_transient(error: Exception) -> bool:
    """Whether a text generation error is worth retrying."""
    return isinstance(error, TRANSIENT_ERRORS)

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator

from spark_words.providers.base import LLMProvider

log = logging.getLogger("spark_words.llm")

MAX_TOKENS = 8192


class AnthropicProvider(LLMProvider):
    def __init__(self, model: str = "claude-sonnet-4-20250514"):
        import anthropic
        self.client = anthropic.AsyncAnthropic(
            api_key=os.environ.get("ANTHROPIC_API_KEY", ""),
        )
        self.model = model

    def _request(self, prompt: str, temperature: float, system: str | None) -> dict:
        kwargs: dict = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system
        return kwargs

    async def generate(self, prompt: str, temperature: float = 0.7, thinking: bool = True) -> str:
        message = await self.client.messages.create(**self._request(prompt, temperature, None))
        return message.content[0].text

    async def generate_stream(
        self, prompt: str, temperature: float = 0.7, system: str | None = None, thinking: bool = True
    ) -> AsyncIterator[str]:
        log.info("── STREAM PROMPT (%s) ──\n%s", self.model, prompt)
        async with self.client.messages.stream(**self._request(prompt, temperature, system)) as stream:
            async for text in stream.text_stream:
                yield text
        log.info("── STREAM COMPLETE ──")

    def name(self) -> str:
        return f"anthropic/{self.model}"

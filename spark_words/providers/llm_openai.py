from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator

from spark_words.providers.base import LLMProvider

log = logging.getLogger("spark_words.llm")


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions, or any OpenAI-compatible endpoint via *base_url*."""

    def __init__(self, model: str = "gpt-4o-mini", base_url: str | None = None):
        import openai
        self.client = openai.AsyncOpenAI(
            api_key=os.environ.get("OPENAI_API_KEY", ""),
            base_url=base_url or None,
        )
        self.model = model

    @staticmethod
    def _messages(prompt: str, system: str | None) -> list[dict]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, prompt: str, temperature: float = 0.7, thinking: bool = True) -> str:
        resp = await self.client.chat.completions.create(
            model=self.model,
            temperature=temperature,
            messages=self._messages(prompt, None),
        )
        return resp.choices[0].message.content

    async def generate_stream(
        self, prompt: str, temperature: float = 0.7, system: str | None = None, thinking: bool = True
    ) -> AsyncIterator[str]:
        log.info("── STREAM PROMPT (%s) ──\n%s", self.model, prompt)
        stream = await self.client.chat.completions.create(
            model=self.model,
            temperature=temperature,
            messages=self._messages(prompt, system),
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            token = chunk.choices[0].delta.content
            if token:
                yield token
        log.info("── STREAM COMPLETE ──")

    def name(self) -> str:
        return f"openai/{self.model}"

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator, Iterator

import httpx

from spark_words.providers.base import LLMProvider

log = logging.getLogger("spark_words.llm")

TIMEOUT = 120.0


class ThinkFilter:
    """Remove ``<think>...</think>`` blocks from a token stream.

    Holds back a short tail so a tag split across tokens is still detected.
    """

    OPEN = "<think>"
    CLOSE = "</think>"

    def __init__(self):
        self._buf = ""
        self._in_think = False

    def feed(self, token: str) -> Iterator[str]:
        self._buf += token
        while True:
            if self._in_think:
                idx = self._buf.find(self.CLOSE)
                if idx < 0:
                    # Keep only what could be the start of the closing tag
                    self._buf = self._buf[-(len(self.CLOSE) - 1):]
                    return
                self._buf = self._buf[idx + len(self.CLOSE):]
                self._in_think = False
            else:
                idx = self._buf.find(self.OPEN)
                if idx < 0:
                    hold = len(self.OPEN) - 1
                    if len(self._buf) > hold:
                        yield self._buf[:-hold]
                        self._buf = self._buf[-hold:]
                    return
                if idx > 0:
                    yield self._buf[:idx]
                self._buf = self._buf[idx + len(self.OPEN):]
                self._in_think = True

    def flush(self) -> str:
        rest = "" if self._in_think else self._buf
        self._buf = ""
        return rest


class OllamaProvider(LLMProvider):
    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen3:8b",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=TIMEOUT, transport=self._transport)

    def _body(self, prompt: str, temperature: float, stream: bool, thinking: bool, system: str | None = None) -> dict:
        body: dict = {
            "model": self.model,
            "prompt": prompt,
            "options": {"temperature": temperature},
            "stream": stream,
            "think": thinking,
        }
        if system:
            body["system"] = system
        return body

    async def generate(self, prompt: str, temperature: float = 0.7, thinking: bool = True) -> str:
        log.info("── PROMPT (%s) ──\n%s", self.model, prompt)
        t0 = time.monotonic()
        async with self._client() as client:
            resp = await client.post(
                f"{self.base_url}/api/generate",
                json=self._body(prompt, temperature, stream=False, thinking=thinking),
            )
            resp.raise_for_status()
            data = resp.json()
        elapsed = time.monotonic() - t0
        response = data["response"]
        log.info("── RESPONSE (%.1fs, %s tokens) ──\n%s", elapsed, data.get("eval_count", "?"), response)
        return response

    async def generate_stream(
        self, prompt: str, temperature: float = 0.7, system: str | None = None, thinking: bool = True
    ) -> AsyncIterator[str]:
        """Stream tokens from Ollama, stripping <think>...</think> blocks."""
        log.info("── STREAM PROMPT (%s) ──\n%s", self.model, prompt)
        if system:
            log.info("── SYSTEM ──\n%s", system)
        t0 = time.monotonic()
        think = ThinkFilter()

        async with self._client() as client:
            async with client.stream(
                "POST",
                f"{self.base_url}/api/generate",
                json=self._body(prompt, temperature, stream=True, thinking=thinking, system=system),
            ) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    if "error" in data:
                        raise RuntimeError(f"Ollama error: {data['error']}")
                    token = data.get("response", "")
                    if token:
                        for text in think.feed(token):
                            yield text
                    if data.get("done"):
                        break

        rest = think.flush()
        if rest:
            yield rest

        log.info("── STREAM COMPLETE (%.1fs) ──", time.monotonic() - t0)

    def name(self) -> str:
        return f"ollama/{self.model}"

"""
Local LLM generator: Ollama backend.

Connects to a locally running Ollama instance at http://localhost:11434 and
streams ``/api/generate`` output (newline-delimited JSON). Default model:
qwen2.5:1.5b-instruct, small enough for CPU-only laptops.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from baggage_rag.generation.llm_client import (
    Completed,
    Failed,
    GenerationEvent,
    Generator,
    MockGenerator,
    TextDelta,
)

LOG = logging.getLogger("generation.local_llm")


class OllamaGenerator(Generator):
    """
    Local generation backend using Ollama's HTTP API.

    Requires Ollama to be running locally: https://ollama.ai
    Pull the model once with ``ollama pull qwen2.5:1.5b-instruct``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen2.5:1.5b-instruct",
        timeout: float = 120.0,
        options: Optional[Dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._model = model
        self._options = options or {"num_predict": 512}
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )
        self._available: bool | None = None

    async def is_available(self) -> bool:
        """Check if Ollama is running and the model is available."""
        if self._available is not None:
            return self._available
        try:
            resp = await self._client.get("/api/tags")
            if resp.status_code == 200:
                models = resp.json().get("models", [])
                model_names = [m.get("name", "") for m in models]
                self._available = any(self._model in name for name in model_names)
                if not self._available:
                    LOG.warning(
                        "Ollama running but model '%s' not found. Available: %s. Pull with: ollama pull %s",
                        self._model,
                        model_names,
                        self._model,
                    )
                return self._available
        except httpx.HTTPError as exc:
            LOG.warning("Ollama not reachable at %s: %s", self._base_url, exc)
        self._available = False
        return False

    async def stream(self, prompt: str) -> AsyncIterator[GenerationEvent]:
        payload = {
            "model": self._model,
            "prompt": prompt,
            "stream": True,
            "options": self._options,
        }
        try:
            async with self._client.stream("POST", "/api/generate", json=payload) as resp:
                if resp.status_code != 200:
                    body = (await resp.aread()).decode("utf-8", errors="replace")
                    yield Failed(f"Ollama returned HTTP {resp.status_code}: {body[:200]}")
                    return

                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    if data.get("error"):
                        yield Failed(str(data["error"]))
                        return
                    fragment = data.get("response", "")
                    if fragment:
                        yield TextDelta(fragment)
                    if data.get("done"):
                        yield Completed()
                        return
        except (httpx.HTTPError, json.JSONDecodeError) as exc:
            LOG.warning("Ollama generation failed: %s", exc)
            yield Failed(f"Ollama request failed: {exc}")
            return

        yield Failed("Ollama stream closed before completion")

    async def close(self) -> None:
        await self._client.aclose()


def build_generator(backend: str = "ollama", **kwargs: Any) -> Generator:
    """
    Factory: create a Generator of the requested type.

    Args:
        backend: "ollama" or "mock"
        **kwargs: Backend-specific configuration

    Raises:
        ValueError: Unknown backend
    """
    if backend == "ollama":
        return OllamaGenerator(**kwargs)
    if backend == "mock":
        return MockGenerator(**kwargs)
    raise ValueError(
        f"Unknown generation backend: {backend!r}. "
        f"Supported: 'ollama', 'mock'"
    )

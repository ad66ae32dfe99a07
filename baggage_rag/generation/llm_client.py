"""
Abstract text generator for answer synthesis.

A generator exposes its output as a finite async stream of events: zero or
more TextDelta fragments terminated by exactly one Completed or Failed
marker. ``generate()`` buffers the fragments into one string so callers see
a plain request/response call.

Backends: OllamaGenerator (local_llm.py) and MockGenerator (here).
"""

from __future__ import annotations

import abc
import logging
from contextlib import aclosing
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Union

from baggage_rag.errors import GenerationError

LOG = logging.getLogger("generation.llm_client")


@dataclass(frozen=True)
class TextDelta:
    """An incremental fragment of generated text."""

    text: str


@dataclass(frozen=True)
class Completed:
    """Generation finished normally."""

    pass


@dataclass(frozen=True)
class Failed:
    """Generation failed; no further events follow."""

    message: str


GenerationEvent = Union[TextDelta, Completed, Failed]


class Generator(abc.ABC):
    """Abstract base class for text generation backends."""

    @abc.abstractmethod
    def stream(self, prompt: str) -> AsyncIterator[GenerationEvent]:
        """
        Start one generation for ``prompt``.

        Each call returns a fresh iterator. Implementations must end the
        stream with exactly one Completed or Failed event.
        """
        ...

    async def generate(self, prompt: str) -> str:
        """
        Run one generation and return the buffered text.

        Raises:
            GenerationError: the backend signalled Failed, or the stream ended
                without a terminal event
        """
        parts: List[str] = []
        async with aclosing(self.stream(prompt)) as events:
            async for event in events:
                if isinstance(event, TextDelta):
                    parts.append(event.text)
                elif isinstance(event, Completed):
                    LOG.debug("Generation complete (%d fragments)", len(parts))
                    return "".join(parts)
                elif isinstance(event, Failed):
                    LOG.error("Error generating text: %s", event.message)
                    raise GenerationError(event.message)
        raise GenerationError("Generation stream ended without completion")

    async def is_available(self) -> bool:
        """Check whether the backend can serve requests. Override if needed."""
        return True

    async def close(self) -> None:
        """Clean up resources (e.g., HTTP clients). Override if needed."""
        pass


ScriptedResponse = Union[str, Exception]


class MockGenerator(Generator):
    """
    Mock generator for testing.

    Plays back scripted responses in order, one per call; the last entry is
    repeated once the script runs out. A string is streamed word by word and
    completed; an Exception instance is reported as a Failed event.
    """

    def __init__(self, responses: Optional[List[ScriptedResponse]] = None) -> None:
        self._responses = list(responses) if responses else ["This is a mock answer."]
        self._call_count = 0
        self.prompts: List[str] = []

    async def stream(self, prompt: str) -> AsyncIterator[GenerationEvent]:
        index = min(self._call_count, len(self._responses) - 1)
        self._call_count += 1
        self.prompts.append(prompt)

        response = self._responses[index]
        if isinstance(response, Exception):
            yield Failed(str(response))
            return

        for i, word in enumerate(response.split(" ")):
            yield TextDelta(word if i == 0 else f" {word}")
        yield Completed()

    @property
    def call_count(self) -> int:
        return self._call_count

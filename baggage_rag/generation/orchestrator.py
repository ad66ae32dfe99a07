"""
Answer orchestration: retrieve → build prompt → generate with bounded retry.

Per-query state machine::

    EMBEDDING → RETRIEVING → NO_CONTEXT
                           → BUILDING_PROMPT → GENERATING → SUCCEEDED
                                                          → EXHAUSTED_RETRIES
    (embedding failure)    → ERRORED

Every terminal state yields a non-empty, user-displayable string; the query
surface never raises. All state is local to one ``run()`` call, so
concurrent queries do not interfere.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from baggage_rag.generation.llm_client import Generator
from baggage_rag.generation.prompt import (
    APOLOGY_MESSAGE,
    DEFAULT_AIRLINES,
    EMPTY_QUESTION_MESSAGE,
    ERROR_MESSAGE,
    build_context,
    build_prompt,
    delay_notice,
    no_context_message,
)
from baggage_rag.generation.retry import RetryStatus, retry_until
from baggage_rag.models import QueryState
from baggage_rag.rag.search import Retriever
from baggage_rag.rag.vector_store import SearchResult

LOG = logging.getLogger("generation.orchestrator")

DEFAULT_MAX_ATTEMPTS = 4


@dataclass
class AnswerResult:
    """Outcome of one query, with the path it took through the state machine."""

    question: str
    answer: str
    state: QueryState
    attempts: int = 0
    sources: List[SearchResult] = field(default_factory=list)
    prompt: Optional[str] = None
    trail: List[QueryState] = field(default_factory=list)


class _Trace:
    """Records state transitions for one query."""

    def __init__(self) -> None:
        self.trail: List[QueryState] = []

    def enter(self, state: QueryState) -> None:
        LOG.debug("Query state → %s", state.value)
        self.trail.append(state)


class GenerationOrchestrator:
    """
    Turns a question into an answer string.

    Usage::

        orchestrator = GenerationOrchestrator(retriever, generator)
        text = await orchestrator.answer("How heavy can my checked bag be on Emirates?")
    """

    def __init__(
        self,
        retriever: Retriever,
        generator: Generator,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        top_k: Optional[int] = None,
        airlines: Sequence[str] = DEFAULT_AIRLINES,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._retriever = retriever
        self._generator = generator
        self._max_attempts = max_attempts
        self._top_k = top_k
        self._airlines = list(airlines) or list(DEFAULT_AIRLINES)

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    async def answer(self, question: str) -> str:
        """Answer ``question``. Never raises and never returns an empty string."""
        result = await self.run(question)
        return result.answer

    async def run(self, question: str) -> AnswerResult:
        trace = _Trace()

        if not question or not question.strip():
            return AnswerResult(question=question, answer=EMPTY_QUESTION_MESSAGE, state=QueryState.NO_CONTEXT,
                                trail=[QueryState.NO_CONTEXT])

        LOG.info("Processing query: %s", question)

        # Step 1: embed; RETRIEVING only once a query vector exists
        trace.enter(QueryState.EMBEDDING)
        try:
            query_vec = await self._retriever.embed(question)
        except Exception as exc:
            LOG.error("Error processing query: %s", exc, exc_info=True)
            trace.enter(QueryState.ERRORED)
            return AnswerResult(question=question, answer=ERROR_MESSAGE, state=QueryState.ERRORED, trail=trace.trail)

        trace.enter(QueryState.RETRIEVING)
        results = await self._retriever.search(query_vec, k=self._top_k)

        # Step 2: nothing retrieved → canned message, no generation
        if not results:
            LOG.info("No similar documents found; answering with fallback")
            trace.enter(QueryState.NO_CONTEXT)
            return AnswerResult(
                question=question,
                answer=no_context_message(self._airlines),
                state=QueryState.NO_CONTEXT,
                trail=trace.trail,
            )

        # Step 3: context + prompt
        trace.enter(QueryState.BUILDING_PROMPT)
        prompt = build_prompt(question, build_context(results))
        LOG.debug("Built context from %d documents", len(results))

        # Step 4: generate, retrying on empty output
        trace.enter(QueryState.GENERATING)
        outcome = await retry_until(
            lambda: self._generator.generate(prompt),
            accept=lambda text: bool(text and text.strip()),
            max_attempts=self._max_attempts,
            label="generate",
        )

        if outcome.status == RetryStatus.SUCCEEDED:
            answer = outcome.value.strip()
            if outcome.attempts > 1:
                answer = delay_notice(outcome.attempts) + answer
            trace.enter(QueryState.SUCCEEDED)
            LOG.info("Generated response in %d attempt(s)", outcome.attempts)
            return AnswerResult(
                question=question,
                answer=answer,
                state=QueryState.SUCCEEDED,
                attempts=outcome.attempts,
                sources=results,
                prompt=prompt,
                trail=trace.trail,
            )

        if outcome.status == RetryStatus.FAILED:
            LOG.error("Generation failed after %d attempt(s): %s", outcome.attempts, outcome.error)
        else:
            LOG.warning("Generation returned empty text %d times", outcome.attempts)
        trace.enter(QueryState.EXHAUSTED_RETRIES)
        return AnswerResult(
            question=question,
            answer=APOLOGY_MESSAGE,
            state=QueryState.EXHAUSTED_RETRIES,
            attempts=outcome.attempts,
            sources=results,
            prompt=prompt,
            trail=trace.trail,
        )

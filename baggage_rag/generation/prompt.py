"""
Prompt construction and the fixed user-facing fallback messages.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from baggage_rag.rag.vector_store import SearchResult

DEFAULT_AIRLINES = ("Lufthansa", "Ryanair", "Emirates", "Southwest")

SYSTEM_INSTRUCTION = (
    "You are a helpful airline baggage policy assistant. Use the following context to answer "
    "the user's question accurately and concisely. NEVER repeat the question and NEVER expose "
    "your thoughts."
)

ANSWER_INSTRUCTION = (
    "Answer: Provide a clear, helpful answer based on the context above. NEVER repeat the "
    "question and NEVER expose your thoughts. If the context doesn't contain enough information "
    "to answer the question, say so politely."
)

APOLOGY_MESSAGE = "I apologize, but I'm unable to generate a response at the moment."

ERROR_MESSAGE = (
    "I apologize, but I encountered an error while processing your question. Please try again."
)

EMPTY_QUESTION_MESSAGE = "Please ask a question about airline baggage policies."


def format_airlines(airlines: Sequence[str]) -> str:
    """Join names as "A, B, or C"."""
    names = list(airlines)
    if not names:
        return "the supported airlines"
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} or {names[1]}"
    return f"{', '.join(names[:-1])}, or {names[-1]}"


def no_context_message(airlines: Sequence[str] = DEFAULT_AIRLINES) -> str:
    return (
        "I don't have enough information about that in my baggage policy database. "
        f"Please ask about airline baggage policies for {format_airlines(airlines)}."
    )


def delay_notice(attempts: int) -> str:
    return f"Sorry for the delay (attempts: {attempts}). "


def format_result(result: SearchResult) -> str:
    return f"From {result.airline} baggage policy:\n{result.text}"


def build_context(results: Iterable[SearchResult]) -> str:
    """Concatenate retrieved chunks in rank order, separated by blank lines."""
    return "\n\n".join(format_result(r) for r in results)


def build_prompt(question: str, context: str) -> str:
    """Build the full generation prompt from the retrieved context."""
    parts: List[str] = [
        SYSTEM_INSTRUCTION,
        "",
        "Context:",
        context,
        "",
        f"User Question: {question}",
        "",
        ANSWER_INSTRUCTION,
    ]
    return "\n".join(parts)

"""Tests for application wiring with in-process backends."""

import pytest

from baggage_rag.app import BaggageAssistant
from baggage_rag.config import AppConfig, GenerationConfig, RAGConfig
from baggage_rag.generation.prompt import EMPTY_QUESTION_MESSAGE
from baggage_rag.models import QueryState


@pytest.fixture
def config(corpus_dir, tmp_path):
    return AppConfig(
        rag=RAGConfig(
            corpus_dir=str(corpus_dir),
            vector_store_backend="memory",
            embedding_backend="mock",
            state_path=str(tmp_path / "index_state.json"),
        ),
        generation=GenerationConfig(backend="mock"),
    )


class TestBaggageAssistant:
    @pytest.mark.asyncio
    async def test_start_and_answer(self, config):
        async with BaggageAssistant.from_config(config) as assistant:
            report = await assistant.start()
            assert report.skipped is False
            assert report.documents == 2

            result = await assistant.run("What is the Ryanair carry-on limit?")
            assert result.state == QueryState.SUCCEEDED
            assert result.answer == "This is a mock answer."
            assert await assistant.answer("") == EMPTY_QUESTION_MESSAGE

    @pytest.mark.asyncio
    async def test_progress_forwarded(self, config):
        messages: list[str] = []
        async with BaggageAssistant.from_config(config) as assistant:
            await assistant.start(on_progress=messages.append)
        assert messages[0] == "Initializing vector index..."
        assert messages[-1].startswith("Vectorization complete!")

    @pytest.mark.asyncio
    async def test_status(self, config):
        async with BaggageAssistant.from_config(config) as assistant:
            before = assistant.status()
            assert before.indexed is False
            assert before.chunkCount == 0
            assert before.airlines == ["Emirates", "Ryanair"]

            report = await assistant.start()
            after = assistant.status()
            assert after.indexed is True
            assert after.chunkCount == report.totalCount
            assert after.lastIngestion == report

    @pytest.mark.asyncio
    async def test_reset_and_rebuild(self, config):
        async with BaggageAssistant.from_config(config) as assistant:
            first = await assistant.start()
            await assistant.reset()
            status = assistant.status()
            assert status.indexed is False
            assert status.chunkCount == 0

            report = await assistant.rebuild()
            assert report.skipped is False
            assert report.totalCount == first.totalCount

    @pytest.mark.asyncio
    async def test_no_context_names_corpus_airlines(self, config):
        async with BaggageAssistant.from_config(config) as assistant:
            await assistant.start()
            await assistant.reset()
            answer = await assistant.answer("Anything?")
        assert answer.endswith("for Emirates or Ryanair.")

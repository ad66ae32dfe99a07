"""Tests for the generator abstraction and the mock backend."""

import pytest

from baggage_rag.errors import GenerationError
from baggage_rag.generation.llm_client import Completed, Failed, Generator, MockGenerator, TextDelta


class _UnterminatedGenerator(Generator):
    async def stream(self, prompt):
        yield TextDelta("partial")


class _DeltaAfterCompleted(Generator):
    async def stream(self, prompt):
        yield TextDelta("done")
        yield Completed()
        yield TextDelta(" ignored")


class TestMockGenerator:
    @pytest.mark.asyncio
    async def test_default_answer(self):
        generator = MockGenerator()
        assert await generator.generate("prompt") == "This is a mock answer."

    @pytest.mark.asyncio
    async def test_streams_word_deltas(self):
        events = [e async for e in MockGenerator(["one two three"]).stream("p")]
        assert events == [TextDelta("one"), TextDelta(" two"), TextDelta(" three"), Completed()]

    @pytest.mark.asyncio
    async def test_scripted_then_repeats_last(self):
        generator = MockGenerator(["", "second"])
        assert await generator.generate("p") == ""
        assert await generator.generate("p") == "second"
        assert await generator.generate("p") == "second"
        assert generator.call_count == 3

    @pytest.mark.asyncio
    async def test_records_prompts(self):
        generator = MockGenerator()
        await generator.generate("first prompt")
        await generator.generate("second prompt")
        assert generator.prompts == ["first prompt", "second prompt"]

    @pytest.mark.asyncio
    async def test_scripted_failure(self):
        generator = MockGenerator([RuntimeError("model crashed")])
        events = [e async for e in generator.stream("p")]
        assert events == [Failed("model crashed")]

    @pytest.mark.asyncio
    async def test_close_is_noop(self):
        await MockGenerator().close()  # Should not raise

    @pytest.mark.asyncio
    async def test_available(self):
        assert await MockGenerator().is_available() is True


class TestGenerate:
    @pytest.mark.asyncio
    async def test_failure_raises(self):
        with pytest.raises(GenerationError, match="model crashed"):
            await MockGenerator([RuntimeError("model crashed")]).generate("p")

    @pytest.mark.asyncio
    async def test_missing_terminal_event_raises(self):
        with pytest.raises(GenerationError, match="without completion"):
            await _UnterminatedGenerator().generate("p")

    @pytest.mark.asyncio
    async def test_stops_at_completed(self):
        assert await _DeltaAfterCompleted().generate("p") == "done"

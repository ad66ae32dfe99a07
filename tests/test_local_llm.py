"""Tests for the Ollama generator, driven through httpx.MockTransport."""

import json

import httpx
import pytest

from baggage_rag.errors import GenerationError
from baggage_rag.generation.llm_client import Completed, Failed, MockGenerator, TextDelta
from baggage_rag.generation.local_llm import OllamaGenerator, build_generator


def _ndjson(*objects) -> bytes:
    return b"".join(json.dumps(o).encode() + b"\n" for o in objects)


def _generator(handler, **kwargs) -> OllamaGenerator:
    return OllamaGenerator(transport=httpx.MockTransport(handler), **kwargs)


class TestOllamaStream:
    @pytest.mark.asyncio
    async def test_buffers_fragments(self):
        def handler(request):
            return httpx.Response(
                200,
                content=_ndjson(
                    {"response": "Carry-on", "done": False},
                    {"response": " bags may weigh 10 kg.", "done": False},
                    {"response": "", "done": True},
                ),
            )

        generator = _generator(handler)
        try:
            assert await generator.generate("prompt") == "Carry-on bags may weigh 10 kg."
        finally:
            await generator.close()

    @pytest.mark.asyncio
    async def test_event_sequence(self):
        def handler(request):
            return httpx.Response(200, content=_ndjson({"response": "Hi", "done": True}))

        generator = _generator(handler)
        try:
            events = [e async for e in generator.stream("prompt")]
        finally:
            await generator.close()
        assert events == [TextDelta("Hi"), Completed()]

    @pytest.mark.asyncio
    async def test_request_payload(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=_ndjson({"response": "ok", "done": True}))

        generator = _generator(handler, model="tiny-model")
        try:
            await generator.generate("What about skis?")
        finally:
            await generator.close()
        assert seen["path"] == "/api/generate"
        assert seen["body"]["model"] == "tiny-model"
        assert seen["body"]["prompt"] == "What about skis?"
        assert seen["body"]["stream"] is True
        assert seen["body"]["options"] == {"num_predict": 512}

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        generator = _generator(lambda request: httpx.Response(500, content=b"boom"))
        try:
            with pytest.raises(GenerationError, match="HTTP 500"):
                await generator.generate("prompt")
        finally:
            await generator.close()

    @pytest.mark.asyncio
    async def test_error_line(self):
        def handler(request):
            return httpx.Response(200, content=_ndjson({"error": "model not found"}))

        generator = _generator(handler)
        try:
            events = [e async for e in generator.stream("prompt")]
        finally:
            await generator.close()
        assert events == [Failed("model not found")]

    @pytest.mark.asyncio
    async def test_stream_without_done(self):
        def handler(request):
            return httpx.Response(200, content=_ndjson({"response": "half", "done": False}))

        generator = _generator(handler)
        try:
            with pytest.raises(GenerationError, match="before completion"):
                await generator.generate("prompt")
        finally:
            await generator.close()

    @pytest.mark.asyncio
    async def test_malformed_line(self):
        generator = _generator(lambda request: httpx.Response(200, content=b"not json\n"))
        try:
            with pytest.raises(GenerationError, match="request failed"):
                await generator.generate("prompt")
        finally:
            await generator.close()

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        generator = _generator(handler)
        try:
            with pytest.raises(GenerationError, match="connection refused"):
                await generator.generate("prompt")
        finally:
            await generator.close()


class TestOllamaAvailability:
    @pytest.mark.asyncio
    async def test_model_present(self):
        def handler(request):
            return httpx.Response(200, json={"models": [{"name": "qwen2.5:1.5b-instruct"}]})

        generator = _generator(handler)
        try:
            assert await generator.is_available() is True
        finally:
            await generator.close()

    @pytest.mark.asyncio
    async def test_model_missing(self):
        generator = _generator(lambda request: httpx.Response(200, json={"models": [{"name": "llama3:8b"}]}))
        try:
            assert await generator.is_available() is False
        finally:
            await generator.close()

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        generator = _generator(handler)
        try:
            assert await generator.is_available() is False
        finally:
            await generator.close()


class TestFactory:
    def test_mock(self):
        assert isinstance(build_generator("mock"), MockGenerator)

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown generation backend"):
            build_generator("nonexistent")


@pytest.mark.integration
class TestOllamaLive:
    @pytest.mark.asyncio
    async def test_generates_text(self):
        generator = OllamaGenerator()
        try:
            if not await generator.is_available():
                pytest.skip("Model qwen2.5:1.5b-instruct not pulled")
            text = await generator.generate("Reply with the single word: yes")
        finally:
            await generator.close()
        assert text.strip()

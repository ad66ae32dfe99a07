from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from mcp.server.fastmcp import FastMCP

from baggage_rag.app import BaggageAssistant
from baggage_rag.config import AppConfig
from baggage_rag.models import AnswerPayload, SourceRef

LOG = logging.getLogger("server")


def _json_payload(model) -> dict:
    return model.model_dump(mode="json")


async def ask_baggage_policy(assistant: BaggageAssistant, question: str) -> AnswerPayload:
    result = await assistant.run(question)
    return AnswerPayload(
        question=question,
        answer=result.answer,
        state=result.state,
        attempts=result.attempts,
        sources=[
            SourceRef(airline=s.airline, chunkIndex=s.chunk_index, distance=s.distance)
            for s in result.sources
        ],
    )


def build_server(
    assistant: Optional[BaggageAssistant] = None,
    config: Optional[AppConfig] = None,
) -> FastMCP:
    config = config or AppConfig.from_env()
    assistant = assistant or BaggageAssistant.from_config(config)

    @asynccontextmanager
    async def lifespan(_: FastMCP) -> AsyncIterator[None]:
        report = await assistant.start(on_progress=lambda msg: LOG.info("%s", msg))
        LOG.info("Index ready: %d chunks (skipped=%s)", report.totalCount, report.skipped)
        try:
            yield
        finally:
            await assistant.close()

    server = FastMCP("baggage-rag", lifespan=lifespan)

    @server.tool(
        name="ask_baggage_policy",
        description="Answer a question about airline baggage policy from the local policy corpus."
    )
    async def ask_baggage_policy_tool(question: str) -> dict:
        payload = await ask_baggage_policy(assistant, question)
        return _json_payload(payload)

    @server.tool(
        name="index_corpus",
        description="Ingest the policy corpus into the vector index. Skips work if already indexed unless rebuild=True."
    )
    async def index_corpus_tool(rebuild: bool = False) -> dict:
        report = await (assistant.rebuild() if rebuild else assistant.start())
        return _json_payload(report)

    @server.tool(name="corpus_status", description="Report the corpus directory, known airlines and index state.")
    def corpus_status_tool() -> dict:
        return _json_payload(assistant.status())

    @server.tool(name="reset_index", description="Delete all indexed chunks and clear the ingestion flag.")
    async def reset_index_tool() -> dict:
        await assistant.reset()
        return _json_payload(assistant.status())

    return server


def main() -> None:
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    server = build_server(config=config)
    server.run()


if __name__ == "__main__":
    main()

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class QueryState(str, Enum):
    EMBEDDING = "embedding"
    RETRIEVING = "retrieving"
    NO_CONTEXT = "no_context"
    BUILDING_PROMPT = "building_prompt"
    GENERATING = "generating"
    SUCCEEDED = "succeeded"
    EXHAUSTED_RETRIES = "exhausted_retries"
    ERRORED = "errored"


TERMINAL_STATES = frozenset(
    {QueryState.SUCCEEDED, QueryState.NO_CONTEXT, QueryState.EXHAUSTED_RETRIES, QueryState.ERRORED}
)


class SourceRef(BaseModel):
    airline: str
    chunkIndex: int
    distance: float


class AnswerPayload(BaseModel):
    question: str
    answer: str
    state: QueryState
    attempts: int
    sources: List[SourceRef]


class IngestionReport(BaseModel):
    skipped: bool
    indexAlreadyExisted: bool
    documents: int
    chunksStored: int
    totalCount: int
    flagPersisted: bool
    startedAt: datetime
    finishedAt: datetime


class CorpusStatus(BaseModel):
    corpusDir: str
    airlines: List[str]
    indexed: bool
    chunkCount: int
    lastIngestion: Optional[IngestionReport] = None

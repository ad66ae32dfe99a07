"""
Persisted "corpus already embedded" flag.

A tiny JSON document keyed by flag name. A missing or unreadable file reads
as ``False``; that is safe because re-ingestion upserts by deterministic id.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

LOG = logging.getLogger("storage.index_state")

KEY_DOCUMENTS_VECTORIZED = "documents_vectorized"


class IndexStateStore:
    """Boolean flag persisted as JSON at ``path``."""

    def __init__(self, path: Path | str, key: str = KEY_DOCUMENTS_VECTORIZED) -> None:
        self._path = Path(path)
        self._key = key

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            LOG.warning("Unreadable index state at %s, treating as not indexed: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            LOG.warning("Malformed index state at %s, treating as not indexed", self._path)
            return {}
        return data

    def _write(self, data: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.replace(tmp, self._path)

    def is_indexed(self) -> bool:
        return self._read().get(self._key) is True

    def mark_indexed(self) -> None:
        data = self._read()
        data[self._key] = True
        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        self._write(data)
        LOG.info("Index state set: %s=true", self._key)

    def reset(self) -> None:
        data = self._read()
        data[self._key] = False
        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        self._write(data)
        LOG.info("Vectorization flag reset")

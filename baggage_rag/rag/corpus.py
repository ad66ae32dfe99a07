"""
Corpus loading: one plain-text policy file per airline.

The file name without its extension is the airline identifier; nothing else
is read from the file besides its text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from baggage_rag.errors import InitializationError

LOG = logging.getLogger("rag.corpus")

DEFAULT_PATTERN = "*.txt"


@dataclass
class PolicyDocument:
    """Raw text of one airline's baggage policy."""

    airline: str
    text: str
    path: Path


def _policy_files(directory: Path, pattern: str) -> list[Path]:
    if not directory.is_dir():
        raise InitializationError(f"Corpus directory not found: {directory}")
    return sorted(p for p in directory.glob(pattern) if p.is_file())


def airlines_in(directory: str | Path, pattern: str = DEFAULT_PATTERN) -> list[str]:
    """List airline identifiers in the corpus directory without reading the files."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return [p.stem for p in sorted(directory.glob(pattern)) if p.is_file()]


def load_corpus(directory: str | Path, pattern: str = DEFAULT_PATTERN) -> list[PolicyDocument]:
    """
    Read every policy file in ``directory``.

    Raises:
        InitializationError: directory missing or no readable policy files
    """
    directory = Path(directory)
    files = _policy_files(directory, pattern)
    LOG.info("Found %d policy files in %s", len(files), directory)

    documents: list[PolicyDocument] = []
    for path in files:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            LOG.error("Error reading policy file %s: %s", path, exc)
            continue
        documents.append(PolicyDocument(airline=path.stem, text=text, path=path))

    if not documents:
        raise InitializationError(f"No policy documents found in {directory} (pattern {pattern!r})")

    return documents

"""
Answer generation: local LLM backends, prompt construction, bounded retry
and the per-query orchestrator.
"""

from __future__ import annotations

"""
baggage-rag: on-device question answering over airline baggage policies.

Policy documents are chunked, embedded with a local sentence-transformers
model and stored in an embedded Chroma index. Questions are answered by
retrieving the closest chunks and handing them to a local LLM (Ollama).

Usage::

    from baggage_rag.app import BaggageAssistant
    from baggage_rag.config.settings import AppConfig

    async with BaggageAssistant.from_config(AppConfig.from_env()) as assistant:
        await assistant.start()
        print(await assistant.answer("What is the carry-on limit for Ryanair?"))
"""

__version__ = "0.1.0"

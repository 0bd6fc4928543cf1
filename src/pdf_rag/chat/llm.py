"""LLM initialisation — single place to swap providers.

Supports two modes:

1. **Local OpenAI-compatible server** (default) — ``LLM_BASE_URL`` points
   at e.g. Ollama's ``/v1`` endpoint, so ``ChatOpenAI`` works unchanged.
2. **OpenAI cloud** — set ``LLM_BASE_URL`` to an empty string and provide
   ``OPENAI_API_KEY``.
"""

from __future__ import annotations

import logging

from langchain_openai import ChatOpenAI

from pdf_rag.config import settings

logger = logging.getLogger(__name__)


def get_llm(temperature: float | None = None) -> ChatOpenAI:
    """Return the configured streaming chat model.

    When ``settings.llm_base_url`` is set the client is pointed at that
    server instead of the OpenAI cloud API.  A dummy API key
    (``"EMPTY"``) is used because local servers do not require
    authentication.
    """
    kwargs: dict = {
        "model": settings.llm_model_name,
        "temperature": settings.llm_temperature if temperature is None else temperature,
        "streaming": True,
    }

    if settings.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", settings.llm_base_url)
        kwargs["base_url"] = settings.llm_base_url
        # Local servers ignore the key; LangChain requires a non-empty value.
        kwargs["api_key"] = settings.openai_api_key or "EMPTY"
    else:
        kwargs["api_key"] = settings.openai_api_key

    return ChatOpenAI(**kwargs)

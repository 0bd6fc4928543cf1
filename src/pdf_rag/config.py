"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # LLM
    openai_api_key: str = Field(default="", description="API key for the chat endpoint (dummy value for Ollama)")
    llm_model_name: str = Field(default="phi3:mini", description="Chat model identifier")
    llm_base_url: str = Field(
        default="http://localhost:11434/v1",
        description=(
            "Base URL of an OpenAI-compatible chat API. Defaults to a local "
            "Ollama server; leave empty to use OpenAI cloud."
        ),
    )
    llm_temperature: float = 0.0

    # Vector store
    chroma_host: str = "localhost"
    chroma_port: int = 8000
    chroma_collection: str = "pdf_topics"
    distance_metric: Literal["cosine", "l2", "ip"] = "cosine"

    # Embedding
    embedding_model: str = "sentence-transformers/all-mpnet-base-v2"
    embedding_dimension: int = Field(default=768, gt=0)

    # Ingestion
    pdf_folder: str = "./pdfs"
    chunk_max_words: int = Field(default=800, ge=1)
    embed_max_concurrency: int = Field(default=40, ge=1)

    # Retrieval / context assembly
    search_k: int = Field(default=5, ge=1)
    score_threshold: float = 0.50
    context_char_budget: int = Field(default=700, ge=0)
    memory_char_budget: int = Field(default=2500, ge=0)
    memory_window: int = Field(default=5, ge=0)

    # Generation
    generation_timeout: float = Field(default=250.0, gt=0, description="Seconds before a streamed answer is cut off")
    warmup_timeout: float = Field(default=10.0, gt=0)

    log_level: str = "WARNING"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton — import `settings` wherever needed.
settings = Settings()

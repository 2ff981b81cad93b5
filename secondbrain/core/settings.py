"""Application settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_prompts_path() -> Path:
    # secondbrain/core/settings.py -> project_root/config/prompts.yaml
    return Path(__file__).resolve().parents[2] / "config" / "prompts.yaml"


class Settings(BaseSettings):
    """Runtime settings for the application."""

    replicate_api_token: str = Field(default="")
    milvus_uri: str = Field(default="")
    collection_name: str = Field(default="secondbrain")
    # Embeddings configuration
    embeddings_model: str = Field(default="openai/text-embedding-3-small")
    embedding_dim: int = Field(default=1536)
    # Similarity metrics only: scores below the threshold are dropped.
    distance_metric: Literal["COSINE", "IP"] = Field(default="COSINE")
    # Language models
    answer_model: str = Field(default="openai/gpt-5-nano")
    classifier_model: str = Field(default="openai/gpt-5-structured")
    llm_max_completion_tokens: int = Field(default=400)
    llm_log_payloads: bool = Field(default=False)
    prompts_path: Path = Field(default_factory=_default_prompts_path)
    # Retrieval pipeline
    # Bounded so a chunk fits the 65535-byte text column at 4 bytes per char.
    chunk_max_length: int = Field(default=1000, gt=0, le=16000)
    chunk_overlap: int = Field(default=200)
    score_threshold: float = Field(default=0.2)
    max_context_chars: int = Field(default=4000)
    log_level: str = Field(default="INFO")
    service_name: str = Field(default="secondbrain")
    environment: str = Field(default="development")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        # Be lenient with env var names (e.g., MILVUS_URI vs milvus_uri)
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("distance_metric", mode="before")
    @classmethod
    def upper_metric(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


@lru_cache
def get_settings() -> Settings:
    """Return application settings instance."""
    return Settings()


__all__ = ["Settings", "get_settings"]

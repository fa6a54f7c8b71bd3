"""Runtime configuration for the RagChat services."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_SEARCH_LIMIT = 8


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="ragchat_", env_file=".env", case_sensitive=False, extra="ignore")

    environment: Literal["dev", "test", "prod"] = "dev"

    # Hosted model provider (Gemini)
    google_api_key: SecretStr | None = None

    embedding_model: str = "models/text-embedding-004"
    use_model_embeddings: bool = False
    # Dimension of the offline hash embeddings; hosted models decide their own
    embedding_dim: int = 768

    generator_model: str = "gemini-1.5-flash-8b"
    use_model_generator: bool = False
    generator_temperature: float = 0.85
    generator_top_p: float = 0.92
    generator_top_k: int = 40
    generator_max_output_tokens: int = 250

    # Vector store
    chroma_collection: str = "ragchat"
    chroma_persist_dir: Path | None = None
    chroma_host: str | None = None
    chroma_port: int | None = None
    chroma_ssl: bool = False
    search_limit: int = MAX_SEARCH_LIMIT

    # Outbound call retries (embedding, search, generation)
    retry_attempts: int = 3
    retry_delay_seconds: float = 2.0

    # CORS
    cors_allow_origins: tuple[str, ...] = ()  # e.g., ("*") to allow all
    cors_allow_credentials: bool = False
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("*",)

    # Terminal client
    api_url: str = "http://localhost:8000"
    client_timeout_seconds: float = 60.0

    @field_validator("search_limit")
    @classmethod
    def _search_limit_range(cls, v: int) -> int:
        if not 1 <= v <= MAX_SEARCH_LIMIT:
            raise ValueError(f"search_limit must be 1-{MAX_SEARCH_LIMIT}, got {v}")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def _attempts_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"retry_attempts must be >= 1, got {v}")
        return v

    @field_validator("retry_delay_seconds")
    @classmethod
    def _delay_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"retry_delay_seconds must be >= 0, got {v}")
        return v

    @property
    def google_api_key_value(self) -> str | None:
        if self.google_api_key is None:
            return None
        return self.google_api_key.get_secret_value() or None


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()

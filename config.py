"""
Runtime settings, read from the environment (and ``.env`` via python-dotenv
at the entry points).
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Ollama
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "qwen3:latest"
    ollama_timeout: float = 600.0  # model inference is slow
    ai_decision_provider: str = "ollama"

    # Uploads and results
    max_upload_bytes: int = _DEFAULT_MAX_UPLOAD_BYTES
    result_ttl_seconds: float = 900.0

    # Server
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

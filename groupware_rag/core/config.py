"""
Configuration for the retrieval index.

Process-level settings come from environment variables. Provider settings
(API keys, URLs, models) come from the host's keyed configuration mapping and
are validated before any network call is attempted.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, field_validator

from .errors import ConfigurationError

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/rag.db")

# Host source-record database (addressbook, calendar, infolog tables)
SOURCE_DB_PATH = os.getenv("SOURCE_DB_PATH", "./data/groupware.db")

# Queue drain configuration
DRAIN_BATCH_SIZE = int(os.getenv("DRAIN_BATCH_SIZE", "10"))
DRAIN_INTERVAL_SEC = int(os.getenv("DRAIN_INTERVAL_SEC", "60"))

# Prefix for provider settings read from the environment, e.g. RAG_EMBEDDING_API_KEY
ENV_PREFIX = "RAG_"

# Version string
VERSION = "1.0.0"

# Fixed retrieval depth for answers
SEARCH_TOP_K = 5

# Character budget for text sent to the embedding provider
EMBED_MAX_CHARS = 8000

PROVIDER_TIMEOUT_SEC = 60


class ProviderSettings(BaseModel):
    """Embedding and LLM provider settings from the host configuration store."""

    embedding_provider: str = "openai"
    embedding_api_key: str = ""
    embedding_api_url: str = ""
    embedding_model: str = "text-embedding-ada-002"
    llm_provider: str = "openai"
    llm_api_key: str = ""
    llm_api_url: str = ""
    llm_model: str = "gpt-3.5-turbo"
    llm_temperature: float = 0.3
    llm_max_tokens: int = 600

    @field_validator('embedding_api_key', 'embedding_api_url', 'llm_api_key', 'llm_api_url', mode='before')
    @classmethod
    def strip_strings(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator('llm_temperature')
    @classmethod
    def temperature_in_range(cls, v):
        if not 0.0 <= v <= 2.0:
            raise ValueError('llm_temperature must be between 0.0 and 2.0')
        return v

    @field_validator('llm_max_tokens')
    @classmethod
    def max_tokens_positive(cls, v):
        if v < 1:
            raise ValueError('llm_max_tokens must be >= 1')
        return v

    def require_embedding(self) -> "ProviderSettings":
        """Fail fast if the embedding provider cannot be called."""
        if not self.embedding_api_key:
            raise ConfigurationError(
                "Embedding API key not configured (embedding_api_key). "
                "Enter the provider API key in the site configuration."
            )
        if not self.embedding_api_url:
            raise ConfigurationError(
                "Embedding API URL not configured (embedding_api_url), "
                "e.g. https://api.openai.com/v1."
            )
        return self

    def require_llm(self) -> "ProviderSettings":
        """Fail fast if the summarizer provider cannot be called."""
        if not self.llm_api_key:
            raise ConfigurationError("LLM API key not configured (llm_api_key).")
        if not self.llm_api_url:
            raise ConfigurationError(
                "LLM API URL not configured (llm_api_url), e.g. https://api.openai.com/v1."
            )
        return self


def settings_from_mapping(values: Mapping[str, Any]) -> ProviderSettings:
    """Build provider settings from a host configuration mapping.

    Unknown keys are ignored and empty values fall back to defaults, so the
    host store can hold unrelated settings.
    """
    known = ProviderSettings.model_fields.keys()
    cleaned = {k: v for k, v in values.items() if k in known and v not in (None, "")}
    try:
        return ProviderSettings(**cleaned)
    except ValueError as e:
        raise ConfigurationError(f"Invalid provider configuration: {e}") from e


def settings_from_env() -> ProviderSettings:
    """Build provider settings from RAG_* environment variables."""
    values = {}
    for key in ProviderSettings.model_fields:
        raw = os.getenv(f"{ENV_PREFIX}{key.upper()}")
        if raw is not None:
            values[key] = raw
    return settings_from_mapping(values)


def configuration_status(settings: ProviderSettings) -> Dict[str, Dict[str, Any]]:
    """Which provider settings are filled in.

    API keys are reported by length only; URLs and models are shown as set.
    """
    return {
        "embedding": {
            "provider": settings.embedding_provider,
            "api_key_set": bool(settings.embedding_api_key),
            "api_key_chars": len(settings.embedding_api_key),
            "api_url": settings.embedding_api_url or None,
            "model": settings.embedding_model,
        },
        "llm": {
            "provider": settings.llm_provider,
            "api_key_set": bool(settings.llm_api_key),
            "api_key_chars": len(settings.llm_api_key),
            "api_url": settings.llm_api_url or None,
            "model": settings.llm_model,
        },
    }


def debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory(db_path: Optional[str] = None):
    """Ensure the database directory exists."""
    Path(db_path or DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def is_drain_scheduler_enabled() -> bool:
    """Check if the periodic drain scheduler is enabled."""
    return os.getenv("DRAIN_SCHEDULER_ENABLED", "false").lower() == "true"


def get_drain_interval() -> int:
    """Get periodic drain interval in seconds."""
    return DRAIN_INTERVAL_SEC


def get_drain_batch_size() -> int:
    """Get the number of queue items claimed per drain."""
    return DRAIN_BATCH_SIZE


def validate_drain_config():
    """Validate drain configuration and return any issues."""
    issues = []

    if DRAIN_INTERVAL_SEC < 1:
        issues.append("DRAIN_INTERVAL_SEC must be >= 1")

    if DRAIN_BATCH_SIZE < 1:
        issues.append("DRAIN_BATCH_SIZE must be >= 1")

    return issues

"""
Tests for provider settings and environment configuration.
"""

import pytest

from groupware_rag.core import config
from groupware_rag.core.config import (
    ProviderSettings,
    configuration_status,
    settings_from_env,
    settings_from_mapping,
)
from groupware_rag.core.errors import ConfigurationError


class TestProviderSettings:

    def test_defaults(self):
        settings = ProviderSettings()
        assert settings.embedding_provider == "openai"
        assert settings.embedding_model == "text-embedding-ada-002"
        assert settings.llm_model == "gpt-3.5-turbo"
        assert settings.llm_temperature == 0.3
        assert settings.llm_max_tokens == 600

    def test_require_embedding_names_missing_key(self):
        with pytest.raises(ConfigurationError, match="embedding_api_key"):
            ProviderSettings(embedding_api_url="https://x.test").require_embedding()

    def test_require_embedding_names_missing_url(self):
        with pytest.raises(ConfigurationError, match="embedding_api_url"):
            ProviderSettings(embedding_api_key="k").require_embedding()

    def test_require_llm(self):
        settings = ProviderSettings(llm_api_key="k", llm_api_url="https://x.test")
        assert settings.require_llm() is settings
        with pytest.raises(ConfigurationError, match="llm_api_key"):
            ProviderSettings(llm_api_url="https://x.test").require_llm()

    def test_whitespace_key_counts_as_missing(self):
        with pytest.raises(ConfigurationError):
            ProviderSettings(embedding_api_key="   ", embedding_api_url="https://x.test").require_embedding()


class TestFromMapping:

    def test_ignores_unknown_and_empty_values(self):
        settings = settings_from_mapping({
            "embedding_api_key": "k",
            "embedding_model": "",
            "chunk_size": "1000",
            "llm_temperature": "0.7",
        })
        assert settings.embedding_api_key == "k"
        assert settings.embedding_model == "text-embedding-ada-002"
        assert settings.llm_temperature == 0.7

    def test_invalid_value_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            settings_from_mapping({"llm_max_tokens": "0"})

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("RAG_EMBEDDING_API_KEY", "env-key")
        monkeypatch.setenv("RAG_EMBEDDING_API_URL", "https://env.test/v1")
        monkeypatch.setenv("RAG_LLM_MAX_TOKENS", "300")

        settings = settings_from_env()

        assert settings.embedding_api_key == "env-key"
        assert settings.llm_max_tokens == 300
        settings.require_embedding()


class TestDrainConfig:

    def test_validate_drain_config_ok(self):
        assert config.validate_drain_config() == []

    def test_validate_drain_config_issues(self, monkeypatch):
        monkeypatch.setattr(config, "DRAIN_BATCH_SIZE", 0)
        assert "DRAIN_BATCH_SIZE must be >= 1" in config.validate_drain_config()

    def test_scheduler_flag(self, monkeypatch):
        monkeypatch.setenv("DRAIN_SCHEDULER_ENABLED", "true")
        assert config.is_drain_scheduler_enabled() is True
        monkeypatch.setenv("DRAIN_SCHEDULER_ENABLED", "false")
        assert config.is_drain_scheduler_enabled() is False


class TestConfigurationStatus:

    def test_keys_reported_by_length_only(self):
        settings = ProviderSettings(
            embedding_api_key="sk-secret-value",
            embedding_api_url="https://api.example.test/v1",
        )

        status = configuration_status(settings)

        assert status["embedding"]["api_key_set"] is True
        assert status["embedding"]["api_key_chars"] == 15
        assert status["embedding"]["api_url"] == "https://api.example.test/v1"
        assert "sk-secret-value" not in repr(status)
        assert status["llm"] == {
            "provider": "openai",
            "api_key_set": False,
            "api_key_chars": 0,
            "api_url": None,
            "model": "gpt-3.5-turbo",
        }

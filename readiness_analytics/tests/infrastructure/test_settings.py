"""
Tests for configuration settings.
"""

import pytest

from readiness_analytics.infrastructure.config.settings import Settings
from readiness_analytics.infrastructure.data.config import (
    PipelineConfig,
    PipelineConfigError,
    ProviderConfigError,
)


def test_pipeline_config_defaults():
    """Test default pipeline configuration settings"""
    config = Settings(env={}).get_pipeline_config()

    assert config.provider == "openai"
    assert config.parallelism == 10
    assert config.retry_failures is True
    assert config.priority == "medium"
    assert config.timeout_ms == 45000
    assert config.timeout_seconds == 45.0


def test_pipeline_config_overrides():
    """Test that environment variables override default settings"""
    settings = Settings(
        env={
            "LLM_PROVIDER": "Gemini",
            "LLM_BATCH_PARALLELISM": "4",
            "LLM_RETRY_FAILURES": "false",
            "LLM_BATCH_PRIORITY": "HIGH",
            "LLM_RETRY_ATTEMPTS": "3",
        }
    )
    config = settings.get_pipeline_config()

    assert config.provider == "gemini"
    assert config.parallelism == 4
    assert config.retry_failures is False
    assert config.priority == "high"
    assert config.retry_attempts == 3


def test_out_of_range_values_are_clamped():
    config = Settings(env={"LLM_TIMEOUT_MS": "999999", "LLM_RETRY_ATTEMPTS": "50"}).get_pipeline_config()

    assert config.timeout_ms == 300000
    assert config.retry_attempts == 5


def test_invalid_numbers_fall_back_to_defaults():
    config = Settings(env={"LLM_BATCH_PARALLELISM": "many"}).get_pipeline_config()
    assert config.parallelism == 10


def test_invalid_pipeline_values_are_rejected():
    with pytest.raises(ProviderConfigError):
        PipelineConfig(provider="mystery")
    with pytest.raises(PipelineConfigError):
        PipelineConfig(parallelism=0)
    with pytest.raises(PipelineConfigError):
        PipelineConfig(priority="urgent")


def test_alert_settings_from_environment():
    settings = Settings(
        env={
            "DEFAULT_MONTHLY_BUDGET_CENTS": "50000",
            "API_USAGE_ALERTS_ENABLED": "no",
            "ALERT_ERROR_RATE_PCT": "35",
        }
    )
    alerts = settings.get_alert_settings()

    assert alerts.monthly_budget_cents == 50000
    assert alerts.daily_limit_cents == 10000
    assert alerts.alerts_enabled is False
    assert alerts.thresholds.error_rate_pct == 35.0
    assert alerts.thresholds.monthly_critical_pct == 90.0


def test_llm_config_per_provider():
    settings = Settings(env={"OPENAI_API_KEY": "sk-test", "GEMINI_MODEL": "gemini-2.5-pro"})

    openai_config = settings.get_llm_config("openai")
    assert openai_config["api_key"] == "sk-test"
    assert openai_config["model"] == "gpt-4o"
    assert openai_config["timeout_seconds"] == 45.0

    gemini_config = settings.get_llm_config("gemini")
    assert gemini_config["model"] == "gemini-2.5-pro"
    assert gemini_config["api_key"] == ""


def test_settings_summary_masks_keys():
    summary = Settings(env={"OPENAI_API_KEY": "sk-secret", "LLM_PROVIDER": "openai"}).get_settings_summary()

    assert summary["env_vars"]["OPENAI_API_KEY"] == "***"
    assert summary["env_vars"]["LLM_PROVIDER"] == "openai"
    assert summary["pipeline"]["parallelism"] == 10


def test_env_file_is_overridden_by_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("LLM_BATCH_PARALLELISM=3\nLLM_BATCH_PRIORITY=low\n")
    monkeypatch.setenv("LLM_BATCH_PARALLELISM", "7")
    monkeypatch.delenv("LLM_BATCH_PRIORITY", raising=False)
    monkeypatch.delenv("LLM_PROVIDER", raising=False)

    config = Settings(env_file=str(env_file)).get_pipeline_config()

    assert config.parallelism == 7
    assert config.priority == "low"

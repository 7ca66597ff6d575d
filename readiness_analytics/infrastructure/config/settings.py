"""Application settings and configuration

Settings are read from the process environment, overlaid on an optional
``.env`` file. Typed configs for the batch pipeline, the provider adapters
and the default alert settings are built from them on request.
"""

import os
import logging
from dataclasses import asdict
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

from readiness_analytics.infrastructure.constants.llm_constants import (
    DEFAULT_DAILY_LIMIT_CENTS,
    DEFAULT_DATABASE_URL,
    DEFAULT_MONTHLY_BUDGET_CENTS,
    DEFAULT_PARALLELISM,
    DEFAULT_PRIORITY,
    DEFAULT_PROVIDER,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_FAILURES,
    DEFAULT_RETRY_MAX_DELAY,
    DEFAULT_TIMEOUT_MS,
    ENV_ALERT_ERROR_RATE_MIN_ENTRIES,
    ENV_ALERT_ERROR_RATE_PCT,
    ENV_ALERT_ERROR_RATE_WINDOW,
    ENV_ALERT_MONTHLY_CRITICAL_PCT,
    ENV_ALERT_MONTHLY_WARNING_PCT,
    ENV_API_USAGE_ALERTS_ENABLED,
    ENV_DATABASE_URL,
    ENV_DEFAULT_DAILY_LIMIT_CENTS,
    ENV_DEFAULT_MONTHLY_BUDGET_CENTS,
    ENV_GEMINI_API_KEY,
    ENV_GEMINI_MODEL,
    ENV_LLM_BATCH_PARALLELISM,
    ENV_LLM_BATCH_PRIORITY,
    ENV_LLM_MAX_TOKENS,
    ENV_LLM_PROVIDER,
    ENV_LLM_RETRY_ATTEMPTS,
    ENV_LLM_RETRY_FAILURES,
    ENV_LLM_TEMPERATURE,
    ENV_LLM_TIMEOUT_MS,
    ENV_OPENAI_API_KEY,
    ENV_OPENAI_MODEL,
    ERROR_RATE_MIN_ENTRIES,
    ERROR_RATE_WARNING_PCT,
    ERROR_RATE_WINDOW,
    GEMINI_MAX_TOKENS,
    GEMINI_MODEL_NAME,
    GEMINI_TEMPERATURE,
    MONTHLY_BUDGET_CRITICAL_PCT,
    MONTHLY_BUDGET_WARNING_PCT,
    OPENAI_MAX_TOKENS,
    OPENAI_MODEL_NAME,
    OPENAI_TEMPERATURE,
)
from readiness_analytics.infrastructure.data.config import PipelineConfig
from readiness_analytics.schemas import AlertSettings, AlertThresholds


class Settings:
    """Manages application settings and configuration"""

    def __init__(self, env: Optional[Mapping[str, str]] = None, env_file: str = ".env"):
        self.logger = logging.getLogger(__name__)
        self._env_vars: Dict[str, str] = {}
        self._load_env_vars(env, env_file)

        self.database_url = self._get_str(ENV_DATABASE_URL, DEFAULT_DATABASE_URL)
        self.llm_provider = self._get_str(ENV_LLM_PROVIDER, DEFAULT_PROVIDER).lower()

        # Set default log level for httpx and httpcore to reduce debug noise
        logging.getLogger("httpx").setLevel(logging.INFO)
        logging.getLogger("httpcore").setLevel(logging.INFO)

    def _load_env_vars(self, env: Optional[Mapping[str, str]], env_file: str):
        """Load environment variables, with real environment overriding .env"""
        if env is not None:
            self._env_vars = dict(env)
            return

        if env_file and os.path.exists(env_file):
            self._env_vars.update(
                {k: v for k, v in dotenv_values(env_file).items() if v is not None}
            )
        self._env_vars.update(os.environ)

    def _get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get string value from environment"""
        value = self._env_vars.get(key)
        if value is None or value == "":
            return default
        return value

    def _get_int(self, key: str, default: Optional[int] = None) -> Optional[int]:
        """Get integer value from environment"""
        value = self._get_str(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            self.logger.warning(f"Ignoring non-integer value for {key}: {value!r}")
            return default

    def _get_float(self, key: str, default: Optional[float] = None) -> Optional[float]:
        """Get float value from environment"""
        value = self._get_str(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            self.logger.warning(f"Ignoring non-numeric value for {key}: {value!r}")
            return default

    def _get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        """Get boolean value from environment"""
        value = self._get_str(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def get_pipeline_config(self) -> PipelineConfig:
        """Create batch pipeline configuration"""
        return PipelineConfig(
            provider=self.llm_provider,
            parallelism=self._get_int(ENV_LLM_BATCH_PARALLELISM, DEFAULT_PARALLELISM),
            retry_failures=self._get_bool(ENV_LLM_RETRY_FAILURES, DEFAULT_RETRY_FAILURES),
            priority=self._get_str(ENV_LLM_BATCH_PRIORITY, DEFAULT_PRIORITY).lower(),
            timeout_ms=self._get_int(ENV_LLM_TIMEOUT_MS, DEFAULT_TIMEOUT_MS),
            retry_attempts=self._get_int(ENV_LLM_RETRY_ATTEMPTS, DEFAULT_RETRY_ATTEMPTS),
            retry_base_delay=DEFAULT_RETRY_BASE_DELAY,
            retry_max_delay=DEFAULT_RETRY_MAX_DELAY,
        )

    def get_alert_settings(self) -> AlertSettings:
        """Create default alert settings used when an organization has none"""
        thresholds = AlertThresholds(
            monthly_critical_pct=self._get_float(
                ENV_ALERT_MONTHLY_CRITICAL_PCT, MONTHLY_BUDGET_CRITICAL_PCT
            ),
            monthly_warning_pct=self._get_float(
                ENV_ALERT_MONTHLY_WARNING_PCT, MONTHLY_BUDGET_WARNING_PCT
            ),
            error_rate_pct=self._get_float(ENV_ALERT_ERROR_RATE_PCT, ERROR_RATE_WARNING_PCT),
            error_rate_window=self._get_int(ENV_ALERT_ERROR_RATE_WINDOW, ERROR_RATE_WINDOW),
            error_rate_min_entries=self._get_int(
                ENV_ALERT_ERROR_RATE_MIN_ENTRIES, ERROR_RATE_MIN_ENTRIES
            ),
        )
        return AlertSettings(
            monthly_budget_cents=self._get_int(
                ENV_DEFAULT_MONTHLY_BUDGET_CENTS, DEFAULT_MONTHLY_BUDGET_CENTS
            ),
            daily_limit_cents=self._get_int(
                ENV_DEFAULT_DAILY_LIMIT_CENTS, DEFAULT_DAILY_LIMIT_CENTS
            ),
            alerts_enabled=self._get_bool(ENV_API_USAGE_ALERTS_ENABLED, True),
            thresholds=thresholds,
        )

    def get_llm_config(self, provider: Optional[str] = None) -> Dict[str, Any]:
        """Get provider adapter configuration as a dictionary"""
        provider_name = (provider or self.llm_provider).lower()
        pipeline = self.get_pipeline_config()
        if provider_name == "gemini":
            config = {
                "model": self._get_str(ENV_GEMINI_MODEL, GEMINI_MODEL_NAME),
                "temperature": self._get_float(ENV_LLM_TEMPERATURE, GEMINI_TEMPERATURE),
                "max_tokens": self._get_int(ENV_LLM_MAX_TOKENS, GEMINI_MAX_TOKENS),
                "api_key": self._get_str(ENV_GEMINI_API_KEY, ""),
            }
        else:
            config = {
                "model": self._get_str(ENV_OPENAI_MODEL, OPENAI_MODEL_NAME),
                "temperature": self._get_float(ENV_LLM_TEMPERATURE, OPENAI_TEMPERATURE),
                "max_tokens": self._get_int(ENV_LLM_MAX_TOKENS, OPENAI_MAX_TOKENS),
                "api_key": self._get_str(ENV_OPENAI_API_KEY, ""),
            }
        config["timeout_seconds"] = pipeline.timeout_seconds
        return config

    def get_settings_summary(self) -> Dict[str, Any]:
        """Get summary of current settings"""
        return {
            "pipeline": asdict(self.get_pipeline_config()),
            "alerts": self.get_alert_settings().model_dump(),
            "env_vars": {
                k: "***" if "key" in k.lower() or "secret" in k.lower() else v
                for k, v in self._env_vars.items()
                if k.startswith(("LLM_", "OPENAI_", "GEMINI_", "DEFAULT_", "ALERT_", "API_"))
            },
        }


# Global instance
settings = Settings()

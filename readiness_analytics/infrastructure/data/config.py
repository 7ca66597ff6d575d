from dataclasses import dataclass
import logging

from readiness_analytics.infrastructure.constants.llm_constants import (
    DEFAULT_PARALLELISM,
    DEFAULT_PRIORITY,
    DEFAULT_PROVIDER,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_FAILURES,
    DEFAULT_RETRY_MAX_DELAY,
    DEFAULT_TIMEOUT_MS,
    MAX_RETRY_ATTEMPTS,
    MAX_TIMEOUT_MS,
    MIN_TIMEOUT_MS,
    SUPPORTED_PROVIDERS,
)

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Base class for configuration related errors"""
    pass


class ProviderConfigError(ConfigurationError):
    """Raised when the provider configuration is invalid"""
    pass


class PipelineConfigError(ConfigurationError):
    """Raised when batch pipeline configuration is invalid"""
    pass


def clamp(value, lower, upper):
    return max(lower, min(upper, value))


@dataclass
class PipelineConfig:
    provider: str = DEFAULT_PROVIDER
    parallelism: int = DEFAULT_PARALLELISM
    retry_failures: bool = DEFAULT_RETRY_FAILURES
    priority: str = DEFAULT_PRIORITY
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY
    retry_max_delay: float = DEFAULT_RETRY_MAX_DELAY

    def __post_init__(self):
        # Out-of-range numeric values are clamped, structurally invalid ones rejected
        self.timeout_ms = clamp(self.timeout_ms, MIN_TIMEOUT_MS, MAX_TIMEOUT_MS)
        self.retry_attempts = clamp(self.retry_attempts, 0, MAX_RETRY_ATTEMPTS)
        self.validate()

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def validate(self):
        """Validate pipeline configuration"""
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ProviderConfigError(
                f"Unsupported provider: {self.provider}. "
                f"Supported providers are: {', '.join(SUPPORTED_PROVIDERS)}"
            )
        if self.parallelism < 1:
            raise PipelineConfigError("parallelism must be at least 1")
        if self.priority not in ("low", "medium", "high"):
            raise PipelineConfigError(f"Invalid priority: {self.priority}")
        if self.retry_base_delay < 0 or self.retry_max_delay < self.retry_base_delay:
            raise PipelineConfigError(
                "retry delays must be non-negative with max_delay >= base_delay"
            )



"""
Base provider adapter abstraction.

A provider adapter performs one scoring call against an upstream language
model. Adapters render the force-analysis prompt, call their vendor SDK,
price the tokens used and parse the output into a ScoredResult. Every vendor
failure leaves the adapter as a ProviderError so callers only deal with one
error type.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict

from readiness_analytics.infrastructure.constants.llm_constants import (
    DEFAULT_TIMEOUT_MS,
    HEALTH_CHECK_DEGRADED_MS,
    MAX_MAX_TOKENS,
    MAX_TEMPERATURE,
    MIN_MAX_TOKENS,
    MIN_TEMPERATURE,
)
from readiness_analytics.infrastructure.data.config import clamp
from readiness_analytics.schemas import (
    AnalysisRequest,
    HealthStatus,
    ProviderHealth,
    ScoredResult,
)
from readiness_analytics.services.llm.exceptions import ProviderError
from readiness_analytics.services.llm.pricing import estimate_cost_cents
from readiness_analytics.services.llm.prompts.force_analysis import ForceAnalysisPrompts
from readiness_analytics.services.llm.response_parser import parse_force_analysis

logger = logging.getLogger(__name__)

HEALTH_CHECK_PROMPT = 'Reply with the JSON object {"status": "ok"}.'


@dataclass
class ProviderAdapterConfig:
    """Configuration for provider adapters."""

    api_key: str = ""
    model: str = ""
    temperature: float = 0.2
    max_tokens: int = 1200
    top_p: float = 0.95
    timeout_seconds: float = DEFAULT_TIMEOUT_MS / 1000.0
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.temperature = clamp(float(self.temperature), MIN_TEMPERATURE, MAX_TEMPERATURE)
        self.max_tokens = clamp(int(self.max_tokens), MIN_MAX_TOKENS, MAX_MAX_TOKENS)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "ProviderAdapterConfig":
        """Create config from dictionary, keeping unknown keys in ``extra``."""
        known_keys = {"api_key", "model", "temperature", "max_tokens", "top_p", "timeout_seconds"}
        known_params = {k: v for k, v in config.items() if k in known_keys}
        extra_params = {k: v for k, v in config.items() if k not in known_keys}
        return cls(**known_params, extra=extra_params)


@dataclass(frozen=True)
class Completion:
    """Raw completion text and the tokens it consumed."""

    text: str
    tokens_used: int = 0


@dataclass(frozen=True)
class ProviderResponse:
    """A successful scoring call."""

    result: ScoredResult
    tokens_used: int
    cost_cents: Decimal
    model: str


class BaseProviderAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Subclasses implement ``_complete`` for their vendor; prompting, pricing
    and response parsing are shared.
    """

    provider_name: str = "base"

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the adapter with configuration.

        Args:
            config: Configuration dictionary for the adapter
        """
        self.config = ProviderAdapterConfig.from_dict(config)
        self._client = None
        logger.info(f"Initialized {self.__class__.__name__} with model: {self.config.model}")

    @property
    def model_name(self) -> str:
        """Return the model name."""
        return self.config.model

    async def analyze(self, request: AnalysisRequest) -> ProviderResponse:
        """
        Score one answer against the force taxonomy.

        Args:
            request: Classified answer carrying item id, question text,
                expected force and respondent context

        Returns:
            ProviderResponse with the parsed result, tokens and cost

        Raises:
            ProviderError: on any upstream or parsing failure
        """
        completion = await self._complete(
            ForceAnalysisPrompts.system_instruction(),
            ForceAnalysisPrompts.get_prompt(request),
        )
        cost = estimate_cost_cents(self.model_name, completion.tokens_used)
        result = parse_force_analysis(
            request,
            completion.text,
            model=self.model_name,
            tokens_used=completion.tokens_used,
            cost_cents=cost,
        )
        return ProviderResponse(
            result=result,
            tokens_used=completion.tokens_used,
            cost_cents=cost,
            model=self.model_name,
        )

    async def health_check(self) -> ProviderHealth:
        """
        Probe the provider with a trivial call.

        Returns:
            ProviderHealth; slow responses are degraded and errors unhealthy
        """
        start = time.perf_counter()
        try:
            await self._complete("You are a health check endpoint.", HEALTH_CHECK_PROMPT)
        except ProviderError as e:
            logger.warning(f"{self.provider_name} health check failed: {e.message}")
            return ProviderHealth(
                provider=self.provider_name,
                model=self.model_name,
                status=HealthStatus.UNHEALTHY,
                error=f"{e.kind.value}: {e.message}",
            )
        latency_ms = int((time.perf_counter() - start) * 1000)
        status = HealthStatus.HEALTHY if latency_ms < HEALTH_CHECK_DEGRADED_MS else HealthStatus.DEGRADED
        return ProviderHealth(
            provider=self.provider_name,
            model=self.model_name,
            status=status,
            latency_ms=latency_ms,
        )

    def get_model_info(self) -> Dict[str, Any]:
        """
        Get information about the model.

        Returns:
            Dictionary with model information
        """
        return {
            "provider": self.provider_name,
            "model": self.config.model,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "timeout_seconds": self.config.timeout_seconds,
        }

    @abstractmethod
    async def _complete(self, system_instruction: str, prompt: str) -> Completion:
        """
        Run one JSON-mode completion.

        Raises:
            ProviderError: translated from any vendor exception
        """
        pass

    @abstractmethod
    def _get_client(self) -> Any:
        """
        Get or create the underlying client.

        Returns:
            The provider-specific client instance
        """
        pass

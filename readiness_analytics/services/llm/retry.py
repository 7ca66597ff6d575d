"""
Retry policy for provider calls.

The batch orchestrator owns the retry loop so that every attempt can be
written to the usage ledger; this module only decides whether and how long
to wait, and classifies raw vendor exceptions into ProviderError kinds.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Optional

from readiness_analytics.infrastructure.constants.llm_constants import (
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_RETRY_MAX_DELAY,
)
from readiness_analytics.schemas import ProviderErrorKind
from readiness_analytics.services.llm.exceptions import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = DEFAULT_RETRY_ATTEMPTS
    base_delay: float = DEFAULT_RETRY_BASE_DELAY
    max_delay: float = DEFAULT_RETRY_MAX_DELAY
    exponential_base: float = 2.0
    jitter: bool = True

    def get_delay(self, attempt: int) -> float:
        """Calculate delay after the given zero-based failed attempt."""
        delay = min(
            self.base_delay * (self.exponential_base ** attempt),
            self.max_delay
        )
        if self.jitter:
            delay = delay * (0.5 + random.random())
        return delay

    def should_retry(self, error: ProviderError, attempt: int, enabled: bool = True) -> bool:
        """Whether a failed zero-based attempt may be followed by another one."""
        return enabled and error.retryable and attempt < self.max_retries


DEFAULT_RETRY_CONFIG = RetryConfig()

# Immediate retries, for tests and offline runs
NO_DELAY_RETRY_CONFIG = RetryConfig(base_delay=0.0, max_delay=0.0, jitter=False)


async def backoff(config: RetryConfig, attempt: int, label: str = "") -> float:
    """Sleep for the configured delay after a failed attempt and return it."""
    delay = config.get_delay(attempt)
    if delay > 0:
        logger.warning(
            f"Attempt {attempt + 1}/{config.max_retries + 1} failed{' for ' + label if label else ''}. "
            f"Retrying in {delay:.2f}s..."
        )
        await asyncio.sleep(delay)
    return delay


def is_rate_limit_error(error: Exception) -> bool:
    """Check if an error is a rate limit error."""
    error_str = str(error).lower()
    return any(indicator in error_str for indicator in [
        "rate limit",
        "rate_limit",
        "429",
        "too many requests",
        "quota exceeded",
    ])


def is_auth_error(error: Exception) -> bool:
    """Check if an error is an authentication or permission error."""
    error_str = str(error).lower()
    return any(indicator in error_str for indicator in [
        "401",
        "403",
        "unauthorized",
        "permission denied",
        "invalid api key",
        "api key not valid",
    ])


def is_transient_error(error: Exception) -> bool:
    """Check if an error is transient and should be retried."""
    error_str = str(error).lower()
    return any(indicator in error_str for indicator in [
        "timeout",
        "timed out",
        "connection",
        "temporary",
        "503",
        "502",
        "500",
        "internal server error",
        "unavailable",
    ])


def classify_status_code(status_code: Optional[int]) -> Optional[ProviderErrorKind]:
    """Map an upstream HTTP status to an error kind, if it identifies one."""
    if status_code is None:
        return None
    if status_code in (401, 403):
        return ProviderErrorKind.AUTH
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status_code in (408, 504):
        return ProviderErrorKind.TIMEOUT
    if status_code >= 500:
        return ProviderErrorKind.UNAVAILABLE
    if 400 <= status_code < 500:
        return ProviderErrorKind.MALFORMED_REQUEST
    return None


def to_provider_error(error: Exception, status_code: Optional[int] = None) -> ProviderError:
    """
    Translate an arbitrary vendor exception into a ProviderError.

    Args:
        error: Exception raised by the vendor SDK
        status_code: HTTP status if the SDK exposed one

    Returns:
        ProviderError with kind and retryable flag set
    """
    if isinstance(error, ProviderError):
        return error

    kind = classify_status_code(status_code)
    if kind is None:
        if isinstance(error, asyncio.TimeoutError):
            kind = ProviderErrorKind.TIMEOUT
        elif is_auth_error(error):
            kind = ProviderErrorKind.AUTH
        elif is_rate_limit_error(error):
            kind = ProviderErrorKind.RATE_LIMITED
        elif is_transient_error(error):
            kind = ProviderErrorKind.UNAVAILABLE
        else:
            kind = ProviderErrorKind.UNAVAILABLE

    message = str(error) or error.__class__.__name__
    return ProviderError(message, kind=kind, status_code=status_code)

from decimal import Decimal
from typing import Optional

from readiness_analytics.schemas import ProviderErrorKind, UsageStatus

# Kinds that can succeed on a later attempt
RETRYABLE_KINDS = frozenset(
    {
        ProviderErrorKind.RATE_LIMITED,
        ProviderErrorKind.TIMEOUT,
        ProviderErrorKind.UNAVAILABLE,
        ProviderErrorKind.MALFORMED_RESPONSE,
    }
)


class AnalyticsError(Exception):
    """Base exception for the analysis pipeline."""
    pass


class ProviderError(AnalyticsError):
    """Exception raised by provider adapters for a failed call."""

    def __init__(
        self,
        message: str,
        kind: ProviderErrorKind = ProviderErrorKind.UNAVAILABLE,
        retryable: Optional[bool] = None,
        status_code: Optional[int] = None,
        tokens_used: int = 0,
        cost_cents: Decimal = Decimal("0"),
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.retryable = kind in RETRYABLE_KINDS if retryable is None else retryable
        self.status_code = status_code
        self.tokens_used = tokens_used
        self.cost_cents = cost_cents

    @property
    def usage_status(self) -> UsageStatus:
        if self.kind == ProviderErrorKind.TIMEOUT:
            return UsageStatus.TIMEOUT
        return UsageStatus.ERROR

    def __repr__(self) -> str:
        return (
            f"ProviderError(kind={self.kind.value!r}, retryable={self.retryable}, "
            f"message={self.message!r})"
        )


class LedgerWriteError(AnalyticsError):
    """A usage entry could not be persisted. Never propagated to analysis callers."""
    pass


class LedgerReadError(AnalyticsError):
    """Historical usage could not be loaded."""
    pass


class AggregationInputError(AnalyticsError):
    """A scored result has a field outside its valid range."""
    pass


class StoreError(AnalyticsError):
    """Batch logs, results or metrics snapshots could not be read or written."""
    pass

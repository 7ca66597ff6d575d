"""
Token pricing for provider calls.

Rates are cents per 1K tokens. Costs are kept as Decimal with four decimal
places so that per-attempt costs sum exactly across a batch.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from readiness_analytics.infrastructure.constants.llm_constants import (
    DEFAULT_TOKEN_COST_CENTS_PER_1K,
    TOKEN_COSTS_CENTS_PER_1K,
)

logger = logging.getLogger(__name__)

COST_QUANTUM = Decimal("0.0001")
ZERO_COST = Decimal("0")


def rate_for_model(model: str) -> Decimal:
    """Cents per 1K tokens for ``model``; unknown models use the default rate."""
    rate = TOKEN_COSTS_CENTS_PER_1K.get(model)
    if rate is None:
        # Versioned names such as "gpt-4o-2024-08-06" price like their base model
        base = max(
            (name for name in TOKEN_COSTS_CENTS_PER_1K if model.startswith(name)),
            key=len,
            default=None,
        )
        if base is None:
            logger.debug(f"No pricing entry for model {model}, using default rate")
            return Decimal(DEFAULT_TOKEN_COST_CENTS_PER_1K)
        rate = TOKEN_COSTS_CENTS_PER_1K[base]
    return Decimal(rate)


def estimate_cost_cents(model: str, tokens: int) -> Decimal:
    """Cost of ``tokens`` tokens on ``model`` in cents."""
    if tokens <= 0:
        return ZERO_COST
    cost = Decimal(tokens) / Decimal(1000) * rate_for_model(model)
    return cost.quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)

"""
Organization-level aggregation of scored results.

``aggregate`` is a pure function of its input: no I/O and no shared state.
Calling it twice on the same results gives the same metrics.
"""

import logging
import math
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional

from readiness_analytics.infrastructure.constants.llm_constants import THEME_FREQUENCY_LIMIT
from readiness_analytics.schemas import (
    DateRange,
    ForceType,
    OrganizationalMetrics,
    QualityLabel,
    ScoredResult,
    SentimentLabel,
)
from readiness_analytics.services.llm.exceptions import AggregationInputError
from readiness_analytics.utils.timezone_utils import ensure_utc

logger = logging.getLogger(__name__)

QUALITY_WEIGHTS = {
    QualityLabel.POOR: 1,
    QualityLabel.FAIR: 2,
    QualityLabel.GOOD: 3,
    QualityLabel.EXCELLENT: 4,
}


def _round2(value: float) -> float:
    return round(value, 2)


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _check_range(name: str, value, lower: float, upper: float) -> None:
    if (
        not isinstance(value, (int, float))
        or isinstance(value, bool)
        or math.isnan(value)
        or not lower <= value <= upper
    ):
        raise AggregationInputError(f"{name}={value!r} outside [{lower}, {upper}]")


def validate_for_aggregation(result: ScoredResult) -> None:
    """
    Check the fields aggregation depends on.

    Results normally arrive validated, but rows loaded from storage or built
    with ``model_construct`` skip pydantic validation.

    Raises:
        AggregationInputError: on the first out-of-range field
    """
    _check_range("force_strength", result.force_strength, 1, 5)
    _check_range("confidence", result.confidence, 1, 5)
    sentiment = result.sentiment
    if sentiment is None:
        raise AggregationInputError("sentiment is missing")
    _check_range("sentiment.score", sentiment.score, -1, 1)
    try:
        ForceType(result.primary_force)
        SentimentLabel(sentiment.label)
        QualityLabel(result.quality_label)
    except ValueError as e:
        raise AggregationInputError(str(e)) from e


def rank_themes(results: Iterable[ScoredResult], limit: int = THEME_FREQUENCY_LIMIT) -> Dict[str, int]:
    """
    Count theme occurrences, most frequent first.

    Ties keep first-seen order: Counter preserves insertion order and
    ``sorted`` is stable.
    """
    counts: Counter = Counter()
    for result in results:
        for theme in result.themes:
            counts[theme] += 1
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return dict(ranked[:limit])


def _date_range(results: List[ScoredResult]) -> Optional[DateRange]:
    stamps = [ensure_utc(r.analyzed_at) for r in results if r.analyzed_at is not None]
    if not stamps:
        return None
    return DateRange(earliest=min(stamps), latest=max(stamps))


def aggregate(results: Iterable[ScoredResult]) -> OrganizationalMetrics:
    """
    Roll scored results up into organizational metrics.

    Args:
        results: Scored results; out-of-range ones are excluded with a warning

    Returns:
        OrganizationalMetrics; an empty input gives zero values and empty maps
    """
    valid: List[ScoredResult] = []
    excluded = 0
    for result in results:
        try:
            validate_for_aggregation(result)
        except AggregationInputError as e:
            excluded += 1
            logger.warning(f"Excluding result {getattr(result, 'item_id', '?')} from aggregation: {e}")
            continue
        valid.append(result)

    if not valid:
        return OrganizationalMetrics(excluded=excluded)

    force_distribution: Counter = Counter()
    sentiment_distribution: Counter = Counter()
    strengths_by_force: Dict[ForceType, List[float]] = defaultdict(list)
    confidences: List[float] = []
    strengths: List[float] = []
    sentiments: List[float] = []
    quality_points: List[int] = []

    for result in valid:
        force = ForceType(result.primary_force)
        force_distribution[force] += 1
        sentiment_distribution[SentimentLabel(result.sentiment.label)] += 1
        strengths_by_force[force].append(result.force_strength)
        confidences.append(result.confidence)
        strengths.append(result.force_strength)
        sentiments.append(result.sentiment.score)
        quality_points.append(QUALITY_WEIGHTS[QualityLabel(result.quality_label)])

    return OrganizationalMetrics(
        average_confidence=_round2(_mean(confidences)),
        average_force_strength=_round2(_mean(strengths)),
        average_sentiment=_round2(_mean(sentiments)),
        force_distribution=dict(force_distribution),
        sentiment_distribution=dict(sentiment_distribution),
        theme_frequency=rank_themes(valid),
        quality_score=_mean(quality_points),
        force_strength_by_force={
            force: _round2(_mean(values)) for force, values in strengths_by_force.items()
        },
        total_responses=len(valid),
        excluded=excluded,
        date_range=_date_range(valid),
    )

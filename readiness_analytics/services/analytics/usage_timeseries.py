"""
Usage time series, summaries and alert evaluation.

Everything here is a pure function of the ledger entries passed in. Bucket
boundaries come from explicit UTC truncation functions; bucket keys are only
formatted from the truncated datetime afterwards.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from readiness_analytics.infrastructure.constants.llm_constants import TIMEFRAME_DAYS
from readiness_analytics.schemas import (
    Alert,
    AlertSettings,
    AlertSeverity,
    AlertType,
    BreakdownDimension,
    Granularity,
    UsageBreakdown,
    UsageBucket,
    UsageLedgerEntry,
    UsageSummary,
)
from readiness_analytics.utils.timezone_utils import (
    ensure_utc,
    start_of_day,
    start_of_month,
    utc_now,
)

logger = logging.getLogger(__name__)


# Truncation


def truncate_to_hour(dt: datetime) -> datetime:
    return ensure_utc(dt).replace(minute=0, second=0, microsecond=0)


def truncate_to_day(dt: datetime) -> datetime:
    return start_of_day(dt)


def truncate_to_week(dt: datetime) -> datetime:
    """Start of the Sunday-based week containing ``dt``."""
    day = start_of_day(dt)
    days_since_sunday = (day.weekday() + 1) % 7
    return day - timedelta(days=days_since_sunday)


def truncate_to_month(dt: datetime) -> datetime:
    return start_of_month(dt)


TRUNCATORS: Dict[Granularity, Callable[[datetime], datetime]] = {
    Granularity.HOUR: truncate_to_hour,
    Granularity.DAY: truncate_to_day,
    Granularity.WEEK: truncate_to_week,
    Granularity.MONTH: truncate_to_month,
}

KEY_FORMATS = {
    Granularity.HOUR: "%Y-%m-%dT%H:00",
    Granularity.DAY: "%Y-%m-%d",
    Granularity.WEEK: "%Y-%m-%d",
    Granularity.MONTH: "%Y-%m",
}


def truncate(dt: datetime, granularity: Granularity) -> datetime:
    return TRUNCATORS[Granularity(granularity)](dt)


def format_bucket_key(bucket_start: datetime, granularity: Granularity) -> str:
    return bucket_start.strftime(KEY_FORMATS[Granularity(granularity)])


# Bucketing and summaries


def bucket(entries: Iterable[UsageLedgerEntry], granularity: Granularity) -> List[UsageBucket]:
    """
    Group entries into time buckets.

    Args:
        entries: Ledger entries in any order
        granularity: hour, day, week (Sunday start) or month

    Returns:
        One bucket per non-empty window, ascending by start time
    """
    granularity = Granularity(granularity)
    buckets: Dict[datetime, UsageBucket] = {}
    for entry in entries:
        start = truncate(entry.timestamp, granularity)
        current = buckets.get(start)
        if current is None:
            current = UsageBucket(
                bucket_start=start,
                bucket_key=format_bucket_key(start, granularity),
            )
            buckets[start] = current
        current.cost_cents += entry.cost_cents
        current.tokens += entry.tokens_used
        current.requests += 1
        if not entry.is_success:
            current.errors += 1
    return [buckets[start] for start in sorted(buckets)]


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def summarize_usage(entries: Iterable[UsageLedgerEntry]) -> UsageSummary:
    """Totals, mean latency and success/error percentages."""
    entries = list(entries)
    if not entries:
        return UsageSummary()
    successes = sum(1 for entry in entries if entry.is_success)
    total = len(entries)
    return UsageSummary(
        total_cost_cents=sum((entry.cost_cents for entry in entries), Decimal("0")),
        total_tokens=sum(entry.tokens_used for entry in entries),
        total_requests=total,
        average_latency_ms=round(sum(entry.latency_ms for entry in entries) / total, 2),
        success_rate=_percent(successes, total),
        error_rate=_percent(total - successes, total),
    )


def _dimension_key(entry: UsageLedgerEntry, dimension: BreakdownDimension) -> Optional[str]:
    if dimension == BreakdownDimension.PROVIDER:
        return entry.provider
    if dimension == BreakdownDimension.MODEL:
        return entry.model
    return entry.survey_id


def breakdown(
    entries: Iterable[UsageLedgerEntry], dimension: BreakdownDimension
) -> List[UsageBreakdown]:
    """
    Usage grouped by provider, model or survey, highest cost first.

    Entries without a survey id are left out of the survey breakdown.
    """
    dimension = BreakdownDimension(dimension)
    groups: "OrderedDict[str, UsageBreakdown]" = OrderedDict()
    for entry in entries:
        key = _dimension_key(entry, dimension)
        if key is None:
            continue
        group = groups.setdefault(key, UsageBreakdown(key=key))
        group.cost_cents += entry.cost_cents
        group.tokens += entry.tokens_used
        group.requests += 1
        if not entry.is_success:
            group.errors += 1
    return sorted(groups.values(), key=lambda group: -group.cost_cents)


def timeframe_start(timeframe: str, now: Optional[datetime] = None) -> datetime:
    """
    Start of a reporting window such as ``7d``.

    Raises:
        ValueError: for an unknown timeframe
    """
    if timeframe not in TIMEFRAME_DAYS:
        raise ValueError(
            f"Unknown timeframe: {timeframe}. Expected one of {', '.join(TIMEFRAME_DAYS)}"
        )
    return ensure_utc(now or utc_now()) - timedelta(days=TIMEFRAME_DAYS[timeframe])


# Alerts


def _format_pct(value: float) -> str:
    return f"{value:.1f}"


def _format_cents(value: Decimal) -> str:
    return f"{value.normalize():f}" if value else "0"


def evaluate(
    entries: Iterable[UsageLedgerEntry],
    settings: AlertSettings,
    now: Optional[datetime] = None,
) -> List[Alert]:
    """
    Evaluate ledger entries against budget and error-rate thresholds.

    Args:
        entries: Ledger entries for one organization
        settings: Budgets, alert switch and thresholds
        now: Reference time for "today" and "this month" (UTC)

    Returns:
        Alerts in the order monthly budget, daily limit, error rate. At most
        one alert per type.
    """
    if not settings.alerts_enabled:
        return []

    entries = list(entries)
    now = ensure_utc(now or utc_now())
    thresholds = settings.thresholds
    month_start = start_of_month(now)
    day_start = start_of_day(now)
    alerts: List[Alert] = []

    month_cost = sum(
        (e.cost_cents for e in entries if month_start <= e.timestamp <= now), Decimal("0")
    )
    today_cost = sum(
        (e.cost_cents for e in entries if day_start <= e.timestamp <= now), Decimal("0")
    )

    budget = settings.monthly_budget_cents
    if budget:
        used_pct = float(month_cost / Decimal(budget) * 100)
        severity = None
        if used_pct >= thresholds.monthly_critical_pct:
            severity = AlertSeverity.CRITICAL
        elif used_pct >= thresholds.monthly_warning_pct:
            severity = AlertSeverity.WARNING
        if severity is not None:
            alerts.append(
                Alert(
                    type=AlertType.MONTHLY_BUDGET,
                    severity=severity,
                    message=(
                        f"Monthly API budget is {_format_pct(used_pct)}% used "
                        f"({_format_cents(month_cost)}¢ of {budget}¢)"
                    ),
                    metric_value=round(used_pct, 2),
                )
            )

    limit = settings.daily_limit_cents
    if limit and today_cost >= limit:
        alerts.append(
            Alert(
                type=AlertType.DAILY_LIMIT,
                severity=AlertSeverity.CRITICAL,
                message=f"Daily API limit reached: {_format_cents(today_cost)}¢ of {limit}¢",
                metric_value=float(today_cost),
            )
        )

    recent = sorted(entries, key=lambda e: e.timestamp, reverse=True)[: thresholds.error_rate_window]
    if len(recent) >= thresholds.error_rate_min_entries:
        errors = sum(1 for e in recent if not e.is_success)
        error_pct = errors / len(recent) * 100
        if error_pct >= thresholds.error_rate_pct:
            alerts.append(
                Alert(
                    type=AlertType.ERROR_RATE,
                    severity=AlertSeverity.WARNING,
                    message=f"High error rate detected: {_format_pct(error_pct)}% in recent requests",
                    metric_value=round(error_pct, 2),
                )
            )

    if alerts:
        logger.info(f"Usage evaluation raised {len(alerts)} alert(s): {[a.type.value for a in alerts]}")
    return alerts

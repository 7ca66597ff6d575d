"""
Caller-facing facade for the qualitative-analysis pipeline.

The pipeline wires a provider adapter, a usage ledger and an optional
analysis store around the classifier, the batch orchestrator and the pure
analytics functions. Store and ledger-read failures degrade the result
(no persistence, no historical alerts) instead of failing the caller.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from readiness_analytics.infrastructure.config.settings import Settings, settings as app_settings
from readiness_analytics.infrastructure.constants.llm_constants import DEFAULT_TIMEFRAME
from readiness_analytics.infrastructure.persistence.analysis_repository import AnalysisStore
from readiness_analytics.schemas import (
    Alert,
    AlertSettings,
    AnalysisRequest,
    BatchItem,
    BatchOptions,
    BatchResult,
    BreakdownDimension,
    ClassificationSkip,
    Granularity,
    OrganizationalMetrics,
    Priority,
    QuestionDefinition,
    RespondentContext,
    ScoredResult,
    UsageBucket,
    UsageFilter,
    UsageLedgerEntry,
    UsageReport,
)
from readiness_analytics.services.analytics import aggregation, usage_timeseries
from readiness_analytics.services.llm.exceptions import LedgerReadError, StoreError
from readiness_analytics.services.llm.providers.base import BaseProviderAdapter
from readiness_analytics.services.llm.retry import RetryConfig
from readiness_analytics.services.processing import request_classifier
from readiness_analytics.services.processing.batch_orchestrator import BatchOrchestrator
from readiness_analytics.services.usage.ledger import UsageLedger
from readiness_analytics.utils.timezone_utils import utc_now

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """
    Classify, score, account for and aggregate survey answers.
    """

    def __init__(
        self,
        provider: BaseProviderAdapter,
        ledger: UsageLedger,
        store: Optional[AnalysisStore] = None,
        settings: Optional[Settings] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.provider = provider
        self.ledger = ledger
        self.store = store
        self.settings = settings or app_settings

        pipeline_config = self.settings.get_pipeline_config()
        self.pipeline_config = pipeline_config
        self.orchestrator = BatchOrchestrator(
            provider,
            ledger,
            retry_config=retry_config
            or RetryConfig(
                max_retries=pipeline_config.retry_attempts,
                base_delay=pipeline_config.retry_base_delay,
                max_delay=pipeline_config.retry_max_delay,
            ),
            per_call_timeout_seconds=pipeline_config.timeout_seconds,
        )

    def default_options(self, **overrides: Any) -> BatchOptions:
        """Batch options from configured defaults, with per-call overrides."""
        values = {
            "parallelism": self.pipeline_config.parallelism,
            "retry_failures": self.pipeline_config.retry_failures,
            "priority": Priority(self.pipeline_config.priority),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return BatchOptions(**values)

    # Classification

    def classify(
        self,
        question: QuestionDefinition,
        answer: Any,
        context: Optional[RespondentContext] = None,
        options: Optional[BatchOptions] = None,
        item_id: Optional[str] = None,
    ):
        return request_classifier.classify(question, answer, context, options, item_id=item_id)

    def classify_many(
        self, items: Iterable[BatchItem], options: Optional[BatchOptions] = None
    ) -> Tuple[List[AnalysisRequest], List[ClassificationSkip]]:
        return request_classifier.classify_many(items, options)

    # Batches

    async def run_batch(
        self,
        requests: Sequence[AnalysisRequest],
        options: Optional[BatchOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """
        Run a batch and persist its summary and results when a store is configured.

        Store failures are logged; the batch result is returned regardless.
        """
        options = options or self.default_options()
        batch = await self.orchestrator.run_batch(requests, options, cancel_event=cancel_event)

        if self.store is not None and requests:
            batch_id = batch.summary.batch_id
            try:
                await self.store.save_batch(batch.summary, options)
            except StoreError as e:
                logger.warning(f"Batch {batch_id} completed but its log could not be saved: {e}")
            try:
                await self.store.save_results(batch.results, batch_id, options)
            except StoreError as e:
                logger.warning(f"Batch {batch_id} completed but its results could not be saved: {e}")
        return batch

    async def analyze_one(
        self, request: AnalysisRequest, options: Optional[BatchOptions] = None
    ) -> BatchResult:
        """Score a single request through the same retry and accounting path."""
        options = (options or self.default_options()).model_copy(update={"parallelism": 1})
        return await self.run_batch([request], options)

    # Aggregation

    def aggregate(self, results: Iterable[ScoredResult]) -> OrganizationalMetrics:
        return aggregation.aggregate(results)

    async def aggregate_organization(
        self, organization_id: str, survey_id: Optional[str] = None
    ) -> OrganizationalMetrics:
        """
        Aggregate stored results for an organization and snapshot the metrics.

        Raises:
            StoreError: if no store is configured or results cannot be loaded
        """
        if self.store is None:
            raise StoreError("No analysis store is configured")
        results = await self.store.load_results(organization_id, survey_id)
        metrics = aggregation.aggregate(results)
        try:
            await self.store.save_metrics_snapshot(organization_id, metrics, survey_id)
        except StoreError as e:
            logger.warning(f"Could not snapshot metrics for {organization_id}: {e}")
        return metrics

    # Usage

    def bucket(self, entries: Iterable[UsageLedgerEntry], granularity: Granularity) -> List[UsageBucket]:
        return usage_timeseries.bucket(entries, granularity)

    def evaluate(
        self,
        entries: Iterable[UsageLedgerEntry],
        settings: Optional[AlertSettings] = None,
        now: Optional[datetime] = None,
    ) -> List[Alert]:
        return usage_timeseries.evaluate(
            entries, settings or self.settings.get_alert_settings(), now=now
        )

    async def alert_settings_for(self, organization_id: str) -> AlertSettings:
        """Stored settings for an organization, falling back to configured defaults."""
        if self.store is not None:
            try:
                stored = await self.store.get_alert_settings(organization_id)
            except StoreError as e:
                logger.warning(f"Using default alert settings for {organization_id}: {e}")
            else:
                if stored is not None:
                    return stored
        return self.settings.get_alert_settings()

    async def usage_report(
        self,
        organization_id: str,
        timeframe: str = DEFAULT_TIMEFRAME,
        granularity: Granularity = Granularity.DAY,
        provider: Optional[str] = None,
        survey_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> UsageReport:
        """
        Usage summary, time buckets, breakdowns and alerts for an organization.

        Alerts are evaluated over the current month regardless of the report
        timeframe. If the ledger cannot be read the report is empty and
        flagged as degraded.
        """
        now = now or utc_now()
        window_start = usage_timeseries.timeframe_start(timeframe, now)
        alert_start = min(window_start, usage_timeseries.truncate_to_month(now))

        degraded = False
        try:
            history = await self.ledger.query(
                UsageFilter(
                    organization_id=organization_id,
                    provider=provider,
                    survey_id=survey_id,
                    from_time=alert_start,
                    to_time=now,
                )
            )
        except LedgerReadError as e:
            logger.warning(f"Usage history unavailable for {organization_id}: {e}")
            history = []
            degraded = True

        entries = [entry for entry in history if entry.timestamp >= window_start]
        settings = await self.alert_settings_for(organization_id)

        return UsageReport(
            organization_id=organization_id,
            timeframe=timeframe,
            granularity=granularity,
            summary=usage_timeseries.summarize_usage(entries),
            buckets=usage_timeseries.bucket(entries, granularity),
            by_provider=usage_timeseries.breakdown(entries, BreakdownDimension.PROVIDER),
            by_model=usage_timeseries.breakdown(entries, BreakdownDimension.MODEL),
            by_survey=usage_timeseries.breakdown(entries, BreakdownDimension.SURVEY),
            alerts=usage_timeseries.evaluate(history, settings, now=now),
            degraded=degraded,
        )

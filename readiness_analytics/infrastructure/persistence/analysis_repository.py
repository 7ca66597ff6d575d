"""
Analysis store implementation.

Persists batch summaries, scored results, organizational metrics snapshots
and per-organization alert settings using SQLAlchemy. Every database error
surfaces as StoreError so the pipeline can degrade instead of failing.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from readiness_analytics.models import (
    BatchAnalysisLog,
    LLMAnalysisResult,
    OrganizationSettings,
    OrganizationalMetricsSnapshot,
)
from readiness_analytics.schemas import (
    AlertSettings,
    AlertSettingsUpdate,
    AlertThresholds,
    BatchLogResponse,
    BatchOptions,
    BatchSummary,
    OrganizationalMetrics,
    ScoredResult,
    SentimentScore,
)
from readiness_analytics.services.llm.exceptions import StoreError
from readiness_analytics.utils.timezone_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class AnalysisStore:
    """
    Durable store for batch logs, results, metrics snapshots and settings.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Initialize the store.

        Args:
            session_factory: Callable returning a new SQLAlchemy session
        """
        self._session_factory = session_factory

    def _write(self, action: str, rows: list) -> None:
        session = self._session_factory()
        try:
            for row in rows:
                session.merge(row)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error {action}: {e}")
            raise StoreError(f"Error {action}: {e}") from e
        finally:
            session.close()

    async def save_batch(self, summary: BatchSummary, options: BatchOptions) -> None:
        """Persist a batch summary row."""
        row = BatchAnalysisLog(
            batch_id=summary.batch_id,
            organization_id=options.organization_id,
            survey_id=options.survey_id,
            priority=options.priority.value,
            total_requested=summary.total_requested,
            succeeded=summary.succeeded,
            failed=summary.failed,
            cancelled=summary.cancelled,
            total_cost_cents=summary.total_cost_cents,
            total_tokens=summary.total_tokens,
            wall_clock_ms=summary.wall_clock_ms,
            started_at=summary.started_at,
            completed_at=summary.completed_at,
        )
        self._write("saving batch log", [row])

    async def save_results(
        self, results: List[ScoredResult], batch_id: Optional[str], options: BatchOptions
    ) -> None:
        """Persist scored results from one batch."""
        rows = [
            LLMAnalysisResult(
                item_id=result.item_id,
                batch_id=batch_id,
                organization_id=options.organization_id,
                survey_id=options.survey_id,
                primary_force=result.primary_force.value,
                secondary_forces=[force.value for force in result.secondary_forces],
                force_strength=result.force_strength,
                confidence=result.confidence,
                sentiment_score=result.sentiment.score,
                sentiment_label=result.sentiment.label.value,
                themes=list(result.themes),
                quality_label=result.quality_label.value,
                reasoning=result.reasoning,
                summary_insight=result.summary_insight,
                emotional_indicators=list(result.emotional_indicators),
                model=result.model,
                analyzed_at=result.analyzed_at or utc_now(),
            )
            for result in results
        ]
        if rows:
            self._write("saving analysis results", rows)

    async def list_batches(self, organization_id: str, limit: int = 20) -> List[BatchLogResponse]:
        """Most recent batch logs for an organization."""
        session = self._session_factory()
        try:
            rows = (
                session.query(BatchAnalysisLog)
                .filter(BatchAnalysisLog.organization_id == organization_id)
                .order_by(BatchAnalysisLog.created_at.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error listing batch logs: {e}")
            raise StoreError(f"Error listing batch logs: {e}") from e
        finally:
            session.close()

        return [
            BatchLogResponse(
                batch_id=row.batch_id,
                organization_id=row.organization_id,
                survey_id=row.survey_id,
                priority=row.priority,
                summary=BatchSummary(
                    batch_id=row.batch_id,
                    total_requested=row.total_requested,
                    succeeded=row.succeeded,
                    failed=row.failed,
                    cancelled=row.cancelled,
                    total_cost_cents=row.total_cost_cents,
                    total_tokens=row.total_tokens,
                    wall_clock_ms=row.wall_clock_ms,
                    started_at=ensure_utc(row.started_at),
                    completed_at=ensure_utc(row.completed_at),
                ),
            )
            for row in rows
        ]

    async def load_results(
        self, organization_id: str, survey_id: Optional[str] = None
    ) -> List[ScoredResult]:
        """
        Stored results for an organization, optionally limited to one survey.

        Rows are rebuilt with ``model_construct`` so that a bad row is left
        for aggregation to exclude rather than failing the whole load.
        """
        session = self._session_factory()
        try:
            query = session.query(LLMAnalysisResult).filter(
                LLMAnalysisResult.organization_id == organization_id
            )
            if survey_id is not None:
                query = query.filter(LLMAnalysisResult.survey_id == survey_id)
            rows = query.order_by(LLMAnalysisResult.id.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading analysis results: {e}")
            raise StoreError(f"Error loading analysis results: {e}") from e
        finally:
            session.close()

        return [self._row_to_result(row) for row in rows]

    @staticmethod
    def _row_to_result(row: LLMAnalysisResult) -> ScoredResult:
        return ScoredResult.model_construct(
            item_id=row.item_id,
            primary_force=row.primary_force,
            secondary_forces=row.secondary_forces or [],
            force_strength=row.force_strength,
            confidence=row.confidence,
            sentiment=SentimentScore.model_construct(
                score=row.sentiment_score, label=row.sentiment_label
            ),
            themes=row.themes or [],
            quality_label=row.quality_label,
            reasoning=row.reasoning or "",
            emotional_indicators=row.emotional_indicators or [],
            summary_insight=row.summary_insight,
            model=row.model,
            analyzed_at=ensure_utc(row.analyzed_at),
        )

    async def save_metrics_snapshot(
        self,
        organization_id: str,
        metrics: OrganizationalMetrics,
        survey_id: Optional[str] = None,
    ) -> None:
        row = OrganizationalMetricsSnapshot(
            organization_id=organization_id,
            survey_id=survey_id,
            metrics=metrics.model_dump(mode="json"),
            total_responses=metrics.total_responses,
            computed_at=utc_now(),
        )
        self._write("saving organizational metrics snapshot", [row])

    async def get_alert_settings(self, organization_id: str) -> Optional[AlertSettings]:
        """Alert settings for an organization, or None if it has none stored."""
        session = self._session_factory()
        try:
            row = session.get(OrganizationSettings, organization_id)
        except SQLAlchemyError as e:
            logger.error(f"Error loading organization settings: {e}")
            raise StoreError(f"Error loading organization settings: {e}") from e
        finally:
            session.close()

        if row is None:
            return None
        return AlertSettings(
            monthly_budget_cents=row.api_budget_monthly_cents,
            daily_limit_cents=row.api_daily_limit_cents,
            alerts_enabled=row.api_usage_alerts_enabled,
            thresholds=AlertThresholds(**(row.alert_thresholds or {})),
        )

    async def save_alert_settings(self, update: AlertSettingsUpdate) -> AlertSettings:
        thresholds = update.thresholds or AlertThresholds()
        row = OrganizationSettings(
            organization_id=update.organization_id,
            api_budget_monthly_cents=update.monthly_budget_cents,
            api_daily_limit_cents=update.daily_limit_cents,
            api_usage_alerts_enabled=update.alerts_enabled,
            alert_thresholds=thresholds.model_dump(),
            updated_at=utc_now(),
        )
        self._write("saving organization settings", [row])
        return AlertSettings(
            monthly_budget_cents=update.monthly_budget_cents,
            daily_limit_cents=update.daily_limit_cents,
            alerts_enabled=update.alerts_enabled,
            thresholds=thresholds,
        )

"""
FastAPI router for batch qualitative analysis, cost tracking and
organizational metrics.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from readiness_analytics.api.dependencies import get_pipeline
from readiness_analytics.infrastructure.constants.llm_constants import DEFAULT_TIMEFRAME
from readiness_analytics.schemas import (
    AlertSettings,
    AlertSettingsUpdate,
    BatchAnalysisRequest,
    BatchAnalysisResponse,
    BatchLogResponse,
    ClassificationSkip,
    Granularity,
    OrganizationalMetrics,
    OrganizationalMetricsRequest,
    ProviderErrorKind,
    ProviderHealth,
    ScoredResult,
    SingleAnalysisRequest,
    UsageReport,
)
from readiness_analytics.services.analysis_pipeline import AnalysisPipeline
from readiness_analytics.services.llm.exceptions import StoreError
from readiness_analytics.utils.structured_logger import request_end, request_error, request_start

logger = logging.getLogger(__name__)

# Status returned for a failed single-item analysis, by failure kind
ERROR_KIND_STATUS = {
    ProviderErrorKind.AUTH: 401,
    ProviderErrorKind.RATE_LIMITED: 429,
    ProviderErrorKind.TIMEOUT: 504,
    ProviderErrorKind.UNAVAILABLE: 503,
    ProviderErrorKind.MALFORMED_RESPONSE: 502,
    ProviderErrorKind.MALFORMED_REQUEST: 400,
    ProviderErrorKind.CANCELLED: 499,
}

# Router
router = APIRouter(
    prefix="/api/llm",
    tags=["LLM Analysis"],
)


@router.post("/batch", response_model=BatchAnalysisResponse)
async def run_batch_analysis(
    request: BatchAnalysisRequest,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> BatchAnalysisResponse:
    """
    Classify and analyze a batch of survey answers.

    Item failures are reported in ``failures``; the request itself only
    fails when nothing in it can be analyzed.
    """
    options = request.options
    start = request_start(
        "/api/llm/batch",
        organization_id=options.organization_id,
        items=len(request.items),
    )
    try:
        requests, skipped = pipeline.classify_many(request.items, options)
    except ValueError as e:
        request_error("/api/llm/batch", start, options.organization_id, http_status=400, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))

    if not requests:
        request_error(
            "/api/llm/batch", start, options.organization_id, http_status=400,
            error="no analyzable items",
        )
        raise HTTPException(
            status_code=400,
            detail={
                "message": "No analyzable items in batch",
                "skipped": [skip.model_dump() for skip in skipped],
            },
        )

    batch = await pipeline.run_batch(requests, options)
    request_end(
        "/api/llm/batch",
        start,
        options.organization_id,
        batch_id=batch.summary.batch_id,
        succeeded=batch.summary.succeeded,
        failed=batch.summary.failed,
        skipped=len(skipped),
    )
    return BatchAnalysisResponse(
        summary=batch.summary,
        results=batch.results,
        failures=batch.failures,
        skipped=skipped,
    )


@router.get("/batch", response_model=List[BatchLogResponse])
async def list_batch_logs(
    organization_id: str = Query(..., description="Organization whose batches to list"),
    limit: int = Query(20, ge=1, le=100),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> List[BatchLogResponse]:
    """Recent batch runs for an organization."""
    if pipeline.store is None:
        raise HTTPException(status_code=503, detail="Batch history is not available")
    try:
        return await pipeline.store.list_batches(organization_id, limit=limit)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Batch history is not available: {e}")


@router.post("/analyze", response_model=ScoredResult)
async def analyze_single(
    request: SingleAnalysisRequest,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> ScoredResult:
    """
    Analyze one answer. Provider failures map to distinct HTTP statuses.
    """
    start = request_start("/api/llm/analyze", organization_id=request.options.organization_id)
    item = request.item
    classified = pipeline.classify(
        item.question, item.answer, item.respondent, request.options, item_id=item.item_id
    )
    if isinstance(classified, ClassificationSkip):
        request_error(
            "/api/llm/analyze", start, request.options.organization_id,
            http_status=400, error=classified.reason,
        )
        raise HTTPException(
            status_code=400,
            detail={"message": "Item is not analyzable", "reason": classified.reason},
        )

    batch = await pipeline.analyze_one(classified, request.options)
    if batch.failures:
        failure = batch.failures[0]
        status = ERROR_KIND_STATUS.get(failure.error_kind, 500)
        request_error(
            "/api/llm/analyze", start, request.options.organization_id,
            http_status=status, error=failure.message, error_kind=failure.error_kind.value,
        )
        raise HTTPException(
            status_code=status,
            detail={
                "error_kind": failure.error_kind.value,
                "message": failure.message,
                "attempts": failure.attempts,
            },
        )

    request_end("/api/llm/analyze", start, request.options.organization_id)
    return batch.results[0]


@router.get("/cost-tracking", response_model=UsageReport)
async def get_cost_tracking(
    organization_id: str = Query(...),
    timeframe: str = Query(DEFAULT_TIMEFRAME, description="1d, 7d, 30d or 90d"),
    granularity: Granularity = Query(Granularity.DAY),
    provider: Optional[str] = Query(None),
    survey_id: Optional[str] = Query(None),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> UsageReport:
    """Usage summary, time series, breakdowns and active alerts."""
    try:
        return await pipeline.usage_report(
            organization_id,
            timeframe=timeframe,
            granularity=granularity,
            provider=provider,
            survey_id=survey_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/cost-tracking/settings", response_model=AlertSettings)
async def update_cost_settings(
    update: AlertSettingsUpdate,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> AlertSettings:
    """Set budget, daily limit and alert thresholds for an organization."""
    if pipeline.store is None:
        raise HTTPException(status_code=503, detail="Settings storage is not available")
    try:
        return await pipeline.store.save_alert_settings(update)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Settings could not be saved: {e}")


@router.post("/organizational", response_model=OrganizationalMetrics)
async def aggregate_results(
    request: OrganizationalMetricsRequest,
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> OrganizationalMetrics:
    """Organizational metrics over the supplied results."""
    return pipeline.aggregate(request.results)


@router.get("/organizational/{organization_id}", response_model=OrganizationalMetrics)
async def get_organizational_metrics(
    organization_id: str,
    survey_id: Optional[str] = Query(None),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> OrganizationalMetrics:
    """Organizational metrics over stored results."""
    try:
        return await pipeline.aggregate_organization(organization_id, survey_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Stored results are not available: {e}")


@router.get("/health", response_model=ProviderHealth)
async def provider_health(pipeline: AnalysisPipeline = Depends(get_pipeline)) -> ProviderHealth:
    """Health of the configured provider."""
    return await pipeline.provider.health_check()

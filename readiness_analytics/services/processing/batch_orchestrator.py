"""
Batch orchestration for provider scoring calls.

Requests are pulled from a shared asyncio.Queue by a bounded pool of worker
tasks. Each worker scores one request at a time, retrying retryable failures
within the retry budget, and writes one usage ledger entry per attempt. Item
failures become Failure values and never abort sibling work, so callers
always receive a BatchSummary.
"""

import asyncio
import dataclasses
import logging
import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence, Union

from readiness_analytics.infrastructure.constants.llm_constants import DEFAULT_TIMEOUT_MS
from readiness_analytics.schemas import (
    AnalysisRequest,
    BatchOptions,
    BatchResult,
    BatchSummary,
    Failure,
    ProviderErrorKind,
    ScoredResult,
    UsageLedgerEntry,
    UsageStatus,
)
from readiness_analytics.services.llm.exceptions import ProviderError
from readiness_analytics.services.llm.providers.base import BaseProviderAdapter
from readiness_analytics.services.llm.retry import DEFAULT_RETRY_CONFIG, RetryConfig, backoff
from readiness_analytics.services.usage.ledger import UsageLedger
from readiness_analytics.utils import structured_logger
from readiness_analytics.utils.timezone_utils import elapsed_ms, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    result: ScoredResult
    attempts: int


@dataclass(frozen=True)
class Failed:
    failure: Failure


Outcome = Union[Success, Failed]


@dataclass
class _BatchState:
    """Shared collector for one batch run."""

    results: List[ScoredResult] = field(default_factory=list)
    failures: List[Failure] = field(default_factory=list)
    total_cost_cents: Decimal = Decimal("0")
    total_tokens: int = 0
    first_dispatch: Optional[float] = None
    last_completion: Optional[float] = None

    def mark_dispatch(self, now: float) -> None:
        if self.first_dispatch is None:
            self.first_dispatch = now

    def add_usage(self, tokens: int, cost_cents: Decimal) -> None:
        self.total_tokens += tokens
        self.total_cost_cents += cost_cents

    def add_outcome(self, outcome: Outcome, now: float) -> None:
        if isinstance(outcome, Success):
            self.results.append(outcome.result)
        else:
            self.failures.append(outcome.failure)
        self.last_completion = now

    @property
    def wall_clock_ms(self) -> int:
        if self.first_dispatch is None or self.last_completion is None:
            return 0
        return elapsed_ms(self.first_dispatch, self.last_completion)


class BatchOrchestrator:
    """
    Drives AnalysisRequests through a provider adapter with bounded parallelism.
    """

    def __init__(
        self,
        provider: BaseProviderAdapter,
        ledger: UsageLedger,
        retry_config: Optional[RetryConfig] = None,
        per_call_timeout_seconds: float = DEFAULT_TIMEOUT_MS / 1000.0,
    ):
        """
        Args:
            provider: Adapter used for every scoring call
            ledger: Sink for one usage entry per attempt
            retry_config: Retry budget and backoff; ``max_retries`` counts
                attempts after the first
            per_call_timeout_seconds: Limit for a single provider call
        """
        if per_call_timeout_seconds <= 0:
            raise ValueError("per_call_timeout_seconds must be positive")
        self.provider = provider
        self.ledger = ledger
        self.retry_config = retry_config or DEFAULT_RETRY_CONFIG
        self.per_call_timeout_seconds = per_call_timeout_seconds

    async def run_batch(
        self,
        requests: Sequence[AnalysisRequest],
        options: Optional[BatchOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        """
        Score every request and summarize the batch.

        Args:
            requests: Classified requests; each yields exactly one result or failure
            options: Parallelism, retry and provenance options
            cancel_event: When set, no new request or retry is started;
                in-flight calls finish and undispatched requests are
                reported as cancelled failures

        Returns:
            BatchResult with summary, results and failures. Results and
            failures are in completion order.
        """
        options = options or BatchOptions()
        cancel_event = cancel_event or asyncio.Event()
        batch_id = str(uuid.uuid4())
        started_at = utc_now()

        if not requests:
            return BatchResult(
                summary=BatchSummary(batch_id=batch_id, started_at=started_at, completed_at=started_at)
            )

        parallelism = min(options.parallelism, len(requests))
        retry_config = self.retry_config
        if options.max_retries is not None:
            retry_config = dataclasses.replace(retry_config, max_retries=options.max_retries)
        timeout = options.per_call_timeout_seconds or self.per_call_timeout_seconds

        queue: asyncio.Queue = asyncio.Queue()
        for request in requests:
            queue.put_nowait(request)

        state = _BatchState()
        log_start = structured_logger.batch_start(
            batch_id,
            total_requested=len(requests),
            parallelism=parallelism,
            provider=self.provider.provider_name,
            priority=options.priority.value,
            organization_id=options.organization_id,
            survey_id=options.survey_id,
        )

        workers = [
            asyncio.create_task(
                self._worker(queue, state, options, retry_config, timeout, batch_id, cancel_event)
            )
            for _ in range(parallelism)
        ]
        try:
            await asyncio.gather(*workers)
        except asyncio.CancelledError:
            for worker in workers:
                worker.cancel()
            raise

        cancelled = 0
        while not queue.empty():
            request = queue.get_nowait()
            state.failures.append(
                Failure(
                    item_id=request.item_id,
                    error_kind=ProviderErrorKind.CANCELLED,
                    message="Batch cancelled before this item was dispatched",
                    attempts=0,
                )
            )
            cancelled += 1
        if cancelled:
            logger.warning(f"Batch {batch_id} cancelled with {cancelled} items not dispatched")

        summary = BatchSummary(
            batch_id=batch_id,
            total_requested=len(requests),
            succeeded=len(state.results),
            failed=len(state.failures),
            cancelled=cancelled,
            total_cost_cents=state.total_cost_cents,
            total_tokens=state.total_tokens,
            wall_clock_ms=state.wall_clock_ms,
            started_at=started_at,
            completed_at=utc_now(),
        )
        structured_logger.batch_end(
            batch_id,
            log_start,
            succeeded=summary.succeeded,
            failed=summary.failed,
            cancelled=cancelled,
            total_tokens=summary.total_tokens,
            total_cost_cents=str(summary.total_cost_cents),
            wall_clock_ms=summary.wall_clock_ms,
        )
        return BatchResult(summary=summary, results=state.results, failures=state.failures)

    async def _worker(
        self,
        queue: asyncio.Queue,
        state: _BatchState,
        options: BatchOptions,
        retry_config: RetryConfig,
        timeout: float,
        batch_id: str,
        cancel_event: asyncio.Event,
    ) -> None:
        while not cancel_event.is_set():
            try:
                request = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            state.mark_dispatch(time.perf_counter())
            outcome = await self._process(
                request, state, options, retry_config, timeout, batch_id, cancel_event
            )
            state.add_outcome(outcome, time.perf_counter())
            queue.task_done()

    async def _process(
        self,
        request: AnalysisRequest,
        state: _BatchState,
        options: BatchOptions,
        retry_config: RetryConfig,
        timeout: float,
        batch_id: str,
        cancel_event: asyncio.Event,
    ) -> Outcome:
        attempt = 0
        while True:
            started = time.perf_counter()
            error = None
            try:
                response = await asyncio.wait_for(self.provider.analyze(request), timeout=timeout)
            except asyncio.TimeoutError:
                error = ProviderError(
                    f"Provider call timed out after {timeout:.1f}s",
                    kind=ProviderErrorKind.TIMEOUT,
                )
            except ProviderError as e:
                error = e
            except Exception as e:
                logger.exception(f"Unexpected error from provider for item {request.item_id}")
                error = ProviderError(
                    f"Unexpected provider failure: {e}",
                    kind=ProviderErrorKind.UNAVAILABLE,
                    retryable=False,
                )
            latency_ms = elapsed_ms(started, time.perf_counter())

            if error is None:
                state.add_usage(response.tokens_used, response.cost_cents)
                await self.ledger.record(
                    self._ledger_entry(
                        request,
                        options,
                        batch_id,
                        status=UsageStatus.SUCCESS,
                        model=response.model,
                        tokens=response.tokens_used,
                        cost_cents=response.cost_cents,
                        latency_ms=latency_ms,
                    )
                )
                return Success(result=response.result, attempts=attempt + 1)

            state.add_usage(error.tokens_used, error.cost_cents)
            await self.ledger.record(
                self._ledger_entry(
                    request,
                    options,
                    batch_id,
                    status=error.usage_status,
                    model=self.provider.model_name,
                    tokens=error.tokens_used,
                    cost_cents=error.cost_cents,
                    latency_ms=latency_ms,
                    error_kind=error.kind,
                )
            )

            if not cancel_event.is_set() and retry_config.should_retry(
                error, attempt, options.retry_failures
            ):
                await backoff(retry_config, attempt, label=request.item_id)
                # Cancellation may arrive while sleeping
                if not cancel_event.is_set():
                    attempt += 1
                    continue

            logger.warning(
                f"Item {request.item_id} failed after {attempt + 1} attempt(s): "
                f"{error.kind.value}: {error.message}"
            )
            return Failed(
                Failure(
                    item_id=request.item_id,
                    error_kind=error.kind,
                    message=error.message,
                    attempts=attempt + 1,
                )
            )

    def _ledger_entry(
        self,
        request: AnalysisRequest,
        options: BatchOptions,
        batch_id: str,
        status: UsageStatus,
        model: str,
        tokens: int,
        cost_cents: Decimal,
        latency_ms: int,
        error_kind: Optional[ProviderErrorKind] = None,
    ) -> UsageLedgerEntry:
        return UsageLedgerEntry(
            provider=self.provider.provider_name,
            model=model,
            tokens_used=tokens,
            cost_cents=cost_cents,
            latency_ms=latency_ms,
            status=status,
            organization_id=options.organization_id,
            survey_id=options.survey_id,
            item_id=request.item_id,
            batch_id=batch_id,
            error_kind=error_kind,
        )

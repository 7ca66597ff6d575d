"""
Pydantic models for the qualitative-analysis pipeline and its API.

This module defines the data structures shared by the pipeline services and
the FastAPI endpoints:
- Typed analysis requests and scored results
- Batch options, outcomes and summaries
- Usage ledger entries, buckets, summaries and alerts
- Request/response models for the HTTP layer

Monetary amounts are ``Decimal`` cents so that totals over many provider
attempts add up exactly.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from readiness_analytics.infrastructure.constants.llm_constants import (
    DEFAULT_PARALLELISM,
    DEFAULT_QUESTION_CONTEXT,
    DEFAULT_RETRY_FAILURES,
    DEFAULT_TIMEFRAME,
    ERROR_RATE_MIN_ENTRIES,
    ERROR_RATE_WARNING_PCT,
    ERROR_RATE_WINDOW,
    MAX_RETRY_ATTEMPTS,
    MONTHLY_BUDGET_CRITICAL_PCT,
    MONTHLY_BUDGET_WARNING_PCT,
    NOT_SPECIFIED,
)
from readiness_analytics.utils.timezone_utils import ensure_utc, utc_now

UNASSIGNED_ORGANIZATION = "unassigned"


# Enumerations


class ForceType(str, Enum):
    PAIN_OF_OLD = "pain_of_old"
    PULL_OF_NEW = "pull_of_new"
    ANCHORS_TO_OLD = "anchors_to_old"
    ANXIETY_OF_NEW = "anxiety_of_new"
    DEMOGRAPHIC = "demographic"


class SentimentLabel(str, Enum):
    VERY_NEGATIVE = "very_negative"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"
    VERY_POSITIVE = "very_positive"


class QualityLabel(str, Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Granularity(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class UsageStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"


class ProviderErrorKind(str, Enum):
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    MALFORMED_REQUEST = "malformed_request"
    CANCELLED = "cancelled"


class AlertType(str, Enum):
    MONTHLY_BUDGET = "monthly_budget"
    DAILY_LIMIT = "daily_limit"
    ERROR_RATE = "error_rate"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class BreakdownDimension(str, Enum):
    PROVIDER = "provider"
    MODEL = "model"
    SURVEY = "survey"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


# Classification


class QuestionDefinition(BaseModel):
    """A survey question as declared by the questionnaire."""

    id: str = Field(..., description="Question identifier")
    text: str = Field(..., description="Question text shown to respondents")
    category: Optional[str] = Field(
        None, description="Declared question category, mapped onto a force type"
    )


class RespondentContext(BaseModel):
    """Who answered, and in which organizational setting."""

    model_config = ConfigDict(frozen=True)

    role: str = NOT_SPECIFIED
    department: str = NOT_SPECIFIED
    organization_name: str = NOT_SPECIFIED
    question_category: str = DEFAULT_QUESTION_CONTEXT

    @field_validator("role", "department", "organization_name", mode="before")
    @classmethod
    def default_blank_to_not_specified(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return NOT_SPECIFIED
        return v.strip() if isinstance(v, str) else v

    @field_validator("question_category", mode="before")
    @classmethod
    def default_blank_category(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_QUESTION_CONTEXT
        return v


class AnalysisRequest(BaseModel):
    """One free-text answer, typed and ready to be sent to a provider."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    question_id: Optional[str] = None
    question_text: str
    expected_force: ForceType
    context: RespondentContext = Field(default_factory=RespondentContext)
    raw_answer_text: str


class ClassificationSkip(BaseModel):
    """Returned by the classifier when an item is excluded by policy."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    reason: str


# Provider results


class SentimentScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=-1.0, le=1.0)
    label: SentimentLabel


class ScoredResult(BaseModel):
    """
    Provider scoring of one answer against the force taxonomy.
    """

    model_config = ConfigDict(frozen=True)

    item_id: str
    primary_force: ForceType
    secondary_forces: List[ForceType] = Field(default_factory=list)
    force_strength: float = Field(..., ge=1, le=5)
    confidence: float = Field(..., ge=1, le=5)
    sentiment: SentimentScore
    themes: List[str] = Field(default_factory=list)
    quality_label: QualityLabel
    reasoning: str = ""
    emotional_indicators: List[str] = Field(default_factory=list)
    summary_insight: Optional[str] = None
    model: Optional[str] = None
    analyzed_at: Optional[datetime] = None


class Failure(BaseModel):
    """An item that produced no ScoredResult once its attempts were exhausted."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    error_kind: ProviderErrorKind
    message: str
    attempts: int = 0


# Batches


class BatchOptions(BaseModel):
    """Per-batch concurrency, retry and provenance options."""

    parallelism: int = Field(DEFAULT_PARALLELISM, ge=1)
    retry_failures: bool = DEFAULT_RETRY_FAILURES
    priority: Priority = Priority.MEDIUM
    include_demographic: bool = False
    organization_id: str = UNASSIGNED_ORGANIZATION
    survey_id: Optional[str] = None
    per_call_timeout_seconds: Optional[float] = Field(None, gt=0)
    max_retries: Optional[int] = Field(None, ge=0, le=MAX_RETRY_ATTEMPTS)

    model_config = {
        "json_schema_extra": {
            "example": {
                "parallelism": 5,
                "retry_failures": True,
                "priority": "medium",
                "organization_id": "org_123",
                "survey_id": "survey_456",
            }
        }
    }


class BatchSummary(BaseModel):
    batch_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    total_requested: int = 0
    succeeded: int = 0
    failed: int = 0
    cancelled: int = Field(0, description="Items never dispatched; included in failed")
    total_cost_cents: Decimal = Decimal("0")
    total_tokens: int = 0
    wall_clock_ms: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_counts(self):
        if self.succeeded + self.failed != self.total_requested:
            raise ValueError(
                f"succeeded ({self.succeeded}) + failed ({self.failed}) "
                f"!= total_requested ({self.total_requested})"
            )
        if self.cancelled > self.failed:
            raise ValueError("cancelled items must be counted as failed")
        return self


class BatchResult(BaseModel):
    summary: BatchSummary
    results: List[ScoredResult] = Field(default_factory=list)
    failures: List[Failure] = Field(default_factory=list)


# Usage ledger


class UsageLedgerEntry(BaseModel):
    """One provider call attempt. Never modified after it is written."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    provider: str
    model: str
    tokens_used: int = Field(0, ge=0)
    cost_cents: Decimal = Field(Decimal("0"), ge=0)
    latency_ms: int = Field(0, ge=0)
    status: UsageStatus
    timestamp: datetime = Field(default_factory=utc_now)
    organization_id: str = UNASSIGNED_ORGANIZATION
    survey_id: Optional[str] = None
    item_id: Optional[str] = None
    batch_id: Optional[str] = None
    error_kind: Optional[ProviderErrorKind] = None

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def is_success(self) -> bool:
        return self.status == UsageStatus.SUCCESS


class UsageFilter(BaseModel):
    organization_id: Optional[str] = None
    provider: Optional[str] = None
    survey_id: Optional[str] = None
    from_time: Optional[datetime] = None
    to_time: Optional[datetime] = None

    def matches(self, entry: UsageLedgerEntry) -> bool:
        if self.organization_id is not None and entry.organization_id != self.organization_id:
            return False
        if self.provider is not None and entry.provider != self.provider:
            return False
        if self.survey_id is not None and entry.survey_id != self.survey_id:
            return False
        if self.from_time is not None and entry.timestamp < ensure_utc(self.from_time):
            return False
        if self.to_time is not None and entry.timestamp > ensure_utc(self.to_time):
            return False
        return True


class UsageBucket(BaseModel):
    bucket_start: datetime
    bucket_key: str
    cost_cents: Decimal = Decimal("0")
    tokens: int = 0
    requests: int = 0
    errors: int = 0


class UsageSummary(BaseModel):
    total_cost_cents: Decimal = Decimal("0")
    total_tokens: int = 0
    total_requests: int = 0
    average_latency_ms: float = 0.0
    success_rate: float = 0.0
    error_rate: float = 0.0


class UsageBreakdown(BaseModel):
    key: str
    cost_cents: Decimal = Decimal("0")
    tokens: int = 0
    requests: int = 0
    errors: int = 0


# Alerting


class AlertThresholds(BaseModel):
    """Alert tunables; percentages are 0-100."""

    monthly_critical_pct: float = Field(MONTHLY_BUDGET_CRITICAL_PCT, gt=0)
    monthly_warning_pct: float = Field(MONTHLY_BUDGET_WARNING_PCT, gt=0)
    error_rate_pct: float = Field(ERROR_RATE_WARNING_PCT, gt=0)
    error_rate_window: int = Field(ERROR_RATE_WINDOW, ge=1)
    error_rate_min_entries: int = Field(ERROR_RATE_MIN_ENTRIES, ge=1)

    @model_validator(mode="after")
    def check_ordering(self):
        if self.monthly_warning_pct > self.monthly_critical_pct:
            raise ValueError("monthly warning threshold must not exceed the critical threshold")
        if self.error_rate_min_entries > self.error_rate_window:
            raise ValueError("error_rate_min_entries must not exceed error_rate_window")
        return self


class AlertSettings(BaseModel):
    monthly_budget_cents: Optional[int] = Field(None, ge=0)
    daily_limit_cents: Optional[int] = Field(None, ge=0)
    alerts_enabled: bool = True
    thresholds: AlertThresholds = Field(default_factory=AlertThresholds)


class Alert(BaseModel):
    type: AlertType
    severity: AlertSeverity
    message: str
    metric_value: float


# Aggregation


class DateRange(BaseModel):
    earliest: datetime
    latest: datetime


class OrganizationalMetrics(BaseModel):
    average_confidence: float = 0.0
    average_force_strength: float = 0.0
    average_sentiment: float = 0.0
    force_distribution: Dict[ForceType, int] = Field(default_factory=dict)
    sentiment_distribution: Dict[SentimentLabel, int] = Field(default_factory=dict)
    theme_frequency: Dict[str, int] = Field(
        default_factory=dict, description="Top themes, most frequent first"
    )
    quality_score: float = 0.0
    force_strength_by_force: Dict[ForceType, float] = Field(default_factory=dict)
    total_responses: int = 0
    excluded: int = 0
    date_range: Optional[DateRange] = None


# Provider health


class ProviderHealth(BaseModel):
    provider: str
    model: str
    status: HealthStatus
    latency_ms: Optional[int] = None
    error: Optional[str] = None


# Reports and API models


class UsageReport(BaseModel):
    organization_id: str
    timeframe: str = DEFAULT_TIMEFRAME
    granularity: Granularity = Granularity.DAY
    summary: UsageSummary
    buckets: List[UsageBucket] = Field(default_factory=list)
    by_provider: List[UsageBreakdown] = Field(default_factory=list)
    by_model: List[UsageBreakdown] = Field(default_factory=list)
    by_survey: List[UsageBreakdown] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)
    degraded: bool = Field(
        False, description="True when historical usage could not be loaded"
    )


class BatchItem(BaseModel):
    item_id: Optional[str] = None
    question: QuestionDefinition
    answer: Any = Field(..., description="Free text or a structured answer value")
    respondent: Optional[RespondentContext] = None


class BatchAnalysisRequest(BaseModel):
    """
    Request model for running a batch of answers through analysis.
    """

    items: List[BatchItem] = Field(..., min_length=1)
    options: BatchOptions = Field(default_factory=BatchOptions)

    model_config = {
        "json_schema_extra": {
            "example": {
                "items": [
                    {
                        "item_id": "resp_1:q_3",
                        "question": {
                            "id": "q_3",
                            "text": "What slows your team down today?",
                            "category": "pain",
                        },
                        "answer": "Manual reporting eats two days a month.",
                        "respondent": {"role": "Analyst", "department": "Finance"},
                    }
                ],
                "options": {"parallelism": 5, "organization_id": "org_123"},
            }
        }
    }


class BatchAnalysisResponse(BaseModel):
    summary: BatchSummary
    results: List[ScoredResult]
    failures: List[Failure]
    skipped: List[ClassificationSkip] = Field(default_factory=list)


class SingleAnalysisRequest(BaseModel):
    item: BatchItem
    options: BatchOptions = Field(default_factory=BatchOptions)


class OrganizationalMetricsRequest(BaseModel):
    results: List[ScoredResult]


class AlertSettingsUpdate(BaseModel):
    organization_id: str
    monthly_budget_cents: Optional[int] = Field(None, ge=0)
    daily_limit_cents: Optional[int] = Field(None, ge=0)
    alerts_enabled: bool = True
    thresholds: Optional[AlertThresholds] = None


class BatchLogResponse(BaseModel):
    batch_id: str
    organization_id: str
    survey_id: Optional[str] = None
    priority: Priority
    summary: BatchSummary

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)

# Import Base from database.py to ensure we use the same Base instance
from readiness_analytics.database import Base

# Import timezone utilities for consistent datetime handling
from readiness_analytics.utils.timezone_utils import utc_now


class ApiUsageLog(Base):
    """One provider call attempt. Rows are inserted, never updated."""

    __tablename__ = "api_usage_log"
    __table_args__ = (
        Index("ix_api_usage_log_org_time", "organization_id", "timestamp"),
        {"extend_existing": True},
    )

    id = Column(String(36), primary_key=True)
    provider = Column(String, nullable=False)
    model = Column(String, nullable=False)
    tokens_used = Column(Integer, nullable=False, default=0)
    cost_cents = Column(Numeric(14, 4), nullable=False, default=0)
    latency_ms = Column(Integer, nullable=False, default=0)
    status = Column(String(16), nullable=False)  # success | error | timeout
    error_kind = Column(String(32), nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    organization_id = Column(String, nullable=False, index=True)
    survey_id = Column(String, nullable=True, index=True)
    item_id = Column(String, nullable=True)
    batch_id = Column(String(36), nullable=True, index=True)


class BatchAnalysisLog(Base):
    __tablename__ = "batch_analysis_logs"
    __table_args__ = {"extend_existing": True}

    batch_id = Column(String(36), primary_key=True)
    organization_id = Column(String, nullable=False, index=True)
    survey_id = Column(String, nullable=True)
    priority = Column(String(8), nullable=False, default="medium")
    total_requested = Column(Integer, nullable=False, default=0)
    succeeded = Column(Integer, nullable=False, default=0)
    failed = Column(Integer, nullable=False, default=0)
    cancelled = Column(Integer, nullable=False, default=0)
    total_cost_cents = Column(Numeric(14, 4), nullable=False, default=0)
    total_tokens = Column(Integer, nullable=False, default=0)
    wall_clock_ms = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class LLMAnalysisResult(Base):
    __tablename__ = "llm_analysis_results"
    __table_args__ = {"extend_existing": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(String, nullable=False)
    batch_id = Column(String(36), nullable=True, index=True)
    organization_id = Column(String, nullable=False, index=True)
    survey_id = Column(String, nullable=True)
    primary_force = Column(String(32), nullable=False)
    secondary_forces = Column(JSON, nullable=True)
    force_strength = Column(Float, nullable=False)
    confidence = Column(Float, nullable=False)
    sentiment_score = Column(Float, nullable=False)
    sentiment_label = Column(String(16), nullable=False)
    themes = Column(JSON, nullable=True)
    quality_label = Column(String(16), nullable=False)
    reasoning = Column(Text, nullable=True)
    summary_insight = Column(Text, nullable=True)
    emotional_indicators = Column(JSON, nullable=True)
    model = Column(String, nullable=True)
    analyzed_at = Column(DateTime(timezone=True), default=utc_now)


class OrganizationalMetricsSnapshot(Base):
    __tablename__ = "organizational_metrics"
    __table_args__ = {"extend_existing": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(String, nullable=False, index=True)
    survey_id = Column(String, nullable=True)
    metrics = Column(JSON, nullable=False)
    total_responses = Column(Integer, nullable=False, default=0)
    computed_at = Column(DateTime(timezone=True), default=utc_now)


class OrganizationSettings(Base):
    __tablename__ = "organization_settings"
    __table_args__ = {"extend_existing": True}

    organization_id = Column(String, primary_key=True)
    api_budget_monthly_cents = Column(Integer, nullable=True)
    api_daily_limit_cents = Column(Integer, nullable=True)
    api_usage_alerts_enabled = Column(Boolean, nullable=False, default=True)
    alert_thresholds = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

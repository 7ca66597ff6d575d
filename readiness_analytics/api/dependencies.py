"""
FastAPI dependencies for the analysis routes.
"""

import logging
from typing import Optional

from readiness_analytics.database import SessionLocal
from readiness_analytics.infrastructure.config.settings import settings
from readiness_analytics.infrastructure.persistence.analysis_repository import AnalysisStore
from readiness_analytics.infrastructure.persistence.usage_repository import SqlAlchemyUsageLedger
from readiness_analytics.services.analysis_pipeline import AnalysisPipeline
from readiness_analytics.services.llm.providers import get_provider

logger = logging.getLogger(__name__)

_pipeline: Optional[AnalysisPipeline] = None


def build_pipeline() -> AnalysisPipeline:
    """Pipeline backed by the configured provider and the application database."""
    provider = get_provider(settings.llm_provider, settings.get_llm_config())
    return AnalysisPipeline(
        provider=provider,
        ledger=SqlAlchemyUsageLedger(SessionLocal),
        store=AnalysisStore(SessionLocal),
        settings=settings,
    )


def get_pipeline() -> AnalysisPipeline:
    """
    Dependency returning the process-wide pipeline.

    The pipeline is built on first use so importing the app does not need
    provider credentials.
    """
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline()
        logger.info(f"Analysis pipeline ready with provider {_pipeline.provider.provider_name}")
    return _pipeline

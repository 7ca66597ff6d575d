"""
PyTest configuration and fixtures.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from readiness_analytics.api.app import app
from readiness_analytics.api.dependencies import get_pipeline
from readiness_analytics.database import Base
from readiness_analytics import models  # noqa: F401
from readiness_analytics.infrastructure.config.settings import Settings
from readiness_analytics.infrastructure.persistence.analysis_repository import AnalysisStore
from readiness_analytics.infrastructure.persistence.usage_repository import SqlAlchemyUsageLedger
from readiness_analytics.services.analysis_pipeline import AnalysisPipeline
from readiness_analytics.services.llm.retry import NO_DELAY_RETRY_CONFIG
from readiness_analytics.services.usage.ledger import InMemoryUsageLedger
from readiness_analytics.tests.fakes import ScriptedProvider

# Shared in-memory database; StaticPool keeps one connection so every session sees the same tables
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},  # Needed for SQLite
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session")
def test_db():
    """Create test database tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(test_db):
    """Session factory over a clean database for each test."""
    yield TestingSessionLocal

    with test_db.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def test_settings():
    """Settings isolated from the process environment."""
    return Settings(env={"LLM_PROVIDER": "openai"})


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def memory_ledger():
    return InMemoryUsageLedger()


@pytest.fixture
def pipeline(provider, memory_ledger, test_settings):
    """Pipeline with a scripted provider and an in-memory ledger, no store."""
    return AnalysisPipeline(
        provider=provider,
        ledger=memory_ledger,
        settings=test_settings,
        retry_config=NO_DELAY_RETRY_CONFIG,
    )


@pytest.fixture
def db_pipeline(provider, session_factory, test_settings):
    """Pipeline persisting usage, results and settings to the test database."""
    return AnalysisPipeline(
        provider=provider,
        ledger=SqlAlchemyUsageLedger(session_factory),
        store=AnalysisStore(session_factory),
        settings=test_settings,
        retry_config=NO_DELAY_RETRY_CONFIG,
    )


@pytest.fixture
def client(db_pipeline):
    """Create test client with the pipeline dependency overridden."""
    app.dependency_overrides[get_pipeline] = lambda: db_pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()

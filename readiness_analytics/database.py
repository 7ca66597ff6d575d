from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
import logging

from readiness_analytics.infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

# Create Base instance
Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for ``database_url``.

    SQLite gets ``check_same_thread=False`` so sessions can be used from the
    FastAPI threadpool; other databases use the default pool with pre-ping.
    """
    if database_url.startswith("sqlite:"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


DATABASE_URL = settings.database_url
engine = create_db_engine(DATABASE_URL)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(bind: Engine = None) -> bool:
    """
    Creates all tables defined in the models.
    Should be called when the application starts.

    Returns:
        bool: True if tables were created successfully, False otherwise
    """
    target = bind or engine
    try:
        # Register the models on Base.metadata
        import readiness_analytics.models  # noqa: F401

        Base.metadata.create_all(bind=target)
        with target.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database tables are ready")
        return True
    except SQLAlchemyError as e:
        # The pipeline keeps running without persistence
        logger.error(f"Error creating database tables: {e}")
        return False

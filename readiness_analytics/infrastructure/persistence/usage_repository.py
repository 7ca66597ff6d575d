"""
SQLAlchemy-backed usage ledger.

Entries are written to ``api_usage_log`` one row per provider attempt. A
fresh session is opened per operation because the ledger outlives any single
request and is shared by concurrent batch workers.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from readiness_analytics.models import ApiUsageLog
from readiness_analytics.schemas import UsageFilter, UsageLedgerEntry
from readiness_analytics.services.llm.exceptions import LedgerReadError, LedgerWriteError
from readiness_analytics.services.usage.ledger import UsageLedger
from readiness_analytics.utils.timezone_utils import ensure_utc

logger = logging.getLogger(__name__)


def entry_to_row(entry: UsageLedgerEntry) -> ApiUsageLog:
    return ApiUsageLog(
        id=entry.id,
        provider=entry.provider,
        model=entry.model,
        tokens_used=entry.tokens_used,
        cost_cents=entry.cost_cents,
        latency_ms=entry.latency_ms,
        status=entry.status.value,
        error_kind=entry.error_kind.value if entry.error_kind else None,
        timestamp=entry.timestamp,
        organization_id=entry.organization_id,
        survey_id=entry.survey_id,
        item_id=entry.item_id,
        batch_id=entry.batch_id,
    )


def row_to_entry(row: ApiUsageLog) -> UsageLedgerEntry:
    return UsageLedgerEntry(
        id=row.id,
        provider=row.provider,
        model=row.model,
        tokens_used=row.tokens_used,
        cost_cents=row.cost_cents,
        latency_ms=row.latency_ms,
        status=row.status,
        error_kind=row.error_kind,
        timestamp=ensure_utc(row.timestamp),
        organization_id=row.organization_id,
        survey_id=row.survey_id,
        item_id=row.item_id,
        batch_id=row.batch_id,
    )


class SqlAlchemyUsageLedger(UsageLedger):
    """
    Usage ledger stored in the ``api_usage_log`` table.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        """
        Args:
            session_factory: Callable returning a new SQLAlchemy session,
                usually a ``sessionmaker``
        """
        super().__init__()
        self._session_factory = session_factory

    async def _append(self, entry: UsageLedgerEntry) -> None:
        # Commit off the event loop so batch workers keep running
        await asyncio.get_running_loop().run_in_executor(None, self._write_row, entry)

    def _write_row(self, entry: UsageLedgerEntry) -> None:
        session = self._session_factory()
        try:
            session.add(entry_to_row(entry))
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise LedgerWriteError(str(e)) from e
        finally:
            session.close()

    async def query(self, usage_filter: Optional[UsageFilter] = None) -> List[UsageLedgerEntry]:
        usage_filter = usage_filter or UsageFilter()
        session = self._session_factory()
        try:
            query = session.query(ApiUsageLog)
            if usage_filter.organization_id is not None:
                query = query.filter(ApiUsageLog.organization_id == usage_filter.organization_id)
            if usage_filter.provider is not None:
                query = query.filter(ApiUsageLog.provider == usage_filter.provider)
            if usage_filter.survey_id is not None:
                query = query.filter(ApiUsageLog.survey_id == usage_filter.survey_id)
            if usage_filter.from_time is not None:
                query = query.filter(ApiUsageLog.timestamp >= usage_filter.from_time)
            if usage_filter.to_time is not None:
                query = query.filter(ApiUsageLog.timestamp <= usage_filter.to_time)
            rows = query.order_by(ApiUsageLog.timestamp.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Error querying usage ledger: {e}")
            raise LedgerReadError(str(e)) from e
        finally:
            session.close()

        entries = [row_to_entry(row) for row in rows]
        # SQLite compares naive timestamps as text, so re-apply the window in Python
        return [entry for entry in entries if usage_filter.matches(entry)]

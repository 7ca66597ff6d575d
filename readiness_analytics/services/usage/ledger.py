"""
Usage ledger: append-only record of every provider call attempt.

``record`` never raises. Persistence failures are wrapped in
LedgerWriteError, logged and dropped so that a failed usage write cannot fail
an analysis that already succeeded. Appends are serialized with an
asyncio.Lock because batch workers write concurrently.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from readiness_analytics.schemas import UsageFilter, UsageLedgerEntry
from readiness_analytics.services.llm.exceptions import LedgerWriteError

logger = logging.getLogger(__name__)


class UsageLedger(ABC):
    """Base class for usage ledgers."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self.write_failures = 0

    async def record(self, entry: UsageLedgerEntry) -> None:
        """
        Append one entry. Never raises.

        Args:
            entry: The attempt to record
        """
        try:
            async with self._lock:
                await self._append(entry)
        except LedgerWriteError as e:
            self.write_failures += 1
            logger.error(
                f"Failed to record usage entry {entry.id} "
                f"(item={entry.item_id}, status={entry.status.value}): {e}"
            )
        except Exception as e:
            self.write_failures += 1
            logger.exception(f"Unexpected error recording usage entry {entry.id}: {e}")

    @abstractmethod
    async def _append(self, entry: UsageLedgerEntry) -> None:
        """
        Persist one entry.

        Raises:
            LedgerWriteError: if the entry could not be stored
        """
        pass

    @abstractmethod
    async def query(self, usage_filter: Optional[UsageFilter] = None) -> List[UsageLedgerEntry]:
        """
        Entries matching ``usage_filter`` ordered by timestamp ascending.

        Raises:
            LedgerReadError: if the store is unavailable
        """
        pass


class InMemoryUsageLedger(UsageLedger):
    """Process-local ledger for tests and for running without a database."""

    def __init__(self, entries: Optional[List[UsageLedgerEntry]] = None):
        super().__init__()
        self._entries: List[UsageLedgerEntry] = list(entries or [])

    async def _append(self, entry: UsageLedgerEntry) -> None:
        self._entries.append(entry)

    async def query(self, usage_filter: Optional[UsageFilter] = None) -> List[UsageLedgerEntry]:
        usage_filter = usage_filter or UsageFilter()
        matched = [entry for entry in self._entries if usage_filter.matches(entry)]
        return sorted(matched, key=lambda entry: entry.timestamp)

    @property
    def entries(self) -> List[UsageLedgerEntry]:
        """Snapshot of everything recorded, in append order."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

"""
AI Enrichment - Enrichment Dispatcher.

============================================================
RESPONSIBILITY
============================================================
Runs AI enrichment for a cycle's new items in the
background and merges the answers back into the store.

- One detached task per cycle batch; dispatch() returns
  immediately so the next cycle is never delayed
- Items of one batch are enriched one after another
- A shared semaphore caps in-flight AI calls across
  overlapping batches
- An id already being enriched is not enriched twice
- Each answer is merged under the store's write lock and
  persisted; evicted items are skipped

============================================================
CANCELLATION
============================================================
Batches are never cancelled by a new cycle. shutdown(grace)
waits up to `grace` seconds, then cancels what is left.

============================================================
"""

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from core.models import EnrichmentResult, NewsItem
from core.store import NewsStore, PersistCallback


logger = logging.getLogger(__name__)


class Analyzer(Protocol):
    async def analyze(self, item: NewsItem) -> EnrichmentResult: ...


class EnrichmentDispatcher:
    """Background AI enrichment with bounded concurrency."""

    def __init__(
        self,
        store: NewsStore,
        analyzer: Analyzer,
        persist: Optional[PersistCallback] = None,
        max_concurrency: int = 4,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")

        self._store = store
        self._analyzer = analyzer
        self._persist = persist
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._max_concurrency = max_concurrency

        self._tasks: Set[asyncio.Task] = set()
        self._in_flight: Set[str] = set()
        self._accepting = True

        # Counters
        self._enriched = 0
        self._overrides = 0
        self._dropped = 0
        self._failed = 0
        self._skipped_in_flight = 0

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def pending_batches(self) -> int:
        return len(self._tasks)

    # =========================================================
    # DISPATCH
    # =========================================================

    def dispatch(self, items: Iterable[NewsItem]) -> Optional[asyncio.Task]:
        """
        Schedule enrichment for `items` and return at once.

        Must be called from the event loop thread.

        Returns:
            The batch task, or None if nothing was scheduled
        """
        if not self._accepting:
            logger.debug("Dispatcher shut down, ignoring batch")
            return None

        batch: List[NewsItem] = []
        for item in items:
            if item.id in self._in_flight:
                self._skipped_in_flight += 1
                continue
            self._in_flight.add(item.id)
            batch.append(item.copy())

        if not batch:
            return None

        task = asyncio.create_task(self._run_batch(batch))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug(f"Dispatched enrichment batch of {len(batch)} items")
        return task

    async def _run_batch(self, batch: List[NewsItem]) -> None:
        remaining = [item.id for item in batch]
        try:
            for item in batch:
                try:
                    await self._enrich_one(item)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    self._failed += 1
                    logger.exception(f"Enrichment failed for {item.id}")
                finally:
                    self._in_flight.discard(item.id)
                    remaining.remove(item.id)
        finally:
            for item_id in remaining:
                self._in_flight.discard(item_id)

    async def _enrich_one(self, item: NewsItem) -> None:
        async with self._semaphore:
            result = await self._analyzer.analyze(item)

        merged = await asyncio.to_thread(
            self._store.merge_enrichment,
            item.id,
            result,
            self._persist,
        )
        if merged is None:
            self._dropped += 1
            return

        self._enriched += 1
        if result.overrides_signal:
            self._overrides += 1

    # =========================================================
    # LIFECYCLE
    # =========================================================

    async def wait_idle(self) -> None:
        """Wait for every batch dispatched so far to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, grace_seconds: float = 5.0) -> None:
        """
        Stop accepting batches, wait up to `grace_seconds`,
        then cancel the rest.
        """
        self._accepting = False
        tasks = list(self._tasks)
        if not tasks:
            return

        done, pending = await asyncio.wait(tasks, timeout=grace_seconds)
        if pending:
            logger.warning(f"Cancelling {len(pending)} enrichment batches at shutdown")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "in_flight": self.in_flight_count,
            "pending_batches": self.pending_batches,
            "max_concurrency": self._max_concurrency,
            "enriched": self._enriched,
            "overrides": self._overrides,
            "dropped_evicted": self._dropped,
            "failed": self._failed,
            "skipped_in_flight": self._skipped_in_flight,
        }

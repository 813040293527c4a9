"""
Data Ingestion - Ingestion Service.

============================================================
RESPONSIBILITY
============================================================
Owns the ingestion cycle.

- Fans out fetches to all collectors in parallel
- Classifies, deduplicates, aggregates and decides
- Commits new items to the store and to durable storage
- Hands new items to background AI enrichment
- Reports ingestion health and metrics

============================================================
DESIGN PRINCIPLES
============================================================
- Barrier: nothing is decided before every fetch joined
- Failure isolation between sources
- One exclusive store lock for the whole commit
- Enrichment never delays the next cycle

============================================================
WORKFLOW
============================================================
1. Fetch all sources (asyncio.gather)
2. Classify every fetched item
3. Under the store write lock (worker thread):
   a. Admit never-seen ids
   b. Aggregate market state over new MARKET items
   c. Score every new item; apply rules to ASSET items
   d. Publish to the store and persist each item
4. Dispatch the new items for AI enrichment
5. Record metrics

============================================================
"""

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Tuple
from uuid import uuid4

from ai_enrichment.dispatcher import EnrichmentDispatcher
from core.models import MarketState, NewsItem, Scope, utc_now
from core.store import NewsStore, PersistCallback
from data_ingestion.collectors.base import BaseCollector
from data_ingestion.types import (
    CycleReport,
    IngestionMetrics,
    IngestionResult,
)
from data_processing.classifier import NewsClassifier
from decision_engine.market_state import MarketStateAggregator
from decision_engine.trading_rules import TradingRuleEngine
from scoring_engine.news_score import NewsScorer


DEFAULT_CYCLE_INTERVAL_SECONDS = 10.0


class IngestionService:
    """
    Runs fetch -> classify -> aggregate -> decide -> persist -> enrich.

    ============================================================
    USAGE
    ============================================================
    ```python
    service = IngestionService(store, collectors, persist=repo.upsert,
                               dispatcher=dispatcher)

    # Run single cycle
    report = await service.run_cycle()

    # Or run continuously
    await service.start()
    ```

    ============================================================
    """

    def __init__(
        self,
        store: NewsStore,
        collectors: Dict[str, BaseCollector],
        classifier: Optional[NewsClassifier] = None,
        scorer: Optional[NewsScorer] = None,
        aggregator: Optional[MarketStateAggregator] = None,
        rule_engine: Optional[TradingRuleEngine] = None,
        persist: Optional[PersistCallback] = None,
        dispatcher: Optional[EnrichmentDispatcher] = None,
        interval_seconds: float = DEFAULT_CYCLE_INTERVAL_SECONDS,
    ) -> None:
        """
        Wire the pipeline stages around a shared store.

        Args:
            store: Shared in-memory store
            collectors: Collectors keyed by source name
            persist: Durable upsert for one item, returns success
            dispatcher: Background AI enrichment, optional
            interval_seconds: Sleep between cycles
        """
        self._store = store
        self._collectors = dict(collectors)
        self._scorer = scorer or NewsScorer()
        self._classifier = classifier or NewsClassifier()
        self._aggregator = aggregator or MarketStateAggregator(self._scorer)
        self._rule_engine = rule_engine or TradingRuleEngine(self._scorer)
        self._persist = persist
        self._dispatcher = dispatcher
        self._interval = interval_seconds
        self._logger = logging.getLogger("ingestion_service")

        # Service state
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None
        self._run_count = 0
        self._last_run_at: Optional[datetime] = None

        # Metrics
        self._metrics = IngestionMetrics()
        self._reports: Deque[CycleReport] = deque(maxlen=100)
        self._persist_failures = 0

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================
    # CYCLE EXECUTION
    # =========================================================

    async def run_cycle(self) -> CycleReport:
        """
        Run a single ingestion cycle.

        Returns:
            CycleReport with per-source results and the new items
        """
        report = CycleReport(cycle_id=uuid4(), started_at=utc_now())
        self._run_count += 1
        self._logger.info(f"Starting ingestion cycle {report.cycle_id}")

        names = list(self._collectors)
        gathered = await asyncio.gather(
            *(self._run_collector(name, self._collectors[name]) for name in names),
            return_exceptions=True,
        )
        report.results = [
            r if isinstance(r, IngestionResult) else IngestionResult.failed(name, repr(r))
            for name, r in zip(names, gathered)
        ]

        candidates: List[NewsItem] = []
        for result in report.results:
            for raw in result.items:
                candidates.append(self._classifier.classify(raw.to_news_item()))
        report.fetched_count = len(candidates)

        new_items, market_state = await asyncio.to_thread(self._commit, candidates)
        report.new_items = new_items
        report.market_state = market_state

        if self._dispatcher is not None and new_items:
            self._dispatcher.dispatch(new_items)

        completed_at = utc_now()
        report.duration_seconds = (completed_at - report.started_at).total_seconds()
        self._last_run_at = completed_at
        self._metrics.record_cycle(report, completed_at)
        self._reports.append(report)

        self._logger.info(
            f"Ingestion cycle {report.cycle_id} completed in {report.duration_seconds:.2f}s. "
            f"Fetched: {report.fetched_count}, New: {report.new_count}, "
            f"Failed sources: {len(report.failed_sources)}, "
            f"Market: {market_state.mood.value} ({market_state.score:.3f})"
        )
        return report

    def _commit(self, candidates: List[NewsItem]) -> Tuple[List[NewsItem], MarketState]:
        """Dedup, decide, publish and persist under the store write lock."""
        with self._store.write_locked() as store:
            new_items = store.admit_locked(candidates)
            market_state = self._aggregator.aggregate(new_items)

            for item in new_items:
                item.final_score = self._scorer.score(item)
                if item.scope == Scope.ASSET:
                    self._rule_engine.apply(item, market_state)

            store.publish_locked(new_items, market_state)

            if self._persist is not None:
                for item in new_items:
                    if not self._persist(item):
                        self._persist_failures += 1

            return [item.copy() for item in new_items], market_state

    async def _run_collector(
        self,
        name: str,
        collector: BaseCollector,
    ) -> IngestionResult:
        """collect() for one source; a raising collector becomes a FAILED result."""
        try:
            self._logger.debug(f"Fetching {name}")
            return await collector.collect()

        except Exception as e:
            self._logger.error(f"Collector {name} raised out of collect(): {e}")
            return IngestionResult.failed(name, str(e) or type(e).__name__)

    # =========================================================
    # CONTINUOUS OPERATION
    # =========================================================

    async def start(self) -> None:
        """
        Loop run_cycle() until stop() is called.

        Runs cycles separated by a fixed delay until stop().
        """
        self._running = True
        self._stop_event = asyncio.Event()
        self._logger.info(
            f"Ingestion service started ({len(self._collectors)} sources, "
            f"every {self._interval}s)"
        )

        try:
            while self._running:
                try:
                    await self.run_cycle()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    self._logger.exception("Ingestion cycle failed")

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            self._logger.info("Ingestion service cancelled")
            raise
        finally:
            self._running = False

    async def stop(self) -> None:
        """Stop ingestion service after the current cycle."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        self._logger.info("Ingestion service stopped")

    async def close(self) -> None:
        """Close collector HTTP sessions."""
        for collector in self._collectors.values():
            await collector.close()

    # =========================================================
    # HEALTH & METRICS
    # =========================================================

    def get_health_status(self) -> Dict[str, Any]:
        """
        Snapshot for /api/status.

        Returns:
            Service state, per-source status, store and enrichment stats
        """
        return {
            "running": self._running,
            "run_count": self._run_count,
            "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
            "interval_seconds": self._interval,
            "collectors": {
                name: collector.get_health_status()
                for name, collector in self._collectors.items()
            },
            "store": self._store.get_stats(),
            "persist_failures": self._persist_failures,
            "enrichment": self._dispatcher.get_stats() if self._dispatcher else None,
        }

    def get_metrics(self) -> IngestionMetrics:
        """
        Running totals across all cycles.

        Returns:
            IngestionMetrics (live object)
        """
        return self._metrics

    def get_recent_reports(self, limit: int = 10) -> List[CycleReport]:
        """
        Get recent cycle reports.

        Args:
            limit: Maximum number of reports to return

        Returns:
            List of recent CycleReport objects, oldest first
        """
        return list(self._reports)[-limit:]

    def get_collector_names(self) -> List[str]:
        """Source names in fan-out order."""
        return list(self._collectors.keys())

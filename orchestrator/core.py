"""
Orchestrator - Core.

============================================================
RESPONSIBILITY
============================================================
Process runtime - wires every component and owns their
lifecycle.

- Builds components in dependency order
- Runs the ingestion scheduler and the API server on one
  event loop
- Turns SIGINT / SIGTERM into an orderly stop

============================================================
STARTUP ORDER
============================================================
1. Database engine + initialization (fatal on failure)
2. Store bootstrapped from recent persisted items
3. Collectors, search / AI clients, enrichment dispatcher
4. Ingestion service and read API

============================================================
SHUTDOWN ORDER
============================================================
1. Stop scheduler and API server
2. Drain enrichment (grace period, then cancel)
3. Close HTTP sessions
4. Dispose database engine

============================================================
"""

import asyncio
import json
import logging
import signal
import sys
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI
from sqlalchemy.engine import Engine

from ai_enrichment.ai_client import AIAnalysisClient
from ai_enrichment.dispatcher import EnrichmentDispatcher
from ai_enrichment.key_pool import KeyPool
from ai_enrichment.search import SerperSearchClient
from core.config import AppConfig
from core.exceptions import StartupError
from core.store import NewsStore
from dashboard.api import create_app
from data_ingestion.collectors import build_collectors
from data_ingestion.ingestion_service import IngestionService
from data_ingestion.types import CycleReport
from database.engine import (
    create_database_engine,
    create_session_factory,
    dispose_engine,
    initialize_database,
)
from database.repository import NewsRepository


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    correlation_id: Optional[str] = None,
) -> logging.Logger:
    """
    Route every logger to stdout in json or pipe-delimited text.

    Args:
        level: Log level
        log_format: Output format (json or text)
        correlation_id: Correlation ID for tracing

    Returns:
        Configured logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
                "correlation_id": correlation_id or "",
            })
        )
    else:
        formatter = logging.Formatter(
            f"%(asctime)s | %(levelname)-8s | %(name)s | {correlation_id or ''} | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("orchestrator")


# ============================================================
# RUNTIME
# ============================================================

class NewsIntelligenceRuntime:
    """
    Owns the store, the database engine and every service.

    Nothing here decides anything; it only builds, starts and
    stops components in order.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._logger = logging.getLogger("orchestrator")

        self._engine: Optional[Engine] = None
        self.repository: Optional[NewsRepository] = None
        self.store: Optional[NewsStore] = None
        self.service: Optional[IngestionService] = None
        self.dispatcher: Optional[EnrichmentDispatcher] = None
        self.ai_client: Optional[AIAnalysisClient] = None
        self.app: Optional[FastAPI] = None

        self._server: Optional[uvicorn.Server] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._shutdown_done = False

    # --------------------------------------------------------
    # Startup
    # --------------------------------------------------------

    def bootstrap(self) -> None:
        """
        Build every component.

        Raises:
            StartupError: If durable storage cannot be opened
        """
        config = self._config

        try:
            self._engine = create_database_engine(config.database_url)
            initialize_database(self._engine)
        except Exception as e:
            dispose_engine(self._engine)
            self._engine = None
            raise StartupError(f"Cannot open durable storage: {e}", cause=e) from e

        self.repository = NewsRepository(create_session_factory(self._engine))

        self.store = NewsStore(
            max_items=config.store_max_items,
            max_seen_ids=config.store_max_seen_ids,
        )
        loaded = self.store.bootstrap(self.repository.load_recent(config.store_max_items))
        self._logger.info(f"Loaded {loaded} items from storage")

        search_client = SerperSearchClient(
            KeyPool(config.serper_keys, name="serper"),
            url=config.serper_url,
            timeout=config.search_timeout_seconds,
        )
        self.ai_client = AIAnalysisClient(
            KeyPool(config.ai_keys, name="ai"),
            search_client,
            url=config.ai_url,
            model=config.ai_model,
            timeout=config.ai_timeout_seconds,
            language=config.ai_response_language,
        )
        self.dispatcher = EnrichmentDispatcher(
            self.store,
            self.ai_client,
            persist=self.repository.upsert,
            max_concurrency=config.enrichment_max_concurrency,
        )

        collectors = build_collectors(
            config.feeds,
            max_items=config.max_items_per_source,
            timeout_seconds=config.fetch_timeout_seconds,
        )
        self.service = IngestionService(
            self.store,
            collectors,
            persist=self.repository.upsert,
            dispatcher=self.dispatcher,
            interval_seconds=config.cycle_interval_seconds,
        )
        self.app = create_app(self.store, self.service)

        self._logger.info(
            f"Runtime ready: {len(collectors)} sources, "
            f"{len(config.ai_keys)} AI keys, {len(config.serper_keys)} search keys"
        )

    # --------------------------------------------------------
    # Execution
    # --------------------------------------------------------

    async def run(self, serve_api: bool = True) -> None:
        """Run scheduler (and API server) until stopped."""
        self._require_bootstrap()
        self._stop_event = asyncio.Event()
        self._install_signal_handlers()

        tasks: List[asyncio.Task] = [
            asyncio.create_task(self.service.start(), name="ingestion"),
        ]
        if serve_api:
            self._server = uvicorn.Server(
                uvicorn.Config(
                    self.app,
                    host=self._config.host,
                    port=self._config.port,
                    log_config=None,
                    access_log=False,
                )
            )
            tasks.append(asyncio.create_task(self._server.serve(), name="api"))
            self._logger.info(f"API listening on {self._config.host}:{self._config.port}")

        stop_waiter = asyncio.create_task(self._stop_event.wait(), name="stop")
        try:
            done, _ = await asyncio.wait(
                [*tasks, stop_waiter],
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in done:
                if task is stop_waiter or task.cancelled():
                    continue
                error = task.exception()
                if error is not None:
                    self._logger.error(
                        f"Task {task.get_name()} failed: {error}",
                        exc_info=error,
                    )
        finally:
            stop_waiter.cancel()
            await self.shutdown(tasks)

    async def run_single_cycle(self) -> CycleReport:
        """Run one cycle and wait for its enrichment to finish."""
        self._require_bootstrap()
        try:
            report = await self.service.run_cycle()
            await self.dispatcher.wait_idle()
            return report
        finally:
            await self.shutdown()

    def request_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    # --------------------------------------------------------
    # Shutdown
    # --------------------------------------------------------

    async def shutdown(self, tasks: Optional[List[asyncio.Task]] = None) -> None:
        """Stop everything in reverse startup order. Idempotent."""
        if self._shutdown_done:
            return
        self._shutdown_done = True
        self._logger.info("Shutting down")

        if self.service is not None:
            await self.service.stop()
        if self._server is not None:
            self._server.should_exit = True

        pending = [t for t in (tasks or []) if not t.done()]
        if pending:
            _, still_running = await asyncio.wait(pending, timeout=self._config.fetch_timeout_seconds)
            for task in still_running:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if self.dispatcher is not None:
            await self.dispatcher.shutdown(self._config.enrichment_shutdown_grace_seconds)
        if self.service is not None:
            await self.service.close()
        if self.ai_client is not None:
            await self.ai_client.close()

        dispose_engine(self._engine)
        self._engine = None
        self._restore_signal_handlers()
        self._logger.info("Shutdown complete")

    def _require_bootstrap(self) -> None:
        if self.service is None or self.dispatcher is None:
            raise RuntimeError("bootstrap() must be called first")

    # --------------------------------------------------------
    # Signal Handlers
    # --------------------------------------------------------

    def _install_signal_handlers(self) -> None:
        """SIGINT and SIGTERM request a clean stop."""
        if sys.platform == "win32":
            return
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._on_signal, sig)

    def _restore_signal_handlers(self) -> None:
        """Give SIGINT and SIGTERM back to the default handlers."""
        if sys.platform == "win32":
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)

    def _on_signal(self, sig: signal.Signals) -> None:
        self._logger.info(f"Received signal {sig.name}")
        self.request_stop()

    # --------------------------------------------------------
    # Health & Status
    # --------------------------------------------------------

    def get_status(self) -> Dict[str, Any]:
        """Get runtime status."""
        return {
            "config": self._config.to_dict(),
            "ingestion": self.service.get_health_status() if self.service else None,
        }

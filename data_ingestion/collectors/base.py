"""
Data Ingestion - Base Collector.

============================================================
PURPOSE
============================================================
Shared plumbing for every news source: a lazily created
aiohttp session, a bounded retry loop, a hard per-source
timeout and the last-result bookkeeping behind /api/status.

Subclasses only implement fetch_items(). collect() wraps it
and never raises: whatever goes wrong, the cycle gets a
FAILED result with zero items for that source.

============================================================
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import aiohttp

from core.models import utc_now
from data_ingestion.types import (
    CollectorConfig,
    FetchError,
    IngestionError,
    IngestionResult,
    IngestionStatus,
    RawNewsItem,
    source_slug,
)


# Logged at DEBUG, not WARNING.
FETCH_TIMED_OUT = "Fetch timed out"


class BaseCollector(ABC):
    """One external news source."""

    def __init__(self, config: CollectorConfig) -> None:
        self._config = config
        self._logger = logging.getLogger(f"collector.{source_slug(config.source_name)}")
        self._session: Optional[aiohttp.ClientSession] = None
        self._last_result: Optional[IngestionResult] = None

    @property
    def source_name(self) -> str:
        return self._config.source_name

    @property
    def is_enabled(self) -> bool:
        return self._config.enabled

    # =========================================================
    # HTTP SESSION
    # =========================================================

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout_seconds),
            )
        return self._session

    async def close(self) -> None:
        session, self._session = self._session, None
        if session is not None and not session.closed:
            await session.close()

    # =========================================================
    # SOURCE-SPECIFIC FETCH
    # =========================================================

    @abstractmethod
    async def fetch_items(self) -> List[RawNewsItem]:
        """
        Fetch and normalize the newest entries of this source.

        Raises:
            FetchError: On network or HTTP errors
            ParseError: On malformed payloads
        """

    # =========================================================
    # COLLECTION
    # =========================================================

    async def collect(self) -> IngestionResult:
        """
        Fetch once, capped at `max_items`, within `timeout_seconds`.

        Returns:
            IngestionResult; FAILED with no items on any error
        """
        result = IngestionResult(source=self.source_name, started_at=utc_now())

        if not self.is_enabled:
            result.status = IngestionStatus.SKIPPED
        else:
            try:
                items = await asyncio.wait_for(
                    self._fetch_with_retry(),
                    timeout=self._config.timeout_seconds,
                )
                result.items = items[: self._config.max_items]
                result.records_fetched = len(result.items)
            except asyncio.TimeoutError:
                result.fail(FETCH_TIMED_OUT)
            except IngestionError as e:
                result.fail(f"{type(e).__name__}: {e}")
            except Exception as e:
                self._logger.exception(f"Unexpected error while fetching {self.source_name}")
                result.fail(f"Unexpected error: {e}")

        result.finish(utc_now())
        self._last_result = result

        if result.status == IngestionStatus.FAILED and result.errors[-1] == FETCH_TIMED_OUT:
            self._logger.debug(f"Source {self.source_name} failed: {FETCH_TIMED_OUT}")
        elif result.status == IngestionStatus.FAILED:
            self._logger.warning(f"Source {self.source_name} failed: {result.errors[-1]}")
        else:
            self._logger.debug(f"Source {self.source_name} collected: {result.to_dict()}")
        return result

    async def _fetch_with_retry(self) -> List[RawNewsItem]:
        attempts = max(1, self._config.max_retries)
        for attempt in range(1, attempts + 1):
            try:
                return await self.fetch_items()
            except FetchError as e:
                if not e.recoverable or attempt == attempts:
                    raise
                delay = 2 ** (attempt - 1)
                self._logger.info(
                    f"{self.source_name} attempt {attempt}/{attempts} failed ({e}), "
                    f"retrying in {delay}s"
                )
                await asyncio.sleep(delay)
        return []

    # =========================================================
    # STATUS
    # =========================================================

    def get_health_status(self) -> Dict[str, Any]:
        last = self._last_result
        if last is None:
            return {"source": self.source_name, "enabled": self.is_enabled}
        return {
            "source": self.source_name,
            "enabled": self.is_enabled,
            "last_status": last.status.value,
            "last_items": len(last.items),
            "last_run_at": last.completed_at.isoformat() if last.completed_at else None,
            "last_error": last.errors[-1] if last.errors else None,
        }

"""
Data Ingestion - Type Definitions.

============================================================
PURPOSE
============================================================
Value types passed between collectors, the ingestion
service and the read API.

- CollectorConfig: per-source settings
- RawNewsItem: a normalized entry before classification
- IngestionResult / CycleReport: what a fetch produced
- IngestionMetrics: running totals for monitoring
- IngestionError family: collector failures

Also hosts the stable id rules shared by every collector.

============================================================
"""

import hashlib
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from core.models import MarketState, NewsItem, utc_now


# =============================================================
# ENUMS
# =============================================================

class IngestionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


# =============================================================
# COLLECTOR SETTINGS
# =============================================================

@dataclass(frozen=True)
class CollectorConfig:
    source_name: str
    url: str = ""
    enabled: bool = True
    max_items: int = 10
    max_retries: int = 1
    timeout_seconds: float = 20.0


# =============================================================
# RAW ITEMS AND IDS
# =============================================================

@dataclass
class RawNewsItem:
    """Normalized item as produced by a collector."""
    id: str
    title: str
    source: str
    timestamp: datetime = field(default_factory=utc_now)
    url: str = ""

    def to_news_item(self) -> NewsItem:
        return NewsItem(
            id=self.id,
            title=self.title,
            source=self.source,
            timestamp=self.timestamp,
            url=self.url,
        )


_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def source_slug(source: str) -> str:
    """Lower-case, dash-separated form of a source name."""
    slug = _SLUG_PATTERN.sub("-", source.lower()).strip("-")
    return slug or "source"


def title_hash(title: str) -> str:
    """First 16 hex chars of the SHA-256 of a title."""
    return hashlib.sha256(title.encode("utf-8")).hexdigest()[:16]


def resolve_item_id(
    guid: Optional[str],
    link: Optional[str],
    source: str,
    title: str,
) -> str:
    """
    Resolve a stable id for a feed entry.

    Order: GUID, then link, then `<source-slug>-<title hash>`.
    """
    if guid and guid.strip():
        return guid.strip()
    if link and link.strip():
        return link.strip()
    return f"{source_slug(source)}-{title_hash(title)}"


# =============================================================
# PER-SOURCE RESULT
# =============================================================

@dataclass
class IngestionResult:
    """What one collector produced in one cycle."""
    source: str = ""
    status: IngestionStatus = IngestionStatus.SUCCESS
    items: List[RawNewsItem] = field(default_factory=list)
    records_fetched: int = 0
    errors: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    def finish(self, at: datetime) -> None:
        self.completed_at = at
        if self.started_at is not None:
            self.duration_seconds = (at - self.started_at).total_seconds()

    def fail(self, reason: str) -> None:
        """A failed source contributes no items to the cycle."""
        self.status = IngestionStatus.FAILED
        self.items = []
        self.records_fetched = 0
        self.errors.append(reason)

    @classmethod
    def failed(cls, source: str, reason: str) -> "IngestionResult":
        now = utc_now()
        result = cls(source=source, started_at=now)
        result.fail(reason)
        result.finish(now)
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "status": self.status.value,
            "items": len(self.items),
            "duration_seconds": round(self.duration_seconds, 3),
            "errors": self.errors[-3:],
        }


# =============================================================
# CYCLE REPORT
# =============================================================

@dataclass
class CycleReport:
    """Outcome of one ingestion cycle."""
    cycle_id: UUID = field(default_factory=uuid4)
    results: List[IngestionResult] = field(default_factory=list)
    fetched_count: int = 0
    new_items: List[NewsItem] = field(default_factory=list)
    market_state: MarketState = field(default_factory=MarketState.neutral)
    started_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    @property
    def new_count(self) -> int:
        return len(self.new_items)

    @property
    def failed_sources(self) -> List[str]:
        return [r.source for r in self.results if r.status == IngestionStatus.FAILED]

    @property
    def all_sources_failed(self) -> bool:
        return bool(self.results) and len(self.failed_sources) == len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle_id": str(self.cycle_id),
            "fetched": self.fetched_count,
            "new": self.new_count,
            "failed_sources": self.failed_sources,
            "market_state": self.market_state.to_dict(),
            "duration_seconds": round(self.duration_seconds, 3),
        }


# =============================================================
# SERVICE COUNTERS
# =============================================================

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class SourceCounters:
    runs: int = 0
    failures: int = 0
    items: int = 0
    last_status: Optional[str] = None
    last_run: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runs": self.runs,
            "failures": self.failures,
            "items": self.items,
            "last_status": self.last_status,
            "last_run": _iso(self.last_run),
        }


@dataclass
class IngestionMetrics:
    """
    Running totals kept by the ingestion service.

    A cycle counts as failed only when every source failed;
    a cycle with no sources at all still counts as a run.
    """
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    total_items_fetched: int = 0
    total_items_admitted: int = 0
    total_source_failures: int = 0
    last_run_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    last_failure_at: Optional[datetime] = None
    sources: Dict[str, SourceCounters] = field(default_factory=dict)

    def record_cycle(self, report: CycleReport, completed_at: datetime) -> None:
        self.total_runs += 1
        self.last_run_at = completed_at
        self.total_items_fetched += report.fetched_count
        self.total_items_admitted += report.new_count
        self.total_source_failures += len(report.failed_sources)

        if report.all_sources_failed:
            self.failed_runs += 1
            self.last_failure_at = completed_at
        else:
            self.successful_runs += 1
            self.last_success_at = completed_at

        for result in report.results:
            counters = self.sources.setdefault(result.source, SourceCounters())
            counters.runs += 1
            counters.items += len(result.items)
            counters.last_status = result.status.value
            counters.last_run = result.completed_at
            if result.status == IngestionStatus.FAILED:
                counters.failures += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_runs": self.total_runs,
            "successful_runs": self.successful_runs,
            "failed_runs": self.failed_runs,
            "total_items_fetched": self.total_items_fetched,
            "total_items_admitted": self.total_items_admitted,
            "total_source_failures": self.total_source_failures,
            "last_run_at": _iso(self.last_run_at),
            "last_success_at": _iso(self.last_success_at),
            "last_failure_at": _iso(self.last_failure_at),
            "sources": {name: c.to_dict() for name, c in self.sources.items()},
        }


# =============================================================
# ERRORS
# =============================================================

class IngestionError(Exception):
    """
    A collector could not produce items.

    `recoverable` tells the retry loop whether another attempt
    could succeed (timeouts, 5xx) or is pointless (4xx).
    """

    def __init__(
        self,
        message: str,
        source: str,
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.source = source
        self.recoverable = recoverable
        self.details = dict(details or {})


class FetchError(IngestionError):
    """Transport or HTTP level failure."""


class ParseError(IngestionError):
    """The source answered with something that is not news."""

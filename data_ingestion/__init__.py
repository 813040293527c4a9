"""
Data Ingestion Package.

This package fetches news and runs the ingestion cycle.

Sub-packages:
- collectors: News collection from external sources

Main service:
- ingestion_service: Owns the fetch / decide / commit / enrich cycle
"""

from data_ingestion.ingestion_service import IngestionService
from data_ingestion.collectors import (
    BaseCollector,
    BinanceAnnouncementsCollector,
    RssFeedCollector,
    build_collectors,
)
from data_ingestion.types import (
    IngestionStatus,
    CollectorConfig,
    RawNewsItem,
    IngestionResult,
    CycleReport,
    IngestionMetrics,
    IngestionError,
    FetchError,
    ParseError,
    resolve_item_id,
)


__all__ = [
    "IngestionService",
    "BaseCollector",
    "BinanceAnnouncementsCollector",
    "RssFeedCollector",
    "build_collectors",
    "IngestionStatus",
    "CollectorConfig",
    "RawNewsItem",
    "IngestionResult",
    "CycleReport",
    "IngestionMetrics",
    "IngestionError",
    "FetchError",
    "ParseError",
    "resolve_item_id",
]

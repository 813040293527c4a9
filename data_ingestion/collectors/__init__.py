"""
Data Ingestion - Collectors Package.

This package contains all news collection modules.
Each collector is responsible for a single source.

Collectors:
- rss_feed: Standard RSS/Atom feeds (CoinDesk, CoinTelegraph, ...)
- binance_announcements: Binance new-listing announcements
"""

from typing import Dict, List

from core.config import FeedSource
from data_ingestion.collectors.base import BaseCollector
from data_ingestion.collectors.rss_feed import RssFeedCollector
from data_ingestion.collectors.binance_announcements import BinanceAnnouncementsCollector
from data_ingestion.types import CollectorConfig


def build_collectors(
    feeds: List[FeedSource],
    max_items: int,
    timeout_seconds: float,
) -> Dict[str, BaseCollector]:
    """Create one collector per configured feed, keyed by source name."""
    collectors: Dict[str, BaseCollector] = {}
    for feed in feeds:
        config = CollectorConfig(
            source_name=feed.name,
            url=feed.url,
            max_items=max_items,
            timeout_seconds=timeout_seconds,
        )
        if feed.is_exchange_announcements:
            collectors[feed.name] = BinanceAnnouncementsCollector(config)
        else:
            collectors[feed.name] = RssFeedCollector(config)
    return collectors


__all__ = [
    "BaseCollector",
    "RssFeedCollector",
    "BinanceAnnouncementsCollector",
    "build_collectors",
]

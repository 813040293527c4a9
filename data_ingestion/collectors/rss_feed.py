"""
Data Ingestion - RSS Feed Collector.

============================================================
RESPONSIBILITY
============================================================
Collects news headlines from a standard RSS/Atom feed.

- Downloads the feed body over HTTP
- Parses entries with feedparser
- Resolves a stable id per entry
- Timestamps entries without a publish date at fetch time

============================================================
DATA FLOW
============================================================
1. GET feed URL
2. feedparser.parse(body)
3. First `max_items` entries -> RawNewsItem
4. Return items to the ingestion service

============================================================
"""

import calendar
from datetime import datetime, timezone
from typing import Any, List, Optional

import aiohttp
import feedparser

from core.models import utc_now
from data_ingestion.collectors.base import BaseCollector
from data_ingestion.types import (
    CollectorConfig,
    RawNewsItem,
    FetchError,
    ParseError,
    resolve_item_id,
)


USER_AGENT = "Mozilla/5.0 (compatible; CryptoNewsIntelligence/1.0)"


def _entry_value(entry: Any, key: str) -> Optional[str]:
    value = entry.get(key) if hasattr(entry, "get") else getattr(entry, key, None)
    if value is None:
        return None
    return str(value)


def _entry_timestamp(entry: Any) -> Optional[datetime]:
    """Publish (or update) time of an entry as aware UTC datetime."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key) if hasattr(entry, "get") else None
        if parsed:
            return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)
    return None


class RssFeedCollector(BaseCollector):
    """
    Collector for a single RSS/Atom feed.

    ============================================================
    WIRING
    ============================================================
    Source: configured feed URL (HTTP GET)
    Parser: feedparser
    Output: RawNewsItem list

    ============================================================
    """

    def __init__(self, config: CollectorConfig) -> None:
        if not config.url:
            raise ValueError(f"Feed {config.source_name} has no URL")
        super().__init__(config)

    async def fetch_items(self) -> List[RawNewsItem]:
        """
        Fetch and parse the feed.

        Raises:
            FetchError: On HTTP status >= 400 or transport errors
            ParseError: When the body is not a feed at all
        """
        text = await self._download()
        return self.parse_feed(text)

    async def _download(self) -> str:
        session = await self._get_session()
        try:
            async with session.get(
                self._config.url,
                headers={"User-Agent": USER_AGENT},
            ) as response:
                if response.status >= 400:
                    raise FetchError(
                        message=f"HTTP {response.status}",
                        source=self.source_name,
                        recoverable=response.status >= 500,
                        details={"status_code": response.status, "url": self._config.url},
                    )
                return await response.text()

        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Request error: {e}",
                source=self.source_name,
                recoverable=True,
            ) from e

    def parse_feed(self, text: str) -> List[RawNewsItem]:
        """
        Parse a feed body into raw items.

        Args:
            text: Feed XML

        Returns:
            Up to `max_items` items; entries with blank titles are skipped
        """
        parsed = feedparser.parse(text)
        entries = getattr(parsed, "entries", None) or []

        if not entries and getattr(parsed, "bozo", False):
            raise ParseError(
                message=f"Malformed feed: {getattr(parsed, 'bozo_exception', 'unknown error')}",
                source=self.source_name,
            )

        fetched_at = utc_now()
        items: List[RawNewsItem] = []

        for entry in entries:
            if len(items) >= self._config.max_items:
                break

            title = (_entry_value(entry, "title") or "").strip()
            if not title:
                continue

            link = (_entry_value(entry, "link") or "").strip()
            guid = _entry_value(entry, "id")

            items.append(
                RawNewsItem(
                    id=resolve_item_id(guid, link, self.source_name, title),
                    title=title,
                    source=self.source_name,
                    timestamp=_entry_timestamp(entry) or fetched_at,
                    url=link,
                )
            )

        return items

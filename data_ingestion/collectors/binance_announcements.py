"""
Data Ingestion - Binance Announcements Collector.

============================================================
RESPONSIBILITY
============================================================
Collects new-listing announcements from the Binance CMS.

- POSTs to the public article-list endpoint (catalog 48)
- Accepts the nested `data.catalogs[].articles[]` shape
  as well as a flat `data.articles[]`
- Builds ids from the article code

============================================================
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from core.models import utc_now
from data_ingestion.collectors.base import BaseCollector
from data_ingestion.types import (
    CollectorConfig,
    RawNewsItem,
    FetchError,
    ParseError,
    title_hash,
)


ARTICLE_LIST_URL = "https://www.binance.com/bapi/composite/v1/public/cms/article/list/query"
ARTICLE_URL = "https://www.binance.com/en/support/announcement/{code}"
NEW_LISTING_CATALOG_ID = 48


class BinanceAnnouncementsCollector(BaseCollector):
    """
    Collector for Binance new-listing announcements.

    ============================================================
    WIRING
    ============================================================
    Source: Binance CMS article list (HTTP POST, JSON)
    Output: RawNewsItem list, ids `binance-<code>`

    ============================================================
    """

    def __init__(self, config: CollectorConfig, endpoint: str = ARTICLE_LIST_URL) -> None:
        super().__init__(config)
        self._endpoint = endpoint

    async def fetch_items(self) -> List[RawNewsItem]:
        payload = {
            "type": "catalogs",
            "catalogId": NEW_LISTING_CATALOG_ID,
            "pageNo": 1,
            "pageSize": self._config.max_items,
        }
        session = await self._get_session()

        try:
            async with session.post(
                self._endpoint,
                json=payload,
                headers={"Content-Type": "application/json", "User-Agent": "Mozilla/5.0"},
            ) as response:
                if response.status != 200:
                    raise FetchError(
                        message=f"binance api returned status: {response.status}",
                        source=self.source_name,
                        recoverable=response.status >= 500,
                        details={"status_code": response.status},
                    )
                body = await response.text()

        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Request error: {e}",
                source=self.source_name,
                recoverable=True,
            ) from e

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise ParseError(
                message=f"Invalid JSON: {e}",
                source=self.source_name,
            ) from e

        return self.parse_articles(data)

    def parse_articles(self, data: Dict[str, Any]) -> List[RawNewsItem]:
        """
        Convert an article-list payload into raw items.

        Raises:
            FetchError: When the payload reports failure
            ParseError: When no article list can be found
        """
        if not isinstance(data, dict):
            raise ParseError(message="Unexpected payload type", source=self.source_name)

        if data.get("success") is False:
            raise FetchError(
                message=f"binance api error: {data.get('message') or data.get('code')}",
                source=self.source_name,
                recoverable=True,
            )

        articles = self._extract_articles(data.get("data"))
        if articles is None:
            raise ParseError(
                message="Cannot find articles in Binance response",
                source=self.source_name,
            )

        fetched_at = utc_now()
        items: List[RawNewsItem] = []

        for article in articles:
            if len(items) >= self._config.max_items:
                break
            if not isinstance(article, dict):
                continue

            title = str(article.get("title") or "").strip()
            if not title:
                continue

            code = str(article.get("code") or "").strip()
            items.append(
                RawNewsItem(
                    id=f"binance-{code or title_hash(title)}",
                    title=title,
                    source=self.source_name,
                    timestamp=self._release_time(article.get("releaseDate")) or fetched_at,
                    url=ARTICLE_URL.format(code=code) if code else "",
                )
            )

        return items

    @staticmethod
    def _extract_articles(inner: Any) -> Optional[List[Any]]:
        if isinstance(inner, list):
            return inner
        if not isinstance(inner, dict):
            return None
        if isinstance(inner.get("articles"), list):
            return inner["articles"]
        catalogs = inner.get("catalogs")
        if isinstance(catalogs, list):
            articles: List[Any] = []
            for catalog in catalogs:
                if isinstance(catalog, dict) and isinstance(catalog.get("articles"), list):
                    articles.extend(catalog["articles"])
            return articles
        return None

    def _release_time(self, value: Any) -> Optional[datetime]:
        """Release date is Unix milliseconds."""
        if not isinstance(value, (int, float)):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            self._logger.debug(f"Ignoring bad releaseDate: {value!r}")
            return None

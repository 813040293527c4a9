"""
Tests for news collectors.

============================================================
TEST SCENARIOS
============================================================
1. Id resolution (GUID -> link -> source/title hash)
2. RSS parsing: caps, blank titles, timestamps, malformed feeds
3. Binance article payload shapes and failure payloads
4. collect() turns every failure into a FAILED result
5. Collector factory

============================================================
"""

import asyncio
import logging
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.config import DEFAULT_FEEDS
from data_ingestion.collectors import build_collectors
from data_ingestion.collectors.base import BaseCollector
from data_ingestion.collectors.binance_announcements import BinanceAnnouncementsCollector
from data_ingestion.collectors.rss_feed import RssFeedCollector
from data_ingestion.types import (
    CollectorConfig,
    FetchError,
    IngestionStatus,
    ParseError,
    RawNewsItem,
    resolve_item_id,
    source_slug,
    title_hash,
)


RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test Feed</title>
    <item>
      <title>Bitcoin ETF sees record inflows</title>
      <link>https://news.example/btc-etf</link>
      <guid isPermaLink="false">guid-1</guid>
      <pubDate>Wed, 01 May 2024 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>   </title>
      <link>https://news.example/blank</link>
    </item>
    <item>
      <title>Solana outage resolved</title>
      <link>https://news.example/sol-outage</link>
    </item>
    <item>
      <title>Cardano roadmap published</title>
    </item>
  </channel>
</rss>
"""


def rss_collector(max_items=10):
    return RssFeedCollector(CollectorConfig(
        source_name="Test Feed",
        url="https://news.example/rss",
        max_items=max_items,
    ))


def mock_response(status=200, text=""):
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text)
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


class StaticCollector(BaseCollector):
    """Collector with a scripted fetch_items()."""

    def __init__(self, config, items=None, error=None, delay=0.0):
        super().__init__(config)
        self._items = items or []
        self._error = error
        self._delay = delay

    async def fetch_items(self):
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._items)


# ============================================================
# TEST: ID RESOLUTION
# ============================================================

class TestResolveItemId:

    def test_guid_first(self):
        assert resolve_item_id(" g-1 ", "https://l", "Src", "Title") == "g-1"

    def test_link_when_no_guid(self):
        assert resolve_item_id("", "https://l", "Src", "Title") == "https://l"
        assert resolve_item_id(None, " https://l ", "Src", "Title") == "https://l"

    def test_hash_fallback(self):
        item_id = resolve_item_id(None, None, "Coin Telegraph", "Some Title")
        assert item_id == f"coin-telegraph-{title_hash('Some Title')}"
        assert len(title_hash("Some Title")) == 16

    def test_fallback_is_stable(self):
        assert resolve_item_id(None, "", "S", "T") == resolve_item_id("  ", None, "S", "T")

    def test_source_slug(self):
        assert source_slug("Binance Announcements") == "binance-announcements"
        assert source_slug("!!!") == "source"


# ============================================================
# TEST: RSS COLLECTOR
# ============================================================

class TestRssFeedCollector:

    def test_requires_url(self):
        with pytest.raises(ValueError):
            RssFeedCollector(CollectorConfig(source_name="No URL"))

    def test_parse_feed(self):
        items = rss_collector().parse_feed(RSS_FEED)

        assert [item.title for item in items] == [
            "Bitcoin ETF sees record inflows",
            "Solana outage resolved",
            "Cardano roadmap published",
        ]
        assert items[0].id == "guid-1"
        assert items[0].url == "https://news.example/btc-etf"
        assert items[0].timestamp == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert items[1].id == "https://news.example/sol-outage"
        assert items[2].id == f"test-feed-{title_hash('Cardano roadmap published')}"
        assert all(item.source == "Test Feed" for item in items)

    def test_missing_date_uses_fetch_time(self):
        before = datetime.now(timezone.utc)
        items = rss_collector().parse_feed(RSS_FEED)
        assert items[1].timestamp >= before
        assert items[1].timestamp.tzinfo is not None

    def test_parse_feed_caps_items(self):
        assert len(rss_collector(max_items=2).parse_feed(RSS_FEED)) == 2

    def test_malformed_feed_raises(self):
        with pytest.raises(ParseError):
            rss_collector().parse_feed("this is <not a feed")

    @pytest.mark.asyncio
    async def test_http_error_status_fails_source(self):
        collector = rss_collector()
        session = MagicMock()
        session.get = MagicMock(return_value=mock_response(503, ""))

        with patch.object(collector, "_get_session", AsyncMock(return_value=session)):
            result = await collector.collect()

        assert result.status == IngestionStatus.FAILED
        assert result.items == []
        assert "HTTP 503" in result.errors[0]

    @pytest.mark.asyncio
    async def test_collect_success(self):
        collector = rss_collector()
        session = MagicMock()
        session.get = MagicMock(return_value=mock_response(200, RSS_FEED))

        with patch.object(collector, "_get_session", AsyncMock(return_value=session)):
            result = await collector.collect()

        assert result.status == IngestionStatus.SUCCESS
        assert result.records_fetched == 3
        assert collector.get_health_status()["last_items"] == 3


# ============================================================
# TEST: BINANCE ANNOUNCEMENTS
# ============================================================

class TestBinanceAnnouncementsCollector:

    @pytest.fixture
    def collector(self):
        return BinanceAnnouncementsCollector(CollectorConfig(
            source_name="Binance Announcements",
            url="binance:announcements",
            max_items=10,
        ))

    def test_nested_catalogs(self, collector):
        data = {
            "success": True,
            "data": {"catalogs": [{"articles": [
                {"code": "abc123", "title": "Binance Will List XYZ (XYZ)", "releaseDate": 1714557600000},
                {"code": "def456", "title": "Binance Will List QRS (QRS)"},
            ]}]},
        }
        items = collector.parse_articles(data)

        assert [item.id for item in items] == ["binance-abc123", "binance-def456"]
        assert items[0].source == "Binance Announcements"
        assert items[0].url == "https://www.binance.com/en/support/announcement/abc123"
        assert items[0].timestamp == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    def test_flat_articles_and_list_payload(self, collector):
        article = {"code": "x1", "title": "Binance Will Delist OLD"}
        assert collector.parse_articles({"data": {"articles": [article]}})[0].id == "binance-x1"
        assert collector.parse_articles({"data": [article]})[0].id == "binance-x1"

    def test_missing_code_uses_title_hash(self, collector):
        items = collector.parse_articles({"data": [{"title": "Untitled listing"}]})
        assert items[0].id == f"binance-{title_hash('Untitled listing')}"
        assert items[0].url == ""

    def test_blank_titles_and_non_dicts_skipped(self, collector):
        items = collector.parse_articles({"data": [{"code": "a", "title": ""}, "junk", {"title": "Ok"}]})
        assert [item.title for item in items] == ["Ok"]

    def test_respects_max_items(self):
        collector = BinanceAnnouncementsCollector(CollectorConfig(
            source_name="Binance Announcements", max_items=1,
        ))
        items = collector.parse_articles({"data": [{"title": "A"}, {"title": "B"}]})
        assert len(items) == 1

    def test_failure_payload(self, collector):
        with pytest.raises(FetchError):
            collector.parse_articles({"success": False, "message": "rate limited"})

    def test_unrecognized_payload(self, collector):
        with pytest.raises(ParseError):
            collector.parse_articles({"data": {"unexpected": 1}})

    @pytest.mark.asyncio
    async def test_fetch_posts_catalog_request(self, collector):
        body = '{"success": true, "data": {"articles": [{"code": "c", "title": "T"}]}}'
        session = MagicMock()
        session.post = MagicMock(return_value=mock_response(200, body))

        with patch.object(collector, "_get_session", AsyncMock(return_value=session)):
            items = await collector.fetch_items()

        assert items[0].id == "binance-c"
        _, kwargs = session.post.call_args
        assert kwargs["json"] == {"type": "catalogs", "catalogId": 48, "pageNo": 1, "pageSize": 10}

    @pytest.mark.asyncio
    async def test_non_200_is_fetch_error(self, collector):
        session = MagicMock()
        session.post = MagicMock(return_value=mock_response(403, ""))
        with patch.object(collector, "_get_session", AsyncMock(return_value=session)):
            with pytest.raises(FetchError):
                await collector.fetch_items()


# ============================================================
# TEST: BASE COLLECTOR ERROR ISOLATION
# ============================================================

class TestCollectIsolation:

    @pytest.fixture
    def config(self):
        return CollectorConfig(source_name="Scripted", max_items=2, timeout_seconds=0.05)

    @pytest.mark.asyncio
    async def test_items_capped(self, config):
        items = [RawNewsItem(id=f"r{i}", title="t", source="Scripted") for i in range(5)]
        result = await StaticCollector(config, items=items).collect()
        assert result.status == IngestionStatus.SUCCESS
        assert len(result.items) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        FetchError("refused", source="Scripted"),
        ParseError("garbage", source="Scripted"),
        RuntimeError("unexpected"),
    ])
    async def test_errors_become_failed_results(self, config, error):
        collector = StaticCollector(config, error=error)
        result = await collector.collect()

        assert result.status == IngestionStatus.FAILED
        assert result.items == []
        assert collector.get_health_status()["last_error"] is not None

    @pytest.mark.asyncio
    async def test_timeout_becomes_failed_result(self, config):
        result = await StaticCollector(config, delay=1.0).collect()
        assert result.status == IngestionStatus.FAILED
        assert result.errors == ["Fetch timed out"]

    @pytest.mark.asyncio
    async def test_timeout_logged_at_debug_other_failures_at_warning(self, config, caplog):
        caplog.set_level(logging.DEBUG, logger="collector")

        await StaticCollector(config, delay=1.0).collect()
        await StaticCollector(config, error=FetchError("refused", source="Scripted")).collect()

        failures = [(r.levelname, r.getMessage()) for r in caplog.records if "failed" in r.getMessage()]
        assert failures == [
            ("DEBUG", "Source Scripted failed: Fetch timed out"),
            ("WARNING", "Source Scripted failed: FetchError: refused"),
        ]

    @pytest.mark.asyncio
    async def test_disabled_collector_skipped(self):
        config = CollectorConfig(source_name="Off", enabled=False)
        result = await StaticCollector(config, error=RuntimeError("never")).collect()
        assert result.status == IngestionStatus.SKIPPED


# ============================================================
# TEST: FACTORY
# ============================================================

class TestBuildCollectors:

    def test_default_feeds(self):
        collectors = build_collectors(list(DEFAULT_FEEDS), max_items=5, timeout_seconds=3.0)

        assert list(collectors) == ["Binance Announcements", "CoinDesk", "CoinTelegraph", "Decrypt"]
        assert isinstance(collectors["Binance Announcements"], BinanceAnnouncementsCollector)
        assert isinstance(collectors["CoinDesk"], RssFeedCollector)
        assert collectors["CoinDesk"].source_name == "CoinDesk"

"""
Tests for the read API.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from core.models import MarketMood, MarketState, TradingSignal
from core.store import NewsStore
from dashboard.api import create_app
from data_ingestion.collectors.base import BaseCollector
from data_ingestion.ingestion_service import IngestionService
from data_ingestion.types import CollectorConfig


class EmptyCollector(BaseCollector):

    async def fetch_items(self):
        return []


@pytest.fixture
def store(make_item):
    store = NewsStore(max_items=10, max_seen_ids=100)
    with store.write_locked():
        items = store.admit_locked([
            make_item("n1", title="Newest", trading_signal=TradingSignal.BUY),
            make_item("n2", title="Middle"),
            make_item("n3", title="Oldest"),
        ])
        store.publish_locked(items, MarketState(MarketMood.BEARISH, -0.3))
    return store


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


class TestNews:

    def test_newest_first(self, client):
        response = client.get("/api/news")
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 3
        assert [item["id"] for item in body["items"]] == ["n1", "n2", "n3"]

    def test_item_shape(self, client):
        item = client.get("/api/news").json()["items"][0]
        assert item["title"] == "Newest"
        assert item["trading_signal"] == "BUY"
        assert item["scope"] == "ASSET"
        assert item["rule_reason"] == "Low impact or neutral signal"
        assert item["ai_analysis"] == ""

    def test_limit(self, client):
        body = client.get("/api/news", params={"limit": 2}).json()
        assert [item["id"] for item in body["items"]] == ["n1", "n2"]

    @pytest.mark.parametrize("limit", [0, 11])
    def test_limit_out_of_range(self, client, limit):
        assert client.get("/api/news", params={"limit": limit}).status_code == 422


class TestMarketAndHealth:

    def test_market(self, client):
        assert client.get("/api/market").json() == {"mood": "BEARISH", "score": -0.3}

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["uptime_seconds"] >= 0

    def test_root(self, client):
        assert client.get("/").json()["service"] == "Crypto News Intelligence API"

    def test_cors_header(self, client):
        response = client.get("/api/market", headers={"Origin": "https://dashboard.example"})
        assert response.headers["access-control-allow-origin"] == "*"


class TestStatus:

    def test_without_service(self, client):
        body = client.get("/api/status").json()
        assert body["running"] is False
        assert body["store"]["items"] == 3

    def test_with_service(self, store):
        collector = EmptyCollector(CollectorConfig(source_name="CoinDesk"))
        service = IngestionService(store, {"CoinDesk": collector})
        asyncio.run(service.run_cycle())

        body = TestClient(create_app(store, service)).get("/api/status").json()

        assert body["running"] is False
        assert body["run_count"] == 1
        assert body["sources"][0]["source"] == "CoinDesk"
        assert body["sources"][0]["last_status"] == "success"
        assert body["metrics"]["total_runs"] == 1
        assert body["store"]["max_items"] == 10

"""
Tests for IngestionService.

============================================================
TEST SCENARIOS
============================================================
1. Full cycle: classify, aggregate, score, decide, publish
2. Dedup across cycles never re-triggers enrichment
3. Failure isolation between sources
4. Persist completes before enrichment is dispatched
5. Market state is recomputed every cycle
6. Bounded memory across many cycles
7. Continuous mode start / stop

============================================================
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.models import MarketMood, Scope, TradingSignal
from core.store import NewsStore
from data_ingestion.collectors.base import BaseCollector
from data_ingestion.ingestion_service import IngestionService
from data_ingestion.types import CollectorConfig, FetchError, RawNewsItem
from decision_engine.trading_rules import REASON_BULLISH_IN_BULLISH
from scoring_engine.news_score import NewsScorer


class ScriptedCollector(BaseCollector):
    """Returns one scripted batch per call, then nothing."""

    def __init__(self, name, batches=None, error=None):
        super().__init__(CollectorConfig(source_name=name, max_items=10, timeout_seconds=1.0))
        self._batches = list(batches or [])
        self._error = error
        self.calls = 0

    async def fetch_items(self):
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._batches.pop(0) if self._batches else []


def raw(item_id, title, source):
    return RawNewsItem(id=item_id, title=title, source=source)


def mock_dispatcher():
    dispatcher = MagicMock()
    dispatcher.get_stats.return_value = {"in_flight": 0}
    return dispatcher


@pytest.fixture
def store():
    return NewsStore()


# ============================================================
# TEST: SINGLE CYCLE
# ============================================================

class TestRunCycle:

    @pytest.mark.asyncio
    async def test_cycle_classifies_decides_and_publishes(self, store):
        exchange = ScriptedCollector("Binance Announcements", [[
            raw("binance-1", "Binance listing XYZ token", "Binance Announcements"),
            raw("binance-2", "Binance lists QRS token", "Binance Announcements"),
        ]])
        news = ScriptedCollector("CoinDesk", [[
            raw("cd-1", "ETF inflows rally, bullish outlook", "CoinDesk"),
        ]])
        service = IngestionService(store, {"Binance Announcements": exchange, "CoinDesk": news})

        report = await service.run_cycle()

        assert report.fetched_count == 3
        assert report.new_count == 3
        assert report.market_state.mood == MarketMood.BULLISH
        assert report.market_state.score == pytest.approx(0.7 * 0.6 * 0.7)

        listing = store.get_item("binance-1")
        assert listing.scope == Scope.ASSET
        assert listing.asset == "ALT"
        assert listing.final_score == pytest.approx(0.24)
        assert listing.trading_signal == TradingSignal.STRONG_BUY
        assert listing.rule_reason == REASON_BULLISH_IN_BULLISH

        neutral_listing = store.get_item("binance-2")
        assert neutral_listing.impact == pytest.approx(0.8)
        assert neutral_listing.sentiment == 0.0
        assert neutral_listing.final_score == 0.0
        assert neutral_listing.trading_signal == TradingSignal.IGNORE

        macro = store.get_item("cd-1")
        assert macro.scope == Scope.MARKET
        assert macro.trading_signal == TradingSignal.WAIT
        assert macro.final_score == pytest.approx(0.7 * 0.6 * 0.7)

        assert store.get_market_state() == report.market_state

    @pytest.mark.asyncio
    async def test_final_score_matches_scorer_for_every_item(self, store):
        scorer = NewsScorer()
        collector = ScriptedCollector("CoinTelegraph", [[
            raw("a", "Bitcoin rally gains", "CoinTelegraph"),
            raw("b", "Fed signals inflation crash", "CoinTelegraph"),
            raw("c", "Cardano roadmap published", "CoinTelegraph"),
        ]])
        service = IngestionService(store, {"CoinTelegraph": collector}, scorer=scorer)

        await service.run_cycle()

        for item in store.get_items():
            assert item.final_score == pytest.approx(item.impact * item.sentiment * 0.7)
            assert item.final_score == pytest.approx(scorer.score(item))

    @pytest.mark.asyncio
    async def test_duplicates_across_sources_admitted_once(self, store):
        first = ScriptedCollector("First", [[raw("shared", "Solana upgrade", "First")]])
        second = ScriptedCollector("Second", [[raw("shared", "Solana upgrade", "Second")]])
        service = IngestionService(store, {"First": first, "Second": second})

        report = await service.run_cycle()

        assert report.fetched_count == 2
        assert report.new_count == 1
        assert store.get_item("shared").source == "First"


# ============================================================
# TEST: DEDUP & ENRICHMENT HAND-OFF
# ============================================================

class TestEnrichmentHandOff:

    @pytest.mark.asyncio
    async def test_seen_items_never_redispatched(self, store):
        batch = [raw("n1", "Bitcoin adoption grows", "CoinDesk")]
        collector = ScriptedCollector("CoinDesk", [batch, list(batch)])
        dispatcher = mock_dispatcher()
        service = IngestionService(store, {"CoinDesk": collector}, dispatcher=dispatcher)

        first = await service.run_cycle()
        second = await service.run_cycle()

        assert first.new_count == 1
        assert second.new_count == 0
        assert len(store.get_items()) == 1
        dispatcher.dispatch.assert_called_once()
        dispatched = dispatcher.dispatch.call_args[0][0]
        assert [item.id for item in dispatched] == ["n1"]

    @pytest.mark.asyncio
    async def test_persist_happens_before_dispatch(self, store):
        events = []
        persist = MagicMock(side_effect=lambda item: events.append(("persist", item.id)) or True)
        dispatcher = mock_dispatcher()
        dispatcher.dispatch.side_effect = lambda items: events.append(("dispatch", len(items)))
        collector = ScriptedCollector("CoinDesk", [[
            raw("p1", "Bitcoin rally", "CoinDesk"),
            raw("p2", "Ethereum rally", "CoinDesk"),
        ]])
        service = IngestionService(
            store, {"CoinDesk": collector}, persist=persist, dispatcher=dispatcher,
        )

        await service.run_cycle()

        assert events == [("persist", "p1"), ("persist", "p2"), ("dispatch", 2)]

    @pytest.mark.asyncio
    async def test_persisted_items_carry_rule_signal(self, store):
        persisted = []
        collector = ScriptedCollector("Binance Announcements", [[
            raw("b1", "Binance listing XYZ token", "Binance Announcements"),
        ]])
        service = IngestionService(
            store,
            {"Binance Announcements": collector},
            persist=lambda item: persisted.append(item.copy()) or True,
        )

        await service.run_cycle()

        assert persisted[0].trading_signal == TradingSignal.BUY
        assert persisted[0].final_score == pytest.approx(0.24)

    @pytest.mark.asyncio
    async def test_persist_failures_counted_not_raised(self, store):
        collector = ScriptedCollector("CoinDesk", [[
            raw("f1", "Bitcoin news", "CoinDesk"),
            raw("f2", "Ethereum news", "CoinDesk"),
        ]])
        persist = MagicMock(side_effect=[True, False])
        service = IngestionService(store, {"CoinDesk": collector}, persist=persist)

        report = await service.run_cycle()

        assert report.new_count == 2
        assert len(store.get_items()) == 2
        assert service.get_health_status()["persist_failures"] == 1


# ============================================================
# TEST: FAILURE ISOLATION
# ============================================================

class TestFailureIsolation:

    @pytest.mark.asyncio
    async def test_failed_source_contributes_nothing(self, store):
        broken = ScriptedCollector("Broken", error=FetchError("down", source="Broken"))
        healthy = ScriptedCollector("Healthy", [[raw("h1", "Ripple wins appeal", "Healthy")]])
        service = IngestionService(store, {"Broken": broken, "Healthy": healthy})

        report = await service.run_cycle()

        assert report.failed_sources == ["Broken"]
        assert report.new_count == 1
        assert store.get_item("h1").asset == "XRP"

    @pytest.mark.asyncio
    async def test_collector_raising_is_isolated(self, store):
        rogue = MagicMock()
        rogue.collect = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = ScriptedCollector("Healthy", [[raw("h1", "Aptos mainnet", "Healthy")]])
        service = IngestionService(store, {"Rogue": rogue, "Healthy": healthy})

        report = await service.run_cycle()

        assert report.failed_sources == ["Rogue"]
        assert report.new_count == 1

    @pytest.mark.asyncio
    async def test_all_sources_failing_is_not_fatal(self, store):
        broken = ScriptedCollector("Broken", error=FetchError("down", source="Broken"))
        service = IngestionService(store, {"Broken": broken})

        report = await service.run_cycle()

        assert report.new_count == 0
        assert service.get_metrics().failed_runs == 1
        assert service.get_metrics().total_source_failures == 1


# ============================================================
# TEST: MARKET STATE & BOUNDED MEMORY
# ============================================================

class TestAcrossCycles:

    @pytest.mark.asyncio
    async def test_market_state_resets_without_market_news(self, store):
        collector = ScriptedCollector("CoinDesk", [
            [raw("m1", "ETF inflows rally, bullish outlook", "CoinDesk")],
            [raw("a1", "Solana validators vote", "CoinDesk")],
        ])
        service = IngestionService(store, {"CoinDesk": collector})

        await service.run_cycle()
        assert store.get_market_state().mood == MarketMood.BULLISH

        await service.run_cycle()
        assert store.get_market_state().mood == MarketMood.NEUTRAL
        assert store.get_market_state().score == 0.0

    @pytest.mark.asyncio
    async def test_store_bounded_after_many_cycles(self, store):
        batches = [
            [raw(f"id-{c}-{i}", f"Headline {c} {i}", "CoinDesk") for i in range(10)]
            for c in range(15)
        ]
        service = IngestionService(store, {"CoinDesk": ScriptedCollector("CoinDesk", batches)})

        for _ in range(15):
            await service.run_cycle()

        items = store.get_items()
        assert len(items) == 100
        assert items[0].id == "id-14-0"
        assert service.get_metrics().total_items_admitted == 150


# ============================================================
# TEST: CONTINUOUS OPERATION
# ============================================================

class TestContinuousOperation:

    @pytest.mark.asyncio
    async def test_start_and_stop(self, store):
        collector = ScriptedCollector("CoinDesk")
        service = IngestionService(store, {"CoinDesk": collector}, interval_seconds=0.01)

        task = asyncio.create_task(service.start())
        for _ in range(100):
            if collector.calls >= 2:
                break
            await asyncio.sleep(0.01)
        await service.stop()
        await asyncio.wait_for(task, timeout=1.0)

        assert collector.calls >= 2
        assert not service.is_running
        health = service.get_health_status()
        assert health["run_count"] >= 2
        assert health["collectors"]["CoinDesk"]["last_status"] == "success"

    @pytest.mark.asyncio
    async def test_cycle_exception_does_not_stop_loop(self, store):
        service = IngestionService(store, {}, interval_seconds=0.01)
        calls = {"n": 0}

        async def failing_cycle():
            calls["n"] += 1
            if calls["n"] >= 3:
                await service.stop()
            raise RuntimeError("cycle broke")

        service.run_cycle = failing_cycle
        await asyncio.wait_for(service.start(), timeout=1.0)

        assert calls["n"] == 3

    @pytest.mark.asyncio
    async def test_close_closes_collectors(self, store):
        collector = MagicMock()
        collector.close = AsyncMock()
        service = IngestionService(store, {"X": collector})

        await service.close()

        collector.close.assert_awaited_once()
        assert service.get_collector_names() == ["X"]

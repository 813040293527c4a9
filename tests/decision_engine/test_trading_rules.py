"""
Tests for TradingRuleEngine.

============================================================
TEST SCENARIOS
============================================================
1. Noise band -> IGNORE
2. Neutral band -> WAIT with the default reason
3. Bullish / bearish asset score against each market mood
4. apply() writes the decision onto the item

============================================================
"""

import pytest

from core.models import DEFAULT_RULE_REASON, MarketMood, MarketState, Scope, TradingSignal
from decision_engine.trading_rules import (
    REASON_BEARISH_IN_BULLISH,
    REASON_BULLISH_IN_BULLISH,
    REASON_NOISE,
    TradingRuleEngine,
)


NEUTRAL = MarketState.neutral()
BULLISH = MarketState(MarketMood.BULLISH, 0.5)
BEARISH = MarketState(MarketMood.BEARISH, -0.5)


@pytest.fixture
def engine():
    return TradingRuleEngine()


class TestNeutralMarket:

    @pytest.mark.parametrize("score, signal", [
        (0.5, TradingSignal.BUY),
        (-0.5, TradingSignal.SELL),
        (0.07, TradingSignal.WAIT),
        (-0.07, TradingSignal.WAIT),
        (0.1, TradingSignal.WAIT),
        (0.05, TradingSignal.WAIT),
        (0.04, TradingSignal.IGNORE),
        (-0.04, TradingSignal.IGNORE),
        (0.0, TradingSignal.IGNORE),
    ])
    def test_signal(self, engine, score, signal):
        assert engine.evaluate(score, NEUTRAL).signal == signal

    def test_noise_reason(self, engine):
        assert engine.evaluate(0.01, NEUTRAL).reason == REASON_NOISE

    def test_wait_keeps_default_reason(self, engine):
        assert engine.evaluate(0.07, NEUTRAL).reason == DEFAULT_RULE_REASON


class TestMarketContext:

    @pytest.mark.parametrize("score, market, signal", [
        (0.5, BULLISH, TradingSignal.STRONG_BUY),
        (0.5, BEARISH, TradingSignal.CAUTION),
        (-0.5, BULLISH, TradingSignal.CAUTION_SELL),
        (-0.5, BEARISH, TradingSignal.STRONG_SELL),
        (0.04, BULLISH, TradingSignal.IGNORE),
    ])
    def test_signal(self, engine, score, market, signal):
        assert engine.evaluate(score, market).signal == signal

    def test_reasons(self, engine):
        assert engine.evaluate(0.5, BULLISH).reason == REASON_BULLISH_IN_BULLISH
        assert engine.evaluate(-0.5, BULLISH).reason == REASON_BEARISH_IN_BULLISH


class TestApply:

    def test_apply_writes_signal_and_reason(self, engine, make_item):
        item = make_item(scope=Scope.ASSET, asset="BTC", impact=1.0, sentiment=0.6,
                         source="Binance Announcements")
        decision = engine.apply(item, BULLISH)

        assert decision.score == pytest.approx(0.6)
        assert item.trading_signal == TradingSignal.STRONG_BUY
        assert item.rule_reason == REASON_BULLISH_IN_BULLISH

    def test_apply_uses_trust_weight(self, engine, make_item):
        # 0.3 * 0.3 * 0.7 = 0.063 -> inside the WAIT band
        item = make_item(impact=0.3, sentiment=0.3, source="CoinDesk")
        engine.apply(item, NEUTRAL)
        assert item.trading_signal == TradingSignal.WAIT

"""
Decision Engine - Trading Rules.

============================================================
RESPONSIBILITY
============================================================
Context-aware trading signal for one ASSET-scope item.

============================================================
STATE MACHINE
============================================================
Stateless between calls; inputs are the item and the
cycle's MarketState.

1. |score| < 0.05          -> IGNORE (terminal)
2. score > 0.1             -> CAUTION / STRONG_BUY / BUY
                              (market BEARISH / BULLISH / NEUTRAL)
3. score < -0.1            -> CAUTION_SELL / STRONG_SELL / SELL
                              (market BULLISH / BEARISH / NEUTRAL)
4. otherwise               -> WAIT, "Low impact or neutral signal"

The bearish branch is evaluated after the bullish one and
overwrites it when it fires.

============================================================
"""

from dataclasses import dataclass
from typing import Optional

from core.models import (
    DEFAULT_RULE_REASON,
    MarketMood,
    MarketState,
    NewsItem,
    TradingSignal,
)
from scoring_engine.news_score import NewsScorer


NOISE_THRESHOLD = 0.05
SIGNAL_THRESHOLD = 0.1

REASON_NOISE = "Noise / Insufficient Impact"
REASON_BULLISH_IN_BEARISH = "Asset Bullish but Market is Bearish (High Risk)"
REASON_BULLISH_IN_BULLISH = "Asset Bullish + Market Bullish (Trend Confirmation)"
REASON_BULLISH_IN_NEUTRAL = "Asset Bullish in Neutral Market"
REASON_BEARISH_IN_BULLISH = "Asset Bearish but Market is Bullish (Potential Dip Buy?)"
REASON_BEARISH_IN_BEARISH = "Asset Bearish + Market Bearish (Trend Confirmation)"
REASON_BEARISH_IN_NEUTRAL = "Asset Bearish in Neutral Market"


@dataclass(frozen=True)
class RuleDecision:
    """Signal and reason produced by the rule engine."""
    signal: TradingSignal
    reason: str
    score: float


class TradingRuleEngine:
    """
    Maps (asset score, market mood) to a trading signal.

    ============================================================
    USAGE
    ============================================================
    ```python
    engine = TradingRuleEngine()
    engine.apply(item, market_state)
    print(item.trading_signal, item.rule_reason)
    ```

    ============================================================
    """

    def __init__(self, scorer: Optional[NewsScorer] = None) -> None:
        self._scorer = scorer or NewsScorer()

    def evaluate(self, asset_score: float, market: MarketState) -> RuleDecision:
        """
        Decide a signal for a precomputed asset score.

        Args:
            asset_score: Scorer output for the item
            market: Market state of the current cycle

        Returns:
            RuleDecision
        """
        if abs(asset_score) < NOISE_THRESHOLD:
            return RuleDecision(TradingSignal.IGNORE, REASON_NOISE, asset_score)

        signal = TradingSignal.WAIT
        reason = DEFAULT_RULE_REASON

        if asset_score > SIGNAL_THRESHOLD:
            if market.mood == MarketMood.BEARISH:
                signal, reason = TradingSignal.CAUTION, REASON_BULLISH_IN_BEARISH
            elif market.mood == MarketMood.BULLISH:
                signal, reason = TradingSignal.STRONG_BUY, REASON_BULLISH_IN_BULLISH
            else:
                signal, reason = TradingSignal.BUY, REASON_BULLISH_IN_NEUTRAL

        if asset_score < -SIGNAL_THRESHOLD:
            if market.mood == MarketMood.BULLISH:
                signal, reason = TradingSignal.CAUTION_SELL, REASON_BEARISH_IN_BULLISH
            elif market.mood == MarketMood.BEARISH:
                signal, reason = TradingSignal.STRONG_SELL, REASON_BEARISH_IN_BEARISH
            else:
                signal, reason = TradingSignal.SELL, REASON_BEARISH_IN_NEUTRAL

        return RuleDecision(signal, reason, asset_score)

    def apply(self, item: NewsItem, market: MarketState) -> RuleDecision:
        """Score `item`, decide, and write signal and reason onto it."""
        decision = self.evaluate(self._scorer.score(item), market)
        item.trading_signal = decision.signal
        item.rule_reason = decision.reason
        return decision

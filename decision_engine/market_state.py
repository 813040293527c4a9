"""
Decision Engine - Market State Aggregator.

============================================================
RESPONSIBILITY
============================================================
Derives the market mood for the current cycle.

- Sums the scores of this cycle's MARKET-scope items
- Maps the sum to BULLISH / NEUTRAL / BEARISH by threshold
- No memory: an empty cycle resets to NEUTRAL / 0

============================================================
"""

from typing import Iterable, Optional

from core.models import MarketMood, MarketState, NewsItem, Scope
from scoring_engine.news_score import NewsScorer


BULLISH_THRESHOLD = 0.2
BEARISH_THRESHOLD = -0.2


def mood_for_score(score: float) -> MarketMood:
    if score > BULLISH_THRESHOLD:
        return MarketMood.BULLISH
    if score < BEARISH_THRESHOLD:
        return MarketMood.BEARISH
    return MarketMood.NEUTRAL


class MarketStateAggregator:
    """Per-cycle market mood from MARKET-scope items."""

    def __init__(self, scorer: Optional[NewsScorer] = None) -> None:
        self._scorer = scorer or NewsScorer()

    def aggregate(self, items: Iterable[NewsItem]) -> MarketState:
        """
        Compute the market state.

        Args:
            items: Items of the current cycle; non-MARKET items are ignored

        Returns:
            MarketState (neutral zero state when no MARKET item is present)
        """
        total = 0.0
        count = 0
        for item in items:
            if item.scope != Scope.MARKET:
                continue
            total += self._scorer.score(item)
            count += 1

        if count == 0:
            return MarketState.neutral()
        return MarketState(mood=mood_for_score(total), score=total)

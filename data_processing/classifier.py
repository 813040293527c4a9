"""
Data Processing - News Classifier.

============================================================
RESPONSIBILITY
============================================================
Rule-based classification of a news headline.

- Scope: market-wide (MARKET) or single asset (ASSET)
- Asset: ticker from a fixed alias table, ALL or ALT
- Sentiment: additive keyword score in [-1, 1]
- Impact: baseline, event overrides, price-noise filter

============================================================
DESIGN PRINCIPLES
============================================================
- Pure and deterministic given the same title
- Word-boundary matching for assets and sentiment
- Plain substring matching for market terms, impact
  overrides and the noise filter
- Assets are checked in a fixed priority order; the first
  ticker with a matching alias wins

============================================================
IMPACT RULES (later wins)
============================================================
baseline                      ASSET 0.3 / MARKET 0.7
listing, listed, lists        0.8
delisting, delisted, delists  0.9
hack, exploit, compromised    1.0
price keyword w/o event       0.1

============================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from core.models import ASSET_ALL, ASSET_ALT, NewsItem, Scope


# ============================================================
# KEYWORD DEFINITIONS
# ============================================================


MARKET_KEYWORDS: Tuple[str, ...] = (
    "fed", "cpi", "sec", "etf", "regulation",
    "inflation", "interest rate", "macro", "economy",
)

# Ordered: earlier tickers win ties
ASSET_ALIASES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("BTC", ("btc", "bitcoin")),
    ("ETH", ("eth", "ethereum", "ether")),
    ("SOL", ("sol", "solana")),
    ("BNB", ("bnb",)),
    ("XRP", ("xrp", "ripple")),
    ("ADA", ("ada", "cardano")),
    ("DOGE", ("doge", "dogecoin")),
    ("APT", ("apt", "aptos")),
)

BULLISH_KEYWORDS: Tuple[str, ...] = (
    "surges", "jumps", "breakout", "adds", "record high", "moon",
    "rally", "gains", "bullish", "outperform", "upgrade", "listing",
    "listed", "partnership", "collaboration", "legalizes",
    "adoption", "pushes", "above",
)

BEARISH_KEYWORDS: Tuple[str, ...] = (
    "loses", "falls", "exit", "withdrawn", "bloodbath", "crash",
    "bearish", "drop", "down", "delisting", "delisted",
    "hack", "exploit", "compromised", "selloff", "backlash", "left",
    "outflow", "ban", "restrict", "lose", "losing",
)

IMPACT_OVERRIDES: Tuple[Tuple[Tuple[str, ...], float], ...] = (
    (("listing", "listed", "lists"), 0.8),
    (("delisting", "delisted", "delists"), 0.9),
    (("hack", "exploit", "compromised"), 1.0),
)

PRICE_ACTION_KEYWORDS: Tuple[str, ...] = (
    "surges", "jumps", "climbs", "pops", "falls", "drops", "slumps",
)

EVENT_KEYWORDS: Tuple[str, ...] = (
    "listing", "delisting", "hack", "exploit", "partnership", "fed",
    "cpi", "sec", "etf", "regulation", "legalizes", "approves",
)

SENTIMENT_STEP = 0.3
ASSET_BASELINE_IMPACT = 0.3
MARKET_BASELINE_IMPACT = 0.7
NOISE_IMPACT = 0.1


# ============================================================
# MATCHING HELPERS
# ============================================================


def _word_pattern(keyword: str) -> "re.Pattern[str]":
    return re.compile(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])")


def contains_word(text: str, keyword: str) -> bool:
    """
    True if `keyword` occurs in `text` with no ASCII letter or
    digit directly before or after it. Both arguments are
    expected in lower case.
    """
    return _word_pattern(keyword).search(text) is not None


def contains_any(text: str, keywords: Tuple[str, ...]) -> bool:
    """Plain substring match against any keyword."""
    return any(keyword in text for keyword in keywords)


# ============================================================
# RESULT TYPE
# ============================================================


@dataclass(frozen=True)
class Classification:
    """Classifier output for one title."""
    scope: Scope = Scope.ASSET
    asset: str = ASSET_ALT
    impact: float = ASSET_BASELINE_IMPACT
    sentiment: float = 0.0
    matched_keywords: Tuple[str, ...] = field(default_factory=tuple)


# ============================================================
# NEWS CLASSIFIER
# ============================================================


class NewsClassifier:
    """
    Rule-based headline classifier.

    ============================================================
    USAGE
    ============================================================
    ```python
    classifier = NewsClassifier()
    item = classifier.classify(item)
    print(item.scope, item.asset, item.impact, item.sentiment)
    ```

    ============================================================
    """

    def __init__(
        self,
        asset_aliases: Optional[Tuple[Tuple[str, Tuple[str, ...]], ...]] = None,
    ) -> None:
        aliases = asset_aliases or ASSET_ALIASES
        self._asset_patterns: List[Tuple[str, List["re.Pattern[str]"]]] = [
            (ticker, [_word_pattern(alias) for alias in names])
            for ticker, names in aliases
        ]
        self._bullish = [(kw, _word_pattern(kw)) for kw in BULLISH_KEYWORDS]
        self._bearish = [(kw, _word_pattern(kw)) for kw in BEARISH_KEYWORDS]

    @property
    def asset_priority(self) -> List[str]:
        """Tickers in the order they are checked."""
        return [ticker for ticker, _ in self._asset_patterns]

    # =========================================================
    # PUBLIC API
    # =========================================================

    def analyze(self, title: str) -> Classification:
        """
        Classify a headline.

        Args:
            title: Raw headline text

        Returns:
            Classification with scope, asset, impact and sentiment
        """
        text = (title or "").lower()
        matched: List[str] = []

        if contains_any(text, MARKET_KEYWORDS):
            scope = Scope.MARKET
            asset = ASSET_ALL
            impact = MARKET_BASELINE_IMPACT
        else:
            scope = Scope.ASSET
            asset = self._detect_asset(text) or ASSET_ALT
            impact = ASSET_BASELINE_IMPACT

        sentiment = 0.0
        for keyword, pattern in self._bullish:
            if pattern.search(text):
                sentiment += SENTIMENT_STEP
                matched.append(keyword)
        for keyword, pattern in self._bearish:
            if pattern.search(text):
                sentiment -= SENTIMENT_STEP
                matched.append(keyword)
        sentiment = max(-1.0, min(1.0, sentiment))

        impact = self._apply_impact_rules(text, impact)

        return Classification(
            scope=scope,
            asset=asset,
            impact=impact,
            sentiment=sentiment,
            matched_keywords=tuple(matched),
        )

    def classify(self, item: NewsItem) -> NewsItem:
        """Populate the classification fields of `item` in place."""
        result = self.analyze(item.title)
        item.scope = result.scope
        item.asset = result.asset
        item.impact = result.impact
        item.sentiment = result.sentiment
        return item

    def classify_batch(self, items: List[NewsItem]) -> List[NewsItem]:
        return [self.classify(item) for item in items]

    # =========================================================
    # INTERNAL METHODS
    # =========================================================

    def _detect_asset(self, text: str) -> Optional[str]:
        for ticker, patterns in self._asset_patterns:
            if any(pattern.search(text) for pattern in patterns):
                return ticker
        return None

    @staticmethod
    def _apply_impact_rules(text: str, impact: float) -> float:
        for keywords, value in IMPACT_OVERRIDES:
            if contains_any(text, keywords):
                impact = value

        if contains_any(text, PRICE_ACTION_KEYWORDS) and not contains_any(text, EVENT_KEYWORDS):
            impact = NOISE_IMPACT

        return impact

    def get_keyword_tables(self) -> Dict[str, List[str]]:
        """All keyword lists, for diagnostics."""
        return {
            "market": list(MARKET_KEYWORDS),
            "bullish": list(BULLISH_KEYWORDS),
            "bearish": list(BEARISH_KEYWORDS),
            "price_action": list(PRICE_ACTION_KEYWORDS),
            "event": list(EVENT_KEYWORDS),
            "assets": self.asset_priority,
        }

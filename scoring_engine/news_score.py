"""
Scoring Engine - News Score.

============================================================
RESPONSIBILITY
============================================================
Turns a classified news item into one signed scalar.

    score = impact x sentiment x trust_weight

============================================================
SOURCE TRUST
============================================================
Exchange announcements are weighted 1.0, everything else
0.7. A source counts as an exchange when its lower-cased
name contains any allow-listed token.

============================================================
"""

from typing import Tuple

from core.models import NewsItem


EXCHANGE_TOKENS: Tuple[str, ...] = ("binance", "coinbase", "exchange")
EXCHANGE_TRUST_WEIGHT = 1.0
DEFAULT_TRUST_WEIGHT = 0.7


class NewsScorer:
    """Pure scorer; holds only the trust allow-list."""

    def __init__(
        self,
        exchange_tokens: Tuple[str, ...] = EXCHANGE_TOKENS,
        exchange_weight: float = EXCHANGE_TRUST_WEIGHT,
        default_weight: float = DEFAULT_TRUST_WEIGHT,
    ) -> None:
        self._exchange_tokens = tuple(token.lower() for token in exchange_tokens)
        self._exchange_weight = exchange_weight
        self._default_weight = default_weight

    def trust_weight(self, source: str) -> float:
        name = (source or "").lower()
        if any(token in name for token in self._exchange_tokens):
            return self._exchange_weight
        return self._default_weight

    def score(self, item: NewsItem) -> float:
        """Signed score of a classified item."""
        return item.impact * item.sentiment * self.trust_weight(item.source)

"""
Core Module - Domain Models.

============================================================
PURPOSE
============================================================
Shared value types for the ingestion-and-decision pipeline.

- NewsItem: a normalized, progressively enriched news fact
- MarketState: the per-cycle market mood
- EnrichmentResult: the AI collaborator's answer

============================================================
FIELD LIFECYCLE
============================================================
NewsItem fields are filled in stage by stage:
1. Raw fields        - collector (id, title, source, timestamp, url)
2. Classification    - classifier (scope, asset, impact, sentiment)
3. Decision          - rule engine + orchestrator (trading_signal,
                       rule_reason, final_score)
4. Enrichment        - AI merge (ai_analysis, ai_advice, coin_symbol,
                       optionally trading_signal)

The id never changes once the item exists.

============================================================
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict


# =============================================================
# ENUMS
# =============================================================

class Scope(str, Enum):
    """Whether a news item concerns the whole market or one asset."""
    MARKET = "MARKET"
    ASSET = "ASSET"


class TradingSignal(str, Enum):
    """Recommendation attached to an item."""
    IGNORE = "IGNORE"
    WAIT = "WAIT"
    CAUTION = "CAUTION"
    CAUTION_SELL = "CAUTION_SELL"
    BUY = "BUY"
    STRONG_BUY = "STRONG_BUY"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"

    @classmethod
    def parse(cls, value: Any) -> "TradingSignal":
        """Parse free text into a signal, defaulting to WAIT."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.WAIT
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.WAIT


class MarketMood(str, Enum):
    """Aggregated directional bias of the market for one cycle."""
    BULLISH = "BULLISH"
    NEUTRAL = "NEUTRAL"
    BEARISH = "BEARISH"


# Asset placeholders
ASSET_ALL = "ALL"
ASSET_ALT = "ALT"

# Initial decision values, kept when no rule fires
DEFAULT_RULE_REASON = "Low impact or neutral signal"


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================
# NEWS ITEM
# =============================================================

@dataclass
class NewsItem:
    """A normalized news item flowing through the pipeline."""

    # Identity & raw fields
    id: str
    title: str
    source: str
    timestamp: datetime = field(default_factory=utc_now)
    url: str = ""

    # Classification
    scope: Scope = Scope.ASSET
    asset: str = ASSET_ALT
    impact: float = 0.0
    sentiment: float = 0.0

    # Decision
    trading_signal: TradingSignal = TradingSignal.WAIT
    rule_reason: str = DEFAULT_RULE_REASON
    final_score: float = 0.0

    # Enrichment
    ai_analysis: str = ""
    ai_advice: str = ""
    coin_symbol: str = ""

    def copy(self) -> "NewsItem":
        """Return a detached copy (used for read snapshots)."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["scope"] = self.scope.value
        data["trading_signal"] = self.trading_signal.value
        data["timestamp"] = self.timestamp.isoformat()
        return data


# =============================================================
# MARKET STATE
# =============================================================

@dataclass(frozen=True)
class MarketState:
    """
    Market mood for the current cycle.

    Not accumulated across cycles: every cycle produces a new value.
    """
    mood: MarketMood = MarketMood.NEUTRAL
    score: float = 0.0

    @classmethod
    def neutral(cls) -> "MarketState":
        return cls(mood=MarketMood.NEUTRAL, score=0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {"mood": self.mood.value, "score": self.score}


# =============================================================
# ENRICHMENT RESULT
# =============================================================

@dataclass(frozen=True)
class EnrichmentResult:
    """Answer returned by the AI collaborator for one item."""
    context: str = ""
    advice: str = ""
    coin: str = ""
    signal: TradingSignal = TradingSignal.WAIT

    @property
    def overrides_signal(self) -> bool:
        """True when the AI opinion should replace the rule signal."""
        return self.signal != TradingSignal.WAIT

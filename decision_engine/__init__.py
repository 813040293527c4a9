"""
Decision Engine Package.

This package turns scores into market mood and per-item
trading signals.

Modules:
- market_state: Per-cycle market mood aggregation
- trading_rules: Context-aware signal state machine
"""

from .market_state import MarketStateAggregator, mood_for_score
from .trading_rules import RuleDecision, TradingRuleEngine

__all__ = [
    "MarketStateAggregator",
    "mood_for_score",
    "RuleDecision",
    "TradingRuleEngine",
]

"""
Scoring Engine Package.

This package computes scores from classified news.
Scores are inputs to the decision engine, not trade signals.

Modules:
- news_score: impact x sentiment x source trust
"""

from .news_score import (
    DEFAULT_TRUST_WEIGHT,
    EXCHANGE_TOKENS,
    EXCHANGE_TRUST_WEIGHT,
    NewsScorer,
)

__all__ = [
    "DEFAULT_TRUST_WEIGHT",
    "EXCHANGE_TOKENS",
    "EXCHANGE_TRUST_WEIGHT",
    "NewsScorer",
]

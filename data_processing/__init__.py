"""
Data Processing Package.

This package turns raw headlines into classified news items.

Main modules:
- classifier: Rule-based scope/asset/impact/sentiment classification
"""

from .classifier import (
    ASSET_ALIASES,
    Classification,
    NewsClassifier,
    contains_any,
    contains_word,
)

__all__ = [
    "ASSET_ALIASES",
    "Classification",
    "NewsClassifier",
    "contains_any",
    "contains_word",
]

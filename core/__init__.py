"""
Core Module Package.

This package contains the core infrastructure components
that all other modules depend on.

Components:
- models: NewsItem, MarketState, EnrichmentResult and enums
- store: Bounded in-memory news store
- rwlock: Reader/writer lock guarding the store
- config: Environment-driven runtime configuration
- exceptions: Custom exception hierarchy
"""

from .exceptions import (
    Severity,
    NewsIntelligenceError,
    ConfigurationError,
    InvalidConfigError,
    StartupError,
)
from .models import (
    ASSET_ALL,
    ASSET_ALT,
    DEFAULT_RULE_REASON,
    EnrichmentResult,
    MarketMood,
    MarketState,
    NewsItem,
    Scope,
    TradingSignal,
    utc_now,
)
from .rwlock import ReadWriteLock
from .store import NewsStore, StoreSnapshot
from .config import AppConfig, FeedSource, get_config, set_config


__all__ = [
    "Severity",
    "NewsIntelligenceError",
    "ConfigurationError",
    "InvalidConfigError",
    "StartupError",
    "ASSET_ALL",
    "ASSET_ALT",
    "DEFAULT_RULE_REASON",
    "EnrichmentResult",
    "MarketMood",
    "MarketState",
    "NewsItem",
    "Scope",
    "TradingSignal",
    "utc_now",
    "ReadWriteLock",
    "NewsStore",
    "StoreSnapshot",
    "AppConfig",
    "FeedSource",
    "get_config",
    "set_config",
]

"""
Core Module - Configuration.

============================================================
CONFIGURABLE RUNTIME
============================================================

All runtime parameters are configurable:
- Feed sources and fetch limits
- Cycle interval and store capacities
- AI / search credentials and endpoints
- Logging level and format

Configuration can be loaded from:
- Default values
- Environment variables (a .env file is honoured)

============================================================
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .exceptions import InvalidConfigError


logger = logging.getLogger(__name__)


# =============================================================
# FEEDS
# =============================================================

BINANCE_ANNOUNCEMENTS = "Binance Announcements"

# Marker URL for the exchange announcements adapter
ANNOUNCEMENTS_MARKER = "binance:announcements"


@dataclass(frozen=True)
class FeedSource:
    """A configured news source."""
    name: str
    url: str

    @property
    def is_exchange_announcements(self) -> bool:
        return self.url == ANNOUNCEMENTS_MARKER


DEFAULT_FEEDS: Tuple[FeedSource, ...] = (
    FeedSource(BINANCE_ANNOUNCEMENTS, ANNOUNCEMENTS_MARKER),
    FeedSource("CoinDesk", "https://www.coindesk.com/arc/outboundfeeds/rss/"),
    FeedSource("CoinTelegraph", "https://cointelegraph.com/rss"),
    FeedSource("Decrypt", "https://decrypt.co/feed"),
)


def _env_number(key: str, cast, default):
    """Read a numeric environment variable; unset or blank keeps `default`."""
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise InvalidConfigError(key, raw, "not a number") from e


def parse_key_list(raw: Optional[str]) -> List[str]:
    """Split a comma-separated credential list, dropping blanks."""
    if not raw:
        return []
    return [key.strip() for key in raw.split(",") if key.strip()]


def parse_feeds(raw: Optional[str]) -> List[FeedSource]:
    """
    Parse a FEEDS value of the form `Name=url,Other=url`.

    Entries without `=` are skipped with a warning.
    """
    feeds: List[FeedSource] = []
    if not raw:
        return feeds
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if "=" not in entry:
            logger.warning(f"Ignoring malformed FEEDS entry: {entry!r}")
            continue
        name, url = entry.split("=", 1)
        if name.strip() and url.strip():
            feeds.append(FeedSource(name.strip(), url.strip()))
    return feeds


# =============================================================
# APPLICATION CONFIG
# =============================================================


@dataclass
class AppConfig:
    """Complete runtime configuration."""

    # Storage
    database_url: str = "sqlite:///./news.db"

    # API server
    host: str = "0.0.0.0"
    port: int = 8081

    # Ingestion cycle
    cycle_interval_seconds: float = 10.0
    fetch_timeout_seconds: float = 20.0
    max_items_per_source: int = 10
    feeds: List[FeedSource] = field(default_factory=lambda: list(DEFAULT_FEEDS))

    # Store capacities
    store_max_items: int = 100
    store_max_seen_ids: int = 5000

    # AI collaborator
    ai_keys: List[str] = field(default_factory=list)
    ai_url: str = "https://ollama.com/api/generate"
    ai_model: str = "qwen3-coder:480b-cloud"
    ai_timeout_seconds: float = 15.0
    ai_response_language: str = "Arabic"

    # Search collaborator
    serper_keys: List[str] = field(default_factory=list)
    serper_url: str = "https://google.serper.dev/search"
    search_timeout_seconds: float = 5.0

    # Enrichment dispatch
    enrichment_max_concurrency: int = 4
    enrichment_shutdown_grace_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "AppConfig":
        """Load configuration from environment variables."""
        if dotenv and not load_dotenv():
            logger.info("No .env file found, relying on system environment variables")

        config = cls()

        config.database_url = os.getenv("DATABASE_URL", config.database_url)
        config.host = os.getenv("HOST", config.host)
        config.port = _env_number("PORT", int, config.port)

        config.cycle_interval_seconds = _env_number(
            "CYCLE_INTERVAL_SECONDS", float, config.cycle_interval_seconds
        )
        config.fetch_timeout_seconds = _env_number(
            "FETCH_TIMEOUT_SECONDS", float, config.fetch_timeout_seconds
        )
        config.max_items_per_source = _env_number(
            "MAX_ITEMS_PER_SOURCE", int, config.max_items_per_source
        )
        feeds = parse_feeds(os.getenv("FEEDS"))
        if feeds:
            config.feeds = feeds

        config.store_max_items = _env_number(
            "STORE_MAX_ITEMS", int, config.store_max_items
        )
        config.store_max_seen_ids = _env_number(
            "STORE_MAX_SEEN_IDS", int, config.store_max_seen_ids
        )

        config.ai_keys = parse_key_list(os.getenv("AI_KEYS"))
        config.ai_url = os.getenv("OLLAMA_URL") or config.ai_url
        config.ai_model = os.getenv("AI_MODEL") or config.ai_model
        config.ai_timeout_seconds = _env_number(
            "AI_TIMEOUT_SECONDS", float, config.ai_timeout_seconds
        )
        config.ai_response_language = os.getenv(
            "AI_RESPONSE_LANGUAGE", config.ai_response_language
        )

        config.serper_keys = parse_key_list(os.getenv("SERPER_KEYS"))
        config.serper_url = os.getenv("SERPER_URL") or config.serper_url
        config.search_timeout_seconds = _env_number(
            "SEARCH_TIMEOUT_SECONDS", float, config.search_timeout_seconds
        )

        config.enrichment_max_concurrency = _env_number(
            "ENRICHMENT_MAX_CONCURRENCY", int, config.enrichment_max_concurrency
        )
        config.enrichment_shutdown_grace_seconds = _env_number(
            "ENRICHMENT_SHUTDOWN_GRACE_SECONDS",
            float,
            config.enrichment_shutdown_grace_seconds,
        )

        config.log_level = os.getenv("LOG_LEVEL", config.log_level)
        config.log_format = os.getenv("LOG_FORMAT", config.log_format)

        return config

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            InvalidConfigError: On the first invalid value
        """
        positives = {
            "cycle_interval_seconds": self.cycle_interval_seconds,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "max_items_per_source": self.max_items_per_source,
            "store_max_items": self.store_max_items,
            "store_max_seen_ids": self.store_max_seen_ids,
            "ai_timeout_seconds": self.ai_timeout_seconds,
            "search_timeout_seconds": self.search_timeout_seconds,
            "enrichment_max_concurrency": self.enrichment_max_concurrency,
            "port": self.port,
        }
        for key, value in positives.items():
            if value <= 0:
                raise InvalidConfigError(key, value, "must be positive")

        if self.store_max_seen_ids < self.store_max_items:
            raise InvalidConfigError(
                "store_max_seen_ids",
                self.store_max_seen_ids,
                "must be >= store_max_items",
            )
        if self.enrichment_shutdown_grace_seconds < 0:
            raise InvalidConfigError(
                "enrichment_shutdown_grace_seconds",
                self.enrichment_shutdown_grace_seconds,
                "must not be negative",
            )
        if self.log_format not in ("json", "text"):
            raise InvalidConfigError("log_format", self.log_format, "must be json or text")
        if not self.feeds:
            raise InvalidConfigError("feeds", self.feeds, "at least one feed is required")

        if not self.ai_keys:
            logger.warning("No AI_KEYS configured: AI enrichment will return fallback values")
        if not self.serper_keys:
            logger.warning("No SERPER_KEYS configured: search context will be unavailable")

    def to_dict(self) -> Dict:
        """Convert to dictionary with credentials redacted."""
        return {
            "database_url": self.database_url.split("@")[-1],
            "host": self.host,
            "port": self.port,
            "cycle_interval_seconds": self.cycle_interval_seconds,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "max_items_per_source": self.max_items_per_source,
            "feeds": [f"{f.name}={f.url}" for f in self.feeds],
            "store_max_items": self.store_max_items,
            "store_max_seen_ids": self.store_max_seen_ids,
            "ai_keys": len(self.ai_keys),
            "ai_url": self.ai_url,
            "ai_model": self.ai_model,
            "serper_keys": len(self.serper_keys),
            "enrichment_max_concurrency": self.enrichment_max_concurrency,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the process configuration, loading it from env on first use."""
    global _default_config
    if _default_config is None:
        _default_config = AppConfig.from_env()
    return _default_config


def set_config(config: AppConfig) -> None:
    """Set the process configuration."""
    global _default_config
    _default_config = config

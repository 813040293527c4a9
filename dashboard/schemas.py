"""
Pydantic schemas for the news API responses.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from core.models import MarketState, NewsItem

# =======================
# COMMON
# =======================

class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str = "1.0.0"
    uptime_seconds: float = 0

# =======================
# 1. NEWS FEED
# =======================

class NewsItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    source: str
    url: str = ""
    timestamp: datetime
    scope: str
    asset: str
    impact: float
    sentiment: float
    trading_signal: str
    rule_reason: str
    final_score: float
    ai_analysis: str = ""
    ai_advice: str = ""
    coin_symbol: str = ""

    @classmethod
    def from_item(cls, item: NewsItem) -> "NewsItemResponse":
        return cls(**item.to_dict())

class NewsListResponse(BaseModel):
    count: int
    items: List[NewsItemResponse]

# =======================
# 2. MARKET STATE
# =======================

class MarketStateResponse(BaseModel):
    mood: str
    score: float

    @classmethod
    def from_state(cls, state: MarketState) -> "MarketStateResponse":
        return cls(mood=state.mood.value, score=state.score)

# =======================
# 3. INGESTION STATUS
# =======================

class SourceStatus(BaseModel):
    source: str
    enabled: bool = True
    last_status: Optional[str] = None
    last_items: int = 0
    last_run_at: Optional[str] = None
    last_error: Optional[str] = None

class StatusResponse(BaseModel):
    running: bool
    run_count: int = 0
    last_run_at: Optional[str] = None
    interval_seconds: Optional[float] = None
    sources: List[SourceStatus] = []
    store: Dict[str, Any]
    persist_failures: int = 0
    enrichment: Optional[Dict[str, Any]] = None
    metrics: Optional[Dict[str, Any]] = None

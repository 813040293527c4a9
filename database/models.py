"""
Database ORM Models.

============================================================
NEWS ARCHIVE SCHEMA
============================================================

One table, keyed by the news item id:
- Raw and classification columns are written once
- Decision and enrichment columns are updated in place
- Timestamps in UTC

============================================================
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Index, String, Text

from .engine import Base


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


class NewsItemRecord(Base):
    """
    Persisted news item.

    Source: data_ingestion.ingestion_service, ai_enrichment.dispatcher
    Update Frequency: Per cycle and per enrichment
    """
    __tablename__ = "news_items"

    id = Column(String(512), primary_key=True)

    # Raw
    title = Column(Text, nullable=False)
    source = Column(String(100), nullable=False, index=True)
    url = Column(Text, nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    # Classification
    scope = Column(String(16), nullable=False)
    asset = Column(String(16), nullable=False)
    impact = Column(Float, nullable=False, default=0.0)
    sentiment = Column(Float, nullable=False, default=0.0)

    # Decision
    trading_signal = Column(String(16), nullable=False, default="WAIT")
    rule_reason = Column(Text, nullable=True)
    final_score = Column(Float, nullable=False, default=0.0)

    # Enrichment
    ai_analysis = Column(Text, nullable=True)
    ai_advice = Column(Text, nullable=True)
    coin_symbol = Column(String(32), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("ix_news_items_asset_timestamp", "asset", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<NewsItemRecord(id={self.id!r}, signal={self.trading_signal})>"

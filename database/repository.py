"""
Database Persistence - News Repository.

============================================================
UPSERT SEMANTICS
============================================================

upsert(item) is INSERT .. ON CONFLICT(id) DO UPDATE:
- Identity, raw and classification columns: first write wins
- Decision and enrichment columns: overwritten
  (trading_signal, rule_reason, final_score, ai_analysis,
   ai_advice, coin_symbol, updated_at)

Failures are logged and reported as False; the in-memory
store stays authoritative for the running process.

============================================================
"""

import logging
from datetime import timezone
from typing import Iterable, List

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from core.models import NewsItem, Scope, TradingSignal
from .engine import DatabasePersistenceError, transaction_scope
from .models import NewsItemRecord, utc_now


logger = logging.getLogger(__name__)


UPDATABLE_COLUMNS = (
    "trading_signal",
    "rule_reason",
    "final_score",
    "ai_analysis",
    "ai_advice",
    "coin_symbol",
    "updated_at",
)

_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


# =============================================================
# MAPPING
# =============================================================


def item_to_row(item: NewsItem) -> dict:
    now = utc_now()
    return {
        "id": item.id,
        "title": item.title,
        "source": item.source,
        "url": item.url,
        "timestamp": item.timestamp,
        "scope": item.scope.value,
        "asset": item.asset,
        "impact": item.impact,
        "sentiment": item.sentiment,
        "trading_signal": item.trading_signal.value,
        "rule_reason": item.rule_reason,
        "final_score": item.final_score,
        "ai_analysis": item.ai_analysis,
        "ai_advice": item.ai_advice,
        "coin_symbol": item.coin_symbol,
        "created_at": now,
        "updated_at": now,
    }


def record_to_item(record: NewsItemRecord) -> NewsItem:
    timestamp = record.timestamp
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    return NewsItem(
        id=record.id,
        title=record.title,
        source=record.source,
        timestamp=timestamp,
        url=record.url or "",
        scope=Scope(record.scope),
        asset=record.asset,
        impact=record.impact,
        sentiment=record.sentiment,
        trading_signal=TradingSignal.parse(record.trading_signal),
        rule_reason=record.rule_reason or "",
        final_score=record.final_score,
        ai_analysis=record.ai_analysis or "",
        ai_advice=record.ai_advice or "",
        coin_symbol=record.coin_symbol or "",
    )


# =============================================================
# REPOSITORY
# =============================================================


class NewsRepository:
    """Durable keyed store for news items."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory
        bind = session_factory.kw.get("bind")
        dialect = bind.dialect.name if bind is not None else "sqlite"
        if dialect not in _DIALECT_INSERTS:
            raise ValueError(f"Unsupported database dialect for upsert: {dialect}")
        self._insert = _DIALECT_INSERTS[dialect]

    def _upsert_statement(self, rows: List[dict]):
        stmt = self._insert(NewsItemRecord).values(rows)
        return stmt.on_conflict_do_update(
            index_elements=[NewsItemRecord.id],
            set_={column: getattr(stmt.excluded, column) for column in UPDATABLE_COLUMNS},
        )

    def upsert(self, item: NewsItem) -> bool:
        """
        Insert or merge one item.

        Returns:
            True on success, False if the write failed (logged)
        """
        try:
            with transaction_scope(self._session_factory) as session:
                session.execute(self._upsert_statement([item_to_row(item)]))
            return True
        except DatabasePersistenceError as e:
            logger.error(f"Persist news_items failed for {item.id}: {e}")
            return False

    def upsert_many(self, items: Iterable[NewsItem]) -> int:
        """
        Upsert items one transaction per item.

        Returns:
            Number of items written
        """
        written = 0
        for item in items:
            if self.upsert(item):
                written += 1
        return written

    def load_recent(self, limit: int) -> List[NewsItem]:
        """Most recent items by publish time, newest first."""
        with self._session_factory() as session:
            records = session.scalars(
                select(NewsItemRecord)
                .order_by(NewsItemRecord.timestamp.desc())
                .limit(limit)
            ).all()
            return [record_to_item(record) for record in records]

    def get(self, item_id: str):
        with self._session_factory() as session:
            record = session.get(NewsItemRecord, item_id)
            return record_to_item(record) if record is not None else None

    def count(self) -> int:
        try:
            with self._session_factory() as session:
                return session.scalar(select(func.count()).select_from(NewsItemRecord)) or 0
        except SQLAlchemyError as e:
            logger.error(f"Count news_items failed: {e}")
            return -1

"""
Core Module - News Store.

============================================================
RESPONSIBILITY
============================================================
The single source of truth for the running process.

- Bounded newest-first item list
- Dedup set of admitted ids (bounded, rebuilt on overflow)
- Latest market state
- One reader/writer lock guarding all of the above

============================================================
LOCKING CONTRACT
============================================================
Readers (API handlers) use the public snapshot methods,
which take the shared lock and return detached copies.

The ingestion cycle takes the exclusive lock once for the
whole mutation:

    with store.write_locked():
        new_items = store.admit_locked(candidates)
        ...decide, persist...
        store.publish_locked(new_items, market_state)

Methods suffixed with `_locked` assume the caller already
holds the write lock.

============================================================
SEEN-ID COMPACTION
============================================================
When the seen set grows past its cap it is rebuilt from
the ids currently in the item list. Ids that were evicted
from the list are forgotten and may be admitted again if a
source re-publishes them.

============================================================
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set

from .models import EnrichmentResult, MarketState, NewsItem
from .rwlock import ReadWriteLock


logger = logging.getLogger(__name__)


DEFAULT_MAX_ITEMS = 100
DEFAULT_MAX_SEEN_IDS = 5000


PersistCallback = Callable[[NewsItem], bool]


@dataclass(frozen=True)
class StoreSnapshot:
    """Point-in-time view of the store."""
    items: List[NewsItem] = field(default_factory=list)
    market_state: MarketState = field(default_factory=MarketState.neutral)
    seen_id_count: int = 0


class NewsStore:
    """
    Process-wide in-memory state, owned by the runtime and passed
    explicitly to the ingestion service and the read API.
    """

    def __init__(
        self,
        max_items: int = DEFAULT_MAX_ITEMS,
        max_seen_ids: int = DEFAULT_MAX_SEEN_IDS,
    ) -> None:
        if max_items <= 0:
            raise ValueError("max_items must be positive")
        if max_seen_ids < max_items:
            raise ValueError("max_seen_ids must be >= max_items")

        self._max_items = max_items
        self._max_seen_ids = max_seen_ids
        self._lock = ReadWriteLock()

        self._items: List[NewsItem] = []
        self._seen_ids: Set[str] = set()
        self._market_state = MarketState.neutral()

    @property
    def max_items(self) -> int:
        return self._max_items

    @property
    def max_seen_ids(self) -> int:
        return self._max_seen_ids

    # =========================================================
    # BOOTSTRAP
    # =========================================================

    def bootstrap(self, items: Iterable[NewsItem]) -> int:
        """
        Load persisted history (newest first) at startup.

        Returns:
            Number of items loaded
        """
        with self._lock.write_locked():
            loaded: List[NewsItem] = []
            ids: Set[str] = set()
            for item in items:
                if item.id in ids:
                    continue
                ids.add(item.id)
                loaded.append(item)
                if len(loaded) >= self._max_items:
                    break

            self._items = loaded
            self._seen_ids = ids
            self._market_state = MarketState.neutral()
            return len(loaded)

    # =========================================================
    # READ SIDE
    # =========================================================

    def get_items(self, limit: Optional[int] = None) -> List[NewsItem]:
        """Newest-first copy of the item list."""
        with self._lock.read_locked():
            items = self._items if limit is None else self._items[:limit]
            return [item.copy() for item in items]

    def get_item(self, item_id: str) -> Optional[NewsItem]:
        with self._lock.read_locked():
            for item in self._items:
                if item.id == item_id:
                    return item.copy()
            return None

    def get_market_state(self) -> MarketState:
        with self._lock.read_locked():
            return self._market_state

    def snapshot(self) -> StoreSnapshot:
        with self._lock.read_locked():
            return StoreSnapshot(
                items=[item.copy() for item in self._items],
                market_state=self._market_state,
                seen_id_count=len(self._seen_ids),
            )

    def has_seen(self, item_id: str) -> bool:
        with self._lock.read_locked():
            return item_id in self._seen_ids

    def get_stats(self) -> Dict[str, Any]:
        with self._lock.read_locked():
            return {
                "items": len(self._items),
                "max_items": self._max_items,
                "seen_ids": len(self._seen_ids),
                "max_seen_ids": self._max_seen_ids,
                "market_state": self._market_state.to_dict(),
            }

    # =========================================================
    # WRITE SIDE
    # =========================================================

    @contextmanager
    def write_locked(self) -> Iterator["NewsStore"]:
        """Hold the exclusive lock for a multi-step mutation."""
        with self._lock.write_locked():
            yield self

    def admit_locked(self, candidates: Iterable[NewsItem]) -> List[NewsItem]:
        """
        Keep only never-seen items and mark them as seen.

        Duplicates inside `candidates` are admitted once, first
        occurrence wins.
        """
        admitted: List[NewsItem] = []
        for item in candidates:
            if item.id in self._seen_ids:
                continue
            self._seen_ids.add(item.id)
            admitted.append(item)
        return admitted

    def publish_locked(
        self,
        new_items: List[NewsItem],
        market_state: MarketState,
    ) -> None:
        """Prepend a cycle's new items, apply caps and set the market state."""
        self._market_state = market_state

        if new_items:
            self._items = list(new_items) + self._items
            if len(self._items) > self._max_items:
                del self._items[self._max_items:]

        self._compact_seen_ids_locked()

    def _compact_seen_ids_locked(self) -> None:
        if len(self._seen_ids) <= self._max_seen_ids:
            return
        before = len(self._seen_ids)
        self._seen_ids = {item.id for item in self._items}
        logger.info(
            f"Seen-id set compacted: {before} -> {len(self._seen_ids)} ids"
        )

    def merge_enrichment(
        self,
        item_id: str,
        result: EnrichmentResult,
        persist: Optional[PersistCallback] = None,
    ) -> Optional[NewsItem]:
        """
        Merge an AI answer into the item with the given id.

        AI text fields are always overwritten. The trading signal is
        replaced only when the AI signal is not WAIT. If the item has
        already been evicted the call is a no-op and returns None.

        Returns:
            A copy of the updated item, or None if not present
        """
        with self._lock.write_locked():
            for item in self._items:
                if item.id != item_id:
                    continue

                item.ai_analysis = result.context
                item.ai_advice = result.advice
                item.coin_symbol = result.coin
                if result.overrides_signal:
                    item.trading_signal = result.signal

                if persist is not None:
                    persist(item)
                return item.copy()

        logger.debug(f"Enrichment for {item_id} dropped: item no longer in store")
        return None

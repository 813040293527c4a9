"""
AI Enrichment - Credential Key Pool.

Round-robin rotation over a fixed list of API keys. The
cursor is owned by the pool and advanced under its lock, so
one pool can be shared by concurrent callers.
"""

import threading
from typing import Iterable, Iterator, List, Optional


class KeyPool:
    """Round-robin cursor over API credentials."""

    def __init__(self, keys: Iterable[str], name: str = "keys") -> None:
        self._keys: List[str] = [k.strip() for k in keys if k and k.strip()]
        self._name = name
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._keys)

    def __bool__(self) -> bool:
        return bool(self._keys)

    def next_key(self) -> Optional[str]:
        """Return the key at the cursor and advance it; None if empty."""
        with self._lock:
            if not self._keys:
                return None
            key = self._keys[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._keys)
            return key

    def rotation(self) -> Iterator[str]:
        """
        Yield every key once, starting at the cursor.

        The cursor advances per key taken, so a caller that stops
        after the first success leaves the next call starting on
        the following key.
        """
        for _ in range(len(self._keys)):
            key = self.next_key()
            if key is None:
                return
            yield key

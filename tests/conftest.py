"""
Shared fixtures for the news intelligence test suite.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.models import NewsItem


BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_item():
    """Factory for NewsItem instances with sensible defaults."""
    counter = {"n": 0}

    def _make(item_id=None, title="Generic crypto headline", source="CoinDesk", **fields):
        counter["n"] += 1
        if item_id is None:
            item_id = f"item-{counter['n']}"
        fields.setdefault("timestamp", BASE_TIME + timedelta(minutes=counter["n"]))
        return NewsItem(id=item_id, title=title, source=source, **fields)

    return _make

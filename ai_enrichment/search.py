"""
AI Enrichment - Web Search Collaborator.

============================================================
RESPONSIBILITY
============================================================
Fetches a short, fresh web-search summary used as
verification context in the AI prompt.

- Serper.dev Google search, last 24h, top 3 results
- Each configured key tried once per call
- Never raises: returns a fixed text on failure

============================================================
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .exceptions import ProviderRequestError, ResponseParseError
from .key_pool import KeyPool


logger = logging.getLogger(__name__)


DEFAULT_SERPER_URL = "https://google.serper.dev/search"

RESULTS_HEADER = "Search Results (Verification Context):\n"
NO_RESULTS = "No relevant search results found."
SEARCH_UNAVAILABLE = "Search API Unavailable."


def format_results(organic: List[Any]) -> str:
    """Render organic results as prompt context, skipping non-object entries."""
    organic = [entry for entry in organic if isinstance(entry, dict)]
    if not organic:
        return NO_RESULTS
    lines = [RESULTS_HEADER]
    for entry in organic:
        lines.append(
            f"- {entry.get('title', '')}: {entry.get('snippet', '')} ({entry.get('date', '')})\n"
        )
    return "".join(lines)


class SerperSearchClient:
    """
    Serper.dev search client with key rotation.

    ============================================================
    USAGE
    ============================================================
    ```python
    client = SerperSearchClient(KeyPool(["k1", "k2"]))
    context = await client.search("BTC ETF approved crypto news")
    await client.close()
    ```

    ============================================================
    """

    PROVIDER = "serper"

    def __init__(
        self,
        keys: KeyPool,
        url: str = DEFAULT_SERPER_URL,
        timeout: float = 5.0,
        num_results: int = 3,
        time_range: str = "qdr:d",
    ) -> None:
        self._keys = keys
        self._url = url
        self._timeout = timeout
        self._num_results = num_results
        self._time_range = time_range
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def search(self, query: str) -> str:
        """
        Search the web for `query`.

        Returns:
            Formatted results, NO_RESULTS, or SEARCH_UNAVAILABLE
        """
        payload = {"q": query, "num": self._num_results, "tbs": self._time_range}

        for key in self._keys.rotation():
            try:
                organic = await self._request(key, payload)
            except (ProviderRequestError, ResponseParseError) as e:
                logger.debug(f"Search key failed: {e.to_dict()}")
                continue
            return format_results(organic)

        if self._keys:
            logger.warning("All search keys failed")
        return SEARCH_UNAVAILABLE

    async def _request(self, key: str, payload: Dict[str, Any]) -> List[Any]:
        session = await self._get_session()
        headers = {"X-API-KEY": key, "Content-Type": "application/json"}

        try:
            async with session.post(self._url, json=payload, headers=headers) as response:
                if response.status != 200:
                    raise ProviderRequestError(
                        f"Serper API error: {response.status}",
                        provider=self.PROVIDER,
                        status_code=response.status,
                    )
                body = await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderRequestError(
                f"Serper request failed: {e}",
                provider=self.PROVIDER,
            ) from e

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise ResponseParseError(
                f"Invalid JSON from Serper: {e}",
                provider=self.PROVIDER,
                raw_data=body,
            ) from e

        organic = data.get("organic") if isinstance(data, dict) else None
        return organic if isinstance(organic, list) else []

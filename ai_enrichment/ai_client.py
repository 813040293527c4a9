"""
AI Enrichment - AI Analysis Client.

============================================================
RESPONSIBILITY
============================================================
Asks an LLM for a short context / advice / coin / signal
opinion about one headline.

- Builds the prompt around live web-search context
- Rotates through API keys, each tried once per call
- Decodes OpenAI-style, Ollama-style or raw bodies
- Never raises: falls back to a fixed "exhausted" answer

============================================================
RESPONSE HANDLING
============================================================
Body decoding order:
1. choices[0].message.content
2. response
3. the raw body text

The chosen text is then parsed by `parse_ai_response`, which
tolerates ``` fences and defaults the signal to WAIT.

============================================================
"""

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp

from core.models import EnrichmentResult, NewsItem, TradingSignal
from .exceptions import ProviderRequestError
from .key_pool import KeyPool
from .search import SerperSearchClient


logger = logging.getLogger(__name__)


DEFAULT_OLLAMA_URL = "https://ollama.com/api/generate"
DEFAULT_MODEL = "qwen3-coder:480b-cloud"

EXHAUSTED_RESULT = EnrichmentResult(
    context="AI Exhausted",
    advice="All keys failed.",
    coin="",
    signal=TradingSignal.WAIT,
)
UNPARSED_ADVICE = "Check context"

PROMPT_TEMPLATE = """
Analyze this crypto news headline: "{title}" (Asset: {asset}).

Verified Web Search Context (Live Data):
{search_context}

Respond in JSON:
{{
  "context": "Hidden context in 1 {language} sentence based on search results.",
  "advice": "Trading advice (Buy/Sell/Wait) in 1 {language} sentence.",
  "coin": "The specific coin symbol (e.g. DOT, SOL, BTC) or 'GENERAL'.",
  "signal": "One of: STRONG_BUY, BUY, WAIT, CAUTION, SELL, STRONG_SELL"
}}
"""


# =============================================================
# PARSING
# =============================================================


def strip_code_fences(raw: str) -> str:
    return raw.replace("```json", "").replace("```", "").strip()


def parse_ai_response(raw: str) -> EnrichmentResult:
    """
    Parse the model's answer text.

    Non-JSON text becomes the context with advice "Check context"
    and signal WAIT. A missing, empty or unknown signal is WAIT.
    """
    text = strip_code_fences(raw or "")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return EnrichmentResult(context=text, advice=UNPARSED_ADVICE, coin="", signal=TradingSignal.WAIT)

    if not isinstance(data, dict):
        return EnrichmentResult(context=text, advice=UNPARSED_ADVICE, coin="", signal=TradingSignal.WAIT)

    def field_text(key: str) -> str:
        value = data.get(key)
        return "" if value is None else str(value)

    return EnrichmentResult(
        context=field_text("context"),
        advice=field_text("advice"),
        coin=field_text("coin"),
        signal=TradingSignal.parse(data.get("signal")),
    )


def extract_answer_text(body: str) -> str:
    """Pick the answer text out of an HTTP response body."""
    try:
        data: Any = json.loads(body)
    except json.JSONDecodeError:
        return body

    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            first = choices[0]
            if isinstance(first, dict):
                message = first.get("message")
                if isinstance(message, dict) and isinstance(message.get("content"), str):
                    return message["content"]

        response = data.get("response")
        if isinstance(response, str) and response:
            return response

    return body


def build_prompt(item: NewsItem, search_context: str, language: str = "Arabic") -> str:
    return PROMPT_TEMPLATE.format(
        title=item.title,
        asset=item.asset,
        search_context=search_context,
        language=language,
    )


# =============================================================
# CLIENT
# =============================================================


class AIAnalysisClient:
    """
    LLM opinion provider with key rotation.

    ============================================================
    USAGE
    ============================================================
    ```python
    client = AIAnalysisClient(KeyPool(keys), search_client)
    result = await client.analyze(item)
    ```

    ============================================================
    """

    PROVIDER = "ollama"

    def __init__(
        self,
        keys: KeyPool,
        search_client: SerperSearchClient,
        url: str = DEFAULT_OLLAMA_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = 15.0,
        language: str = "Arabic",
    ) -> None:
        self._keys = keys
        self._search = search_client
        self._url = url
        self._model = model
        self._timeout = timeout
        self._language = language
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close HTTP sessions (including the search client's)."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
        await self._search.close()

    async def analyze(self, item: NewsItem) -> EnrichmentResult:
        """
        Get the AI opinion for one item.

        Returns:
            Parsed EnrichmentResult, or EXHAUSTED_RESULT when every key fails
        """
        query = f"{item.title} {item.asset} crypto news"
        logger.info(f"Searching context: {query}")
        search_context = await self._search.search(query)

        payload = {
            "model": self._model,
            "prompt": build_prompt(item, search_context, self._language) + " Respond in JSON only.",
            "stream": False,
            "format": "json",
        }

        for key in self._keys.rotation():
            try:
                body = await self._request(key, payload)
            except ProviderRequestError as e:
                logger.debug(f"AI key failed: {e.to_dict()}")
                continue

            result = parse_ai_response(extract_answer_text(body))
            logger.info(f"AI insight for {item.id}: signal={result.signal.value} coin={result.coin!r}")
            return result

        logger.warning(f"All AI keys failed for {item.id}")
        return EXHAUSTED_RESULT

    async def _request(self, key: str, payload: dict) -> str:
        session = await self._get_session()
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {key}"}

        try:
            async with session.post(self._url, json=payload, headers=headers) as response:
                if response.status != 200:
                    raise ProviderRequestError(
                        f"AI API error: {response.status}",
                        provider=self.PROVIDER,
                        status_code=response.status,
                    )
                return await response.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderRequestError(
                f"AI request failed: {e}",
                provider=self.PROVIDER,
            ) from e

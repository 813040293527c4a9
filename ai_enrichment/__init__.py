"""
AI Enrichment Package.

Asynchronous AI opinion for newly admitted news items.

Modules:
- key_pool: Round-robin API key rotation
- search: Serper.dev web search context
- ai_client: LLM analysis client and response parsing
- dispatcher: Background enrichment with bounded concurrency
- exceptions: Internal error hierarchy
"""

from .exceptions import EnrichmentError, ProviderRequestError, ResponseParseError
from .key_pool import KeyPool
from .search import (
    NO_RESULTS,
    SEARCH_UNAVAILABLE,
    SerperSearchClient,
    format_results,
)
from .ai_client import (
    EXHAUSTED_RESULT,
    AIAnalysisClient,
    build_prompt,
    extract_answer_text,
    parse_ai_response,
)
from .dispatcher import EnrichmentDispatcher

__all__ = [
    "EnrichmentError",
    "ProviderRequestError",
    "ResponseParseError",
    "KeyPool",
    "NO_RESULTS",
    "SEARCH_UNAVAILABLE",
    "SerperSearchClient",
    "format_results",
    "EXHAUSTED_RESULT",
    "AIAnalysisClient",
    "build_prompt",
    "extract_answer_text",
    "parse_ai_response",
    "EnrichmentDispatcher",
]

"""
Dashboard - API.

============================================================
RESPONSIBILITY
============================================================
Read-only REST API over the in-memory news store.

- Newest-first news snapshot
- Current market mood
- Ingestion status

Handlers are synchronous and run in the server threadpool;
every read goes through the store's shared lock and returns
a point-in-time copy.
============================================================
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from core.store import NewsStore
from data_ingestion.ingestion_service import IngestionService

from .schemas import (
    HealthResponse,
    MarketStateResponse,
    NewsItemResponse,
    NewsListResponse,
    SourceStatus,
    StatusResponse,
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def create_app(
    store: NewsStore,
    service: Optional[IngestionService] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        store: Store to read from
        service: Ingestion service for /api/status, optional
    """
    app = FastAPI(
        title="Crypto News Intelligence API",
        description="Classified crypto news, market mood and trading signals",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.service = service
    started_at = datetime.now(timezone.utc)

    # ============================================================
    # API Endpoints
    # ============================================================

    @app.get("/", tags=["Root"])
    def root() -> Dict[str, Any]:
        """Root endpoint."""
        return {
            "service": "Crypto News Intelligence API",
            "version": API_VERSION,
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health_check() -> HealthResponse:
        """Health check endpoint."""
        now = datetime.now(timezone.utc)
        return HealthResponse(
            status="healthy",
            timestamp=now,
            version=API_VERSION,
            uptime_seconds=(now - started_at).total_seconds(),
        )

    @app.get("/api/news", response_model=NewsListResponse, tags=["News"])
    def get_news(
        limit: Optional[int] = Query(None, ge=1, le=store.max_items),
    ) -> NewsListResponse:
        """Newest-first news items."""
        items = store.get_items(limit)
        return NewsListResponse(
            count=len(items),
            items=[NewsItemResponse.from_item(item) for item in items],
        )

    @app.get("/api/market", response_model=MarketStateResponse, tags=["Market"])
    def get_market() -> MarketStateResponse:
        """Market mood of the latest cycle."""
        return MarketStateResponse.from_state(store.get_market_state())

    @app.get("/api/status", response_model=StatusResponse, tags=["Status"])
    def get_status() -> StatusResponse:
        """Ingestion status."""
        if service is None:
            return StatusResponse(running=False, store=store.get_stats())

        health = service.get_health_status()
        return StatusResponse(
            running=health["running"],
            run_count=health["run_count"],
            last_run_at=health["last_run_at"],
            interval_seconds=health["interval_seconds"],
            sources=[SourceStatus(**entry) for entry in health["collectors"].values()
                     if isinstance(entry, dict)],
            store=health["store"],
            persist_failures=health["persist_failures"],
            enrichment=health["enrichment"],
            metrics=service.get_metrics().to_dict(),
        )

    return app

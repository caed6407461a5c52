from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cryptoapi.config import settings
from cryptoapi.ingestion.pipeline import PriceAggregator, build_aggregator
from cryptoapi.ingestion.scheduler import RefreshLoop
from cryptoapi.storage import PriceCacheStore, PriceStore

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(
    store: Optional[PriceStore] = None,
    aggregator: Optional[PriceAggregator] = None,
    refresh_on_startup: Optional[bool] = None,
) -> FastAPI:
    """Build the HTTP app. Handlers only ever read the cache store."""
    store = store or PriceCacheStore(settings.cache_file)
    if refresh_on_startup is None:
        refresh_on_startup = settings.refresh_on_startup

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        loop: Optional[RefreshLoop] = None
        if refresh_on_startup:
            loop = RefreshLoop(aggregator or build_aggregator(store=store), settings.refresh_interval_seconds)
            loop.start()
        app.state.refresh_loop = loop
        try:
            yield
        finally:
            if loop is not None:
                await loop.stop()

    app = FastAPI(
        title="CryptoAPI",
        version="0.1.0",
        description="Cached crypto and fiat USD prices, refreshed in the background.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/", response_model=Dict[str, float])
    @app.get("/prices", response_model=Dict[str, float])
    def get_prices() -> Dict[str, float]:
        return store.read()

    app.state.store = store
    return app


app = create_app()

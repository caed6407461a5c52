from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import httpx

from cryptoapi.config import PriceConfig, settings
from cryptoapi.ingestion.sources import CoinbaseRateSource, CoinGeckoSpotSource, default_sources
from cryptoapi.models import PriceSnapshot, RefreshSummary, UpstreamRateResponse, UpstreamSpotPrices
from cryptoapi.storage import PriceCacheStore, PriceStore

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def merge_prices(
    spot: Optional[UpstreamSpotPrices],
    rates: Mapping[str, Optional[UpstreamRateResponse]],
    config: PriceConfig,
) -> Tuple[Dict[str, float], bool]:
    """Flatten upstream results into symbol -> price.

    Each upstream is applied independently and ids missing upstream are simply
    omitted, as are ids priced as null. Rates are keyed by the queried base
    currency. Only when nothing at all was collected is the whole fallback table
    substituted; partial gaps are not backfilled. Returns ``(prices, used_fallback)``.
    """
    prices: Dict[str, float] = {}

    if spot is not None:
        for asset_id, symbol in config.asset_symbols.items():
            quote = spot.root.get(asset_id)
            if quote is None or quote.usd is None or not math.isfinite(quote.usd):
                continue
            prices[symbol] = quote.usd

    quote_currency = config.quote_currency.upper()
    for base_currency, response in rates.items():
        if response is None:
            continue
        raw = response.data.rates.get(quote_currency)
        if raw is None:
            continue
        try:
            value = float(raw)
        except ValueError:
            logger.warning("Unparseable %s rate for %s: %r", quote_currency, base_currency, raw)
            continue
        if math.isfinite(value):
            prices[base_currency.upper()] = value

    if not prices:
        return dict(config.fallback_prices), True
    return prices, False


class PriceAggregator:
    """Refreshes the cached snapshot from the spot and exchange-rate upstreams."""

    def __init__(
        self,
        store: PriceStore,
        config: PriceConfig,
        spot_source: Optional[CoinGeckoSpotSource] = None,
        rate_sources: Optional[Iterable[CoinbaseRateSource]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.store = store
        self.config = config
        default_spot, default_rates = default_sources(config)
        self.spot_source = spot_source or default_spot
        self.rate_sources: List[CoinbaseRateSource] = (
            list(rate_sources) if rate_sources is not None else default_rates
        )
        self.transport = transport
        self.last_summary: Optional[RefreshSummary] = None

    @property
    def source_names(self) -> List[str]:
        return [self.spot_source.name] + [f"{src.name}:{src.base_currency}" for src in self.rate_sources]

    async def _collect(
        self,
    ) -> Tuple[Optional[UpstreamSpotPrices], List[Optional[UpstreamRateResponse]]]:
        timeout = httpx.Timeout(self.config.request_timeout_seconds)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=self.transport) as client:
            spot, *rates = await asyncio.gather(
                self.spot_source.fetch(client),
                *(src.fetch(client) for src in self.rate_sources),
            )
        return spot, list(rates)

    async def refresh_once(self) -> PriceSnapshot:
        """Fetch both upstreams, merge, persist and return the new snapshot."""
        spot, rates = await self._collect()

        sources_ok: List[str] = []
        errors: List[str] = []
        results: List[Tuple[str, object]] = [(self.spot_source.name, spot)]
        results.extend(
            (f"{src.name}:{src.base_currency}", result) for src, result in zip(self.rate_sources, rates)
        )
        for name, result in results:
            if result is None:
                errors.append(f"{name}: no data")
            else:
                sources_ok.append(name)

        by_base = {src.base_currency: result for src, result in zip(self.rate_sources, rates)}
        prices, used_fallback = merge_prices(spot, by_base, self.config)
        if used_fallback:
            logger.warning("All upstreams failed; using static fallback prices")

        snapshot = PriceSnapshot(prices=prices, last_update=_utc_timestamp())

        persisted = False
        try:
            self.store.write(snapshot)
            persisted = True
        except OSError as exc:
            logger.exception("Failed to write price cache")
            errors.append(f"cache: {exc}")

        self.last_summary = RefreshSummary(
            prices=snapshot.prices,
            last_update=snapshot.last_update,
            sources_ok=sources_ok,
            errors=errors,
            used_fallback=used_fallback,
            persisted=persisted,
        )
        return snapshot


def build_aggregator(
    store: Optional[PriceStore] = None,
    config: Optional[PriceConfig] = None,
) -> PriceAggregator:
    """Create an aggregator with default settings and store."""
    store = store or PriceCacheStore(settings.cache_file)
    config = config or settings.price_config()
    return PriceAggregator(store=store, config=config)

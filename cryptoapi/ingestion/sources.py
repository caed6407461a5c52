from __future__ import annotations

import logging
from typing import List, Mapping, Optional

import httpx
from pydantic import ValidationError

from cryptoapi.config import PriceConfig
from cryptoapi.ingestion.fetcher import fetch_text
from cryptoapi.models import UpstreamRateResponse, UpstreamSpotPrices

logger = logging.getLogger(__name__)


class CoinGeckoSpotSource:
    """Public CoinGecko simple/price endpoint (no API key)."""

    name = "CoinGecko"

    def __init__(self, url: str, asset_ids: List[str], vs_currency: str = "usd") -> None:
        self.url = url
        self.asset_ids = list(asset_ids)
        self.vs_currency = vs_currency

    @property
    def params(self) -> Mapping[str, str]:
        return {"ids": ",".join(self.asset_ids), "vs_currencies": self.vs_currency}

    async def fetch(self, client: httpx.AsyncClient) -> Optional[UpstreamSpotPrices]:
        text = await fetch_text(client, self.url, params=self.params)
        if not text:
            return None
        try:
            parsed = UpstreamSpotPrices.model_validate_json(text)
        except ValidationError as exc:
            logger.warning("Parse failure for upstream %s: %s", self.name, exc)
            return None

        logger.info("Fetched %s spot prices from %s", len(parsed.root), self.name)
        return parsed


class CoinbaseRateSource:
    """Public Coinbase exchange-rates endpoint for a single base currency."""

    name = "Coinbase"

    def __init__(self, url: str, base_currency: str) -> None:
        self.url = url
        self.base_currency = base_currency.upper()

    @property
    def params(self) -> Mapping[str, str]:
        return {"currency": self.base_currency}

    async def fetch(self, client: httpx.AsyncClient) -> Optional[UpstreamRateResponse]:
        text = await fetch_text(client, self.url, params=self.params)
        if not text:
            return None
        try:
            parsed = UpstreamRateResponse.model_validate_json(text)
        except ValidationError as exc:
            logger.warning("Parse failure for upstream %s (%s): %s", self.name, self.base_currency, exc)
            return None

        logger.info(
            "Fetched %s rates for %s from %s", len(parsed.data.rates), self.base_currency, self.name
        )
        return parsed


def default_sources(config: PriceConfig) -> tuple[CoinGeckoSpotSource, List[CoinbaseRateSource]]:
    """Factory for the spot source and one rate source per tracked base currency."""
    spot = CoinGeckoSpotSource(config.coingecko_url, list(config.asset_symbols))
    rates = [CoinbaseRateSource(config.coinbase_rates_url, base) for base in config.rate_bases]
    return spot, rates

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, RootModel


class PriceSnapshot(BaseModel):
    """Merged prices of one refresh cycle, as persisted in the cache file."""

    prices: Dict[str, float] = Field(default_factory=dict, description="Symbol -> USD price.")
    last_update: str = Field(..., description="UTC timestamp of the refresh, ISO-8601.")


class SpotQuote(BaseModel):
    usd: Optional[float] = None


class UpstreamSpotPrices(RootModel[Dict[str, SpotQuote]]):
    """CoinGecko simple/price payload keyed by asset id."""


class RateData(BaseModel):
    currency: str
    rates: Dict[str, str]


class UpstreamRateResponse(BaseModel):
    """Coinbase exchange-rates payload."""

    data: RateData


class RefreshSummary(BaseModel):
    """Outcome of a refresh cycle."""

    prices: Dict[str, float]
    last_update: str
    sources_ok: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    used_fallback: bool = False
    persisted: bool = False

from __future__ import annotations

import json
from typing import Callable, Dict, Optional

import httpx
import pytest

from cryptoapi.config import PriceConfig
from cryptoapi.storage import PriceCacheStore

SPOT_URL = "https://spot.test/api/v3/simple/price"
RATES_URL = "https://rates.test/v2/exchange-rates"


@pytest.fixture
def price_config() -> PriceConfig:
    return PriceConfig(coingecko_url=SPOT_URL, coinbase_rates_url=RATES_URL, request_timeout_seconds=1.0)


@pytest.fixture
def store(tmp_path) -> PriceCacheStore:
    return PriceCacheStore(tmp_path / "cache" / "prices.json")


@pytest.fixture
def upstream() -> Callable[..., httpx.MockTransport]:
    """Build a transport answering the spot and rate endpoints.

    ``None`` for a body means the endpoint answers 503; a ``str`` is sent verbatim.
    """

    def _build(spot: Optional[object] = None, rates: Optional[Dict[str, object]] = None) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "spot.test":
                body = spot
            elif request.url.host == "rates.test":
                body = (rates or {}).get(request.url.params.get("currency", ""))
            else:
                body = None
            if body is None:
                return httpx.Response(503, text="unavailable")
            if isinstance(body, str):
                return httpx.Response(200, text=body)
            return httpx.Response(200, text=json.dumps(body))

        return httpx.MockTransport(handler)

    return _build

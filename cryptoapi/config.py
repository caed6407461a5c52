from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Final, Mapping, Tuple

from dotenv import load_dotenv

load_dotenv()

# CoinGecko asset id -> symbol published in the snapshot.
DEFAULT_ASSET_SYMBOLS: Final[Dict[str, str]] = {
    "monero": "XMR",
    "binancecoin": "BNB",
    "bitcoin": "BTC",
    "dogecoin": "DOGE",
    "ripple": "XRP",
    "polygon-ecosystem-token": "POL",
    "solana": "SOL",
}

# Fiat bases queried on the exchange-rate API; each is published under its own code.
DEFAULT_RATE_BASES: Final[Tuple[str, ...]] = ("EUR",)

DEFAULT_FALLBACK_PRICES: Final[Dict[str, float]] = {
    "XMR": 354.77,
    "BNB": 634.98,
    "BTC": 69763.00,
    "DOGE": 0.1028,
    "XRP": 1.47,
    "POL": 0.1109,
    "SOL": 87.35,
    "EUR": 1.1865,
}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    """Central configuration driven by environment variables."""

    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "3040"))
    request_timeout_seconds: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
    refresh_interval_seconds: float = float(os.getenv("REFRESH_INTERVAL_SECONDS", "300"))
    refresh_on_startup: bool = _env_bool("REFRESH_ON_STARTUP", "true")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    cache_file: Path = field(
        default_factory=lambda: Path(
            os.getenv("CACHE_FILE", str(Path(tempfile.gettempdir()) / "cryptoapi_prices.json"))
        )
    )

    coingecko_url: str = os.getenv("COINGECKO_URL", "https://api.coingecko.com/api/v3/simple/price")
    coinbase_rates_url: str = os.getenv("COINBASE_RATES_URL", "https://api.coinbase.com/v2/exchange-rates")

    def ensure_paths(self) -> None:
        """Create the cache directory if it does not exist."""
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)

    def price_config(self) -> PriceConfig:
        return PriceConfig(
            coingecko_url=self.coingecko_url,
            coinbase_rates_url=self.coinbase_rates_url,
            request_timeout_seconds=self.request_timeout_seconds,
        )


@dataclass(frozen=True)
class PriceConfig:
    """What gets tracked and where it comes from, handed to the aggregator at construction."""

    asset_symbols: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_ASSET_SYMBOLS))
    rate_bases: Tuple[str, ...] = DEFAULT_RATE_BASES
    quote_currency: str = "USD"
    fallback_prices: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_FALLBACK_PRICES))
    coingecko_url: str = "https://api.coingecko.com/api/v3/simple/price"
    coinbase_rates_url: str = "https://api.coinbase.com/v2/exchange-rates"
    request_timeout_seconds: float = 10.0


# Singleton-style settings import
settings: Final[Settings] = Settings()
settings.ensure_paths()

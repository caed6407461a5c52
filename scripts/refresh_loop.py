from __future__ import annotations

import argparse
import asyncio
import logging

from cryptoapi.config import settings
from cryptoapi.ingestion.pipeline import build_aggregator
from cryptoapi.ingestion.scheduler import RefreshLoop

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Refresh the price cache on a fixed interval, without the HTTP server.")
    parser.add_argument(
        "--interval",
        type=float,
        default=settings.refresh_interval_seconds,
        help="Seconds to sleep between refresh cycles (default: REFRESH_INTERVAL_SECONDS or 300).",
    )
    return parser.parse_args()


async def main() -> None:
    args = parse_args()
    loop = RefreshLoop(build_aggregator(), args.interval)
    try:
        await loop.start()
    finally:
        await loop.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")

from __future__ import annotations

import asyncio
import json
import logging

from cryptoapi.ingestion.pipeline import build_aggregator

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


async def main() -> None:
    aggregator = build_aggregator()
    await aggregator.refresh_once()
    summary = aggregator.last_summary
    if summary is None:
        logger.warning("Refresh produced no summary")
        return
    logger.info("Refresh summary: %s", summary.model_dump())
    print(json.dumps(summary.model_dump(), indent=2, default=str))


if __name__ == "__main__":
    asyncio.run(main())

from __future__ import annotations

import logging
from typing import Mapping, Optional

import httpx

logger = logging.getLogger(__name__)


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    params: Optional[Mapping[str, str]] = None,
) -> str:
    """GET ``url`` and return the body text, or an empty string on any failure.

    Timeouts come from the client. Non-2xx responses count as failures. There is
    no retry here: a failed fetch is simply skipped until the next refresh cycle.
    """
    try:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
        return resp.text
    except httpx.HTTPError as exc:
        logger.warning("Fetch failed for %s: %r", url, exc)
        return ""

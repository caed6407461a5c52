from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol

from pydantic import ValidationError

from cryptoapi.models import PriceSnapshot

logger = logging.getLogger(__name__)

# mkstemp creates 0600; readers may run as another user.
CACHE_FILE_MODE = 0o644


class PriceStore(Protocol):
    """Storage contract for the price snapshot."""

    def write(self, snapshot: PriceSnapshot) -> None: ...

    def read(self) -> Dict[str, float]: ...


class PriceCacheStore:
    """Single JSON file holding the latest snapshot.

    One writer (the refresh cycle) and many readers (HTTP handlers). Writes go to
    a sibling temp file that is then renamed over the cache file, so a reader sees
    either the previous snapshot or the new one.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def write(self, snapshot: PriceSnapshot) -> None:
        """Replace the cache file contents. Raises ``OSError`` if the file cannot be written."""
        payload = snapshot.model_dump_json()
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            os.fchmod(fd, CACHE_FILE_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("Persisted %s prices to %s", len(snapshot.prices), self.path)

    def read_snapshot(self) -> Optional[PriceSnapshot]:
        """Load the full snapshot; missing, unreadable or malformed files yield ``None``."""
        if not self.path.exists():
            return None
        try:
            return PriceSnapshot.model_validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.warning("Cache file unreadable at %s: %s", self.path, exc)
            return None

    def read(self) -> Dict[str, float]:
        snapshot = self.read_snapshot()
        if snapshot is None:
            return {}
        return snapshot.prices

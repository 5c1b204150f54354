"""Release catalog persistence.

The whole catalog lives in a single store entry. Writers always replace the
full value; ``ReleaseCatalog.lock`` serialises read-modify-write cycles within
the process.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from pydantic import ValidationError

from wine_manager.releases.schema import ReleaseRecord
from wine_manager.store.service import KeyValueStore

logger = logging.getLogger(__name__)

STORE_COLLECTION = "wine-downloader-info"
CATALOG_KEY = "wine-releases"


class ReleaseCatalog:
    """Adapter between ReleaseRecord sequences and the key-value store."""

    def __init__(self, store: KeyValueStore, key: str = CATALOG_KEY) -> None:
        """Initialize ReleaseCatalog.

        Args:
            store: Key-value store holding the catalog.
            key: Name of the store entry.
        """
        self.store = store
        self.key = key
        self.lock = asyncio.Lock()

    def exists(self) -> bool:
        """Return True if a catalog has been persisted."""
        return self.store.has(self.key)

    def load(self) -> list[ReleaseRecord]:
        """Load the persisted catalog.

        Entries that fail validation are skipped with a warning.

        Returns:
            Records in stored order, or an empty list if none are persisted.
        """
        raw = self.store.get(self.key, [])
        records: list[ReleaseRecord] = []
        for item in raw or []:
            try:
                records.append(ReleaseRecord.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping invalid catalog entry %r: %s", item, e)
        return records

    def save(self, records: Sequence[ReleaseRecord]) -> None:
        """Replace the persisted catalog with ``records``."""
        self.store.delete(self.key)
        self.store.set(self.key, [record.to_store() for record in records])
        logger.debug("Saved catalog with %d release(s)", len(records))

    @staticmethod
    def find_index(records: Sequence[ReleaseRecord], version: str) -> int | None:
        """Return the position of ``version`` in ``records``, or None."""
        for index, record in enumerate(records):
            if record.version == version:
                return index
        return None


__all__ = ["CATALOG_KEY", "STORE_COLLECTION", "ReleaseCatalog"]

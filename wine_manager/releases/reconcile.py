"""Catalog reconciliation.

Merges a freshly fetched upstream release list with the persisted catalog so
that local installation state survives every refresh.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from wine_manager.releases.catalog import ReleaseCatalog
from wine_manager.releases.schema import ReleaseRecord
from wine_manager.releases.sources import DEFAULT_REPOSITORIES, ReleaseSource

logger = logging.getLogger(__name__)

DEFAULT_RELEASE_COUNT = 50


def merge_releases(
    fetched: Sequence[ReleaseRecord],
    stored: Sequence[ReleaseRecord],
) -> list[ReleaseRecord]:
    """Carry local install state from ``stored`` onto ``fetched``.

    Only stored records whose install directory still exists take part. A
    matching fetched record inherits install_dir, is_installed and disk_size,
    and is flagged with has_update when its checksum changed. Installed
    records missing upstream are appended after the fetched ones, unchanged.

    Args:
        fetched: Records from the upstream fetch, in upstream order.
        stored: Previously persisted records, in stored order.

    Returns:
        The merged catalog.
    """
    merged = [record.model_copy() for record in fetched]
    index_by_version: dict[str, int] = {}
    for i, record in enumerate(merged):
        index_by_version.setdefault(record.version, i)

    for old in stored:
        if not old.install_dir or not Path(old.install_dir).exists():
            continue

        index = index_by_version.get(old.version)
        if index is None:
            logger.debug("Keeping local install missing upstream: %s", old.version)
            merged.append(old)
            continue

        new = merged[index]
        merged[index] = new.model_copy(
            update={
                "install_dir": old.install_dir,
                "is_installed": old.is_installed,
                "disk_size": old.disk_size,
                "has_update": new.checksum != old.checksum,
            }
        )

    return merged


async def sync_catalog(
    catalog: ReleaseCatalog,
    source: ReleaseSource,
    fetch: bool = False,
    count: int = DEFAULT_RELEASE_COUNT,
) -> list[ReleaseRecord]:
    """Return the release catalog, optionally refreshing it from upstream.

    Args:
        catalog: Persisted release catalog.
        source: Upstream release source.
        fetch: Query upstream and merge before returning.
        count: Maximum number of releases per upstream repository.

    Returns:
        The (possibly refreshed) catalog.

    Raises:
        FetchError: If upstream cannot be queried. Nothing is persisted.
    """
    logger.info("Updating wine versions info")

    if not fetch:
        logger.info("Reading local information")
        return catalog.load()

    logger.info("Fetching upstream information")
    fetched = await source.fetch_releases(DEFAULT_REPOSITORIES, count)

    async with catalog.lock:
        releases = merge_releases(fetched, catalog.load())
        catalog.save(releases)

    logger.info("Wine versions updated: %d release(s)", len(releases))
    return releases


__all__ = ["DEFAULT_RELEASE_COUNT", "merge_releases", "sync_catalog"]

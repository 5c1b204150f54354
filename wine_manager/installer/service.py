"""Version install and removal service.

This module provides the bookkeeping around a single version:
- install_release(): Run the install capability and record the result
- remove_release(): Delete a local install and reset its catalog entry

Both return a discrete outcome instead of raising, so callers can present the
result directly.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from wine_manager.installer.cancellation import CancellationToken
from wine_manager.installer.download import Installer
from wine_manager.releases.catalog import ReleaseCatalog
from wine_manager.releases.schema import ReleaseRecord
from wine_manager.types import InstallOutcome, ProgressCallback

logger = logging.getLogger(__name__)


def target_root_for(record: ReleaseRecord, wine_dir: Path, proton_dir: Path) -> Path:
    """Return the install root for ``record``'s category."""
    return wine_dir if record.is_wine else proton_dir


def ensure_install_roots(*roots: Path) -> None:
    """Create the category install roots if missing."""
    for root in roots:
        root.mkdir(parents=True, exist_ok=True)


async def install_release(
    record: ReleaseRecord,
    on_progress: ProgressCallback,
    token: CancellationToken,
    *,
    catalog: ReleaseCatalog,
    installer: Installer,
    wine_dir: Path,
    proton_dir: Path,
) -> InstallOutcome:
    """Install ``record`` and store the result in the catalog.

    Args:
        record: Release to install; must already be in the catalog.
        on_progress: Progress sink, forwarded to the install capability as is.
        token: Cancellation token of this install.
        catalog: Persisted release catalog.
        installer: Install capability.
        wine_dir: Install root for Wine-family versions.
        proton_dir: Install root for other versions.

    Returns:
        DONE on success, ABORT if the install failed after cancellation,
        ERROR otherwise. The catalog is only written on DONE.
    """
    try:
        ensure_install_roots(wine_dir, proton_dir)
    except OSError as e:
        logger.error("Failed to create install roots for %s: %s", record.version, e)
        return InstallOutcome.ERROR

    logger.info("Start installation of wine version %s", record.version)

    target_root = target_root_for(record, wine_dir, proton_dir)

    try:
        result = await installer.install_version(
            record, target_root, on_progress, token
        )
    except Exception as e:
        if token.cancelled:
            logger.warning("Installation of %s aborted: %s", record.version, e)
            return InstallOutcome.ABORT
        logger.error("Installation of %s failed: %s", record.version, e)
        return InstallOutcome.ERROR

    updated = result.record.model_copy(
        update={
            "install_dir": str(result.install_dir),
            "is_installed": True,
            "has_update": False,
            "type": record.type,
        }
    )

    async with catalog.lock:
        if not catalog.exists():
            logger.error(
                "No release catalog stored. Tool %s couldn't be installed!",
                record.version,
            )
            return InstallOutcome.ERROR

        releases = catalog.load()
        index = catalog.find_index(releases, record.version)
        if index is None:
            logger.error("Can't find %s in the release catalog!", record.version)
            return InstallOutcome.ERROR

        releases[index] = updated
        catalog.save(releases)

    logger.info("Finished installation of wine version %s", record.version)
    return InstallOutcome.DONE


async def remove_release(record: ReleaseRecord, *, catalog: ReleaseCatalog) -> bool:
    """Remove the local install of ``record`` and reset its catalog entry.

    Folder removal is best-effort: a failure is logged and the entry is reset
    anyway.

    Args:
        record: Release to remove.
        catalog: Persisted release catalog.

    Returns:
        True if the catalog entry was reset, False if it does not exist.
    """
    if record.install_dir and Path(record.install_dir).exists():
        try:
            await asyncio.to_thread(shutil.rmtree, record.install_dir)
        except OSError as e:
            logger.error("Failed to remove %s: %s", record.install_dir, e)
            logger.warning(
                "Couldn't remove folder %s! Still marking %s as not installed!",
                record.install_dir,
                record.version,
            )

    async with catalog.lock:
        if not catalog.exists():
            logger.error(
                "No release catalog stored. Release %s couldn't be removed!",
                record.version,
            )
            return False

        releases = catalog.load()
        index = catalog.find_index(releases, record.version)
        if index is None:
            logger.error("Can't find %s in the release catalog!", record.version)
            return False

        releases[index] = releases[index].model_copy(
            update={
                "is_installed": False,
                "install_dir": "",
                "disk_size": 0,
                "has_update": False,
            }
        )
        catalog.save(releases)

    logger.info("Removed wine version %s successfully", record.version)
    return True


__all__ = [
    "ensure_install_roots",
    "install_release",
    "remove_release",
    "target_root_for",
]

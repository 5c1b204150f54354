"""Top-level tool version manager.

ToolManager wires the release catalog, the upstream source, the install
capability and the cancellation registry together, and owns the registry so
every install of a version is tracked under that version's key.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from wine_manager.config import get_settings
from wine_manager.db import create_all_tables, get_engine, get_session_factory
from wine_manager.installer.cancellation import CancellationRegistry
from wine_manager.installer.download import HttpInstaller, Installer
from wine_manager.installer.service import install_release, remove_release
from wine_manager.releases.catalog import STORE_COLLECTION, ReleaseCatalog
from wine_manager.releases.reconcile import sync_catalog
from wine_manager.releases.schema import ReleaseRecord
from wine_manager.releases.sources import GitHubReleaseSource, ReleaseSource
from wine_manager.store.service import KeyValueStore
from wine_manager.types import InstallOutcome, ProgressCallback

if TYPE_CHECKING:
    from wine_manager.config import Settings

logger = logging.getLogger(__name__)


def _ignore_progress(state: object, progress: object = None) -> None:
    pass


class ToolManager:
    """Entry point for listing, installing and removing tool versions."""

    def __init__(
        self,
        catalog: ReleaseCatalog,
        source: ReleaseSource,
        installer: Installer,
        registry: CancellationRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize ToolManager.

        Args:
            catalog: Persisted release catalog.
            source: Upstream release source.
            installer: Install capability.
            registry: Cancellation registry (a fresh one if not provided).
            settings: Application settings (uses defaults if not provided).
        """
        self.catalog = catalog
        self.source = source
        self.installer = installer
        self.registry = registry if registry is not None else CancellationRegistry()
        self.settings = settings if settings is not None else get_settings()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None,
        client: httpx.AsyncClient,
    ) -> ToolManager:
        """Build a manager backed by the database store and GitHub.

        Args:
            settings: Application settings (uses defaults if None).
            client: HTTPX async client shared by the source and installer.
                The caller owns its lifetime and closes it.

        Returns:
            Configured ToolManager.
        """
        if settings is None:
            settings = get_settings()

        engine = get_engine(settings.db_url)
        create_all_tables(engine)
        store = KeyValueStore(STORE_COLLECTION, get_session_factory(engine))

        return cls(
            catalog=ReleaseCatalog(store),
            source=GitHubReleaseSource(
                client,
                api_base=settings.github_api_base,
                token=settings.github_token,
                timeout=settings.request_timeout,
            ),
            installer=HttpInstaller(client, timeout=settings.download_timeout),
            settings=settings,
        )

    async def sync_catalog(
        self, fetch: bool = False, count: int | None = None
    ) -> list[ReleaseRecord]:
        """Return the catalog, refreshing it from upstream if ``fetch``.

        Raises:
            FetchError: If upstream cannot be queried.
        """
        if count is None:
            count = self.settings.release_count
        return await sync_catalog(self.catalog, self.source, fetch=fetch, count=count)

    def get_release(self, version: str) -> ReleaseRecord | None:
        """Return the catalog entry for ``version``, if any."""
        releases = self.catalog.load()
        index = self.catalog.find_index(releases, version)
        return None if index is None else releases[index]

    async def install(
        self,
        record: ReleaseRecord,
        on_progress: ProgressCallback | None = None,
    ) -> InstallOutcome:
        """Install ``record``, tracking a cancellation token for its version.

        A second install of a version that is already being installed is
        rejected with ERROR and leaves the running install untouched.

        Args:
            record: Release to install.
            on_progress: Optional progress sink.

        Returns:
            Outcome of the install.
        """
        if record.version in self.registry:
            logger.error("Installation of %s is already running", record.version)
            return InstallOutcome.ERROR

        token = self.registry.create(record.version)
        try:
            return await install_release(
                record,
                on_progress or _ignore_progress,
                token,
                catalog=self.catalog,
                installer=self.installer,
                wine_dir=self.settings.wine_dir,
                proton_dir=self.settings.proton_dir,
            )
        finally:
            self.registry.delete(record.version)

    def cancel(self, version: str) -> bool:
        """Request cancellation of the running install of ``version``."""
        return self.registry.cancel(version)

    async def remove(self, record: ReleaseRecord) -> bool:
        """Remove the local install of ``record``."""
        return await remove_release(record, catalog=self.catalog)


__all__ = ["ToolManager"]

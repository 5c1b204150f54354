"""Release catalog module.

This module handles:
- The ReleaseRecord schema and its persisted representation
- Loading and saving the catalog through the key-value store
- Fetching upstream releases from the supported repositories
- Reconciling upstream releases with local installation state
"""

from wine_manager.releases.catalog import ReleaseCatalog
from wine_manager.releases.reconcile import merge_releases, sync_catalog
from wine_manager.releases.schema import ReleaseRecord
from wine_manager.releases.sources import (
    DEFAULT_REPOSITORIES,
    FetchError,
    GitHubReleaseSource,
    ReleaseSource,
    Repository,
)

__all__ = [
    "DEFAULT_REPOSITORIES",
    "FetchError",
    "GitHubReleaseSource",
    "ReleaseCatalog",
    "ReleaseRecord",
    "ReleaseSource",
    "Repository",
    "merge_releases",
    "sync_catalog",
]

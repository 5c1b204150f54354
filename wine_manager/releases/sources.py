"""Upstream release sources.

This module handles:
- The fixed set of upstream repositories publishing Wine/Proton builds
- Fetching their GitHub releases and mapping them to ReleaseRecords
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any, Protocol

import httpx

from wine_manager.releases.schema import ReleaseRecord

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"

# Timeout for release listing requests (seconds)
REQUEST_TIMEOUT = 30

ARCHIVE_SUFFIXES = (".tar.xz", ".tar.gz")
CHECKSUM_SUFFIX = ".sha512sum"


class Repository(str, Enum):
    """Upstream repositories, valued by their GitHub slug."""

    WINEGE = "GloriousEggroll/wine-ge-custom"
    PROTONGE = "GloriousEggroll/proton-ge-custom"
    WINELUTRIS = "lutris/wine"

    @property
    def release_type(self) -> str:
        """Category tag stored on records from this repository."""
        return _RELEASE_TYPES[self]


_RELEASE_TYPES = {
    Repository.WINEGE: "Wine-GE",
    Repository.PROTONGE: "Proton-GE",
    Repository.WINELUTRIS: "Wine-Lutris",
}

DEFAULT_REPOSITORIES = (Repository.WINEGE, Repository.PROTONGE, Repository.WINELUTRIS)


class FetchError(Exception):
    """Raised when upstream release metadata cannot be fetched."""

    def __init__(self, message: str, code: str = "fetch_error") -> None:
        """Initialize FetchError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class ReleaseSource(Protocol):
    """Anything able to list upstream releases."""

    async def fetch_releases(
        self, repositories: Iterable[Repository], count: int
    ) -> list[ReleaseRecord]: ...


def version_name(repository: Repository, tag: str) -> str:
    """Build the catalog version name for a release tag.

    Proton-GE tags are already unique ('GE-Proton9-20'). Wine-GE reuses the
    same tag scheme, so its builds get a 'Wine-' prefix; Lutris tags are
    prefixed with the full type.

    Args:
        repository: Repository the tag belongs to.
        tag: Git tag of the release.

    Returns:
        Version string used as the catalog identity.
    """
    if repository is Repository.PROTONGE:
        return tag
    if repository is Repository.WINEGE:
        return f"Wine-{tag}" if tag.startswith("GE-") else f"Wine-GE-{tag}"
    return f"{repository.release_type}-{tag}"


def parse_release(repository: Repository, release: dict[str, Any]) -> ReleaseRecord | None:
    """Map one GitHub release object to a ReleaseRecord.

    Args:
        repository: Repository the release was listed from.
        release: Release object from the GitHub API.

    Returns:
        ReleaseRecord, or None for drafts and releases without an archive.
    """
    if release.get("draft"):
        return None

    tag = release.get("tag_name")
    if not tag:
        return None

    assets = release.get("assets") or []
    archive = next(
        (a for a in assets if str(a.get("name", "")).endswith(ARCHIVE_SUFFIXES)),
        None,
    )
    if archive is None:
        logger.debug("Skipping %s %s: no archive asset", repository.value, tag)
        return None

    checksum = next(
        (
            a.get("browser_download_url", "")
            for a in assets
            if str(a.get("name", "")).endswith(CHECKSUM_SUFFIX)
        ),
        "",
    )

    return ReleaseRecord(
        version=version_name(repository, tag),
        type=repository.release_type,
        date=str(release.get("published_at") or "").split("T", 1)[0],
        download=archive.get("browser_download_url", ""),
        download_size=int(archive.get("size") or 0),
        checksum=checksum,
    )


class GitHubReleaseSource:
    """Release source backed by the GitHub releases API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_base: str = GITHUB_API_BASE,
        token: str | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        """Initialize GitHubReleaseSource.

        Args:
            client: HTTPX async client instance.
            api_base: Base URL of the GitHub API.
            token: Optional API token.
            timeout: Request timeout in seconds.
        """
        self.client = client
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _list_releases(self, repository: Repository, count: int) -> list[Any]:
        url = f"{self.api_base}/repos/{repository.value}/releases"
        logger.debug("Fetching releases from %s", url)

        try:
            response = await self.client.get(
                url,
                params={"per_page": count},
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()

        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"HTTP error fetching releases of {repository.value}: "
                f"{e.response.status_code} {e.response.reason_phrase}",
                code="http_error",
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(
                f"Timeout fetching releases of {repository.value}",
                code="timeout",
            ) from e
        except httpx.RequestError as e:
            raise FetchError(
                f"Network error fetching releases of {repository.value}: {e}",
                code="network_error",
            ) from e
        except ValueError as e:
            raise FetchError(
                f"Invalid release listing from {repository.value}: {e}",
                code="invalid_response",
            ) from e

        if not isinstance(payload, list):
            raise FetchError(
                f"Unexpected release listing from {repository.value}",
                code="invalid_response",
            )
        return payload

    async def fetch_releases(
        self, repositories: Iterable[Repository], count: int
    ) -> list[ReleaseRecord]:
        """Fetch up to ``count`` releases from each repository.

        Args:
            repositories: Repositories to query, in output order.
            count: Maximum number of releases per repository.

        Returns:
            Records of every repository, concatenated in request order.

        Raises:
            FetchError: If any repository cannot be listed.
        """
        records: list[ReleaseRecord] = []
        for repository in repositories:
            found = 0
            for release in await self._list_releases(repository, count):
                record = parse_release(repository, release)
                if record is None:
                    continue
                records.append(record)
                found += 1
                if found >= count:
                    break
            logger.info("Found %d release(s) in %s", found, repository.value)
        return records


__all__ = [
    "DEFAULT_REPOSITORIES",
    "FetchError",
    "GITHUB_API_BASE",
    "GitHubReleaseSource",
    "ReleaseSource",
    "Repository",
    "parse_release",
    "version_name",
]

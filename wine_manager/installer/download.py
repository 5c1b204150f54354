"""Version install capability.

This module handles:
- Streaming a release archive to disk with progress reporting
- Verifying the archive against its published SHA-512 checksum
- Extracting the archive into its version directory
- Observing the cancellation token throughout
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import shutil
import tarfile
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from wine_manager.installer.cancellation import CancellationToken
from wine_manager.installer.errors import (
    DownloadError,
    ExtractionError,
    InstallError,
    VerificationError,
)
from wine_manager.releases.schema import ReleaseRecord
from wine_manager.types import InstallState, ProgressCallback, ProgressInfo

logger = logging.getLogger(__name__)

# Timeout for downloads (seconds)
DOWNLOAD_TIMEOUT = 3600

# Timeout for checksum file requests (seconds)
CHECKSUM_TIMEOUT = 30

# Chunk size for downloads (bytes)
DOWNLOAD_CHUNK_SIZE = 64 * 1024  # 64 KB


@dataclass
class InstallResult:
    """Result of a successful version install."""

    record: ReleaseRecord
    install_dir: Path


class Installer(Protocol):
    """Anything able to install one version below a target root."""

    async def install_version(
        self,
        record: ReleaseRecord,
        target_root: Path,
        on_progress: ProgressCallback,
        token: CancellationToken,
    ) -> InstallResult: ...


def parse_sha512sum(content: str, archive_filename: str) -> str | None:
    """Parse a sha512sum file to find the checksum of ``archive_filename``.

    Single-entry files are accepted regardless of the listed filename.

    Args:
        content: Content of the checksum file.
        archive_filename: Filename to look up.

    Returns:
        SHA-512 checksum string, or None if not found.
    """
    entries: list[tuple[str, str]] = []
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        parts = line.split(maxsplit=1)
        checksum = parts[0].lower()
        # Remove leading '*' if present (binary mode indicator)
        filename = parts[1].lstrip("*").strip() if len(parts) == 2 else ""
        filename = filename.rsplit("/", 1)[-1]

        if filename == archive_filename:
            return checksum
        entries.append((checksum, filename))

    if len(entries) == 1:
        return entries[0][0]
    return None


def release_filter(member: tarfile.TarInfo, dest_path: str) -> tarfile.TarInfo | None:
    """Extraction filter for Wine/Proton archives.

    Prefixes ship symlinks to absolute targets (e.g. ``dosdevices/z: -> /``), which
    the ``data`` filter refuses. Those symlinks go through the ``tar`` filter; every
    other member keeps the ``data`` policy. Both filters resolve member paths,
    so nothing is written through such a link.
    """
    if member.issym() and os.path.isabs(member.linkname):
        return tarfile.tar_filter(member, dest_path)
    return tarfile.data_filter(member, dest_path)


def get_dir_size(path: Path) -> int:
    """Calculate the total size of regular files below ``path``.

    Args:
        path: Directory to measure.

    Returns:
        Total size in bytes.
    """
    total = 0
    if path.exists():
        for item in path.rglob("*"):
            if item.is_file() and not item.is_symlink():
                total += item.stat().st_size
    return total


def extract_archive(
    archive_path: Path,
    dest_dir: Path,
    token: CancellationToken,
) -> Path:
    """Extract a release archive into ``dest_dir``.

    The archive's single top-level directory is stripped, so its content ends
    up directly inside ``dest_dir``. An existing ``dest_dir`` is replaced once
    extraction has succeeded.

    Args:
        archive_path: Path to the .tar.xz/.tar.gz archive.
        dest_dir: Final directory of the version.
        token: Cancellation token, checked between members.

    Returns:
        ``dest_dir``.

    Raises:
        ExtractionError: If extraction fails.
        InstallAbortedError: If cancelled while extracting.
    """
    logger.info("Extracting %s to %s", archive_path.name, dest_dir)

    staging = Path(tempfile.mkdtemp(prefix=".extract-", dir=dest_dir.parent))
    try:
        with tarfile.open(archive_path, "r:*") as tar:
            members = tar.getmembers()
            if not members:
                raise ExtractionError(
                    f"Archive {archive_path} is empty", code="empty_archive"
                )

            for member in members:
                # Security: prevent path traversal
                member_path = Path(member.name)
                if member_path.is_absolute() or ".." in member_path.parts:
                    raise ExtractionError(
                        f"Refusing to extract {member.name}: path traversal detected",
                        code="path_traversal",
                    )

            for member in members:
                token.raise_if_cancelled()
                tar.extract(member, staging, filter=release_filter)

        entries = list(staging.iterdir())
        root = entries[0] if len(entries) == 1 and entries[0].is_dir() else staging

        if dest_dir.exists():
            logger.info("Replacing existing install at %s", dest_dir)
            shutil.rmtree(dest_dir)
        shutil.move(str(root), str(dest_dir))

        logger.info("Extracted %s to %s", archive_path.name, dest_dir)
        return dest_dir

    except tarfile.TarError as e:
        raise ExtractionError(
            f"Failed to extract {archive_path}: {e}", code="tar_error"
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"OS error extracting {archive_path}: {e}", code="os_error"
        ) from e
    finally:
        shutil.rmtree(staging, ignore_errors=True)


class HttpInstaller:
    """Install capability downloading release archives over HTTP."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = DOWNLOAD_TIMEOUT,
        chunk_size: int = DOWNLOAD_CHUNK_SIZE,
    ) -> None:
        """Initialize HttpInstaller.

        Args:
            client: HTTPX async client instance.
            timeout: Download timeout in seconds.
            chunk_size: Size of chunks to download.
        """
        self.client = client
        self.timeout = timeout
        self.chunk_size = chunk_size

    async def _download(
        self,
        url: str,
        dest_path: Path,
        expected_size: int,
        on_progress: ProgressCallback,
        token: CancellationToken,
    ) -> str:
        """Stream ``url`` to ``dest_path`` and return its SHA-512 digest."""
        logger.info("Downloading %s to %s", url, dest_path)

        try:
            async with self.client.stream(
                "GET", url, timeout=self.timeout, follow_redirects=True
            ) as response:
                response.raise_for_status()

                total = int(response.headers.get("Content-Length") or 0)
                total = total or expected_size
                received = 0
                last_percent = -1
                started = time.monotonic()
                sha512 = hashlib.sha512()

                with dest_path.open("wb") as f:
                    async for chunk in response.aiter_bytes(self.chunk_size):
                        token.raise_if_cancelled()
                        f.write(chunk)
                        sha512.update(chunk)
                        received += len(chunk)

                        percent = int(received * 100 / total) if total else 0
                        if percent != last_percent:
                            last_percent = percent
                            elapsed = time.monotonic() - started
                            speed = received / elapsed if elapsed > 0 else 0.0
                            eta = (
                                (total - received) / speed
                                if total and speed > 0
                                else None
                            )
                            on_progress(
                                InstallState.DOWNLOADING,
                                ProgressInfo(
                                    percentage=min(float(percent), 100.0),
                                    avg_speed=speed,
                                    eta=eta,
                                ),
                            )

                token.raise_if_cancelled()
                logger.info("Downloaded %s (%d bytes)", dest_path.name, received)
                return sha512.hexdigest()

        except httpx.HTTPStatusError as e:
            raise DownloadError(
                f"HTTP error downloading {url}: "
                f"{e.response.status_code} {e.response.reason_phrase}",
                code="http_error",
            ) from e
        except httpx.TimeoutException as e:
            raise DownloadError(f"Timeout downloading {url}", code="timeout") from e
        except httpx.RequestError as e:
            raise DownloadError(
                f"Network error downloading {url}: {e}", code="network_error"
            ) from e

    async def _fetch_checksum(self, url: str, archive_filename: str) -> str:
        logger.debug("Fetching checksum from %s", url)

        try:
            response = await self.client.get(
                url, timeout=CHECKSUM_TIMEOUT, follow_redirects=True
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DownloadError(
                f"HTTP error fetching checksum: {e.response.status_code}",
                code="http_error",
            ) from e
        except httpx.TimeoutException as e:
            raise DownloadError(
                f"Timeout fetching checksum from {url}", code="timeout"
            ) from e
        except httpx.RequestError as e:
            raise DownloadError(
                f"Network error fetching checksum: {e}", code="network_error"
            ) from e

        checksum = parse_sha512sum(response.text, archive_filename)
        if checksum is None:
            raise VerificationError(
                f"No checksum for {archive_filename} in {url}",
                code="checksum_missing",
            )
        return checksum

    async def install_version(
        self,
        record: ReleaseRecord,
        target_root: Path,
        on_progress: ProgressCallback,
        token: CancellationToken,
    ) -> InstallResult:
        """Download, verify and extract ``record`` below ``target_root``.

        The version ends up in ``target_root / record.version``. On any
        failure the downloaded archive is removed and the error re-raised.

        Args:
            record: Release to install.
            target_root: Category install root; must exist.
            on_progress: Progress sink.
            token: Cancellation token.

        Returns:
            InstallResult with updated metadata (disk_size) and install path.

        Raises:
            InstallError: If any step fails.
            InstallAbortedError: If cancelled.
        """
        if not target_root.is_dir():
            raise InstallError(
                f"Install root {target_root} does not exist", code="missing_root"
            )
        if not record.download:
            raise InstallError(
                f"No download URL for {record.version}", code="missing_download"
            )

        archive_filename = httpx.URL(record.download).path.rsplit("/", 1)[-1]
        archive_path = target_root / archive_filename
        install_dir = target_root / record.version

        try:
            token.raise_if_cancelled()
            digest = await self._download(
                record.download,
                archive_path,
                record.download_size,
                on_progress,
                token,
            )

            if record.checksum.startswith(("http://", "https://")):
                expected = await self._fetch_checksum(record.checksum, archive_filename)
                if digest != expected:
                    raise VerificationError(
                        f"Checksum mismatch for {archive_filename}: "
                        f"expected {expected}, got {digest}"
                    )

            on_progress(InstallState.UNZIPPING, None)
            await asyncio.to_thread(extract_archive, archive_path, install_dir, token)

            disk_size = await asyncio.to_thread(get_dir_size, install_dir)
            on_progress(InstallState.IDLE, None)

        finally:
            archive_path.unlink(missing_ok=True)

        return InstallResult(
            record=record.model_copy(update={"disk_size": disk_size}),
            install_dir=install_dir,
        )


__all__ = [
    "DOWNLOAD_CHUNK_SIZE",
    "HttpInstaller",
    "InstallResult",
    "Installer",
    "extract_archive",
    "get_dir_size",
    "parse_sha512sum",
    "release_filter",
]

"""Tests for the HTTP install capability.

These tests use mocked HTTP responses and real tar archives built in memory.
"""

import asyncio
import hashlib
import os
import tarfile
from io import BytesIO

import httpx
import pytest
import respx

from wine_manager.installer.cancellation import CancellationToken
from wine_manager.installer.download import (
    HttpInstaller,
    extract_archive,
    get_dir_size,
    parse_sha512sum,
)
from wine_manager.installer.errors import (
    DownloadError,
    ExtractionError,
    InstallAbortedError,
    InstallError,
    VerificationError,
)
from wine_manager.releases.schema import ReleaseRecord
from wine_manager.types import InstallState

ARCHIVE_URL = "https://github.com/dl/GE-Proton9-1.tar.gz"
CHECKSUM_URL = "https://github.com/dl/GE-Proton9-1.sha512sum"


def create_archive(top: str = "GE-Proton9-1", files: dict[str, bytes] | None = None) -> bytes:
    """Create a .tar.gz archive with one top-level directory."""
    if files is None:
        files = {"proton": b"#!/bin/sh\n", "files/bin/wine": b"x" * 100}
    buffer = BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name=f"{top}/{name}" if top else name)
            info.size = len(content)
            tar.addfile(info, BytesIO(content))
    return buffer.getvalue()


def create_archive_with_links(
    links: dict[str, str],
    top: str = "GE-Proton9-1",
    files: dict[str, bytes] | None = None,
) -> bytes:
    """Create a .tar.gz archive with symlinks followed by regular files."""
    if files is None:
        files = {"proton": b"#!/bin/sh\n"}
    buffer = BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, target in links.items():
            info = tarfile.TarInfo(name=f"{top}/{name}")
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
        for name, content in files.items():
            info = tarfile.TarInfo(name=f"{top}/{name}")
            info.size = len(content)
            tar.addfile(info, BytesIO(content))
    return buffer.getvalue()


def make_record(checksum: str = "") -> ReleaseRecord:
    return ReleaseRecord(
        version="GE-Proton9-1",
        type="Proton-GE",
        download=ARCHIVE_URL,
        download_size=0,
        checksum=checksum,
    )


def run_install(record, target_root, token=None, chunk_size=64 * 1024):
    """Run HttpInstaller.install_version and collect progress events."""
    events = []
    token = token or CancellationToken()

    async def run():
        async with httpx.AsyncClient() as client:
            installer = HttpInstaller(client, chunk_size=chunk_size)
            return await installer.install_version(
                record, target_root, lambda s, p=None: events.append((s, p)), token
            )

    return asyncio.run(run()), events


class TestParseSha512sum:
    """Tests for parse_sha512sum."""

    def test_matching_filename(self):
        content = "ABC123  GE-Proton9-1.tar.gz\nDEF456  other.tar.gz\n"
        assert parse_sha512sum(content, "GE-Proton9-1.tar.gz") == "abc123"

    def test_binary_mode_and_path(self):
        content = "abc *./build/GE-Proton9-1.tar.gz\n"
        assert parse_sha512sum(content, "GE-Proton9-1.tar.gz") == "abc"

    def test_single_entry_accepted(self):
        assert parse_sha512sum("abc  renamed.tar.gz\n", "GE-Proton9-1.tar.gz") == "abc"

    def test_not_found(self):
        content = "abc  a.tar.gz\ndef  b.tar.gz\n"
        assert parse_sha512sum(content, "GE-Proton9-1.tar.gz") is None


class TestGetDirSize:
    """Tests for get_dir_size."""

    def test_sums_files(self, tmp_path):
        (tmp_path / "a").write_bytes(b"x" * 10)
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "b").write_bytes(b"y" * 5)

        assert get_dir_size(tmp_path) == 15

    def test_missing_dir(self, tmp_path):
        assert get_dir_size(tmp_path / "missing") == 0


class TestExtractArchive:
    """Tests for extract_archive."""

    def test_strips_top_level_directory(self, tmp_path):
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(create_archive())
        dest = tmp_path / "GE-Proton9-1"

        result = extract_archive(archive, dest, CancellationToken())

        assert result == dest
        assert (dest / "proton").exists()
        assert (dest / "files" / "bin" / "wine").exists()
        assert not any(p.name.startswith(".extract-") for p in tmp_path.iterdir())

    def test_replaces_existing_install(self, tmp_path):
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(create_archive())
        dest = tmp_path / "GE-Proton9-1"
        dest.mkdir()
        (dest / "stale").write_text("old")

        extract_archive(archive, dest, CancellationToken())

        assert not (dest / "stale").exists()
        assert (dest / "proton").exists()

    def test_prefix_symlinks_preserved(self, tmp_path):
        """Absolute drive links of a shipped prefix should extract as is."""
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(
            create_archive_with_links(
                {
                    "files/share/default_pfx/dosdevices/z:": "/",
                    "files/share/default_pfx/dosdevices/c:": "../drive_c",
                }
            )
        )
        dest = tmp_path / "GE-Proton9-1"

        extract_archive(archive, dest, CancellationToken())

        dosdevices = dest / "files" / "share" / "default_pfx" / "dosdevices"
        assert (dosdevices / "z:").is_symlink()
        assert os.readlink(dosdevices / "z:") == "/"
        assert os.readlink(dosdevices / "c:") == "../drive_c"
        assert (dest / "proton").exists()

    def test_write_through_absolute_link_rejected(self, tmp_path):
        """Members below an absolute symlink must not land outside the install."""
        outside = tmp_path / "outside"
        outside.mkdir()
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(
            create_archive_with_links(
                {"z:": str(outside)}, files={"z:/evil": b"x"}
            )
        )

        with pytest.raises(ExtractionError):
            extract_archive(archive, tmp_path / "dest", CancellationToken())

        assert not (outside / "evil").exists()
        assert not (tmp_path / "dest").exists()

    def test_path_traversal_rejected(self, tmp_path):
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(create_archive(top="", files={"../evil": b"x"}))

        with pytest.raises(ExtractionError) as exc_info:
            extract_archive(archive, tmp_path / "dest", CancellationToken())

        assert exc_info.value.code == "path_traversal"
        assert not (tmp_path / "dest").exists()

    def test_corrupt_archive(self, tmp_path):
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(b"not a tarball")

        with pytest.raises(ExtractionError):
            extract_archive(archive, tmp_path / "dest", CancellationToken())

    def test_cancelled_extraction(self, tmp_path):
        archive = tmp_path / "a.tar.gz"
        archive.write_bytes(create_archive())
        token = CancellationToken()
        token.cancel()

        with pytest.raises(InstallAbortedError):
            extract_archive(archive, tmp_path / "dest", token)

        assert not (tmp_path / "dest").exists()


class TestHttpInstaller:
    """Tests for HttpInstaller.install_version."""

    @respx.mock
    def test_successful_install(self, tmp_path):
        """The version should be extracted below the target root."""
        respx.get(ARCHIVE_URL).mock(return_value=httpx.Response(200, content=create_archive()))

        result, events = run_install(make_record(), tmp_path)

        assert result.install_dir == tmp_path / "GE-Proton9-1"
        assert (result.install_dir / "proton").exists()
        assert result.record.disk_size == get_dir_size(result.install_dir)
        assert result.record.disk_size > 0
        assert not (tmp_path / "GE-Proton9-1.tar.gz").exists()

        states = [state for state, _ in events]
        assert InstallState.DOWNLOADING in states
        assert states[-2:] == [InstallState.UNZIPPING, InstallState.IDLE]
        last_download = [p for s, p in events if s is InstallState.DOWNLOADING][-1]
        assert last_download.percentage == 100.0

    @respx.mock
    def test_checksum_verified(self, tmp_path):
        """A matching published SHA-512 should be accepted."""
        content = create_archive()
        digest = hashlib.sha512(content).hexdigest()
        respx.get(ARCHIVE_URL).mock(return_value=httpx.Response(200, content=content))
        respx.get(CHECKSUM_URL).mock(
            return_value=httpx.Response(200, text=f"{digest}  GE-Proton9-1.tar.gz\n")
        )

        result, _ = run_install(make_record(checksum=CHECKSUM_URL), tmp_path)

        assert result.install_dir.exists()

    @respx.mock
    def test_checksum_mismatch(self, tmp_path):
        """A mismatching SHA-512 should fail and leave nothing behind."""
        respx.get(ARCHIVE_URL).mock(return_value=httpx.Response(200, content=create_archive()))
        respx.get(CHECKSUM_URL).mock(
            return_value=httpx.Response(200, text="deadbeef  GE-Proton9-1.tar.gz\n")
        )

        with pytest.raises(VerificationError):
            run_install(make_record(checksum=CHECKSUM_URL), tmp_path)

        assert list(tmp_path.iterdir()) == []

    @respx.mock
    def test_http_error(self, tmp_path):
        respx.get(ARCHIVE_URL).mock(return_value=httpx.Response(404))

        with pytest.raises(DownloadError) as exc_info:
            run_install(make_record(), tmp_path)

        assert exc_info.value.code == "http_error"
        assert list(tmp_path.iterdir()) == []

    @respx.mock
    def test_cancelled_before_start(self, tmp_path):
        """A triggered token should abort before anything is written."""
        route = respx.get(ARCHIVE_URL).mock(
            return_value=httpx.Response(200, content=create_archive())
        )
        token = CancellationToken()
        token.cancel()

        with pytest.raises(InstallAbortedError):
            run_install(make_record(), tmp_path, token=token)

        assert not route.called
        assert list(tmp_path.iterdir()) == []

    @respx.mock
    def test_cancelled_during_download(self, tmp_path):
        """Cancelling from the progress sink should abort the download."""
        respx.get(ARCHIVE_URL).mock(
            return_value=httpx.Response(200, content=b"x" * 4096)
        )
        token = CancellationToken()

        async def run():
            async with httpx.AsyncClient() as client:
                installer = HttpInstaller(client, chunk_size=512)
                return await installer.install_version(
                    make_record(), tmp_path, lambda s, p=None: token.cancel(), token
                )

        with pytest.raises(InstallAbortedError):
            asyncio.run(run())

        assert list(tmp_path.iterdir()) == []

    def test_missing_root(self, tmp_path):
        with pytest.raises(InstallError) as exc_info:
            run_install(make_record(), tmp_path / "missing")

        assert exc_info.value.code == "missing_root"

    def test_missing_download_url(self, tmp_path):
        record = ReleaseRecord(version="GE-Proton9-1", type="Proton-GE")

        with pytest.raises(InstallError) as exc_info:
            run_install(record, tmp_path)

        assert exc_info.value.code == "missing_download"

"""Version installer module.

This module handles:
- Cancellation tokens and the registry tracking one token per version
- Downloading, verifying and extracting release archives
- Recording install and removal results in the release catalog
"""

from wine_manager.installer.cancellation import CancellationRegistry, CancellationToken
from wine_manager.installer.download import HttpInstaller, InstallResult, Installer
from wine_manager.installer.errors import (
    DownloadError,
    ExtractionError,
    InstallAbortedError,
    InstallError,
    VerificationError,
)
from wine_manager.installer.service import install_release, remove_release

__all__ = [
    # Cancellation
    "CancellationRegistry",
    "CancellationToken",
    # Install capability
    "HttpInstaller",
    "InstallResult",
    "Installer",
    # Errors
    "DownloadError",
    "ExtractionError",
    "InstallAbortedError",
    "InstallError",
    "VerificationError",
    # Service
    "install_release",
    "remove_release",
]

"""Error definitions for version installation.

Every error carries a stable ``code`` for structured error handling.
"""


class InstallError(Exception):
    """Base class for failures while installing a version."""

    default_code = "install_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        """Initialize InstallError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code or self.default_code


class DownloadError(InstallError):
    """Raised when the release archive cannot be downloaded."""

    default_code = "download_error"


class VerificationError(InstallError):
    """Raised when the archive does not match its published checksum."""

    default_code = "verification_error"


class ExtractionError(InstallError):
    """Raised when the archive cannot be extracted."""

    default_code = "extraction_error"


class InstallAbortedError(InstallError):
    """Raised when an install observes its cancellation token."""

    default_code = "aborted"


__all__ = [
    "DownloadError",
    "ExtractionError",
    "InstallAbortedError",
    "InstallError",
    "VerificationError",
]

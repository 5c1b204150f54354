"""Shared type definitions for wine_manager.

This module contains enums, dataclasses, and type aliases shared across
subpackages to avoid circular imports.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum


class InstallState(str, Enum):
    """Phase reported by the install capability through progress callbacks."""

    DOWNLOADING = "downloading"
    UNZIPPING = "unzipping"
    IDLE = "idle"


class InstallOutcome(str, Enum):
    """Terminal outcome of an install operation."""

    DONE = "done"
    ABORT = "abort"
    ERROR = "error"


@dataclass
class ProgressInfo:
    """Intermediate download progress.

    Attributes:
        percentage: Completed share of the download (0-100).
        avg_speed: Average download speed in bytes per second.
        eta: Estimated seconds remaining, None when the total size is unknown.
    """

    percentage: float
    avg_speed: float
    eta: float | None = None


ProgressCallback = Callable[[InstallState, ProgressInfo | None], None]


__all__ = [
    "InstallOutcome",
    "InstallState",
    "ProgressCallback",
    "ProgressInfo",
]

"""Pydantic model for release records.

A ReleaseRecord describes one installable Wine/Proton build together with its
local installation state. Records are persisted with the camelCase keys used by
the launcher's tool store, so the field aliases below are the storage format.
"""

from pydantic import BaseModel, ConfigDict, Field


class ReleaseRecord(BaseModel):
    """Schema for one catalog entry.

    Attributes:
        version: Stable identity of the build (e.g., 'GE-Proton9-20').
        type: Category tag (e.g., 'Wine-GE', 'Proton-GE', 'Wine-Lutris').
        date: Upstream publish date.
        download: URL of the release archive.
        download_size: Size of the archive in bytes.
        checksum: Opaque upstream fingerprint, compared for equality only.
        install_dir: Local install path, empty when not installed.
        is_installed: Whether the version is installed.
        disk_size: Installed size in bytes, 0 when not installed.
        has_update: Whether upstream published a different checksum.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    version: str = Field(min_length=1)
    type: str = Field(default="")
    date: str = Field(default="")
    download: str = Field(default="")
    download_size: int = Field(default=0, ge=0, alias="downsize")
    checksum: str = Field(default="")
    install_dir: str = Field(default="", alias="installDir")
    is_installed: bool = Field(default=False, alias="isInstalled")
    disk_size: int = Field(default=0, ge=0, alias="disksize")
    has_update: bool = Field(default=False, alias="hasUpdate")

    @property
    def is_wine(self) -> bool:
        """Return True for Wine-family builds."""
        return "Wine" in self.type

    def to_store(self) -> dict[str, object]:
        """Serialise to the persisted (camelCase) representation."""
        return self.model_dump(by_alias=True, mode="json")


__all__ = ["ReleaseRecord"]

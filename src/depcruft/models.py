"""Data models for depcruft."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN = "unknown"


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (decimal units)."""
    if size_bytes >= 1000**3:
        return f"{size_bytes / (1000**3):.1f} GB"
    elif size_bytes >= 1000**2:
        return f"{size_bytes / (1000**2):.1f} MB"
    elif size_bytes >= 1000:
        return f"{size_bytes / 1000:.1f} KB"
    else:
        return f"{size_bytes} B"


class Ecosystem(str, Enum):
    """Package manager whose cache layout is being scanned."""

    MAVEN = "maven"
    GRADLE = "gradle"
    NPM = "npm"  # npm, yarn, pnpm and cnpm share one rule set
    PIP = "pip"  # pip caches, site-packages and conda environments


class MatchType(str, Enum):
    """Why a unit ended up in (or out of) the cleanup preview."""

    MATCHED = "matched"
    SNAPSHOT = "snapshot"
    INVALID = "invalid"
    NATIVE = "native"
    UNKNOWN = "unknown"


class FilterOptions(BaseModel):
    """User-selected filters for a single scan.

    An empty ``target_package`` means no name filter was requested.
    """

    include_snapshot: bool = Field(False, description="Include SNAPSHOT / prerelease versions")
    show_invalid_packages: bool = Field(
        False, description="Include corrupted or incomplete downloads"
    )
    show_platform_specific_binaries: bool = Field(
        False, description="Include platform-specific binary packages"
    )
    target_package: str = Field("", description="Package name or group to match")

    def any_enabled(self) -> bool:
        """Whether at least one filter was requested."""
        return (
            self.include_snapshot
            or self.show_invalid_packages
            or self.show_platform_specific_binaries
            or bool(self.target_package.strip())
        )


class PackageUnit(BaseModel):
    """One logical package version discovered in a cache directory."""

    relative_path: str = Field(..., description="Containing directory relative to the repository root")
    canonical_name: str = Field(UNKNOWN, description="Ecosystem-normalized package name")
    version: str = Field(UNKNOWN, description="Package version")
    package_name: str = Field(..., description="Display identity, e.g. 'com.acme:lib:1.0'")
    directory: Path = Field(..., description="Directory holding the unit's files")
    invalid: bool = Field(False, description="Whether an incomplete/corrupt marker was seen")


class CleanupPreviewEntry(BaseModel):
    """A matched unit as shown to the user before cleanup."""

    path: str = Field(..., description="Absolute path of the unit directory")
    relative_path: str = Field("", description="Path relative to the repository root")
    package_name: str = Field(..., description="Display identity of the package")
    ecosystem: Ecosystem = Field(..., description="Ecosystem the unit belongs to")
    match_type: MatchType = Field(..., description="Classification for this scan")
    file_size: int = Field(0, description="Recursive size in bytes")
    last_modified: Optional[datetime] = Field(None, description="Directory modification time")
    selected: bool = Field(True, description="Whether the user selected it for cleanup")

    @property
    def size_human(self) -> str:
        """Human-readable size string."""
        return format_size(self.file_size)


class CleanupSummary(BaseModel):
    """Terminal output of one scan."""

    model_config = ConfigDict(frozen=True)

    root: str = Field(..., description="Repository root that was scanned")
    ecosystem: Ecosystem = Field(..., description="Ecosystem that was scanned")
    total_scanned_count: int = Field(0, description="Units registered during discovery")
    total_count: int = Field(0, description="Units included after classification")
    total_size: int = Field(0, description="Sum of included unit sizes in bytes")
    entries: list[CleanupPreviewEntry] = Field(default_factory=list)

    @property
    def selected_entries(self) -> list[CleanupPreviewEntry]:
        """Entries the user left selected."""
        return [e for e in self.entries if e.selected]

    @property
    def size_human(self) -> str:
        """Human-readable total size."""
        return format_size(self.total_size)


class CleanupResult(BaseModel):
    """Result of deleting one preview entry."""

    path: str = Field(..., description="Path that was cleaned")
    package_name: str = Field(..., description="Package that was cleaned")
    match_type: MatchType = Field(MatchType.UNKNOWN, description="Classification of the entry")
    success: bool = Field(True, description="Whether cleanup succeeded")
    error_message: Optional[str] = Field(None, description="Error message if failed")
    bytes_freed: int = Field(0, description="Bytes freed by cleanup")
    dry_run: bool = Field(False, description="Whether this was a dry run")

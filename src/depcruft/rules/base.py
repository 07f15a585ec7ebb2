"""Shared building blocks for per-ecosystem rules."""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, NamedTuple, Optional

from depcruft.models import UNKNOWN, Ecosystem, PackageUnit

log = logging.getLogger(__name__)

# Suffixes left behind by interrupted downloads in every ecosystem
COMMON_INVALID_SUFFIXES = (".part", ".incomplete", ".downloading")

# Metadata files are small; never read more than this from one
MAX_METADATA_BYTES = 256 * 1024


class Identity(NamedTuple):
    """Parsed (name, version) pair. Parsers return ``None`` when they can't tell."""

    name: str
    version: str


UNKNOWN_IDENTITY = Identity(UNKNOWN, UNKNOWN)


def _parent_directory(file: Path) -> Path:
    return file.parent


@dataclass(frozen=True)
class EcosystemRules:
    """Capability set that drives one scan.

    Walker, registry and classifier are generic; everything
    ecosystem-specific is looked up here.
    """

    ecosystem: Ecosystem
    separator: str
    is_target_file: Callable[[Path], bool]
    is_invalid_file: Callable[[Path], bool]
    identify: Callable[[Path, Path], PackageUnit]
    should_exclude: Callable[[Path], bool]
    is_prerelease: Callable[[str], bool]
    is_platform_specific: Callable[[PackageUnit], bool]
    matches_target: Callable[[PackageUnit, str], bool]
    unit_directory: Callable[[Path], Path] = _parent_directory
    label_platform: Optional[Callable[[PackageUnit], str]] = field(default=None)
    # False where packages never ship per-platform variants
    has_platform_binaries: bool = True


def relative_key(root: Path, directory: Path) -> str:
    """Directory path relative to ``root`` with forward slashes ('' for root)."""
    try:
        relative = directory.relative_to(root).as_posix()
    except ValueError:
        return directory.as_posix()
    return "" if relative == "." else relative


def make_unit(
    root: Path,
    directory: Path,
    identity: Optional[Identity],
    separator: str,
    invalid: bool = False,
) -> PackageUnit:
    """Build a PackageUnit, falling back to unknown name/version."""
    name, version = identity or UNKNOWN_IDENTITY
    name = name.strip() or UNKNOWN
    version = version.strip() or UNKNOWN
    return PackageUnit(
        relative_path=relative_key(root, directory),
        canonical_name=name,
        version=version,
        package_name=f"{name}{separator}{version}",
        directory=directory,
        invalid=invalid,
    )


def strip_suffixes(name: str, suffixes: tuple[str, ...]) -> str:
    """Remove the first matching suffix from ``name``."""
    for suffix in suffixes:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def read_text(path: Path, limit: int = MAX_METADATA_BYTES) -> Optional[str]:
    """Read a small text file, returning None on any I/O or decoding problem."""
    try:
        with open(path, encoding="utf-8", errors="replace") as fh:
            return fh.read(limit)
    except (PermissionError, OSError) as e:
        log.debug("Could not read %s: %s", path, e)
        return None


def read_json(path: Path) -> Optional[dict]:
    """Read a JSON object from ``path``; None if missing, unreadable or not an object."""
    text = read_text(path)
    if text is None:
        return None
    try:
        data = json.loads(text)
    except ValueError as e:
        log.debug("Invalid JSON in %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def match_identity(pattern: re.Pattern, text: str) -> Optional[Identity]:
    """Apply a regex with ``name`` and ``version`` groups."""
    match = pattern.match(text)
    if not match:
        return None
    return Identity(match.group("name"), match.group("version"))


def is_symlink(path: Path) -> bool:
    try:
        return path.is_symlink()
    except OSError:
        return False

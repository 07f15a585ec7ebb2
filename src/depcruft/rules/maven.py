"""Maven local repository rules (``~/.m2/repository``).

Layout: ``<group segments>/<artifactId>/<version>/<artifactId>-<version>.jar``.
A download that failed leaves ``*.jar.lastUpdated`` / ``*.pom.lastUpdated``
markers next to (or instead of) the real artifact.
"""

from pathlib import Path
from typing import Optional

from depcruft.models import UNKNOWN, Ecosystem, PackageUnit
from depcruft.rules.base import (
    COMMON_INVALID_SUFFIXES,
    EcosystemRules,
    Identity,
    make_unit,
    relative_key,
)

SEPARATOR = ":"

ARTIFACT_SUFFIXES = (".jar", ".pom")
INVALID_SUFFIXES = (".jar.lastUpdated", ".pom.lastUpdated") + COMMON_INVALID_SUFFIXES


def is_target_file(file: Path) -> bool:
    return file.name.endswith(ARTIFACT_SUFFIXES) or is_invalid_file(file)


def is_invalid_file(file: Path) -> bool:
    return file.name.endswith(INVALID_SUFFIXES)


def segment_identity(relative_path: str) -> Optional[Identity]:
    """Derive ``group:artifact`` and version from a version directory path.

    ``com/acme/lib/1.0`` -> ``("com.acme:lib", "1.0")``. Two segments are
    read as ``artifact/version``; a single segment only yields a name.
    """
    segments = [s for s in relative_path.split("/") if s]
    if len(segments) >= 3:
        group = ".".join(segments[:-2])
        return Identity(f"{group}:{segments[-2]}", segments[-1])
    if len(segments) == 2:
        return Identity(segments[0], segments[1])
    if len(segments) == 1:
        return Identity(segments[0], UNKNOWN)
    return None


def identify(root: Path, file: Path) -> PackageUnit:
    directory = file.parent
    identity = segment_identity(relative_key(root, directory))
    return make_unit(root, directory, identity, SEPARATOR, invalid=is_invalid_file(file))


def should_exclude(directory: Path) -> bool:
    # Nothing in a Maven repository is noise; version directories holding
    # only .lastUpdated markers are leaves and must stay visible.
    return False


def is_prerelease(version: str) -> bool:
    return version.upper().endswith("SNAPSHOT")


def is_platform_specific(unit: PackageUnit) -> bool:
    return False


def matches_target(unit: PackageUnit, target: str) -> bool:
    """Match ``group`` (prefix) or ``group:artifact`` (exact coordinates)."""
    parts = [p.strip() for p in target.split(":")]
    if len(parts) >= 2 and parts[0] and parts[1]:
        return unit.canonical_name == f"{parts[0]}:{parts[1]}"
    return bool(parts[0]) and unit.canonical_name.startswith(parts[0])


RULES = EcosystemRules(
    ecosystem=Ecosystem.MAVEN,
    separator=SEPARATOR,
    is_target_file=is_target_file,
    is_invalid_file=is_invalid_file,
    identify=identify,
    should_exclude=should_exclude,
    is_prerelease=is_prerelease,
    is_platform_specific=is_platform_specific,
    matches_target=matches_target,
    has_platform_binaries=False,
)

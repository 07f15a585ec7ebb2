"""Gradle module cache rules (``caches/modules-2/files-2.1``).

Layout: ``<group>/<artifact>/<version>/<sha1>/<file>``. The group is one
dotted directory and every artifact file sits in its own hash directory,
so the unit is the version directory above the hash.
"""

import re
from pathlib import Path

from depcruft.models import Ecosystem, PackageUnit
from depcruft.rules import maven
from depcruft.rules.base import (
    COMMON_INVALID_SUFFIXES,
    EcosystemRules,
    Identity,
    make_unit,
    relative_key,
)

SEPARATOR = ":"

HASH_DIRECTORY = re.compile(r"^[0-9a-f]{30,}$")

ARTIFACT_SUFFIXES = (".jar", ".pom", ".aar", ".module")
INVALID_SUFFIXES = (".lastUpdated",) + COMMON_INVALID_SUFFIXES

# Cache bookkeeping next to files-2.1 when the root is modules-2 or caches/
EXCLUDED_NAMES = frozenset({"metadata", "transforms"})
EXCLUDED_PREFIXES = ("metadata-", "transforms-")


def is_target_file(file: Path) -> bool:
    return file.name.endswith(ARTIFACT_SUFFIXES) or is_invalid_file(file)


def is_invalid_file(file: Path) -> bool:
    return file.name.endswith(INVALID_SUFFIXES)


def unit_directory(file: Path) -> Path:
    parent = file.parent
    if HASH_DIRECTORY.match(parent.name):
        return parent.parent
    return parent


def identify(root: Path, file: Path) -> PackageUnit:
    directory = unit_directory(file)
    relative = relative_key(root, directory)
    segments = [s for s in relative.split("/") if s]
    if directory != file.parent and len(segments) >= 3:
        group, artifact, version = segments[-3:]
        identity = Identity(f"{group}:{artifact}", version)
    else:
        identity = maven.segment_identity(relative)
    return make_unit(root, directory, identity, SEPARATOR, invalid=is_invalid_file(file))


def should_exclude(directory: Path) -> bool:
    name = directory.name
    return name in EXCLUDED_NAMES or name.startswith(EXCLUDED_PREFIXES)


def is_prerelease(version: str) -> bool:
    return "SNAPSHOT" in version.upper()


RULES = EcosystemRules(
    ecosystem=Ecosystem.GRADLE,
    separator=SEPARATOR,
    is_target_file=is_target_file,
    is_invalid_file=is_invalid_file,
    identify=identify,
    should_exclude=should_exclude,
    is_prerelease=is_prerelease,
    is_platform_specific=maven.is_platform_specific,
    matches_target=maven.matches_target,
    unit_directory=unit_directory,
    has_platform_binaries=False,
)

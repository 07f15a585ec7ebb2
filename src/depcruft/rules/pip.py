"""pip / conda rules.

Recognizes wheels, sdists and eggs in pip caches and download folders, and
installed distributions (``*.dist-info`` / ``*.egg-info``) in site-packages.
Names are normalized per PEP 503 so ``My_Package``, ``my.package`` and
``my-package`` all land on the same key.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from depcruft.models import UNKNOWN, Ecosystem, PackageUnit
from depcruft.rules.base import (
    COMMON_INVALID_SUFFIXES,
    EcosystemRules,
    Identity,
    make_unit,
    match_identity,
    read_text,
    strip_suffixes,
)

log = logging.getLogger(__name__)

SEPARATOR = "@"

# PEP 440-ish: release, optional pre/dev/post segments, optional local label
VERSION = r"\d+(?:\.\d+)*(?:[._-]?(?:dev|a|alpha|b|beta|rc|c|pre|preview|post|rev|r)\d*)*(?:\+[a-zA-Z0-9.]*)?"

WHEEL = re.compile(rf"^(?P<name>[^-]+)-(?P<version>{VERSION})(?:-\d[^-]*)?-(?P<tags>[^-]+-[^-]+-[^-]+)\.whl$")
SDIST = re.compile(rf"^(?P<name>.+?)-(?P<version>{VERSION})$")
EGG = re.compile(rf"^(?P<name>[^-]+)-(?P<version>{VERSION})(?:-py\d+(?:\.\d+)?)?(?:-.+)?\.egg$")
METADATA_DIRECTORY = re.compile(
    rf"^(?P<name>.+?)-(?P<version>{VERSION})(?:-py\d+(?:\.\d+)?)?\.(?:dist|egg)-info$"
)
LOOSE_VERSION = re.compile(r"^\d+(?:\.\d+)*.*$")

HEADER_NAME = re.compile(r"^Name:\s*(.+?)\s*$", re.MULTILINE)
HEADER_VERSION = re.compile(r"^Version:\s*(.+?)\s*$", re.MULTILINE)
SETUP_NAME = re.compile(r"""name\s*=\s*['"]([^'"]+)['"]""")
SETUP_VERSION = re.compile(r"""version\s*=\s*['"]([^'"]+)['"]""")

NORMALIZE = re.compile(r"[-_.]+")

ARCHIVE_SUFFIXES = (".tar.gz", ".tar.bz2", ".tar.xz", ".zip")
DISTRIBUTION_SUFFIXES = (".whl", ".egg") + ARCHIVE_SUFFIXES
METADATA_SUFFIXES = (".dist-info", ".egg-info")
INVALID_SUFFIXES = (".whl.part", ".tar.gz.part") + COMMON_INVALID_SUFFIXES

DIST_INFO_FILES = frozenset({"METADATA", "RECORD", "WHEEL", "direct_url.json", "requires.txt"})
EGG_INFO_FILES = frozenset({"PKG-INFO", "installed-files.txt", "requires.txt"})

SITE_DIRECTORIES = frozenset({"site-packages", "dist-packages"})
EXCLUDED_NAMES = frozenset({"__pycache__", "tests", "test", "conda-meta"})
# pip's HTTP response cache holds opaque blobs only
CACHE_ONLY_NAMES = frozenset({"http", "http-v2", "selfcheck"})

PRERELEASE = re.compile(
    r"\d(?:[._-]?(?:a|alpha|b|beta|c|rc|pre|preview|dev|post)\d*)(?:$|[._+-])", re.IGNORECASE
)
PLATFORM_TAG = re.compile(
    r"(?:cp|pp|py)\d+.*(?:win32|win_amd64|win_arm64|linux_|manylinux|musllinux|macosx_)",
    re.IGNORECASE,
)


def normalize_name(name: str) -> str:
    """PEP 503 normalization: lower-case, runs of ``-_.`` become one hyphen."""
    return NORMALIZE.sub("-", name).lower()


def _in_metadata_directory(file: Path) -> bool:
    parent = file.parent.name
    return parent.endswith(METADATA_SUFFIXES) or parent == "EGG-INFO"


def is_target_file(file: Path) -> bool:
    name = file.name
    parent = file.parent.name
    if name.endswith(DISTRIBUTION_SUFFIXES) or name.endswith(".egg-info"):
        return True
    if parent.endswith(".dist-info") and name in DIST_INFO_FILES:
        return True
    if (parent.endswith(".egg-info") or parent == "EGG-INFO") and name in EGG_INFO_FILES:
        return True
    if name == "PKG-INFO" and "-" in parent:
        return True
    if name == "setup.py" and "-" in parent:
        return True
    return is_invalid_file(file)


def is_invalid_file(file: Path) -> bool:
    return file.name.endswith(INVALID_SUFFIXES)


def unit_directory(file: Path) -> Path:
    # A loose archive in site-packages is its own unit; never the whole folder
    if file.parent.name in SITE_DIRECTORIES and not _in_metadata_directory(file):
        return file
    return file.parent


def _split_fallback(base: str) -> Optional[Identity]:
    parts = base.split("-")
    if len(parts) >= 2 and LOOSE_VERSION.match(parts[-1]):
        return Identity("-".join(parts[:-1]), parts[-1])
    return None


def _from_headers(path: Path) -> Optional[Identity]:
    """``Name:``/``Version:`` headers of METADATA or PKG-INFO."""
    text = read_text(path)
    if not text:
        return None
    name = HEADER_NAME.search(text)
    if not name:
        return None
    version = HEADER_VERSION.search(text)
    return Identity(name.group(1), version.group(1) if version else UNKNOWN)


def _from_setup_py(path: Path) -> Optional[Identity]:
    text = read_text(path)
    if not text:
        return None
    name = SETUP_NAME.search(text)
    if not name:
        return None
    version = SETUP_VERSION.search(text)
    return Identity(name.group(1), version.group(1) if version else UNKNOWN)


def _from_wheel(filename: str) -> Optional[Identity]:
    identity = match_identity(WHEEL, filename)
    if identity:
        return identity
    return _split_fallback(filename[: -len(".whl")])


def _from_archive(filename: str) -> Optional[Identity]:
    base = strip_suffixes(filename, ARCHIVE_SUFFIXES)
    return match_identity(SDIST, base) or _split_fallback(base)


def _from_egg(filename: str) -> Optional[Identity]:
    identity = match_identity(EGG, filename)
    if identity:
        return identity
    parts = filename[: -len(".egg")].split("-")
    if len(parts) >= 2 and parts[-1].startswith("py"):
        parts = parts[:-1]
    return _split_fallback("-".join(parts))


def _from_metadata_directory(directory: Path) -> Optional[Identity]:
    identity = match_identity(METADATA_DIRECTORY, directory.name)
    if identity:
        return identity
    for header_file in ("METADATA", "PKG-INFO"):
        identity = _from_headers(directory / header_file)
        if identity:
            return identity
    return _split_fallback(strip_suffixes(directory.name, METADATA_SUFFIXES))


def _from_source_directory(directory: Path) -> Optional[Identity]:
    return match_identity(SDIST, directory.name) or _split_fallback(directory.name)


def parse_identity(file: Path) -> Optional[Identity]:
    """Best-effort (name, version) for one pip artifact; None when nothing fits."""
    # keep ".whl" of "x.whl.part" so the archive parser still applies
    filename = strip_suffixes(file.name, COMMON_INVALID_SUFFIXES)
    parent = file.parent

    if filename.endswith(".whl"):
        return _from_wheel(filename)
    if filename.endswith(ARCHIVE_SUFFIXES):
        return _from_archive(filename)
    if filename.endswith(".egg"):
        return _from_egg(filename)
    if filename.endswith(".egg-info"):
        # single-file egg-info carries PKG-INFO content
        return match_identity(METADATA_DIRECTORY, filename) or _from_headers(file)
    if parent.name.endswith(METADATA_SUFFIXES):
        return _from_metadata_directory(parent)
    if parent.name == "EGG-INFO":
        return _from_headers(parent / "PKG-INFO")
    if filename == "PKG-INFO":
        return _from_headers(file) or _from_source_directory(parent)
    if filename == "setup.py":
        return _from_source_directory(parent) or _from_setup_py(file)
    return _from_headers(parent / "PKG-INFO") or _from_source_directory(parent)


def identify(root: Path, file: Path) -> PackageUnit:
    identity = parse_identity(file)
    if identity is not None:
        identity = Identity(normalize_name(identity.name), identity.version)
    return make_unit(
        root, unit_directory(file), identity, SEPARATOR, invalid=is_invalid_file(file)
    )


def _installer(dist_info: Path) -> Optional[str]:
    text = read_text(dist_info / "INSTALLER", limit=256)
    return text.strip().lower() if text is not None else None


def should_exclude(directory: Path) -> bool:
    name = directory.name
    parent = directory.parent.name

    # metadata directories are read in one go; nothing below them matters
    if parent.endswith(METADATA_SUFFIXES):
        return True
    if name.startswith(".") or name in EXCLUDED_NAMES:
        return True
    if parent in SITE_DIRECTORIES:
        if name.startswith(("pip-", "setuptools-")):
            return True
        if name.endswith(".dist-info"):
            installer = _installer(directory)
            # conda and system package managers own these; leave them alone
            if installer and installer != "pip":
                log.debug("Skipping %s installed by %s", directory, installer)
                return True
        return False
    if name in CACHE_ONLY_NAMES and "site-packages" not in directory.parts:
        return True
    return False


def is_prerelease(version: str) -> bool:
    return bool(PRERELEASE.search(version))


def _wheel_is_platform_specific(filename: str) -> bool:
    match = WHEEL.match(filename)
    if not match:
        return False
    return not match.group("tags").endswith("-any")


def is_platform_specific(unit: PackageUnit) -> bool:
    """ABI/platform tag in the unit's directory name, or a platform wheel inside it."""
    directory = unit.directory
    if PLATFORM_TAG.search(directory.name):
        return True
    if directory.name.endswith(".whl"):
        return _wheel_is_platform_specific(directory.name)
    try:
        if not directory.is_dir():
            return False
        return any(
            _wheel_is_platform_specific(child.name)
            for child in directory.iterdir()
            if child.name.endswith(".whl")
        )
    except OSError as e:
        log.debug("Could not list %s: %s", directory, e)
        return False


def matches_target(unit: PackageUnit, target: str) -> bool:
    return unit.canonical_name.startswith(normalize_name(target))


RULES = EcosystemRules(
    ecosystem=Ecosystem.PIP,
    separator=SEPARATOR,
    is_target_file=is_target_file,
    is_invalid_file=is_invalid_file,
    identify=identify,
    should_exclude=should_exclude,
    is_prerelease=is_prerelease,
    is_platform_specific=is_platform_specific,
    matches_target=matches_target,
    unit_directory=unit_directory,
)

"""npm / yarn / pnpm rules.

Handles project ``node_modules`` trees (including the pnpm virtual store
under ``node_modules/.pnpm``), npm/yarn tarball caches, yarn berry zip
caches and the pnpm content-addressed store.
"""

import re
from pathlib import Path
from typing import Optional

from depcruft.models import UNKNOWN, Ecosystem, PackageUnit
from depcruft.rules.base import (
    COMMON_INVALID_SUFFIXES,
    EcosystemRules,
    Identity,
    is_symlink,
    make_unit,
    match_identity,
    read_json,
)

SEPARATOR = "@"

NODE_MODULES = "node_modules"
PNPM_STORE = ".pnpm"

# Directories that never hold installable packages
EXCLUDED_NAMES = frozenset({"examples", "docs", "test", "tests", "__tests__", "coverage"})

INVALID_SUFFIXES = (".tgz.tmp", ".tgz.downloading") + COMMON_INVALID_SUFFIXES

CONTENT_HASH = re.compile(r"^[0-9a-f]{40}$")

PNPM_SCOPED = re.compile(r"node_modules/\.pnpm/(?P<scope>@[^+/]+)\+(?P<name>[^@/]+)@(?P<version>[^/]+)/")
PNPM_PLAIN = re.compile(r"node_modules/\.pnpm/(?P<name>[^@/]+)@(?P<version>[^/]+)/")

# react-npm-18.2.0-88e1b3a3b4-a7a1c1d9b1.zip, @babel-core-npm-7.22.0-0a1b2c3d4e-ffee.zip
BERRY_ZIP = re.compile(
    r"^(?P<name>.+?)-npm-(?P<version>\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]*?)?)-[0-9a-f]{10}(?:-[0-9a-f]+)?\.zip$"
)
SIMPLE_ZIP = re.compile(r"^(?P<name>.+?)-(?P<version>\d+\.\d+\.\d+.*?)\.zip$")
TARBALL = re.compile(r"^(?P<name>.+?)-(?P<version>\d+\.\d+\.\d+.*)\.tgz$")

PRERELEASE = re.compile(
    r"^\d+\.\d+\.\d+-(alpha|beta|rc|dev|next|canary|experimental|snapshot|preview)",
    re.IGNORECASE,
)
PLATFORM_DIRECTORY = re.compile(
    r"^(win32|darwin|linux|freebsd|openbsd|android|sunos)-(x64|arm64|ia32|arm|ppc64|s390x|riscv64)(-(gnu|musl|msvc))?$"
)


def is_target_file(file: Path) -> bool:
    name = file.name
    return (
        name == "package.json"
        or name.endswith((".tgz", ".zip"))
        or bool(CONTENT_HASH.match(name))
        or is_invalid_file(file)
    )


def is_invalid_file(file: Path) -> bool:
    """Interrupted downloads, or lockfiles from two clients side by side."""
    name = file.name
    if name.endswith(INVALID_SUFFIXES):
        return True
    try:
        if name == "package-lock.json":
            return (file.parent / "yarn.lock").exists()
        if name == "yarn.lock":
            return (file.parent / "pnpm-lock.yaml").exists()
    except OSError:
        return False
    return False


def _package_root(file: Path) -> Optional[Path]:
    """``node_modules/<name>`` or ``node_modules/@scope/<name>`` holding ``file``."""
    parts = file.parent.parts
    if NODE_MODULES not in parts:
        return None
    index = len(parts) - 1 - parts[::-1].index(NODE_MODULES)
    if index + 1 >= len(parts):
        return None
    depth = index + 2
    if parts[index + 1].startswith("@"):
        if index + 2 >= len(parts):
            return None
        depth += 1
    return Path(*parts[:depth])


def unit_directory(file: Path) -> Path:
    return _package_root(file) or file.parent


def _from_package_json(path: Path) -> Optional[Identity]:
    data = read_json(path)
    if data is None:
        return None
    name = data.get("name")
    version = data.get("version")
    if not isinstance(name, str) or not name:
        return None
    return Identity(name, version if isinstance(version, str) and version else UNKNOWN)


def _from_pnpm_path(file: Path) -> Optional[Identity]:
    posix = file.as_posix()
    scoped = PNPM_SCOPED.search(posix)
    if scoped:
        name = f"{scoped.group('scope')}/{scoped.group('name')}"
        return Identity(name, _strip_peer_suffix(scoped.group("version")))
    plain = PNPM_PLAIN.search(posix)
    if plain:
        return Identity(plain.group("name"), _strip_peer_suffix(plain.group("version")))
    return None


def _strip_peer_suffix(version: str) -> str:
    # pnpm encodes peer deps as react-dom@18.2.0_react@18.2.0 or 18.2.0(react@18.2.0)
    return re.split(r"[_(]", version, maxsplit=1)[0]


def _from_node_modules(file: Path) -> Optional[Identity]:
    package_root = _package_root(file)
    if package_root is None:
        return None
    if package_root.parent.name.startswith("@"):
        name = f"{package_root.parent.name}/{package_root.name}"
    else:
        name = package_root.name
    manifest = _from_package_json(package_root / "package.json")
    return Identity(name, manifest.version if manifest else UNKNOWN)


def _from_berry_zip(filename: str) -> Optional[Identity]:
    identity = match_identity(BERRY_ZIP, filename)
    if identity is None:
        return match_identity(SIMPLE_ZIP, filename)
    name = identity.name
    # yarn flattens @scope/name to @scope-name
    if name.startswith("@") and "-" in name:
        scope, _, rest = name.partition("-")
        name = f"{scope}/{rest}"
    return Identity(name, identity.version)


def _from_filename(file: Path) -> Identity:
    filename = file.name
    if filename.endswith(INVALID_SUFFIXES):
        # drop only the marker extension: react-18.2.0.tgz.tmp -> react-18.2.0.tgz
        filename = filename.rsplit(".", 1)[0]
    if filename.endswith(".zip"):
        return _from_berry_zip(filename) or Identity(filename[: -len(".zip")], UNKNOWN)
    if filename.endswith(".tgz"):
        return match_identity(TARBALL, filename) or Identity(filename[: -len(".tgz")], UNKNOWN)
    if CONTENT_HASH.match(filename):
        return _from_package_json(file.parent / "package.json") or Identity(
            "content-addressed", filename
        )
    return Identity(Path(filename).stem or UNKNOWN, UNKNOWN)


def identify(root: Path, file: Path) -> PackageUnit:
    identity = _from_pnpm_path(file) or _from_node_modules(file)
    if identity is None and file.name == "package.json":
        identity = _from_package_json(file)
    if identity is None:
        identity = _from_filename(file)
    return make_unit(
        root, unit_directory(file), identity, SEPARATOR, invalid=is_invalid_file(file)
    )


def _depth_below_pnpm(parts: tuple[str, ...]) -> Optional[int]:
    if PNPM_STORE not in parts:
        return None
    return len(parts) - 1 - parts.index(PNPM_STORE)


def should_exclude(directory: Path) -> bool:
    name = directory.name
    if name.startswith(".") and name != PNPM_STORE:
        return True
    if name in EXCLUDED_NAMES:
        return True

    parts = directory.parts
    depth = _depth_below_pnpm(parts)
    if depth is not None:
        # .pnpm/<name@version>/node_modules/<name> is the only package worth
        # visiting; .pnpm/node_modules only holds hoisted links
        if depth == 1 and name == NODE_MODULES:
            return True
        limit = 3
        if depth >= 3 and parts[-depth + 2].startswith("@"):
            limit = 4
        if depth > limit:
            return True
        if depth >= 3 and is_symlink(directory):
            return True

    if NODE_MODULES not in parts and is_symlink(directory):
        return True
    return False


def is_prerelease(version: str) -> bool:
    return bool(PRERELEASE.match(version))


def is_platform_specific(unit: PackageUnit) -> bool:
    return bool(PLATFORM_DIRECTORY.match(unit.directory.name))


def label_platform(unit: PackageUnit) -> str:
    """Display name for a platform-specific unit, e.g. ``esbuild@0.19.0 (linux-x64)``."""
    platform = unit.directory.name
    if unit.canonical_name.endswith(platform):
        return unit.package_name
    owner = _from_package_json(unit.directory.parent / "package.json")
    if owner is not None:
        return f"{owner.name}{SEPARATOR}{owner.version} ({platform})"
    return f"{unit.package_name} ({platform})"


def matches_target(unit: PackageUnit, target: str) -> bool:
    """Exact package name, or the bare name of a scoped package."""
    name = unit.canonical_name
    return name == target or ("/" in name and name.rsplit("/", 1)[-1] == target)


RULES = EcosystemRules(
    ecosystem=Ecosystem.NPM,
    separator=SEPARATOR,
    is_target_file=is_target_file,
    is_invalid_file=is_invalid_file,
    identify=identify,
    should_exclude=should_exclude,
    is_prerelease=is_prerelease,
    is_platform_specific=is_platform_specific,
    matches_target=matches_target,
    unit_directory=unit_directory,
    label_platform=label_platform,
)

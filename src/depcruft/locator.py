"""Default repository discovery for each ecosystem.

Each locator returns the directory a scan should start from. A path the
user saved with ``depcruft where --set`` always wins; otherwise the usual
configuration files and environment variables of the package manager are
consulted before falling back to its built-in default location.
"""

import configparser
import logging
import os
import re
import sys
import xml.etree.ElementTree as ET
from enum import Enum
from pathlib import Path

from depcruft.config import get_custom_repository, is_valid_repository
from depcruft.models import Ecosystem
from depcruft.rules import get_rules
from depcruft.rules.base import read_text

log = logging.getLogger(__name__)

GRADLE_FILES_PATH = Path("caches") / "modules-2" / "files-2.1"

# Marker files checked in order; the first ecosystem with a hit wins
PROJECT_MARKERS: list[tuple[Ecosystem, tuple[str, ...]]] = [
    (Ecosystem.MAVEN, ("pom.xml",)),
    (Ecosystem.GRADLE, ("build.gradle", "build.gradle.kts")),
    (Ecosystem.NPM, ("package.json",)),
    (Ecosystem.PIP, ("requirements.txt", "setup.py", "pyproject.toml")),
]

VENV_DIRECTORIES = ("venv", ".venv", "env")

NPMRC_CACHE = re.compile(r"^\s*cache\s*=\s*(.+?)\s*$", re.MULTILINE)
PROPERTY_LINE = re.compile(r"^\s*([^#!=:\s]+)\s*[=:]\s*(.*?)\s*$")


class NpmClient(str, Enum):
    """JavaScript package manager owning a project's dependencies."""

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


def _is_windows() -> bool:
    return sys.platform.startswith("win")


def _is_macos() -> bool:
    return sys.platform == "darwin"


def _env_path(*names: str) -> Path | None:
    """First environment variable among ``names`` naming a usable directory."""
    for name in names:
        value = os.environ.get(name)
        if value and is_valid_repository(value):
            return Path(value).expanduser()
    return None


def _local_app_data() -> Path:
    return Path(os.environ.get("LOCALAPPDATA") or Path.home() / "AppData" / "Local")


def _roaming_app_data() -> Path:
    return Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")


def _expand_placeholders(value: str) -> str:
    """Expand ``${user.home}`` and ``${env.X}`` as written in settings.xml."""
    value = value.replace("${user.home}", str(Path.home()))
    return re.sub(r"\$\{env\.([^}]+)\}", lambda m: os.environ.get(m.group(1), ""), value)


# Maven


def read_maven_local_repository(settings_file: Path) -> Path | None:
    """Return the ``<localRepository>`` of a settings.xml, if it declares one."""
    try:
        tree = ET.parse(settings_file)
    except (ET.ParseError, OSError) as e:
        log.debug("Could not parse %s: %s", settings_file, e)
        return None

    for element in tree.iter():
        # settings.xml is usually namespaced: {http://maven.apache.org/...}localRepository
        if element.tag.rsplit("}", 1)[-1] == "localRepository" and element.text:
            value = element.text.strip()
            if value:
                return Path(_expand_placeholders(value)).expanduser()
    return None


def _maven_settings_files() -> list[Path]:
    files = [Path.home() / ".m2" / "settings.xml"]
    for env in ("MAVEN_HOME", "M2_HOME"):
        home = os.environ.get(env)
        if home:
            files.append(Path(home) / "conf" / "settings.xml")
    return files


def maven_repository() -> Path:
    for settings_file in _maven_settings_files():
        if settings_file.is_file():
            repository = read_maven_local_repository(settings_file)
            if repository is not None:
                return repository
    return Path.home() / ".m2" / "repository"


# Gradle


def read_properties(path: Path) -> dict[str, str]:
    """Parse a Java ``.properties`` file (no line continuations)."""
    text = read_text(path)
    if text is None:
        return {}
    properties = {}
    for line in text.splitlines():
        match = PROPERTY_LINE.match(line)
        if match:
            properties[match.group(1)] = match.group(2)
    return properties


def gradle_user_home() -> Path:
    return _env_path("GRADLE_USER_HOME") or Path.home() / ".gradle"


def gradle_repository(project_dir: Path | None = None) -> Path:
    candidates = []
    if project_dir is not None:
        candidates.append(Path(project_dir) / "gradle.properties")
    candidates.append(Path.home() / ".gradle" / "gradle.properties")

    for properties_file in candidates:
        if not properties_file.is_file():
            continue
        cache_dir = read_properties(properties_file).get("org.gradle.cache.dir")
        if cache_dir and is_valid_repository(cache_dir):
            return Path(cache_dir).expanduser() / GRADLE_FILES_PATH

    return gradle_user_home() / GRADLE_FILES_PATH


# NPM / Yarn / pnpm


def detect_npm_client(project_dir: Path | None = None) -> NpmClient:
    """Guess the client from the project's lockfile (npm when unknown)."""
    if project_dir is not None:
        project_dir = Path(project_dir)
        if (project_dir / "yarn.lock").exists():
            return NpmClient.YARN
        if (project_dir / "pnpm-lock.yaml").exists():
            return NpmClient.PNPM
    return NpmClient.NPM


def read_npmrc_cache(npmrc: Path) -> Path | None:
    text = read_text(npmrc)
    if text is None:
        return None
    match = NPMRC_CACHE.search(text)
    if not match:
        return None
    return Path(match.group(1).strip("\"'")).expanduser()


def npm_cache_directory(project_dir: Path | None = None) -> Path:
    from_env = _env_path("NPM_CONFIG_CACHE", "NPM_CACHE_DIR")
    if from_env:
        return from_env

    npmrc_files = [Path.home() / ".npmrc"]
    if project_dir is not None:
        npmrc_files.insert(0, Path(project_dir) / ".npmrc")
    for npmrc in npmrc_files:
        if npmrc.is_file():
            cache = read_npmrc_cache(npmrc)
            if cache is not None and is_valid_repository(cache):
                return cache

    if _is_windows():
        return _roaming_app_data() / "npm-cache"
    return Path.home() / ".npm"


def yarn_cache_directory() -> Path:
    from_env = _env_path("YARN_CACHE_FOLDER")
    if from_env:
        return from_env
    if _is_windows():
        return _local_app_data() / "Yarn" / "Cache"
    if _is_macos():
        return Path.home() / "Library" / "Caches" / "Yarn"
    return Path.home() / ".cache" / "yarn"


def pnpm_store_directory() -> Path:
    from_env = _env_path("PNPM_STORE_DIR")
    if from_env:
        return from_env
    if _is_windows():
        return _local_app_data() / "pnpm" / "store"
    return Path.home() / ".pnpm-store"


def npm_repository(project_dir: Path | None = None) -> Path:
    if project_dir is not None:
        node_modules = Path(project_dir) / "node_modules"
        if is_valid_repository(node_modules):
            return node_modules

    client = detect_npm_client(project_dir)
    if client == NpmClient.YARN:
        return yarn_cache_directory()
    if client == NpmClient.PNPM:
        return pnpm_store_directory()
    return npm_cache_directory(project_dir)


# PIP


def find_site_packages(environment: Path) -> Path | None:
    """Locate site-packages inside a virtualenv or conda environment."""
    windows_layout = environment / "Lib" / "site-packages"
    if windows_layout.is_dir():
        return windows_layout
    lib = environment / "lib"
    if lib.is_dir():
        for python_dir in sorted(lib.glob("python3*")):
            site_packages = python_dir / "site-packages"
            if site_packages.is_dir():
                return site_packages
    return None


def project_site_packages(project_dir: Path) -> Path | None:
    for name in VENV_DIRECTORIES:
        environment = Path(project_dir) / name
        if environment.is_dir():
            site_packages = find_site_packages(environment)
            if site_packages is not None:
                return site_packages
    return None


def _pip_config_files() -> list[Path]:
    if _is_windows():
        return [_roaming_app_data() / "pip" / "pip.ini"]
    files = [Path.home() / ".config" / "pip" / "pip.conf", Path.home() / ".pip" / "pip.conf"]
    if _is_macos():
        files.append(Path.home() / "Library" / "Application Support" / "pip" / "pip.conf")
    return files


def read_pip_cache_dir(pip_config: Path) -> Path | None:
    parser = configparser.ConfigParser()
    try:
        parser.read(pip_config, encoding="utf-8")
    except (configparser.Error, OSError) as e:
        log.debug("Could not parse %s: %s", pip_config, e)
        return None
    value = parser.get("global", "cache-dir", fallback=None)
    return Path(value).expanduser() if value else None


def pip_cache_directory() -> Path:
    from_env = _env_path("PIP_CACHE_DIR")
    if from_env:
        return from_env

    for pip_config in _pip_config_files():
        if pip_config.is_file():
            cache = read_pip_cache_dir(pip_config)
            if cache is not None and is_valid_repository(cache):
                return cache

    if _is_windows():
        return _local_app_data() / "pip" / "Cache"
    if _is_macos():
        return Path.home() / "Library" / "Caches" / "pip"
    return Path.home() / ".cache" / "pip"


def pip_repository(project_dir: Path | None = None) -> Path:
    if project_dir is not None:
        site_packages = project_site_packages(Path(project_dir))
        if site_packages is not None:
            return site_packages
    return pip_cache_directory()


def default_repository(ecosystem: Ecosystem | str, project_dir: str | Path | None = None) -> Path:
    """
    Resolve the repository root a scan of ``ecosystem`` should use.

    Args:
        ecosystem: Ecosystem to locate
        project_dir: Optional project whose local settings are consulted

    Returns:
        Path of the repository (it may not exist yet)
    """
    ecosystem = get_rules(ecosystem).ecosystem
    custom = get_custom_repository(ecosystem)
    if custom is not None:
        return custom

    project = Path(project_dir).expanduser() if project_dir is not None else None
    if ecosystem == Ecosystem.MAVEN:
        return maven_repository()
    if ecosystem == Ecosystem.GRADLE:
        return gradle_repository(project)
    if ecosystem == Ecosystem.NPM:
        return npm_repository(project)
    return pip_repository(project)


def detect_ecosystem(project_dir: str | Path) -> Ecosystem | None:
    """Guess a project's ecosystem from its build files."""
    project = Path(project_dir).expanduser()
    for ecosystem, markers in PROJECT_MARKERS:
        if any((project / marker).exists() for marker in markers):
            return ecosystem
    return None

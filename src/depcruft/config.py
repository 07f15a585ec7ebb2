"""Persistent configuration for depcruft.

Only repository overrides and protected paths are stored. Filter options
are per-scan values and are never persisted.
"""

import json
import logging
import os
from pathlib import Path

from depcruft.errors import InvalidRepositoryError
from depcruft.models import Ecosystem

log = logging.getLogger(__name__)

CONFIG_ENV = "DEPCRUFT_CONFIG"
DEFAULT_CONFIG_FILE = Path("~/.depcruft/config.json")


def _empty_config() -> dict:
    return {"repositories": {}, "protected_paths": []}


def config_file() -> Path:
    """Location of the config file (``$DEPCRUFT_CONFIG`` wins)."""
    override = os.environ.get(CONFIG_ENV)
    return Path(override).expanduser() if override else DEFAULT_CONFIG_FILE.expanduser()


def load_config() -> dict:
    """Load configuration from disk; missing or corrupt files load as empty."""
    path = config_file()
    if not path.exists():
        return _empty_config()

    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Ignoring unreadable config %s: %s", path, e)
        return _empty_config()

    if not isinstance(data, dict):
        return _empty_config()
    config = _empty_config()
    config.update(data)
    return config


def save_config(config: dict) -> bool:
    """Save configuration to disk."""
    path = config_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(config, f, indent=2)
        return True
    except OSError as e:
        log.warning("Could not save config %s: %s", path, e)
        return False


def is_valid_repository(path: str | Path) -> bool:
    """A repository must be an existing, writable directory."""
    path = Path(path).expanduser()
    return path.is_dir() and os.access(path, os.W_OK)


def get_custom_repository(ecosystem: Ecosystem) -> Path | None:
    """User-chosen repository root for an ecosystem, if still valid."""
    value = load_config().get("repositories", {}).get(ecosystem.value)
    if not value:
        return None
    if not is_valid_repository(value):
        log.info("Configured %s repository %s is no longer usable", ecosystem.value, value)
        return None
    return Path(value).expanduser()


def set_custom_repository(ecosystem: Ecosystem, path: str | Path | None) -> bool:
    """
    Store (or with ``None``, forget) a repository override.

    Raises:
        InvalidRepositoryError: if the path is not a writable directory
    """
    config = load_config()
    repositories = dict(config.get("repositories", {}))
    if path is None:
        repositories.pop(ecosystem.value, None)
    else:
        if not is_valid_repository(path):
            raise InvalidRepositoryError(f"Invalid repository path: {path}")
        repositories[ecosystem.value] = str(Path(path).expanduser().resolve())
    config["repositories"] = repositories
    return save_config(config)


def is_protected(path: str | Path) -> bool:
    """Whether ``path`` is, or lies inside, a protected path."""
    expanded = str(Path(path).expanduser().resolve())
    for protected in load_config().get("protected_paths", []):
        protected_expanded = str(Path(protected).expanduser().resolve())
        if expanded == protected_expanded or expanded.startswith(protected_expanded + os.sep):
            return True
    return False


def protected_paths() -> list[str]:
    return list(load_config().get("protected_paths", []))


def add_protection(path: str | Path) -> bool:
    config = load_config()
    expanded = str(Path(path).expanduser().resolve())
    protected = list(config.get("protected_paths", []))
    if expanded in protected:
        return True
    protected.append(expanded)
    config["protected_paths"] = protected
    return save_config(config)


def remove_protection(path: str | Path) -> bool:
    config = load_config()
    expanded = str(Path(path).expanduser().resolve())
    protected = [p for p in config.get("protected_paths", []) if p != expanded]
    config["protected_paths"] = protected
    return save_config(config)

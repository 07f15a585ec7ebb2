"""Shared fixtures for depcruft tests."""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a throwaway location for every test."""
    config_path = tmp_path / "depcruft-config" / "config.json"
    monkeypatch.setenv("DEPCRUFT_CONFIG", str(config_path))
    return config_path


def touch(path: Path, content: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


@pytest.fixture
def maven_repo(tmp_path):
    """A small ~/.m2/repository with a release, a snapshot and a broken download."""
    repo = tmp_path / "m2" / "repository"
    touch(repo / "com/acme/lib/1.0-SNAPSHOT/lib-1.0-SNAPSHOT.jar", "jar" * 100)
    touch(repo / "com/acme/lib/1.0-SNAPSHOT/lib-1.0-SNAPSHOT.pom", "<project/>")
    touch(repo / "com/acme/lib/2.0/lib-2.0.jar", "jar" * 10)
    touch(repo / "com/acme/lib/2.0/lib-2.0.pom", "<project/>")
    touch(repo / "org/other/util/1.0/util-1.0.jar.lastUpdated", "failed")
    return repo

"""Tests for npm / yarn / pnpm rules."""

import json
import os
from pathlib import Path

import pytest

from depcruft.rules import npm


def touch(path: Path, content: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def package_json(path: Path, name: str, version: str) -> Path:
    return touch(path / "package.json", json.dumps({"name": name, "version": version}))


class TestNpmFiles:
    @pytest.mark.parametrize(
        "name",
        ["package.json", "react-18.2.0.tgz", "react-npm-18.2.0-0123456789-abcdef.zip", "a" * 40],
    )
    def test_target_files(self, name):
        assert npm.is_target_file(Path(name))

    def test_non_target_files(self):
        assert not npm.is_target_file(Path("index.js"))
        assert not npm.is_target_file(Path("README.md"))

    def test_interrupted_download_is_invalid(self):
        assert npm.is_invalid_file(Path("react-18.2.0.tgz.tmp"))
        assert npm.is_invalid_file(Path("react-18.2.0.tgz.part"))

    def test_mixed_lockfiles_are_invalid(self, tmp_path):
        touch(tmp_path / "yarn.lock")
        lock = touch(tmp_path / "package-lock.json")
        assert npm.is_invalid_file(lock)

    def test_single_lockfile_is_valid(self, tmp_path):
        lock = touch(tmp_path / "package-lock.json")
        assert not npm.is_invalid_file(lock)


class TestNpmIdentity:
    def test_node_modules_package(self, tmp_path):
        root = tmp_path / "node_modules"
        manifest = package_json(root / "react", "react", "18.2.0")

        unit = npm.identify(root, manifest)

        assert unit.package_name == "react@18.2.0"
        assert unit.relative_path == "react"

    def test_nested_file_belongs_to_package_root(self, tmp_path):
        root = tmp_path / "node_modules"
        package_json(root / "lodash", "lodash", "4.17.21")
        nested = package_json(root / "lodash" / "fp", "lodash-fp-internal", "0.0.0")

        assert npm.unit_directory(nested) == root / "lodash"
        assert npm.identify(root, nested).package_name == "lodash@4.17.21"

    def test_scoped_package(self, tmp_path):
        root = tmp_path / "node_modules"
        manifest = package_json(root / "@babel" / "core", "@babel/core", "7.22.0")

        unit = npm.identify(root, manifest)

        assert unit.package_name == "@babel/core@7.22.0"
        assert unit.relative_path == "@babel/core"

    def test_pnpm_virtual_store(self, tmp_path):
        root = tmp_path / "node_modules"
        manifest = package_json(
            root / ".pnpm" / "react-dom@18.2.0_react@18.2.0" / "node_modules" / "react-dom",
            "react-dom",
            "18.2.0",
        )
        assert npm.identify(root, manifest).package_name == "react-dom@18.2.0"

    def test_pnpm_scoped_virtual_store(self, tmp_path):
        root = tmp_path / "node_modules"
        manifest = package_json(
            root / ".pnpm" / "@types+node@20.1.0" / "node_modules" / "@types" / "node",
            "@types/node",
            "20.1.0",
        )
        assert npm.identify(root, manifest).package_name == "@types/node@20.1.0"

    def test_standalone_package_json(self, tmp_path):
        manifest = package_json(tmp_path / "cache" / "entry", "left-pad", "1.3.0")
        assert npm.identify(tmp_path, manifest).package_name == "left-pad@1.3.0"

    def test_unparseable_package_json_falls_back(self, tmp_path):
        manifest = touch(tmp_path / "cache" / "entry" / "package.json", "{not json")
        unit = npm.identify(tmp_path, manifest)
        assert unit.version == "unknown"

    def test_tarball(self, tmp_path):
        unit = npm.identify(tmp_path, tmp_path / "cache" / "react-18.2.0.tgz")
        assert unit.package_name == "react@18.2.0"

    def test_partial_tarball_keeps_identity(self, tmp_path):
        unit = npm.identify(tmp_path, tmp_path / "cache" / "react-18.2.0.tgz.tmp")
        assert unit.package_name == "react@18.2.0"
        assert unit.invalid is True

    def test_berry_zip_with_scope(self, tmp_path):
        file = tmp_path / "cache" / "@babel-core-npm-7.22.0-0a1b2c3d4e-ffee00.zip"
        assert npm.identify(tmp_path, file).package_name == "@babel/core@7.22.0"

    def test_content_hash_without_manifest(self, tmp_path):
        file = tmp_path / "store" / "ab" / ("c" * 40)
        unit = npm.identify(tmp_path, file)
        assert unit.package_name == f"content-addressed@{'c' * 40}"


class TestNpmExclusion:
    def test_dot_directories(self, tmp_path):
        assert npm.should_exclude(tmp_path / "node_modules" / ".bin")
        assert npm.should_exclude(tmp_path / "node_modules" / ".cache")
        assert not npm.should_exclude(tmp_path / "node_modules" / ".pnpm")

    @pytest.mark.parametrize("name", ["test", "tests", "__tests__", "docs", "examples", "coverage"])
    def test_noise_directories(self, tmp_path, name):
        assert npm.should_exclude(tmp_path / "node_modules" / "react" / name)

    def test_pnpm_hoisted_links(self, tmp_path):
        assert npm.should_exclude(tmp_path / "node_modules" / ".pnpm" / "node_modules")

    def test_pnpm_package_directory_is_kept(self, tmp_path):
        directory = tmp_path / "node_modules" / ".pnpm" / "react@18.2.0" / "node_modules" / "react"
        directory.mkdir(parents=True)
        assert not npm.should_exclude(directory)

    def test_pnpm_depth_limit(self, tmp_path):
        store = tmp_path / "node_modules" / ".pnpm"
        assert npm.should_exclude(store / "react@18.2.0" / "node_modules" / "react" / "cjs")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinked_directory_outside_node_modules(self, tmp_path):
        (tmp_path / "real").mkdir()
        os.symlink(tmp_path / "real", tmp_path / "link")
        assert npm.should_exclude(tmp_path / "link")
        assert not npm.should_exclude(tmp_path / "real")


class TestNpmPredicates:
    @pytest.mark.parametrize("version", ["18.3.0-canary-abc", "1.0.0-beta.1", "2.0.0-rc.1", "1.0.0-next.4"])
    def test_prerelease(self, version):
        assert npm.is_prerelease(version)

    @pytest.mark.parametrize("version", ["18.2.0", "1.0.0+build.5", "unknown"])
    def test_not_prerelease(self, version):
        assert not npm.is_prerelease(version)

    def test_platform_package(self, tmp_path):
        root = tmp_path / "node_modules"
        manifest = package_json(root / "@esbuild" / "linux-x64", "@esbuild/linux-x64", "0.19.0")
        unit = npm.identify(root, manifest)

        assert npm.is_platform_specific(unit)
        assert npm.label_platform(unit) == "@esbuild/linux-x64@0.19.0"

    def test_target_exact_name(self, tmp_path):
        unit = npm.identify(tmp_path, tmp_path / "cache" / "react-18.2.0.tgz")
        assert npm.matches_target(unit, "react")
        assert not npm.matches_target(unit, "reac")
        assert not npm.matches_target(unit, "React")

    def test_target_bare_name_of_scoped_package(self, tmp_path):
        root = tmp_path / "node_modules"
        unit = npm.identify(root, package_json(root / "@babel" / "core", "@babel/core", "7.22.0"))
        assert npm.matches_target(unit, "core")
        assert npm.matches_target(unit, "@babel/core")

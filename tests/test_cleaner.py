"""Tests for cleanup functionality."""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

from depcruft.cleaner import (
    clean_entry,
    delete_invalid_files,
    delete_path,
    execute_cleanup,
    is_path_safe,
)
from depcruft.config import add_protection
from depcruft.models import CleanupPreviewEntry, Ecosystem, FilterOptions, MatchType
from depcruft.rules import get_rules
from depcruft.scanner import preview_cleanup

MAVEN = get_rules("maven")


def make_entry(path: Path, match_type: MatchType = MatchType.SNAPSHOT, name: str = "pkg") -> CleanupPreviewEntry:
    return CleanupPreviewEntry(
        path=str(path),
        package_name=name,
        ecosystem=Ecosystem.MAVEN,
        match_type=match_type,
    )


class TestIsPathSafe:
    def test_blocks_home_directory(self):
        assert not is_path_safe(Path.home())

    def test_blocks_filesystem_root(self):
        assert not is_path_safe(Path("/"))

    def test_blocks_repository_root(self, tmp_path):
        assert not is_path_safe(tmp_path, root=tmp_path)

    def test_allows_package_directory(self, tmp_path):
        assert is_path_safe(tmp_path / "com" / "acme" / "lib" / "1.0", root=tmp_path)

    def test_blocks_protected_paths(self, tmp_path):
        keep = tmp_path / "keep"
        keep.mkdir()
        add_protection(keep)

        assert not is_path_safe(keep)
        assert not is_path_safe(keep / "inner")
        assert is_path_safe(tmp_path / "other")


class TestDeletePath:
    def test_delete_nonexistent_path(self):
        bytes_freed, files, error = delete_path(Path("/nonexistent/path"))
        assert bytes_freed == 0
        assert files == 0
        assert error is None

    def test_dry_run_does_not_delete(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            test_file = Path(tmpdir) / "test.txt"
            test_file.write_text("Hello!")

            bytes_freed, files, error = delete_path(test_file, dry_run=True)

            # File should still exist
            assert test_file.exists()
            assert bytes_freed == 6
            assert files == 1

    def test_deletes_directory(self, tmp_path):
        target = tmp_path / "lib" / "1.0"
        target.mkdir(parents=True)
        (target / "lib-1.0.jar").write_text("12345")

        bytes_freed, files, error = delete_path(target)

        assert not target.exists()
        assert bytes_freed == 5
        assert files == 1
        assert error is None

    def test_permission_error(self, tmp_path):
        target = tmp_path / "locked"
        target.mkdir()

        with patch("depcruft.cleaner.shutil.rmtree", side_effect=PermissionError("locked")):
            bytes_freed, files, error = delete_path(target)

        assert bytes_freed == 0
        assert "Permission denied" in error


class TestDeleteInvalidFiles:
    def test_keeps_valid_siblings(self, tmp_path):
        (tmp_path / "lib-1.0.pom").write_text("pom")
        (tmp_path / "lib-1.0.jar.lastUpdated").write_text("failed")

        bytes_freed, files, errors = delete_invalid_files(tmp_path, MAVEN.is_invalid_file)

        assert (tmp_path / "lib-1.0.pom").exists()
        assert not (tmp_path / "lib-1.0.jar.lastUpdated").exists()
        assert (bytes_freed, files, errors) == (6, 1, [])

    def test_finds_nested_markers(self, tmp_path):
        nested = tmp_path / "nested"
        nested.mkdir()
        (nested / "x.jar.lastUpdated").write_text("failed")
        (nested / "x.pom").write_text("pom")

        bytes_freed, files, errors = delete_invalid_files(tmp_path, MAVEN.is_invalid_file)

        assert not (nested / "x.jar.lastUpdated").exists()
        assert (nested / "x.pom").exists()
        assert (bytes_freed, files, errors) == (6, 1, [])

    def test_dry_run_counts_nested_markers(self, tmp_path):
        marker = tmp_path / "a" / "b" / "x.jar.part"
        marker.parent.mkdir(parents=True)
        marker.write_text("part")

        bytes_freed, files, errors = delete_invalid_files(tmp_path, MAVEN.is_invalid_file, dry_run=True)

        assert marker.exists()
        assert (bytes_freed, files) == (4, 1)

    def test_unreadable_unit_directory(self, tmp_path):
        with patch("depcruft.cleaner.os.scandir", side_effect=PermissionError("denied")):
            bytes_freed, files, errors = delete_invalid_files(tmp_path, MAVEN.is_invalid_file)

        assert (bytes_freed, files) == (0, 0)
        assert len(errors) == 1
        assert "denied" in errors[0]

    def test_single_file_unit(self, tmp_path):
        marker = tmp_path / "foo-1.0-py3-none-any.whl.part"
        marker.write_text("part")

        delete_invalid_files(marker, get_rules("pip").is_invalid_file)

        assert not marker.exists()


class TestCleanEntry:
    def test_invalid_entry_only_loses_markers(self, tmp_path):
        version_dir = tmp_path / "com" / "acme" / "lib" / "1.0"
        version_dir.mkdir(parents=True)
        (version_dir / "lib-1.0.jar.lastUpdated").write_text("failed")
        (version_dir / "_remote.repositories").write_text("meta")

        result = clean_entry(make_entry(version_dir, MatchType.INVALID), MAVEN, root=tmp_path)

        assert result.success
        assert result.match_type == MatchType.INVALID
        assert version_dir.exists()
        assert not (version_dir / "lib-1.0.jar.lastUpdated").exists()
        assert (version_dir / "_remote.repositories").exists()

    def test_snapshot_entry_removes_directory(self, tmp_path):
        version_dir = tmp_path / "com" / "acme" / "lib" / "1.0-SNAPSHOT"
        version_dir.mkdir(parents=True)
        (version_dir / "lib-1.0-SNAPSHOT.jar").write_text("jar")

        result = clean_entry(make_entry(version_dir), MAVEN, root=tmp_path)

        assert result.success
        assert result.bytes_freed == 3
        assert not version_dir.exists()

    def test_refuses_repository_root(self, tmp_path):
        result = clean_entry(make_entry(tmp_path), MAVEN, root=tmp_path)

        assert not result.success
        assert "Blocked path" in result.error_message
        assert tmp_path.exists()

    def test_dry_run(self, tmp_path):
        version_dir = tmp_path / "lib" / "1.0"
        version_dir.mkdir(parents=True)
        (version_dir / "lib-1.0.jar").write_text("jar")

        result = clean_entry(make_entry(version_dir), MAVEN, root=tmp_path, dry_run=True)

        assert result.dry_run
        assert result.bytes_freed == 3
        assert version_dir.exists()


class TestExecuteCleanup:
    def test_maven_invalid_scenario(self, tmp_path):
        repo = tmp_path / "repository"
        version_dir = repo / "com" / "acme" / "lib" / "1.0"
        version_dir.mkdir(parents=True)
        (version_dir / "lib-1.0.jar.lastUpdated").write_text("failed")

        summary = preview_cleanup(repo, "maven", FilterOptions(show_invalid_packages=True))
        results = execute_cleanup(summary.entries, "maven", root=repo)

        assert [r.success for r in results] == [True]
        assert version_dir.exists()
        assert list(version_dir.iterdir()) == []

    def test_gradle_marker_in_hash_directory(self, tmp_path):
        files = tmp_path / "files-2.1"
        hash_dir = files / "com.acme" / "lib" / "1.0" / ("a" * 40)
        hash_dir.mkdir(parents=True)
        marker = hash_dir / "lib-1.0.jar.part"
        marker.write_text("partial")
        pom = files / "com.acme" / "lib" / "1.0" / ("b" * 40) / "lib-1.0.pom"
        pom.parent.mkdir()
        pom.write_text("<project/>")

        summary = preview_cleanup(files, "gradle", FilterOptions(show_invalid_packages=True))
        assert [e.match_type for e in summary.entries] == [MatchType.INVALID]

        results = execute_cleanup(summary.entries, "gradle", root=files)

        assert results[0].success
        assert results[0].bytes_freed == 7
        assert not marker.exists()
        assert pom.exists()

    def test_npm_marker_in_package_subfolder(self, tmp_path):
        modules = tmp_path / "node_modules"
        package = modules / "foo"
        (package / "dist").mkdir(parents=True)
        (package / "package.json").write_text('{"name": "foo", "version": "1.0.0"}')
        marker = package / "dist" / "foo-1.0.0.tgz.part"
        marker.write_text("partial")

        summary = preview_cleanup(modules, "npm", FilterOptions(show_invalid_packages=True))
        assert [e.match_type for e in summary.entries] == [MatchType.INVALID]

        results = execute_cleanup(summary.entries, "npm", root=modules)

        assert results[0].success
        assert results[0].bytes_freed == 7
        assert not marker.exists()
        assert (package / "package.json").exists()

    def test_failure_does_not_abort_batch(self, tmp_path):
        first = tmp_path / "a" / "1.0"
        second = tmp_path / "b" / "1.0"
        for directory in (first, second):
            directory.mkdir(parents=True)
            (directory / "x.jar").write_text("x")

        real_rmtree = shutil.rmtree
        calls = []

        def flaky_rmtree(path, *args, **kwargs):
            calls.append(path)
            if len(calls) == 1:
                raise OSError("busy")
            return real_rmtree(path, *args, **kwargs)

        with patch("depcruft.cleaner.shutil.rmtree", side_effect=flaky_rmtree):
            results = execute_cleanup(
                [make_entry(first, name="a"), make_entry(second, name="b")], "maven", root=tmp_path
            )

        assert [r.success for r in results] == [False, True]
        assert "busy" in results[0].error_message
        assert results[0].bytes_freed == 0
        assert first.exists()
        assert not second.exists()

    def test_progress_callback(self, tmp_path):
        entries = []
        for name in ("a", "b", "c"):
            directory = tmp_path / name / "1.0"
            directory.mkdir(parents=True)
            entries.append(make_entry(directory, name=name))

        progress = []
        execute_cleanup(
            entries,
            Ecosystem.MAVEN,
            root=tmp_path,
            dry_run=True,
            progress_callback=lambda done, total: progress.append((done, total)),
        )

        assert progress == [(1, 3), (2, 3), (3, 3)]

    def test_empty_batch(self):
        assert execute_cleanup([], MAVEN) == []

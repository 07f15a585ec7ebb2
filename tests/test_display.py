"""Tests for display module."""

from datetime import datetime
from unittest.mock import patch

from rich.progress import Progress

from depcruft.display import (
    confirm_action,
    match_label,
    show_cleanup_progress,
    show_cleanup_result,
    show_cleanup_summary,
    show_scanning_progress,
    show_summary,
)
from depcruft.models import (
    CleanupPreviewEntry,
    CleanupResult,
    CleanupSummary,
    Ecosystem,
    MatchType,
)


def make_summary(entries=None) -> CleanupSummary:
    entries = entries or []
    return CleanupSummary(
        root="/repo",
        ecosystem=Ecosystem.MAVEN,
        total_scanned_count=10,
        total_count=len(entries),
        total_size=sum(e.file_size for e in entries),
        entries=entries,
    )


def make_entry(**kwargs) -> CleanupPreviewEntry:
    defaults = dict(
        path="/repo/com/acme/lib/1.0-SNAPSHOT",
        relative_path="com/acme/lib/1.0-SNAPSHOT",
        package_name="com.acme:lib:1.0-SNAPSHOT",
        ecosystem=Ecosystem.MAVEN,
        match_type=MatchType.SNAPSHOT,
        file_size=1500,
        last_modified=datetime(2024, 1, 2),
    )
    defaults.update(kwargs)
    return CleanupPreviewEntry(**defaults)


class TestMatchLabel:
    def test_matched(self):
        label = match_label(MatchType.MATCHED)
        assert "Matched" in label
        assert "cyan" in label

    def test_invalid(self):
        label = match_label(MatchType.INVALID)
        assert "Invalid" in label
        assert "red" in label

    def test_unknown(self):
        assert match_label(MatchType.UNKNOWN) == "Unknown"


class TestShowSummary:
    @patch("depcruft.display.console")
    def test_with_entries(self, mock_console):
        show_summary(make_summary([make_entry(), make_entry(last_modified=None)]))
        assert mock_console.print.called

    @patch("depcruft.display.console")
    def test_empty_summary(self, mock_console):
        show_summary(make_summary())
        printed = mock_console.print.call_args[0][0]
        assert "Nothing to clean" in printed
        assert "10 packages scanned" in printed

    @patch("depcruft.display.console")
    def test_dry_run_banner(self, mock_console):
        show_summary(make_summary([make_entry()]), dry_run=True)
        assert "DRY RUN" in mock_console.print.call_args_list[0][0][0]


class TestShowCleanupResult:
    @patch("depcruft.display.console")
    def test_success(self, mock_console):
        show_cleanup_result(
            CleanupResult(path="/x", package_name="react@18.2.0", bytes_freed=2000)
        )
        printed = mock_console.print.call_args[0][0]
        assert "react@18.2.0" in printed
        assert "2.0 KB freed" in printed

    @patch("depcruft.display.console")
    def test_dry_run(self, mock_console):
        show_cleanup_result(
            CleanupResult(path="/x", package_name="react@18.2.0", bytes_freed=2000, dry_run=True)
        )
        assert "would free" in mock_console.print.call_args[0][0]

    @patch("depcruft.display.console")
    def test_failure(self, mock_console):
        show_cleanup_result(
            CleanupResult(
                path="/x", package_name="react@18.2.0", success=False, error_message="OS error: busy"
            )
        )
        assert "OS error: busy" in mock_console.print.call_args[0][0]


class TestShowCleanupSummary:
    @patch("depcruft.display.console")
    def test_with_failures(self, mock_console):
        results = [
            CleanupResult(path="/a", package_name="a", bytes_freed=1000),
            CleanupResult(path="/b", package_name="b", success=False, error_message="x"),
        ]
        show_cleanup_summary(results)
        assert mock_console.print.called

    @patch("depcruft.display.console")
    def test_dry_run_heading(self, mock_console):
        show_cleanup_summary([], dry_run=True)
        printed = [call[0][0] for call in mock_console.print.call_args_list if call[0]]
        assert any("Dry Run Complete" in str(p) for p in printed)


class TestProgress:
    def test_scanning_progress(self):
        assert isinstance(show_scanning_progress(), Progress)

    def test_cleanup_progress(self):
        assert isinstance(show_cleanup_progress(), Progress)


class TestConfirmAction:
    @patch("rich.prompt.Confirm.ask", return_value=True)
    def test_confirm(self, mock_ask):
        assert confirm_action("Delete?") is True
        mock_ask.assert_called_once_with("Delete?")

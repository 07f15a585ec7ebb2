"""Cleanup execution with safety checks for depcruft."""

import logging
import os
import shutil
from pathlib import Path
from typing import Callable

from depcruft.config import is_protected
from depcruft.models import CleanupPreviewEntry, CleanupResult, Ecosystem, MatchType
from depcruft.rules import EcosystemRules, get_rules
from depcruft.scanner import get_directory_size

log = logging.getLogger(__name__)


def is_path_safe(path: Path, root: Path | None = None) -> bool:
    """
    Check if a path is safe to delete.

    The filesystem root, the home directory, the scanned repository root
    and anything the user protected are refused.

    Args:
        path: Path to check
        root: Repository root the entry was found under, if known

    Returns:
        True if safe to delete, False otherwise
    """
    resolved = path.expanduser().absolute()

    if resolved == Path(resolved.anchor):
        return False
    if resolved == Path.home():
        return False
    if root is not None and resolved == Path(root).expanduser().absolute():
        return False
    if is_protected(resolved):
        return False

    return True


def delete_path(path: Path, dry_run: bool = False) -> tuple[int, int, str | None]:
    """
    Delete a path (file or directory).

    Args:
        path: Path to delete
        dry_run: If True, don't actually delete

    Returns:
        Tuple of (bytes_freed, files_deleted, error_message)
    """
    if not path.exists() and not path.is_symlink():
        return 0, 0, None

    try:
        # Calculate size before deletion
        size, files, _ = get_directory_size(path)

        if dry_run:
            return size, files, None

        # Actually delete
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()

        return size, files, None

    except PermissionError as e:
        return 0, 0, f"Permission denied: {e}"
    except OSError as e:
        return 0, 0, f"OS error: {e}"


def _find_invalid_files(path: Path, is_invalid_file: Callable[[Path], bool]) -> list[Path]:
    """Marker files anywhere below ``path``; symlinks are not followed.

    Raises the scandir error only when ``path`` itself is unreadable.
    """
    found: list[Path] = []

    def _scan(p: str, top: bool = False):
        try:
            with os.scandir(p) as it:
                entries = list(it)
        except (PermissionError, OSError) as e:
            if top:
                raise
            log.debug("Skipping unreadable directory %s: %s", p, e)
            return
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    _scan(entry.path)
                elif entry.is_file(follow_symlinks=False) and is_invalid_file(Path(entry.path)):
                    found.append(Path(entry.path))
            except (PermissionError, OSError):
                continue

    _scan(str(path), top=True)
    return found


def delete_invalid_files(
    path: Path,
    is_invalid_file: Callable[[Path], bool],
    dry_run: bool = False,
) -> tuple[int, int, list[str]]:
    """
    Delete only the broken-download markers of a unit, keeping valid siblings.

    Markers are searched through the whole unit directory, so Gradle hash
    directories and nested package folders are covered.

    Returns:
        Tuple of (bytes_freed, files_deleted, error_messages)
    """
    if path.is_file():
        candidates = [path] if is_invalid_file(path) else []
    else:
        try:
            candidates = _find_invalid_files(path, is_invalid_file)
        except (PermissionError, OSError) as e:
            return 0, 0, [f"{path}: {e}"]

    total_bytes = 0
    total_files = 0
    errors = []

    for candidate in candidates:
        bytes_freed, files_deleted, error = delete_path(candidate, dry_run)
        if error:
            errors.append(f"{candidate.name}: {error}")
        else:
            total_bytes += bytes_freed
            total_files += files_deleted

    return total_bytes, total_files, errors


def clean_entry(
    entry: CleanupPreviewEntry,
    rules: EcosystemRules,
    root: Path | None = None,
    dry_run: bool = False,
) -> CleanupResult:
    """
    Clean a single preview entry.

    Invalid entries lose only their marker files; every other entry is
    removed recursively.

    Args:
        entry: Entry selected by the user
        rules: Rules of the entry's ecosystem
        root: Repository root, refused as a deletion target
        dry_run: If True, don't actually delete

    Returns:
        CleanupResult for the entry
    """
    path = Path(entry.path)

    if not is_path_safe(path, root):
        log.warning("Refusing to delete protected path %s", path)
        return CleanupResult(
            path=entry.path,
            package_name=entry.package_name,
            match_type=entry.match_type,
            success=False,
            error_message=f"Blocked path: {path}",
            dry_run=dry_run,
        )

    if entry.match_type == MatchType.INVALID:
        bytes_freed, _, errors = delete_invalid_files(path, rules.is_invalid_file, dry_run)
        error = "; ".join(errors) if errors else None
    else:
        bytes_freed, _, error = delete_path(path, dry_run)

    if error:
        log.warning("Failed to clean %s: %s", entry.package_name, error)

    return CleanupResult(
        path=entry.path,
        package_name=entry.package_name,
        match_type=entry.match_type,
        success=error is None,
        error_message=error,
        bytes_freed=bytes_freed if error is None else 0,
        dry_run=dry_run,
    )


def execute_cleanup(
    entries: list[CleanupPreviewEntry],
    ecosystem: Ecosystem | str | EcosystemRules,
    root: str | Path | None = None,
    dry_run: bool = False,
    progress_callback: Callable[[int, int], None] | None = None,
) -> list[CleanupResult]:
    """
    Delete the selected entries one after another.

    A failure is recorded on its own result and never stops the batch.

    Args:
        entries: Entries the user selected
        ecosystem: Ecosystem name, enum, or an explicit rule set
        root: Repository root the entries came from
        dry_run: If True, don't actually delete
        progress_callback: Optional callback(completed, total) after each entry

    Returns:
        List of CleanupResults, one per entry
    """
    rules = ecosystem if isinstance(ecosystem, EcosystemRules) else get_rules(ecosystem)
    root_path = Path(root) if root is not None else None

    results = []
    total = len(entries)

    for i, entry in enumerate(entries):
        results.append(clean_entry(entry, rules, root_path, dry_run))
        if progress_callback:
            progress_callback(i + 1, total)

    return results

"""Repository scanning and cleanup preview for depcruft."""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable

from depcruft.classifier import classify, display_name
from depcruft.errors import NoFilterSelectedError
from depcruft.models import CleanupPreviewEntry, CleanupSummary, Ecosystem, FilterOptions
from depcruft.registry import UnitRegistry
from depcruft.rules import EcosystemRules, get_rules
from depcruft.walker import walk

log = logging.getLogger(__name__)

DirectoryProgress = Callable[[int], None]  # (directories_visited)
ItemProgress = Callable[[int, int], None]  # (items_processed, items_total)


def expand_path(path: str | Path) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(str(path))))


def get_directory_size(path: Path) -> tuple[int, int, int]:
    """
    Calculate total size of a directory (or a single file).

    Walks the whole subtree with os.scandir, independent of any path
    filter used during discovery. Symlinks are not followed.

    Returns:
        Tuple of (total_bytes, file_count, dir_count)
    """
    total_size = 0
    file_count = 0
    dir_count = 0

    try:
        if path.is_file():
            return path.stat().st_size, 1, 0
    except (PermissionError, OSError):
        return 0, 0, 0

    def _scan(p: str):
        nonlocal total_size, file_count, dir_count
        try:
            with os.scandir(p) as entries:
                for entry in entries:
                    try:
                        if entry.is_file(follow_symlinks=False):
                            total_size += entry.stat(follow_symlinks=False).st_size
                            file_count += 1
                        elif entry.is_dir(follow_symlinks=False):
                            dir_count += 1
                            _scan(entry.path)
                    except (PermissionError, OSError):
                        continue
        except (PermissionError, OSError):
            pass

    _scan(str(path))
    return total_size, file_count, dir_count


def get_last_modified(path: Path) -> datetime | None:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime)
    except (PermissionError, OSError):
        return None


def validate_filter_options(options: FilterOptions) -> tuple[bool, str | None]:
    """
    Validate a scan request before any traversal happens.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not options.any_enabled():
        return False, "Please choose at least one filter option"
    return True, None


def preview_cleanup(
    root: str | Path,
    ecosystem: Ecosystem | str | EcosystemRules,
    options: FilterOptions,
    on_directory: DirectoryProgress | None = None,
    on_classified: ItemProgress | None = None,
) -> CleanupSummary:
    """
    Scan a repository and build the cleanup preview.

    Args:
        root: Repository root to scan
        ecosystem: Ecosystem name, enum, or an explicit rule set
        options: Filters for this scan
        on_directory: Optional callback(directories_visited) during discovery
        on_classified: Optional callback(processed, total) per classified unit

    Returns:
        CleanupSummary with one entry per included unit

    Raises:
        NoFilterSelectedError: if no filter option is enabled
    """
    is_valid, error = validate_filter_options(options)
    if not is_valid:
        raise NoFilterSelectedError(error)

    rules = ecosystem if isinstance(ecosystem, EcosystemRules) else get_rules(ecosystem)
    root_path = expand_path(root)
    registry = UnitRegistry(root_path, rules)

    if root_path.is_dir():
        visited = 0

        def _on_directory(_directory: Path) -> None:
            nonlocal visited
            visited += 1
            if on_directory:
                on_directory(visited)

        walk(
            root_path,
            rules.should_exclude,
            on_directory_visited=_on_directory,
            on_file_visited=lambda file: registry.register(file.parent, file),
        )
    else:
        log.warning("Repository root %s is not a directory", root_path)

    units = registry.units
    total = len(units)
    entries: list[CleanupPreviewEntry] = []

    for i, unit in enumerate(units):
        match_type, include = classify(unit, options, rules)
        if include:
            size, _, _ = get_directory_size(unit.directory)
            entries.append(
                CleanupPreviewEntry(
                    path=str(unit.directory.absolute()),
                    relative_path=unit.relative_path,
                    package_name=display_name(unit, match_type, rules),
                    ecosystem=rules.ecosystem,
                    match_type=match_type,
                    file_size=size,
                    last_modified=get_last_modified(unit.directory),
                )
            )
        if on_classified:
            on_classified(i + 1, total)

    # Sort by size descending, path for stable ties
    entries.sort(key=lambda e: (-e.file_size, e.relative_path))
    log.info(
        "Scanned %d %s units under %s, %d matched",
        total,
        rules.ecosystem.value,
        root_path,
        len(entries),
    )

    return CleanupSummary(
        root=str(root_path),
        ecosystem=rules.ecosystem,
        total_scanned_count=total,
        total_count=len(entries),
        total_size=sum(e.file_size for e in entries),
        entries=entries,
    )

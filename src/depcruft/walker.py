"""Depth-bounded directory traversal for cache repositories.

Uses os.scandir for performance instead of pathlib.rglob(), and asks the
ecosystem's path filter before descending into any directory.
"""

import logging
import os
from pathlib import Path
from typing import Callable

log = logging.getLogger(__name__)

# Guards against symlink cycles and pathological nesting
MAX_DIRECTORY_DEPTH = 20


def walk(
    root: Path,
    should_exclude: Callable[[Path], bool],
    on_directory_visited: Callable[[Path], None] | None = None,
    on_file_visited: Callable[[Path], None] | None = None,
    max_depth: int = MAX_DIRECTORY_DEPTH,
) -> None:
    """
    Visit every file under ``root`` once, pruning excluded directories.

    ``root`` itself is depth 0; files inside a directory nested deeper than
    ``max_depth`` are never reported and the subtree is silently dropped.

    Args:
        root: Directory to start from
        should_exclude: Path filter; True prunes the directory and its subtree
        on_directory_visited: Called for every child directory before the
            exclusion test, so progress reflects work performed
        on_file_visited: Called once for every file outside pruned subtrees
        max_depth: Maximum nesting depth to descend into
    """
    _walk(Path(root), 0, should_exclude, on_directory_visited, on_file_visited, max_depth)


def _walk(
    directory: Path,
    depth: int,
    should_exclude: Callable[[Path], bool],
    on_directory_visited: Callable[[Path], None] | None,
    on_file_visited: Callable[[Path], None] | None,
    max_depth: int,
) -> None:
    if depth > max_depth:
        return

    try:
        with os.scandir(directory) as iterator:
            entries = list(iterator)
    except (PermissionError, OSError) as e:
        log.debug("Skipping unreadable directory %s: %s", directory, e)
        return

    for entry in entries:
        try:
            # follows symlinks so the path filter gets to decide about them
            is_dir = entry.is_dir()
            is_file = not is_dir and entry.is_file()
        except (PermissionError, OSError) as e:
            log.debug("Skipping %s: %s", entry.path, e)
            continue

        path = Path(entry.path)
        if is_dir:
            if on_directory_visited:
                on_directory_visited(path)
            if _excluded(should_exclude, path):
                continue
            _walk(path, depth + 1, should_exclude, on_directory_visited, on_file_visited, max_depth)
        elif is_file and on_file_visited:
            on_file_visited(path)


def _excluded(should_exclude: Callable[[Path], bool], directory: Path) -> bool:
    try:
        return should_exclude(directory)
    except (PermissionError, OSError) as e:
        # unreadable means "don't know", and unknown directories are kept
        log.debug("Path filter failed on %s: %s", directory, e)
        return False

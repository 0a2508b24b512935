"""Recursive discovery of project-local build caches.

Finds directories such as ``node_modules/.cache`` or ``.next/cache`` below a
set of search roots without descending into dependency trees or VCS metadata.
"""

import logging
import os
from pathlib import Path
from typing import Generator, Iterable

from devsweep.scanner import expand_path

log = logging.getLogger(__name__)

# Directories never descended into while searching
SKIP_DIRECTORIES = frozenset(
    {
        ".git",
        ".svn",
        ".hg",
        "Library",
        ".Trash",
        "node_modules",
        ".venv",
        "venv",
        "__pycache__",
    }
)

DEFAULT_MAX_DEPTH = 6


def find_matching_directories(
    root: Path,
    pattern: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    skip_inside_match: bool = True,
) -> Generator[Path, None, None]:
    """
    Find directories named ``pattern`` below root.

    Hidden and known-unproductive directories are skipped unless they are
    the pattern itself. Symlinks are never followed.

    Args:
        root: Directory to start searching from
        pattern: Directory name to match (e.g. 'node_modules', '.turbo')
        max_depth: Maximum depth to search
        skip_inside_match: If True, don't recurse into matched directories

    Yields:
        Paths to matching directories
    """
    if max_depth <= 0:
        return

    try:
        with os.scandir(root) as entries:
            for entry in entries:
                try:
                    if not entry.is_dir(follow_symlinks=False):
                        continue
                    name = entry.name
                    entry_path = Path(entry.path)

                    if name == pattern:
                        yield entry_path
                        if skip_inside_match:
                            continue
                    elif name.startswith(".") or name in SKIP_DIRECTORIES:
                        continue

                    yield from find_matching_directories(entry_path, pattern, max_depth - 1, skip_inside_match)
                except OSError:
                    continue
    except OSError:
        log.debug("Cannot search %s", root)
        return


def find_project_caches(
    search_roots: Iterable[str | Path],
    patterns: Iterable[str],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[tuple[str, Path]]:
    """
    Find project cache directories below the search roots.

    A pattern is either a directory name ('.turbo') or a name followed by a
    relative child path ('.next/cache'); for the latter the first segment is
    searched for and the child must exist below it.

    Returns:
        (pattern, cache path) pairs in discovery order, without duplicates
    """
    patterns = list(patterns)
    found: list[tuple[str, Path]] = []
    seen: set[Path] = set()

    for search_root in search_roots:
        root_path = expand_path(search_root)
        if not root_path.is_dir():
            continue

        for pattern in patterns:
            head, _, rest = pattern.strip("/").partition("/")
            for match in find_matching_directories(root_path, head, max_depth):
                target = match / rest if rest else match
                if not target.is_dir() or target.is_symlink():
                    continue
                resolved = Path(os.path.abspath(target))
                if resolved in seen:
                    continue
                seen.add(resolved)
                log.debug("Found project cache %s", resolved)
                found.append((pattern, resolved))

    return found

"""Directory size measurement for devsweep."""

import logging
import os
import stat
import threading
from pathlib import Path
from typing import NamedTuple

from devsweep.ttl_cache import SIZE_TTL, TTLCache

log = logging.getLogger(__name__)

# Wall-clock budget for a full walk before falling back to an estimate
TIME_BUDGET_SECONDS = 8.0
# Maximum entries visited by a single walk
MAX_ENTRIES = 10_000
# Top-level entries sampled when estimating
SAMPLE_SIZE = 100


class SizeMeasurement(NamedTuple):
    """Size of a path and how it was obtained."""

    size_bytes: int
    estimated: bool = False
    entry_count: int = 0


def expand_path(path: str | Path) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(str(path))))


# =============================================================================
# Exact walk
# =============================================================================


class _WalkCancelled(Exception):
    pass


class _WalkProgress:
    """Running totals of a walk, still readable after it was cancelled."""

    def __init__(self) -> None:
        self.size_bytes = 0
        self.visited = 0
        self.truncated = False


def _walk_directory(
    path: Path,
    max_entries: int,
    cancel: threading.Event,
    progress: _WalkProgress | None = None,
) -> SizeMeasurement:
    """
    Sum regular file sizes under path using an explicit work stack.

    Args:
        path: Directory to walk
        max_entries: Stop after visiting this many entries
        cancel: Set by the caller when the time budget runs out
        progress: Totals updated as the walk goes

    Returns:
        SizeMeasurement, marked estimated when the entry cap cut the walk short
    """
    progress = progress if progress is not None else _WalkProgress()
    stack = [path]

    while stack:
        if progress.visited >= max_entries:
            progress.truncated = True
            log.debug("Entry cap of %d reached under %s", max_entries, path)
            break
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    if cancel.is_set():
                        raise _WalkCancelled()
                    if progress.visited >= max_entries:
                        progress.truncated = True
                        break
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(Path(entry.path))
                        elif entry.is_file(follow_symlinks=False):
                            progress.size_bytes += entry.stat(follow_symlinks=False).st_size
                        progress.visited += 1
                    except OSError:
                        continue
        except OSError:
            continue

    return SizeMeasurement(progress.size_bytes, progress.truncated, progress.visited)


# =============================================================================
# Estimation
# =============================================================================


def _estimate_directory(path: Path) -> SizeMeasurement:
    """
    Estimate a directory's size from a sample of its top-level entries.

    The average size of the sampled files is multiplied by the number of
    top-level entries. Accurate only for roughly uniform file sizes.
    """
    try:
        names = os.listdir(path)
    except OSError:
        return SizeMeasurement(0, True, 0)

    sample = names[:SAMPLE_SIZE]
    sample_total = 0
    sample_files = 0
    for name in sample:
        try:
            st = os.stat(os.path.join(path, name), follow_symlinks=False)
        except OSError:
            continue
        if stat.S_ISREG(st.st_mode):
            sample_total += st.st_size
            sample_files += 1

    if sample_files == 0:
        return SizeMeasurement(0, True, len(names))

    average = sample_total / sample_files
    return SizeMeasurement(max(int(round(average * len(names))), 0), True, len(names))


# =============================================================================
# Public API
# =============================================================================


def measure_directory(
    path: str | Path,
    estimate_only: bool = False,
    time_budget: float | None = None,
    max_entries: int | None = None,
) -> SizeMeasurement:
    """
    Measure the space used by a file or directory within a time budget.

    Args:
        path: File or directory to measure
        estimate_only: Sample instead of walking (for huge caches); walks
            anyway when the top level holds no files to sample
        time_budget: Seconds allowed for the exact walk (default TIME_BUDGET_SECONDS)
        max_entries: Entry cap for the walk (default MAX_ENTRIES)

    Returns:
        SizeMeasurement; missing or unreadable paths measure 0
    """
    path = Path(path)
    try:
        st = path.stat()
    except OSError:
        return SizeMeasurement(0, False, 0)

    if not stat.S_ISDIR(st.st_mode):
        return SizeMeasurement(st.st_size, False, 1)

    if estimate_only:
        estimate = _estimate_directory(path)
        if estimate.size_bytes > 0 or estimate.entry_count == 0:
            return estimate
        # Only subdirectories at the top (e.g. ~/.m2/repository), nothing to sample
        log.debug("No files to sample at the top of %s, walking instead", path)

    budget = TIME_BUDGET_SECONDS if time_budget is None else time_budget
    cap = MAX_ENTRIES if max_entries is None else max_entries
    cancel = threading.Event()
    progress = _WalkProgress()
    outcome: dict[str, SizeMeasurement] = {}

    def _run() -> None:
        try:
            outcome["result"] = _walk_directory(path, cap, cancel, progress)
        except _WalkCancelled:
            pass

    worker = threading.Thread(target=_run, name="devsweep-size", daemon=True)
    worker.start()
    worker.join(budget)

    if worker.is_alive() or "result" not in outcome:
        cancel.set()
        log.debug("Size walk of %s exceeded %.1fs, estimating", path, budget)
        estimate = _estimate_directory(path)
        # The partial walk is a lower bound the sample may undercut
        return SizeMeasurement(
            max(estimate.size_bytes, progress.size_bytes),
            True,
            max(estimate.entry_count, progress.visited),
        )

    return outcome["result"]


def get_directory_size(path: str | Path, estimate_only: bool = False) -> int:
    """
    Calculate the size of a path in bytes.

    Returns:
        Size in bytes (exact when the walk finished in time)
    """
    return measure_directory(path, estimate_only=estimate_only).size_bytes


def _size_key(path: str | Path, estimate_only: bool) -> str:
    key = str(expand_path(path))
    return f"estimated:{key}" if estimate_only else key


def get_cached_directory_size(
    path: str | Path,
    cache: TTLCache,
    estimate_only: bool = False,
    ttl: float = SIZE_TTL,
) -> SizeMeasurement:
    """
    Cached size measurement.

    Returns the cached result if it is fresh (within ttl).
    """
    return cache.get_size(
        _size_key(path, estimate_only),
        lambda: measure_directory(path, estimate_only=estimate_only),
        ttl,
    )


def invalidate_size_cache(path: str | Path, cache: TTLCache) -> None:
    """Forget cached sizes for a path and everything below it (exact and estimated)."""
    cache.invalidate_size(_size_key(path, False))
    cache.invalidate_size(_size_key(path, True))
    invalidate_size_cache_prefix(str(expand_path(path)).rstrip(os.sep) + os.sep, cache)


def invalidate_size_cache_prefix(prefix: str | Path, cache: TTLCache) -> None:
    """Forget cached sizes for every path whose key starts with prefix."""
    exact = _size_key(prefix, False)
    if str(prefix).endswith(os.sep):
        exact = exact.rstrip(os.sep) + os.sep
    cache.invalidate_size_prefix(exact)
    cache.invalidate_size_prefix(f"estimated:{exact}")

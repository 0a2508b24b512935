"""Guarded removal of cache paths."""

import logging
import os
import shutil
import stat
import sys
import tempfile
import time
from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable

from devsweep.errors import DeletionError, UnsafeDeletionError
from devsweep.scanner import expand_path

log = logging.getLogger(__name__)

# Path segments that mark a location as a cache even outside home or temp
SAFE_MARKERS = ("node_modules", "cache", "temp")

MAX_RETRIES = 3
RETRY_DELAY = 0.1  # seconds, multiplied by the attempt number


def _default_safe_roots() -> list[Path]:
    return [Path.home(), Path(tempfile.gettempdir())]


def _normalize(path: str | Path) -> Path:
    return Path(os.path.abspath(expand_path(path)))


class DeletionGuard:
    """
    Refuses to delete anything outside known-safe locations.

    A path is safe when it is strictly below one of the safe roots (home and
    the OS temp directory by default) or when one of its segments carries a
    cache marker: exactly ``node_modules``, or any segment containing
    ``cache`` or ``temp``.
    """

    def __init__(
        self,
        safe_roots: Iterable[str | Path] | None = None,
        markers: Iterable[str] | None = None,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
    ):
        roots = _default_safe_roots() if safe_roots is None else safe_roots
        normalized = [_normalize(r) for r in roots]
        # Keep resolved forms too (e.g. /var -> /private/var on macOS)
        self.safe_roots = list(dict.fromkeys(normalized + [Path(os.path.realpath(r)) for r in normalized]))
        self.markers = tuple(m.lower() for m in (SAFE_MARKERS if markers is None else markers))
        self.max_retries = max(max_retries, 1)
        self.retry_delay = retry_delay

    def _has_marker(self, path: Path) -> bool:
        # Skip the anchor ("/" or a drive) so the root itself never matches
        for segment in path.parts[1:]:
            lowered = segment.lower()
            for marker in self.markers:
                if marker == "node_modules":
                    if lowered == marker:
                        return True
                elif marker in lowered:
                    return True
        return False

    def _is_under_root(self, path: Path) -> bool:
        for root in self.safe_roots:
            if path != root and path.is_relative_to(root):
                return True
        return False

    def _is_safe_form(self, path: Path) -> bool:
        if path == Path(path.anchor) or path in self.safe_roots:
            return False
        return self._is_under_root(path) or self._has_marker(path)

    def is_safe(self, path: str | Path) -> bool:
        """
        Check whether a path may be removed.

        Args:
            path: Path to check (may contain ~)

        Returns:
            True if the path is inside a safe location
        """
        normalized = _normalize(path)
        if not self._is_safe_form(normalized):
            return False

        # Also judge where a non-symlink really lives
        if not normalized.is_symlink():
            real = Path(os.path.realpath(normalized))
            if real != normalized and not self._is_safe_form(real):
                return False
        return True

    def check(self, path: str | Path) -> Path:
        """
        Validate a path without touching it.

        Returns:
            The normalized absolute path

        Raises:
            UnsafeDeletionError: If the path is outside every safe location
        """
        normalized = _normalize(path)
        if not self.is_safe(normalized):
            log.error("Blocked deletion outside safe directories: %s", normalized)
            raise UnsafeDeletionError(normalized)
        return normalized

    def remove(self, path: str | Path) -> None:
        """
        Remove a file, symlink or directory tree with bounded retries.

        Missing paths are a successful no-op.

        Raises:
            UnsafeDeletionError: If the path is outside every safe location
            DeletionError: If removal still fails after all retries
        """
        target = self.check(path)
        if not os.path.lexists(target):
            return

        for attempt in range(1, self.max_retries + 1):
            try:
                _remove_path(target)
                log.debug("Removed %s", target)
                return
            except FileNotFoundError:
                return
            except OSError as e:
                if attempt == self.max_retries:
                    raise DeletionError(target, e) from e
                log.debug("Removing %s failed (attempt %d): %s", target, attempt, e)
                time.sleep(self.retry_delay * attempt)


def _make_writable_and_retry(func, path: str, exc) -> None:
    """rmtree error handler for read-only trees such as Go's module cache."""
    error = exc[1] if isinstance(exc, tuple) else exc
    if func not in (os.unlink, os.remove, os.rmdir) or not isinstance(error, PermissionError):
        raise error

    # Unlinking needs write permission on the containing directory
    for target in (os.path.dirname(path), path):
        try:
            mode = os.lstat(target).st_mode
        except OSError:
            continue
        if stat.S_ISDIR(mode):
            os.chmod(target, stat.S_IMODE(mode) | stat.S_IRWXU)
        elif stat.S_ISREG(mode):
            os.chmod(target, stat.S_IMODE(mode) | stat.S_IRUSR | stat.S_IWUSR)
    func(path)


def _remove_path(path: Path) -> None:
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    elif sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_make_writable_and_retry)
    else:
        shutil.rmtree(path, onerror=_make_writable_and_retry)


# =============================================================================
# Protected paths
# =============================================================================


def is_protected_path(path: str | Path, protected_paths: Iterable[str] | None) -> bool:
    """
    Check if a path is protected from cleanup.

    Patterns containing ``*``, ``?`` or ``[`` are matched as globs against
    the absolute path. Other entries protect the path itself and
    everything below it.

    Args:
        path: Path to check
        protected_paths: Protected globs or directories (may contain ~)

    Returns:
        True if the path is protected
    """
    if not protected_paths:
        return False

    normalized = str(_normalize(path))
    for pattern in protected_paths:
        if any(ch in pattern for ch in "*?["):
            expanded = str(expand_path(pattern))
            if fnmatch(normalized, expanded) or fnmatch(normalized, expanded.rstrip("/") + "/*"):
                log.debug("Path %s is protected by pattern %s", normalized, pattern)
                return True
        else:
            protected = str(_normalize(pattern))
            if normalized == protected or normalized.startswith(protected.rstrip(os.sep) + os.sep):
                log.debug("Path %s is protected: %s", normalized, pattern)
                return True
    return False


def filter_protected_paths(paths: Iterable[str], protected_paths: Iterable[str] | None) -> list[str]:
    """Drop protected paths, keeping order."""
    paths = list(paths)
    protected_paths = list(protected_paths or [])
    if not protected_paths:
        return paths

    allowed = [p for p in paths if not is_protected_path(p, protected_paths)]
    skipped = len(paths) - len(allowed)
    if skipped:
        log.debug("Skipped %d protected path(s)", skipped)
    return allowed

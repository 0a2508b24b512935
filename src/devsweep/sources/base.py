"""Cache source contract and the path-based reference implementation."""

import logging
import os
import shutil
import sys
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from devsweep.cleaner import DeletionGuard, filter_protected_paths
from devsweep.errors import DeletionError, UnsupportedCapabilityError
from devsweep.models import (
    CacheCategory,
    CacheInfo,
    CacheType,
    ClearResult,
    Priority,
    SelectionCriteria,
    UseCase,
)
from devsweep.scanner import (
    expand_path,
    get_cached_directory_size,
    get_directory_size,
    invalidate_size_cache,
)
from devsweep.selection import filter_categories
from devsweep.ttl_cache import TTLCache

log = logging.getLogger(__name__)

SECONDS_PER_DAY = 60 * 60 * 24

PROJECT_INDICATORS = (
    "node_modules/.cache",
    "target/debug",
    "target/release",
    "build/cache",
    ".next/cache",
    ".nuxt/cache",
    "dist/cache",
)


class SourceCapability(str, Enum):
    """Optional operations a cache source may support."""

    CATEGORIES = "categories"
    CATEGORY_CLEAR = "category-clear"


# =============================================================================
# Platform locations
# =============================================================================


def user_cache_dir() -> Path:
    """Per-user cache directory for the current platform."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"
    if sys.platform == "win32":
        return Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    return Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))


def user_config_dir() -> Path:
    """Per-user application data directory for the current platform."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


# =============================================================================
# Category heuristics
# =============================================================================


def _days_since(moment: datetime | None, now: datetime) -> float | None:
    if moment is None:
        return None
    return (now - moment).total_seconds() / SECONDS_PER_DAY


def derive_priority(last_accessed: datetime | None, now: datetime | None = None) -> Priority:
    """Priority from access recency: a day is critical, a week important, a month or more low."""
    days = _days_since(last_accessed, now or datetime.now())
    if days is None:
        return Priority.NORMAL
    if days < 1:
        return Priority.CRITICAL
    if days < 7:
        return Priority.IMPORTANT
    if days >= 30:
        return Priority.LOW
    return Priority.NORMAL


def detect_use_case(path: str, last_accessed: datetime | None = None, now: datetime | None = None) -> UseCase:
    """Guess a use case from the last two path segments and access recency."""
    tail = "/".join(Path(path).parts[-2:]).lower()
    if "test" in tail or "spec" in tail:
        return UseCase.TESTING
    if "prod" in tail or "release" in tail:
        return UseCase.PRODUCTION
    if "exp" in tail or "beta" in tail:
        return UseCase.EXPERIMENTAL
    days = _days_since(last_accessed, now or datetime.now())
    if days is not None and days >= 90:
        return UseCase.ARCHIVED
    return UseCase.DEVELOPMENT


def is_project_specific_path(path: str) -> bool:
    """Whether a path looks like a cache inside a single project."""
    normalized = path.replace(os.sep, "/")
    return any(indicator in normalized for indicator in PROJECT_INDICATORS)


class CategorySpec(BaseModel):
    """Declarative description of a cache category."""

    id: str
    name: str
    description: str = ""
    paths: list[str] = Field(default_factory=list, description="Candidate paths (may contain ~)")
    priority: Optional[Priority] = None
    use_case: Optional[UseCase] = None
    is_project_specific: Optional[bool] = None
    project_path: Optional[str] = None


# =============================================================================
# Contract
# =============================================================================


class CacheSource(ABC):
    """
    Base class for every cache source.

    A source reports whether its tool is present, enumerates and measures
    its cache paths, and clears them through a DeletionGuard. Optional
    operations are declared in ``capabilities`` and must be checked with
    ``supports()`` before use.
    """

    name: str = ""
    type: CacheType = CacheType.OTHER
    description: str = ""
    capabilities: frozenset[SourceCapability] = frozenset()

    def __init__(self, cache: TTLCache | None = None, guard: DeletionGuard | None = None):
        self.cache = cache if cache is not None else TTLCache()
        self.guard = guard if guard is not None else DeletionGuard()

    def supports(self, capability: SourceCapability) -> bool:
        """Whether the source implements an optional operation."""
        return capability in self.capabilities

    @abstractmethod
    def _check_available(self) -> bool:
        """Uncached availability check; may raise."""

    def is_available(self) -> bool:
        """Cheap, memoized check that never raises."""
        try:
            return bool(self.cache.get_availability(self.name, self._check_available))
        except Exception:
            log.debug("Availability check for %s failed", self.name, exc_info=True)
            return False

    @abstractmethod
    def get_cache_info(self) -> CacheInfo:
        """Enumerate and measure this source's cache paths."""

    @abstractmethod
    def clear(
        self,
        dry_run: bool = False,
        criteria: SelectionCriteria | None = None,
        cache_info: CacheInfo | None = None,
        protected_paths: list[str] | None = None,
    ) -> ClearResult:
        """Clear eligible paths, or report what would be cleared when dry_run is set."""

    def get_cache_categories(self) -> list[CacheCategory]:
        """Finer-grained breakdown of the cache."""
        raise UnsupportedCapabilityError(self.name, SourceCapability.CATEGORIES.value)

    def clear_by_category(
        self,
        category_ids: list[str],
        dry_run: bool = False,
        cache_info: CacheInfo | None = None,
        protected_paths: list[str] | None = None,
    ) -> ClearResult:
        """Clear only the named categories."""
        raise UnsupportedCapabilityError(self.name, SourceCapability.CATEGORY_CLEAR.value)

    def _clear_selection(
        self,
        info: CacheInfo,
        paths: Iterable[str],
        categories: Iterable[CacheCategory],
        dry_run: bool,
        protected_paths: list[str] | None,
    ) -> ClearResult:
        """
        Remove the selected paths that are not protected.

        Every path is validated by the guard before anything is removed,
        also in a dry run, so a dry run predicts exactly what a real run
        clears.

        Raises:
            UnsafeDeletionError: If any selected path is outside safe roots
        """
        allowed = filter_protected_paths(dict.fromkeys(paths), protected_paths)
        allowed_set = set(allowed)
        category_ids = []
        for category in categories:
            if any(p in allowed_set for p in category.paths):
                category_ids.append(category.id)
            elif category.paths:
                log.debug("Skipping category %s of %s: all paths are protected", category.id, self.name)

        if not allowed:
            return ClearResult(name=self.name, success=True, dry_run=dry_run)

        for path in allowed:
            self.guard.check(path)

        size_before = sum(info.path_sizes.get(p, 0) for p in allowed)

        if dry_run:
            log.debug("[DRY RUN] Would clear %s: %s", self.name, ", ".join(allowed))
            return ClearResult(
                name=self.name,
                success=True,
                size_before=size_before,
                size_after=size_before,
                cleared_paths=allowed,
                cleared_categories=category_ids,
                dry_run=True,
            )

        cleared: list[str] = []
        errors: list[str] = []
        size_after = 0
        for path in allowed:
            try:
                self.guard.remove(path)
                cleared.append(path)
            except DeletionError as e:
                log.warning("%s: %s", self.name, e)
                errors.append(str(e))
                size_after += get_directory_size(path)
            finally:
                invalidate_size_cache(path, self.cache)

        return ClearResult(
            name=self.name,
            success=not errors,
            size_before=size_before,
            size_after=min(size_after, size_before),
            error="; ".join(errors) if errors else None,
            cleared_paths=cleared,
            cleared_categories=category_ids,
            dry_run=False,
        )


# =============================================================================
# Reference implementation
# =============================================================================


class PathCacheSource(CacheSource):
    """
    Cache source backed by a fixed set of filesystem locations.

    Subclasses set ``name``, ``type`` and ``description``, optionally a
    ``command`` checked on PATH, and either override ``cache_paths()`` or
    ``category_specs()`` (or both). Paths listed in ``estimate_only_paths``
    (matched by final path segment) are sized by sampling only.
    """

    command: str | None = None
    estimate_only_paths: tuple[str, ...] = ()
    capabilities = frozenset({SourceCapability.CATEGORIES, SourceCapability.CATEGORY_CLEAR})

    def cache_paths(self) -> list[str]:
        """Candidate cache locations; defaults to every category path."""
        return [p for spec in self.category_specs() for p in spec.paths]

    def category_specs(self) -> list[CategorySpec]:
        """Named categories; an empty list derives one category per path."""
        return []

    def _candidate_paths(self) -> list[Path]:
        expanded = [Path(os.path.abspath(expand_path(p))) for p in self.cache_paths()]
        unique = list(dict.fromkeys(expanded))
        # Paths nested inside another candidate would be counted twice
        return [p for p in unique if not any(p != o and p.is_relative_to(o) for o in unique)]

    def _check_available(self) -> bool:
        if self.command and shutil.which(self.command):
            return True
        return any(p.exists() for p in self._candidate_paths())

    def _is_estimate_only(self, path: Path) -> bool:
        return path.name in self.estimate_only_paths

    def get_cache_info(self) -> CacheInfo:
        existing: list[str] = []
        path_sizes: dict[str, int] = {}
        stats: dict[str, os.stat_result] = {}
        estimated = False

        for path in self._candidate_paths():
            try:
                if not path.exists():
                    continue
                # Stat before walking so the walk does not bump the atime we report
                st = path.stat()
                measurement = get_cached_directory_size(path, self.cache, self._is_estimate_only(path))
            except OSError as e:
                log.debug("Error checking %s for %s: %s", path, self.name, e)
                continue
            existing.append(str(path))
            stats[str(path)] = st
            path_sizes[str(path)] = measurement.size_bytes
            estimated = estimated or measurement.estimated
            log.debug(
                "Found %s cache at %s (%d bytes%s)",
                self.name,
                path,
                measurement.size_bytes,
                " estimated" if measurement.estimated else "",
            )

        last_modified = None
        if stats:
            last_modified = datetime.fromtimestamp(max(s.st_mtime for s in stats.values()))

        return CacheInfo(
            name=self.name,
            type=self.type,
            description=self.description,
            paths=existing,
            is_installed=bool(existing) or self.is_available(),
            size_bytes=sum(path_sizes.values()),
            size_estimated=estimated,
            last_modified=last_modified,
            categories=self._build_categories(existing, path_sizes, stats),
            path_sizes=path_sizes,
        )

    def _build_categories(
        self,
        existing: list[str],
        path_sizes: dict[str, int],
        stats: dict[str, os.stat_result],
    ) -> list[CacheCategory]:
        specs = self.category_specs()
        if not specs:
            specs = self._default_specs(existing)

        now = datetime.now()
        claimed: set[str] = set()
        categories = []
        for spec in specs:
            paths = []
            for candidate in spec.paths:
                key = str(Path(os.path.abspath(expand_path(candidate))))
                if key in path_sizes and key not in claimed:
                    paths.append(key)
                    claimed.add(key)
            if not paths:
                continue

            mtimes = [stats[p].st_mtime for p in paths if p in stats]
            atimes = [stats[p].st_atime for p in paths if p in stats]
            last_modified = datetime.fromtimestamp(max(mtimes)) if mtimes else None
            last_accessed = datetime.fromtimestamp(max(atimes)) if atimes else None
            age = int(_days_since(last_modified, now)) if last_modified else None
            project_specific = spec.is_project_specific
            if project_specific is None:
                project_specific = any(is_project_specific_path(p) for p in paths)

            categories.append(
                CacheCategory(
                    id=spec.id,
                    name=spec.name,
                    description=spec.description,
                    paths=paths,
                    size_bytes=sum(path_sizes[p] for p in paths),
                    last_modified=last_modified,
                    last_accessed=last_accessed,
                    age_in_days=max(age, 0) if age is not None else None,
                    priority=spec.priority or derive_priority(last_accessed, now),
                    use_case=spec.use_case or detect_use_case(paths[0], last_accessed, now),
                    is_project_specific=project_specific,
                    project_path=spec.project_path,
                )
            )
        return categories

    def _default_specs(self, existing: list[str]) -> list[CategorySpec]:
        specs = []
        seen: set[str] = set()
        for path in existing:
            base = Path(path).name.lstrip(".") or "cache"
            category_id = base
            suffix = 2
            while category_id in seen:
                category_id = f"{base}-{suffix}"
                suffix += 1
            seen.add(category_id)
            specs.append(
                CategorySpec(
                    id=category_id,
                    name=Path(path).name,
                    description=f"Cache directory: {path}",
                    paths=[path],
                )
            )
        return specs

    def get_cache_categories(self) -> list[CacheCategory]:
        return self.get_cache_info().categories or []

    def clear(
        self,
        dry_run: bool = False,
        criteria: SelectionCriteria | None = None,
        cache_info: CacheInfo | None = None,
        protected_paths: list[str] | None = None,
    ) -> ClearResult:
        info = cache_info or self.get_cache_info()
        if not info.paths:
            log.debug("No %s cache directories found", self.name)
            return ClearResult(name=self.name, success=True, dry_run=dry_run)

        categories = info.categories or []
        if criteria is None or criteria.is_empty:
            paths = info.paths
        else:
            categories = filter_categories(categories, criteria)
            paths = [p for c in categories for p in c.paths]

        return self._clear_selection(info, paths, categories, dry_run, protected_paths)

    def clear_by_category(
        self,
        category_ids: list[str],
        dry_run: bool = False,
        cache_info: CacheInfo | None = None,
        protected_paths: list[str] | None = None,
    ) -> ClearResult:
        info = cache_info or self.get_cache_info()
        selected = []
        unknown = []
        for category_id in dict.fromkeys(category_ids):
            category = info.get_category(category_id)
            if category is None:
                unknown.append(category_id)
            else:
                selected.append(category)
        if unknown:
            log.warning("Unknown %s categories ignored: %s", self.name, ", ".join(unknown))

        paths = [p for c in selected for p in c.paths]
        return self._clear_selection(info, paths, selected, dry_run, protected_paths)

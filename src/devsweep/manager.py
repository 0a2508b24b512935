"""Registry and concurrent orchestration of cache sources."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Iterable, Optional

from pydantic import BaseModel, Field
from rich.console import Console

from devsweep.errors import UnsafeDeletionError
from devsweep.models import CacheInfo, CacheSummary, CacheType, ClearResult, SelectionCriteria
from devsweep.progress import ParallelProgressTracker
from devsweep.sources.base import CacheSource, SourceCapability
from devsweep.ttl_cache import TTLCache

log = logging.getLogger(__name__)

MAX_WORKERS = 8


class CleanOptions(BaseModel):
    """What a batch clear should touch."""

    dry_run: bool = Field(False, description="Report what would be removed without removing it")
    types: list[CacheType] = Field(default_factory=list, description="Only sources of these types")
    exclude: list[str] = Field(default_factory=list, description="Source names to skip")
    include: list[str] = Field(
        default_factory=list,
        description="Exact source names to clear; overrides types, exclude and enabled state",
    )
    sub_caches_to_clear: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Source name -> category ids cleared instead of the whole source",
    )
    criteria: Optional[SelectionCriteria] = Field(None, description="Category filter for whole-source clears")
    protected_paths: list[str] = Field(default_factory=list, description="Extra protected paths and globs")


class CacheManager:
    """
    Holds the cache sources and runs scans and clears across them.

    Sources run concurrently in a thread pool; every batch returns one
    result per source in registration order, and a failing source never
    affects its siblings. The manager has no interactive behaviour and
    reads no files: enabled state and protected paths are passed in.
    """

    def __init__(
        self,
        sources: Optional[Iterable[CacheSource]] = None,
        enabled: Optional[dict[str, bool]] = None,
        protected_paths: Iterable[str] = (),
        cache: Optional[TTLCache] = None,
        max_workers: int = MAX_WORKERS,
    ):
        self.cache = cache if cache is not None else TTLCache()
        self.enabled = dict(enabled or {})
        self.protected_paths = list(protected_paths)
        self.max_workers = max_workers
        self._sources: dict[str, CacheSource] = {}
        for source in sources or []:
            self.register(source)

    # =========================================================================
    # Registry
    # =========================================================================

    def register(self, source: CacheSource) -> None:
        """Register a source instance."""
        if source.name in self._sources:
            log.warning("Cache source '%s' already registered, skipping duplicate", source.name)
            return
        self._sources[source.name] = source
        log.debug("Registered cache source: %s (%s)", source.name, source.type.value)

    def get(self, name: str) -> Optional[CacheSource]:
        return self._sources.get(name)

    def get_all(self) -> list[CacheSource]:
        return list(self._sources.values())

    def get_by_type(self, cache_type: CacheType) -> list[CacheSource]:
        return [s for s in self._sources.values() if s.type == cache_type]

    def is_enabled(self, name: str) -> bool:
        return self.enabled.get(name, True)

    def get_enabled(self) -> list[CacheSource]:
        """Sources not switched off in the enabled map."""
        return [s for s in self._sources.values() if self.is_enabled(s.name)]

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, name: str) -> bool:
        return name in self._sources

    def reset_cache(self) -> None:
        """Drop memoized availability and sizes so the next scan hits the disk."""
        self.cache.clear_all()

    # =========================================================================
    # Scanning
    # =========================================================================

    def _scan_source(self, source: CacheSource, tracker: Optional[ParallelProgressTracker]) -> CacheInfo:
        if tracker:
            tracker.start_scanner(source.name)
        return source.get_cache_info()

    def get_all_cache_info(
        self,
        show_progress: bool = False,
        console: Optional[Console] = None,
    ) -> list[CacheInfo]:
        """
        Scan every enabled source concurrently.

        Args:
            show_progress: Draw a live per-source status display
            console: Console for the progress display

        Returns:
            One CacheInfo per enabled source, in registration order. A
            source that raised is reported with ``error`` set and
            ``is_installed=False``.
        """
        sources = self.get_enabled()
        if not sources:
            return []

        tracker = None
        if show_progress:
            tracker = ParallelProgressTracker([s.name for s in sources], console=console)
            tracker.start()

        results: dict[str, CacheInfo] = {}
        try:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(sources))) as executor:
                futures: dict[Future, CacheSource] = {
                    executor.submit(self._scan_source, source, tracker): source for source in sources
                }
                for future in as_completed(futures):
                    source = futures[future]
                    try:
                        info = future.result()
                    except Exception as e:
                        log.exception("Cache source '%s' failed during scan", source.name)
                        info = CacheInfo(
                            name=source.name,
                            type=source.type,
                            description=source.description,
                            is_installed=False,
                            error=str(e) or type(e).__name__,
                        )
                        if tracker:
                            tracker.fail(source.name, info.error)
                    else:
                        if tracker:
                            tracker.complete(source.name, info.size_bytes)
                    results[source.name] = info
        finally:
            if tracker:
                tracker.stop()

        log.debug("Scan finished, cache entries: %s", self.cache.stats())
        return [results[s.name] for s in sources]

    def get_cache_sizes_by_type(self, infos: Optional[list[CacheInfo]] = None) -> dict[CacheType, int]:
        """Total bytes per cache type (scans when no infos are given)."""
        if infos is None:
            infos = self.get_all_cache_info()
        sizes: dict[CacheType, int] = {}
        for info in infos:
            if info.error is None:
                sizes[info.type] = sizes.get(info.type, 0) + info.size_bytes
        return sizes

    def get_summary(self, infos: Optional[list[CacheInfo]] = None) -> CacheSummary:
        """Totals across enabled sources (scans when no infos are given)."""
        if infos is None:
            infos = self.get_all_cache_info()
        return CacheSummary(
            total_size=sum(i.size_bytes for i in infos if i.error is None),
            total_sources=len(self._sources),
            installed_sources=sum(1 for i in infos if i.is_installed),
            enabled_sources=len(self.get_enabled()),
            error_count=sum(1 for i in infos if i.error is not None),
            sizes_by_type=self.get_cache_sizes_by_type(infos),
        )

    # =========================================================================
    # Clearing
    # =========================================================================

    def resolve_sources(self, options: CleanOptions) -> list[CacheSource]:
        """
        Sources a clear with these options touches, in registration order.

        A non-empty ``include`` list wins over everything else; otherwise
        the enabled sources matching ``types`` minus ``exclude``.
        """
        if options.include:
            unknown = [name for name in options.include if name not in self._sources]
            if unknown:
                log.warning("Unknown cache sources ignored: %s", ", ".join(unknown))
            return [s for s in self._sources.values() if s.name in options.include]

        sources = self.get_enabled()
        if options.types:
            sources = [s for s in sources if s.type in options.types]
        if options.exclude:
            sources = [s for s in sources if s.name not in options.exclude]
        return sources

    def _clear_source(self, source: CacheSource, options: CleanOptions) -> ClearResult:
        protected = self.protected_paths + [p for p in options.protected_paths if p not in self.protected_paths]
        category_ids = options.sub_caches_to_clear.get(source.name)

        if category_ids:
            if not source.supports(SourceCapability.CATEGORY_CLEAR):
                return ClearResult(
                    name=source.name,
                    success=False,
                    error=f"{source.name} does not support clearing by category",
                    dry_run=options.dry_run,
                )
            return source.clear_by_category(category_ids, dry_run=options.dry_run, protected_paths=protected)

        return source.clear(dry_run=options.dry_run, criteria=options.criteria, protected_paths=protected)

    def clean_all_caches(self, options: Optional[CleanOptions] = None) -> list[ClearResult]:
        """
        Clear every selected source concurrently.

        Returns:
            Exactly one ClearResult per selected source, in registration
            order. Exceptions become failed results.
        """
        options = options or CleanOptions()
        sources = self.resolve_sources(options)
        if not sources:
            return []

        mode = "dry run" if options.dry_run else "clear"
        log.debug("Starting %s of %s", mode, ", ".join(s.name for s in sources))

        results: dict[str, ClearResult] = {}
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(sources))) as executor:
            futures: dict[Future, CacheSource] = {
                executor.submit(self._clear_source, source, options): source for source in sources
            }
            for future in as_completed(futures):
                source = futures[future]
                try:
                    result = future.result()
                except UnsafeDeletionError as e:
                    log.error("Aborted %s of '%s': %s", mode, source.name, e)
                    result = ClearResult(name=source.name, success=False, error=str(e), dry_run=options.dry_run)
                except Exception as e:
                    log.exception("Cache source '%s' failed during %s", source.name, mode)
                    result = ClearResult(
                        name=source.name,
                        success=False,
                        error=str(e) or type(e).__name__,
                        dry_run=options.dry_run,
                    )
                results[source.name] = result

        return [results[s.name] for s in sources]

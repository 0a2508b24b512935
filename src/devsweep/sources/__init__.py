"""Built-in cache sources."""

from pathlib import Path
from typing import Iterable

from devsweep.cleaner import DeletionGuard
from devsweep.sources.base import (
    CacheSource,
    CategorySpec,
    PathCacheSource,
    SourceCapability,
)
from devsweep.sources.browsers import ChromeSource, FirefoxSource
from devsweep.sources.build_tools import GoSource, GradleSource, MavenSource
from devsweep.sources.ides import JetBrainsSource, VSCodeSource
from devsweep.sources.package_managers import CargoSource, NpmSource, PipSource, PnpmSource, YarnSource
from devsweep.sources.projects import ProjectCacheSource
from devsweep.ttl_cache import TTLCache

BUILTIN_SOURCES: tuple[type[PathCacheSource], ...] = (
    NpmSource,
    YarnSource,
    PnpmSource,
    PipSource,
    CargoSource,
    GradleSource,
    MavenSource,
    GoSource,
    JetBrainsSource,
    VSCodeSource,
    ChromeSource,
    FirefoxSource,
)


def default_sources(
    cache: TTLCache | None = None,
    guard: DeletionGuard | None = None,
    search_roots: Iterable[str | Path] | None = None,
) -> list[CacheSource]:
    """
    Instantiate every built-in source in registration order.

    All sources share one TTL cache and one deletion guard.
    """
    cache = cache if cache is not None else TTLCache()
    guard = guard if guard is not None else DeletionGuard()
    sources: list[CacheSource] = [source_cls(cache, guard) for source_cls in BUILTIN_SOURCES]
    sources.append(ProjectCacheSource(cache, guard, search_roots=search_roots))
    return sources


__all__ = [
    "BUILTIN_SOURCES",
    "CacheSource",
    "CategorySpec",
    "PathCacheSource",
    "ProjectCacheSource",
    "SourceCapability",
    "default_sources",
]

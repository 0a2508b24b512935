"""Build caches that live inside individual projects."""

from pathlib import Path
from typing import Iterable

from devsweep.cleaner import DeletionGuard
from devsweep.models import CacheInfo, CacheType
from devsweep.recursive_scanner import DEFAULT_MAX_DEPTH, find_project_caches
from devsweep.sources.base import CategorySpec, PathCacheSource
from devsweep.ttl_cache import TTLCache

PROJECT_CACHE_PATTERNS = (
    "node_modules/.cache",
    ".next/cache",
    ".turbo",
    ".nx/cache",
    ".parcel-cache",
)


class ProjectCacheSource(PathCacheSource):
    """
    Framework build caches found below a set of search roots.

    Searches the home directory unless other roots are given. Each cache
    directory becomes its own project-specific category whose
    id is "<project>/<pattern>", e.g. "web/.next/cache".
    """

    name = "project-caches"
    type = CacheType.BUILD_TOOL
    description = "Framework build caches inside projects (Next.js, Turborepo, Nx, Parcel, loaders)"

    def __init__(
        self,
        cache: TTLCache | None = None,
        guard: DeletionGuard | None = None,
        search_roots: Iterable[str | Path] | None = None,
        patterns: Iterable[str] = PROJECT_CACHE_PATTERNS,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        super().__init__(cache, guard)
        self.search_roots = [str(r) for r in search_roots] if search_roots else [str(Path.home())]
        self.patterns = tuple(patterns)
        self.max_depth = max_depth
        self._discovered: list[CategorySpec] | None = None

    def get_cache_info(self) -> CacheInfo:
        # One directory walk per scan, shared by path listing and categories
        self._discovered = self._discover()
        try:
            return super().get_cache_info()
        finally:
            self._discovered = None

    def category_specs(self) -> list[CategorySpec]:
        if self._discovered is not None:
            return self._discovered
        return self._discover()

    def _discover(self) -> list[CategorySpec]:
        specs = []
        seen: set[str] = set()
        for pattern, path in find_project_caches(self.search_roots, self.patterns, self.max_depth):
            project = path
            for _ in pattern.strip("/").split("/"):
                project = project.parent

            base_id = f"{project.name}/{pattern}"
            category_id = base_id
            suffix = 2
            while category_id in seen:
                category_id = f"{base_id}-{suffix}"
                suffix += 1
            seen.add(category_id)

            specs.append(
                CategorySpec(
                    id=category_id,
                    name=f"{pattern} in {project.name}",
                    description=f"Build cache of {project}",
                    paths=[str(path)],
                    is_project_specific=True,
                    project_path=str(project),
                )
            )
        return specs

"""Build tool caches: Gradle, Maven and Go."""

import logging
import os
import shutil
import subprocess
from typing import Iterable

from devsweep.cleaner import filter_protected_paths
from devsweep.models import CacheCategory, CacheInfo, CacheType, ClearResult, Priority
from devsweep.sources.base import CategorySpec, PathCacheSource, user_cache_dir

log = logging.getLogger(__name__)

# go clean flag per category
GO_CLEAN_FLAGS = {"build": "-cache", "modules": "-modcache"}
GO_CLEAN_TIMEOUT = 300  # seconds


class GradleSource(PathCacheSource):
    name = "gradle"
    type = CacheType.BUILD_TOOL
    description = "Gradle dependency caches, wrapper distributions and daemon logs"
    command = "gradle"
    estimate_only_paths = ("caches",)

    def category_specs(self) -> list[CategorySpec]:
        root = os.environ.get("GRADLE_USER_HOME", "~/.gradle")
        return [
            CategorySpec(
                id="caches",
                name="Dependency caches",
                description="Downloaded dependencies and transformed artifacts",
                paths=[os.path.join(root, "caches")],
            ),
            CategorySpec(
                id="wrapper",
                name="Wrapper distributions",
                description="Gradle versions downloaded by gradlew",
                paths=[os.path.join(root, "wrapper", "dists")],
            ),
            CategorySpec(
                id="daemon",
                name="Daemon logs",
                description="Logs and registry files of Gradle daemons",
                paths=[os.path.join(root, "daemon")],
                priority=Priority.LOW,
            ),
        ]


class MavenSource(PathCacheSource):
    name = "maven"
    type = CacheType.BUILD_TOOL
    description = "Maven local repository and wrapper distributions"
    command = "mvn"
    estimate_only_paths = ("repository",)

    def category_specs(self) -> list[CategorySpec]:
        return [
            CategorySpec(
                id="repository",
                name="Local repository",
                description="Artifacts downloaded into ~/.m2/repository",
                paths=["~/.m2/repository"],
            ),
            CategorySpec(
                id="wrapper",
                name="Wrapper distributions",
                description="Maven versions downloaded by mvnw",
                paths=["~/.m2/wrapper"],
            ),
        ]


class GoSource(PathCacheSource):
    name = "go"
    type = CacheType.BUILD_TOOL
    description = "Go build cache and module download cache"
    command = "go"

    def category_specs(self) -> list[CategorySpec]:
        gopath = os.environ.get("GOPATH", "~/go").split(os.pathsep)[0]
        build_cache = os.environ.get("GOCACHE") or str(user_cache_dir() / "go-build")
        module_cache = os.environ.get("GOMODCACHE") or os.path.join(gopath, "pkg", "mod")
        return [
            CategorySpec(
                id="build",
                name="Build cache",
                description="Compiled packages and test results",
                paths=[build_cache],
            ),
            CategorySpec(
                id="modules",
                name="Module cache",
                description="Downloaded module sources",
                paths=[module_cache],
            ),
        ]

    def _clear_selection(
        self,
        info: CacheInfo,
        paths: Iterable[str],
        categories: Iterable[CacheCategory],
        dry_run: bool,
        protected_paths: list[str] | None,
    ) -> ClearResult:
        """
        Let the go tool empty its own caches first, then remove what is left.

        A category is only handed to go when none of its paths is protected.
        """
        paths = list(paths)
        categories = list(categories)
        if not dry_run:
            allowed = set(filter_protected_paths(dict.fromkeys(paths), protected_paths))
            for category in categories:
                flag = GO_CLEAN_FLAGS.get(category.id)
                if flag is None or not category.paths or not all(p in allowed for p in category.paths):
                    continue
                for path in category.paths:
                    self.guard.check(path)
                self._go_clean(flag)
        return super()._clear_selection(info, paths, categories, dry_run, protected_paths)

    def _go_clean(self, flag: str) -> None:
        go = shutil.which("go")
        if go is None:
            log.debug("go not on PATH, removing %s cache directly", flag)
            return

        command = [go, "clean", flag]
        try:
            result = subprocess.run(command, capture_output=True, text=True, timeout=GO_CLEAN_TIMEOUT)
        except subprocess.TimeoutExpired:
            log.warning("'go clean %s' timed out after %ds", flag, GO_CLEAN_TIMEOUT)
            return
        except OSError as e:
            log.warning("Could not run 'go clean %s': %s", flag, e)
            return

        if result.returncode != 0:
            log.debug("'go clean %s' failed: %s", flag, result.stderr.strip() or "no output")
        else:
            log.debug("'go clean %s' finished", flag)

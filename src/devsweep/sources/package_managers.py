"""Package manager caches: npm, yarn, pnpm, pip and cargo."""

import os
import sys

from devsweep.models import CacheType, Priority
from devsweep.sources.base import CategorySpec, PathCacheSource, user_cache_dir


class NpmSource(PathCacheSource):
    name = "npm"
    type = CacheType.PACKAGE_MANAGER
    description = "npm package cache, logs and npx installs"
    command = "npm"
    estimate_only_paths = ("_cacache",)

    def _npm_root(self) -> str:
        if sys.platform == "win32":
            return os.path.join(os.environ.get("APPDATA", "~/AppData/Roaming"), "npm-cache")
        return os.environ.get("npm_config_cache", "~/.npm")

    def category_specs(self) -> list[CategorySpec]:
        root = self._npm_root()
        return [
            CategorySpec(
                id="packages",
                name="Package cache",
                description="Downloaded package tarballs (content-addressable)",
                paths=[os.path.join(root, "_cacache")],
            ),
            CategorySpec(
                id="logs",
                name="Debug logs",
                description="npm debug and error logs",
                paths=[os.path.join(root, "_logs")],
                priority=Priority.LOW,
            ),
            CategorySpec(
                id="npx",
                name="npx cache",
                description="Packages installed on the fly by npx",
                paths=[os.path.join(root, "_npx")],
            ),
        ]


class YarnSource(PathCacheSource):
    name = "yarn"
    type = CacheType.PACKAGE_MANAGER
    description = "Yarn offline mirror and global cache"
    command = "yarn"

    def cache_paths(self) -> list[str]:
        folder = "Yarn" if sys.platform == "darwin" else "yarn"
        return [
            "~/.yarn/cache",
            "~/.yarn/berry/cache",
            str(user_cache_dir() / folder),
        ]


class PnpmSource(PathCacheSource):
    name = "pnpm"
    type = CacheType.PACKAGE_MANAGER
    description = "pnpm content-addressable store"
    command = "pnpm"
    estimate_only_paths = ("store",)

    def cache_paths(self) -> list[str]:
        return [
            "~/.pnpm-store",
            "~/.local/share/pnpm/store",
            "~/Library/pnpm/store",
            str(user_cache_dir() / "pnpm"),
        ]


class PipSource(PathCacheSource):
    name = "pip"
    type = CacheType.PACKAGE_MANAGER
    description = "pip HTTP and wheel caches"
    command = "pip"

    def _pip_root(self) -> str:
        if "PIP_CACHE_DIR" in os.environ:
            return os.environ["PIP_CACHE_DIR"]
        folder = "pip/cache" if sys.platform == "win32" else "pip"
        return str(user_cache_dir() / folder)

    def category_specs(self) -> list[CategorySpec]:
        root = self._pip_root()
        return [
            CategorySpec(
                id="http",
                name="HTTP cache",
                description="Cached index pages and downloads",
                paths=[os.path.join(root, "http"), os.path.join(root, "http-v2")],
            ),
            CategorySpec(
                id="wheels",
                name="Built wheels",
                description="Wheels built locally from source distributions",
                paths=[os.path.join(root, "wheels")],
            ),
        ]


class CargoSource(PathCacheSource):
    name = "cargo"
    type = CacheType.PACKAGE_MANAGER
    description = "Cargo registry and git checkouts"
    command = "cargo"

    def category_specs(self) -> list[CategorySpec]:
        root = os.environ.get("CARGO_HOME", "~/.cargo")
        return [
            CategorySpec(
                id="registry",
                name="Registry cache",
                description="Downloaded crates and the registry index",
                paths=[os.path.join(root, "registry")],
            ),
            CategorySpec(
                id="git",
                name="Git checkouts",
                description="Git dependencies cloned by cargo",
                paths=[os.path.join(root, "git")],
            ),
        ]

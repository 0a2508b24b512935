"""IDE caches: JetBrains products and VS Code."""

import logging
import sys
from pathlib import Path

from devsweep.models import CacheType, Priority
from devsweep.sources.base import CategorySpec, PathCacheSource, user_cache_dir, user_config_dir

log = logging.getLogger(__name__)


class JetBrainsSource(PathCacheSource):
    """One category per installed product version (e.g. IntelliJIdea2024.1)."""

    name = "jetbrains"
    type = CacheType.IDE
    description = "JetBrains IDE caches and indexes"

    def _roots(self) -> list[Path]:
        roots = [user_cache_dir() / "JetBrains"]
        if sys.platform == "darwin":
            roots.append(Path.home() / "Library" / "Logs" / "JetBrains")
        return roots

    def category_specs(self) -> list[CategorySpec]:
        products: dict[str, list[str]] = {}
        for root in self._roots():
            try:
                entries = sorted(p for p in root.iterdir() if p.is_dir() and not p.is_symlink())
            except OSError:
                continue
            for entry in entries:
                products.setdefault(entry.name, []).append(str(entry))

        return [
            CategorySpec(
                id=product,
                name=product,
                description=f"Caches, indexes and logs of {product}",
                paths=paths,
            )
            for product, paths in products.items()
        ]


class VSCodeSource(PathCacheSource):
    name = "vscode"
    type = CacheType.IDE
    description = "VS Code caches, cached extensions and logs"
    command = "code"

    def category_specs(self) -> list[CategorySpec]:
        base = user_config_dir() / "Code"
        return [
            CategorySpec(
                id="cache",
                name="Application cache",
                description="Chromium HTTP, code and GPU caches",
                paths=[str(base / d) for d in ("Cache", "CachedData", "Code Cache", "GPUCache")],
            ),
            CategorySpec(
                id="extensions",
                name="Cached extensions",
                description="Extension metadata and downloaded VSIX files",
                paths=[str(base / "CachedExtensions"), str(base / "CachedExtensionVSIXs")],
            ),
            CategorySpec(
                id="logs",
                name="Logs",
                description="Application and extension host logs",
                paths=[str(base / "logs")],
                priority=Priority.LOW,
            ),
            CategorySpec(
                id="crash-dumps",
                name="Crash dumps",
                description="Crash reports and minidumps",
                paths=[str(base / "CrashDumps"), str(base / "Crashpad")],
                priority=Priority.LOW,
            ),
        ]

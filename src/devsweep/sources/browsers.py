"""Browser caches: Chrome (and Chromium) and Firefox."""

import os
import sys
from pathlib import Path

from devsweep.models import CacheType
from devsweep.sources.base import CategorySpec, PathCacheSource, user_cache_dir, user_config_dir


class ChromeSource(PathCacheSource):
    name = "chrome"
    type = CacheType.BROWSER
    description = "Chrome and Chromium HTTP, code and GPU caches"

    def _profile_roots(self) -> list[tuple[Path, Path]]:
        """(cache root, data root) pairs for each installed variant."""
        if sys.platform == "darwin":
            return [
                (
                    Path.home() / "Library" / "Caches" / "Google" / "Chrome",
                    Path.home() / "Library" / "Application Support" / "Google" / "Chrome",
                )
            ]
        if sys.platform == "win32":
            data = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
            root = data / "Google" / "Chrome" / "User Data"
            return [(root, root)]
        return [(user_cache_dir() / v, user_config_dir() / v) for v in ("google-chrome", "chromium")]

    def category_specs(self) -> list[CategorySpec]:
        http, code, gpu, workers = [], [], [], []
        for cache_root, data_root in self._profile_roots():
            for root in dict.fromkeys((cache_root, data_root)):
                http.append(str(root / "Default" / "Cache"))
                code.append(str(root / "Default" / "Code Cache"))
            gpu.append(str(data_root / "Default" / "GPUCache"))
            gpu.extend(str(data_root / d) for d in ("ShaderCache", "GrShaderCache"))
            workers.append(str(data_root / "Default" / "Service Worker" / "CacheStorage"))

        return [
            CategorySpec(id="http", name="HTTP cache", description="Cached web content", paths=http),
            CategorySpec(id="code", name="Code cache", description="Compiled JavaScript", paths=code),
            CategorySpec(id="gpu", name="GPU caches", description="Compiled shaders", paths=gpu),
            CategorySpec(
                id="service-workers",
                name="Service worker caches",
                description="Offline storage of installed web apps",
                paths=workers,
            ),
        ]


class FirefoxSource(PathCacheSource):
    """One category per Firefox profile."""

    name = "firefox"
    type = CacheType.BROWSER
    description = "Firefox profile caches"
    command = "firefox"

    def _profiles_dir(self) -> Path:
        if sys.platform == "darwin":
            return Path.home() / "Library" / "Caches" / "Firefox" / "Profiles"
        if sys.platform == "win32":
            data = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
            return data / "Mozilla" / "Firefox" / "Profiles"
        return user_cache_dir() / "mozilla" / "firefox"

    def category_specs(self) -> list[CategorySpec]:
        try:
            profiles = sorted(p for p in self._profiles_dir().iterdir() if p.is_dir() and not p.is_symlink())
        except OSError:
            return []

        return [
            CategorySpec(
                id=profile.name,
                name=f"Profile {profile.name}",
                description="Network and startup caches",
                paths=[str(profile / "cache2"), str(profile / "startupCache")],
            )
            for profile in profiles
        ]

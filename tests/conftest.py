"""Shared fixtures and fake cache sources."""

from pathlib import Path

import pytest

from devsweep.cleaner import DeletionGuard
from devsweep.models import CacheInfo, CacheType, ClearResult
from devsweep.sources.base import CacheSource, CategorySpec, PathCacheSource
from devsweep.ttl_cache import TTLCache

MB = 1024 * 1024


def make_file(path: Path, size: int) -> Path:
    """Create a file of the given apparent size (sparse where supported)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.truncate(size)
    return path


class FakeSource(CacheSource):
    """Source with canned results; raises ``error`` from every operation when set."""

    def __init__(
        self,
        name: str,
        size: int = 0,
        cache_type: CacheType = CacheType.PACKAGE_MANAGER,
        error: Exception | None = None,
    ):
        super().__init__()
        self.name = name
        self.type = cache_type
        self.size = size
        self.error = error
        self.clear_calls: list[dict] = []

    def _check_available(self) -> bool:
        return self.error is None

    def get_cache_info(self) -> CacheInfo:
        if self.error:
            raise self.error
        return CacheInfo(
            name=self.name,
            type=self.type,
            paths=[f"/fake/{self.name}"] if self.size else [],
            is_installed=True,
            size_bytes=self.size,
        )

    def clear(self, dry_run=False, criteria=None, cache_info=None, protected_paths=None) -> ClearResult:
        self.clear_calls.append({"dry_run": dry_run, "criteria": criteria, "protected_paths": protected_paths})
        if self.error:
            raise self.error
        return ClearResult(
            name=self.name,
            success=True,
            size_before=self.size,
            size_after=self.size if dry_run else 0,
            cleared_paths=[f"/fake/{self.name}"] if self.size else [],
            dry_run=dry_run,
        )


class DirSource(PathCacheSource):
    """Path source over directories created by a test."""

    name = "dirs"
    type = CacheType.BUILD_TOOL
    description = "Test directories"

    def __init__(self, paths=None, specs=None, guard=None, name=None):
        super().__init__(TTLCache(), guard or DeletionGuard())
        self._paths = [str(p) for p in (paths or [])]
        self._specs = specs or []
        if name:
            self.name = name

    def cache_paths(self) -> list[str]:
        if self._paths:
            return self._paths
        return super().cache_paths()

    def category_specs(self) -> list[CategorySpec]:
        return self._specs


@pytest.fixture
def category_source(tmp_path):
    """Source with a 10 MB "logs" category and a 200 MB "artifacts" category."""
    logs = tmp_path / "cache" / "logs"
    artifacts = tmp_path / "cache" / "artifacts"
    make_file(logs / "debug.log", 10 * MB)
    make_file(artifacts / "bundle.bin", 200 * MB)
    specs = [
        CategorySpec(id="logs", name="Logs", paths=[str(logs)]),
        CategorySpec(id="artifacts", name="Artifacts", paths=[str(artifacts)]),
    ]
    return DirSource(specs=specs), logs, artifacts


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a temporary location."""
    path = tmp_path / "config" / "config.json"
    monkeypatch.setenv("DEVSWEEP_CONFIG", str(path))
    return path

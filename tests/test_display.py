"""Tests for display functions."""

from unittest.mock import patch

import pytest
from rich.console import Console

from devsweep import display
from devsweep.config import Config
from devsweep.display import (
    format_size,
    show_cache_table,
    show_categories,
    show_clear_results,
    show_config,
    show_recommendations,
    show_sizes_by_type,
    show_source_list,
)
from devsweep.models import CacheCategory, CacheInfo, CacheType, ClearResult, Recommendation, Urgency


@pytest.fixture
def recorded():
    """Swap the module console for a recording one."""
    console = Console(record=True, width=120, force_terminal=False)
    with patch.object(display, "console", console):
        yield console


class TestFormatSize:
    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0 B"),
            (512, "512 B"),
            (1023, "1023 B"),
            (1024, "1.0 KB"),
            (1536, "1.5 KB"),
            (1024**2, "1.0 MB"),
            (int(2.5 * 1024**3), "2.5 GB"),
            (3 * 1024**4, "3.0 TB"),
            (5000 * 1024**4, "5000.0 TB"),
        ],
    )
    def test_format(self, size, expected):
        assert format_size(size) == expected

    def test_negative_is_zero(self):
        assert format_size(-5) == "0 B"

    def test_labels_ordered_by_magnitude(self):
        units = ["B", "KB", "MB", "GB", "TB"]
        labels = [format_size(1024**i).split()[1] for i in range(5)]
        assert labels == units


class TestTables:
    def test_cache_table(self, recorded):
        infos = [
            CacheInfo(name="npm", type=CacheType.PACKAGE_MANAGER, paths=["/x"], is_installed=True, size_bytes=2048),
            CacheInfo(name="docker", type=CacheType.SYSTEM, error="boom"),
            CacheInfo(name="absent", type=CacheType.IDE),
        ]
        show_cache_table(infos)
        text = recorded.export_text()
        assert "npm" in text
        assert "2.0 KB" in text
        assert "error" in text
        assert "absent" not in text
        assert "Total: 2.0 KB" in text

    def test_cache_table_with_categories(self, recorded):
        info = CacheInfo(
            name="npm",
            type=CacheType.PACKAGE_MANAGER,
            paths=["/x"],
            is_installed=True,
            size_bytes=100,
            categories=[CacheCategory(id="logs", name="Logs", size_bytes=40)],
        )
        show_cache_table([info], show_categories=True)
        assert "logs" in recorded.export_text()

    def test_estimated_size_marked(self, recorded):
        info = CacheInfo(name="m2", type=CacheType.BUILD_TOOL, paths=["/x"], size_bytes=1024, size_estimated=True)
        show_cache_table([info])
        assert "~1.0 KB" in recorded.export_text()

    def test_sizes_by_type(self, recorded):
        show_sizes_by_type({CacheType.BROWSER: 1024, CacheType.IDE: 2048})
        text = recorded.export_text()
        assert text.index("ide") < text.index("browser")

    def test_source_list(self, recorded):
        show_source_list([("npm", CacheType.PACKAGE_MANAGER, True, False)])
        text = recorded.export_text()
        assert "npm" in text
        assert "package-manager" in text

    def test_categories(self, recorded):
        info = CacheInfo(
            name="npm",
            type=CacheType.PACKAGE_MANAGER,
            size_bytes=100,
            categories=[CacheCategory(id="logs", name="Debug logs", size_bytes=100, age_in_days=12)],
        )
        show_categories(info)
        text = recorded.export_text()
        assert "Debug logs" in text
        assert "12d" in text

    def test_no_categories(self, recorded):
        show_categories(CacheInfo(name="npm", type=CacheType.PACKAGE_MANAGER))
        assert "No categories" in recorded.export_text()


class TestClearResults:
    def test_dry_run_results(self, recorded):
        show_clear_results([ClearResult(name="npm", size_before=2048, size_after=2048, dry_run=True)])
        text = recorded.export_text()
        assert "DRY RUN" in text
        assert "2.0 KB would free" in text

    def test_mixed_results(self, recorded):
        show_clear_results([
            ClearResult(name="npm", size_before=1024, size_after=0, cleared_categories=["logs"]),
            ClearResult(name="yarn", success=False, error="denied"),
        ])
        text = recorded.export_text()
        assert "1.0 KB freed" in text
        assert "logs" in text
        assert "denied" in text
        assert "1 source(s) failed" in text


class TestRecommendations:
    def test_review_hint_in_safe_mode(self, recorded):
        show_recommendations([
            Recommendation(
                name="npm", type=CacheType.PACKAGE_MANAGER, size_bytes=1024**3,
                urgency=Urgency.HIGH, reason="Large cache (1024.0 MB)", safe=True,
            ),
            Recommendation(
                name="chrome", type=CacheType.BROWSER, size_bytes=60 * 1024**2,
                urgency=Urgency.MEDIUM, reason="Moderate size (60.0 MB)", safe=False,
            ),
        ])
        text = recorded.export_text()
        assert "1.0 GB" in text
        assert "review" in text
        assert "--aggressive" in text

    def test_aggressive_cleans_everything(self, recorded):
        show_recommendations(
            [Recommendation(name="chrome", type=CacheType.BROWSER, urgency=Urgency.LOW, reason="x", safe=False)],
            aggressive=True,
        )
        text = recorded.export_text()
        assert "clean" in text
        assert "review" not in text


class TestConfig:
    def test_show_config(self, recorded):
        config = Config(tools={"chrome": False}, protected_paths=["~/keep"])
        show_config(config, "/tmp/config.json")
        text = recorded.export_text()
        assert "/tmp/config.json" in text
        assert "chrome" in text
        assert "~/keep" in text

    def test_show_config_policy(self, recorded):
        config = Config(project_roots=["~/code"], policies={"auto_clean_older_than": 30})
        show_config(config, "/tmp/config.json")
        text = recorded.export_text()
        assert "~/code" in text
        assert "30 days" in text

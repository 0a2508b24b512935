"""Tests for recursive project cache discovery."""

from devsweep.recursive_scanner import find_matching_directories, find_project_caches


class TestFindMatchingDirectories:
    def test_finds_matching_directory(self, tmp_path):
        node_modules = tmp_path / "project" / "node_modules"
        node_modules.mkdir(parents=True)

        results = list(find_matching_directories(tmp_path, "node_modules"))
        assert results == [node_modules]

    def test_finds_in_multiple_projects(self, tmp_path):
        for project in ["project1", "project2", "project3"]:
            (tmp_path / project / ".turbo").mkdir(parents=True)

        results = list(find_matching_directories(tmp_path, ".turbo"))
        assert len(results) == 3

    def test_skips_inside_match(self, tmp_path):
        outer = tmp_path / "project" / "node_modules"
        (outer / "some-package" / "node_modules").mkdir(parents=True)

        results = list(find_matching_directories(tmp_path, "node_modules"))
        assert results == [outer]

    def test_skips_hidden_and_vcs_directories(self, tmp_path):
        (tmp_path / ".git" / "x" / ".turbo").mkdir(parents=True)
        (tmp_path / ".hidden" / ".turbo").mkdir(parents=True)

        assert list(find_matching_directories(tmp_path, ".turbo")) == []

    def test_respects_max_depth(self, tmp_path):
        deep = tmp_path / "a" / "b" / "c" / ".turbo"
        deep.mkdir(parents=True)

        assert list(find_matching_directories(tmp_path, ".turbo", max_depth=2)) == []
        assert list(find_matching_directories(tmp_path, ".turbo", max_depth=4)) == [deep]

    def test_does_not_follow_symlinks(self, tmp_path):
        real = tmp_path / "real"
        (real / ".turbo").mkdir(parents=True)
        (tmp_path / "link").symlink_to(real)

        results = list(find_matching_directories(tmp_path, ".turbo"))
        assert results == [real / ".turbo"]

    def test_missing_root(self, tmp_path):
        assert list(find_matching_directories(tmp_path / "missing", ".turbo")) == []


class TestFindProjectCaches:
    def test_two_segment_patterns(self, tmp_path):
        (tmp_path / "app" / ".next" / "cache").mkdir(parents=True)
        (tmp_path / "other" / ".next").mkdir(parents=True)

        found = find_project_caches([tmp_path], [".next/cache"])
        assert found == [(".next/cache", tmp_path / "app" / ".next" / "cache")]

    def test_deduplicates_overlapping_roots(self, tmp_path):
        (tmp_path / "app" / ".parcel-cache").mkdir(parents=True)

        found = find_project_caches([tmp_path, tmp_path / "app"], [".parcel-cache"])
        assert len(found) == 1

    def test_skips_missing_roots(self, tmp_path):
        assert find_project_caches([tmp_path / "missing"], [".turbo"]) == []

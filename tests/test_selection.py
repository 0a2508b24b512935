"""Tests for selection criteria parsing and filtering."""

import pytest

from devsweep.models import CacheCategory, Priority, SelectionCriteria, UseCase
from devsweep.selection import (
    build_criteria,
    category_matches,
    filter_categories,
    parse_age,
    parse_name_list,
    parse_size,
    parse_sub_caches,
)

MB = 1024 * 1024


def category(**kwargs) -> CacheCategory:
    defaults = {"id": "c", "name": "C", "size_bytes": 10 * MB, "age_in_days": 10}
    defaults.update(kwargs)
    return CacheCategory(**defaults)


class TestParseAge:
    @pytest.mark.parametrize(
        "value,expected",
        [("7d", 7), ("2w", 14), ("1m", 30), ("1y", 365), ("10", 10), (" 3D ", 3)],
    )
    def test_valid(self, value, expected):
        assert parse_age(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "7x", "-1d", "1.5d"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_age(value)


class TestParseSize:
    @pytest.mark.parametrize(
        "value,expected",
        [("512", 512), ("1KB", 1024), ("100MB", 100 * MB), ("1.5GB", int(1.5 * 1024**3)), ("2tb", 2 * 1024**4)],
    )
    def test_valid(self, value, expected):
        assert parse_size(value) == expected

    @pytest.mark.parametrize("value", ["", "MB", "10XB", "ten MB"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_size(value)


class TestParseNameList:
    def test_comma_separated(self):
        assert parse_name_list("npm, yarn,,pip ") == ["npm", "yarn", "pip"]

    def test_repeated_values(self):
        assert parse_name_list(["npm,yarn", "pip"]) == ["npm", "yarn", "pip"]

    def test_none(self):
        assert parse_name_list(None) == []


class TestParseSubCaches:
    def test_pairs(self):
        assert parse_sub_caches("npm:logs,cargo:git,npm:npx") == {"npm": ["logs", "npx"], "cargo": ["git"]}

    def test_duplicates_collapsed(self):
        assert parse_sub_caches("npm:logs,npm:logs") == {"npm": ["logs"]}

    @pytest.mark.parametrize("value", ["npm", "npm:", ":logs"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_sub_caches(value)


class TestBuildCriteria:
    def test_empty_returns_none(self):
        assert build_criteria() is None

    def test_all_fields(self):
        criteria = build_criteria(
            older_than="2w",
            larger_than="100MB",
            use_case="testing,archived",
            priority="low",
            categories="logs",
        )
        assert criteria.older_than_days == 14
        assert criteria.larger_than_mb == 100
        assert criteria.use_cases == [UseCase.TESTING, UseCase.ARCHIVED]
        assert criteria.priorities == [Priority.LOW]
        assert criteria.categories == ["logs"]

    def test_invalid_use_case(self):
        with pytest.raises(ValueError):
            build_criteria(use_case="everything")

    def test_is_empty(self):
        assert SelectionCriteria().is_empty
        assert not SelectionCriteria(project_specific=False).is_empty


class TestCategoryMatches:
    def test_no_criteria_matches(self):
        assert category_matches(category(), None)
        assert category_matches(category(), SelectionCriteria())

    def test_older_than(self):
        criteria = SelectionCriteria(older_than_days=30)
        assert not category_matches(category(age_in_days=10), criteria)
        assert category_matches(category(age_in_days=45), criteria)

    def test_newer_than(self):
        criteria = SelectionCriteria(newer_than_days=7)
        assert category_matches(category(age_in_days=3), criteria)
        assert not category_matches(category(age_in_days=10), criteria)

    def test_unknown_age_never_excludes(self):
        criteria = SelectionCriteria(older_than_days=30, newer_than_days=1)
        assert category_matches(category(age_in_days=None), criteria)

    def test_size_bounds(self):
        assert category_matches(category(size_bytes=200 * MB), SelectionCriteria(larger_than_mb=100))
        assert not category_matches(category(size_bytes=50 * MB), SelectionCriteria(larger_than_mb=100))
        assert category_matches(category(size_bytes=50 * MB), SelectionCriteria(smaller_than_mb=100))
        assert not category_matches(category(size_bytes=200 * MB), SelectionCriteria(smaller_than_mb=100))

    def test_use_case_and_priority(self):
        item = category(use_case=UseCase.TESTING, priority=Priority.LOW)
        assert category_matches(item, SelectionCriteria(use_cases=[UseCase.TESTING]))
        assert not category_matches(item, SelectionCriteria(use_cases=[UseCase.PRODUCTION]))
        assert category_matches(item, SelectionCriteria(priorities=[Priority.LOW, Priority.NORMAL]))
        assert not category_matches(item, SelectionCriteria(priorities=[Priority.CRITICAL]))

    def test_project_specific(self):
        item = category(is_project_specific=True)
        assert category_matches(item, SelectionCriteria(project_specific=True))
        assert not category_matches(item, SelectionCriteria(project_specific=False))

    def test_explicit_ids(self):
        assert category_matches(category(id="logs"), SelectionCriteria(categories=["logs"]))
        assert not category_matches(category(id="packages"), SelectionCriteria(categories=["logs"]))

    def test_filter_categories(self):
        items = [category(id="a", age_in_days=1), category(id="b", age_in_days=100)]
        result = filter_categories(items, SelectionCriteria(older_than_days=30))
        assert [c.id for c in result] == ["b"]

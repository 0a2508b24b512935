"""Selection criteria parsing and category filtering."""

import re
from typing import Iterable

from devsweep.models import CacheCategory, Priority, SelectionCriteria, UseCase

_AGE_UNITS = {"d": 1, "w": 7, "m": 30, "y": 365}
_SIZE_UNITS = {"b": 1, "kb": 1024, "mb": 1024**2, "gb": 1024**3, "tb": 1024**4}

_AGE_RE = re.compile(r"^\s*(\d+)\s*([dwmy]?)\s*$", re.IGNORECASE)
_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([kmgt]?b)?\s*$", re.IGNORECASE)


def parse_age(value: str) -> int:
    """
    Parse an age such as "7d", "2w", "1m" or "1y" into days.

    A bare number is taken as days.

    Raises:
        ValueError: If the value is not a valid age
    """
    match = _AGE_RE.match(value)
    if not match:
        raise ValueError(f"Invalid age: {value!r} (expected e.g. 7d, 2w, 1m, 1y)")
    amount, unit = match.groups()
    return int(amount) * _AGE_UNITS[(unit or "d").lower()]


def parse_size(value: str) -> int:
    """
    Parse a size such as "100MB" or "1.5GB" into bytes (base 1024).

    A bare number is taken as bytes.

    Raises:
        ValueError: If the value is not a valid size
    """
    match = _SIZE_RE.match(value)
    if not match:
        raise ValueError(f"Invalid size: {value!r} (expected e.g. 500KB, 100MB, 1GB)")
    amount, unit = match.groups()
    return int(float(amount) * _SIZE_UNITS[(unit or "b").lower()])


def parse_name_list(value: str | Iterable[str] | None) -> list[str]:
    """Split comma separated names, accepting repeated options too."""
    if value is None:
        return []
    parts = [value] if isinstance(value, str) else list(value)
    names = []
    for part in parts:
        names.extend(n.strip() for n in part.split(",") if n.strip())
    return names


def parse_sub_caches(value: str | Iterable[str] | None) -> dict[str, list[str]]:
    """
    Parse "source:category" pairs into a mapping.

    Example:
        "npm:logs,cargo:git" -> {"npm": ["logs"], "cargo": ["git"]}

    Raises:
        ValueError: If a pair is missing its source or category
    """
    result: dict[str, list[str]] = {}
    for pair in parse_name_list(value):
        source, _, category = pair.partition(":")
        if not source or not category:
            raise ValueError(f"Invalid sub-cache {pair!r} (expected source:category)")
        result.setdefault(source, [])
        if category not in result[source]:
            result[source].append(category)
    return result


def build_criteria(
    older_than: str | None = None,
    newer_than: str | None = None,
    larger_than: str | None = None,
    smaller_than: str | None = None,
    use_case: str | Iterable[str] | None = None,
    priority: str | Iterable[str] | None = None,
    categories: str | Iterable[str] | None = None,
    project_specific: bool | None = None,
) -> SelectionCriteria | None:
    """
    Build selection criteria from user supplied strings.

    Returns:
        SelectionCriteria, or None when nothing was requested

    Raises:
        ValueError: On malformed ages, sizes, use cases or priorities
    """
    criteria = SelectionCriteria(
        older_than_days=parse_age(older_than) if older_than else None,
        newer_than_days=parse_age(newer_than) if newer_than else None,
        larger_than_mb=parse_size(larger_than) / 1024**2 if larger_than else None,
        smaller_than_mb=parse_size(smaller_than) / 1024**2 if smaller_than else None,
        use_cases=[UseCase(u) for u in parse_name_list(use_case)],
        priorities=[Priority(p) for p in parse_name_list(priority)],
        project_specific=project_specific,
        categories=parse_name_list(categories),
    )
    return None if criteria.is_empty else criteria


def category_matches(category: CacheCategory, criteria: SelectionCriteria | None) -> bool:
    """
    Check one category against the criteria.

    Age bounds are skipped when the category has no known age.
    """
    if criteria is None:
        return True

    if category.age_in_days is not None:
        if criteria.older_than_days is not None and category.age_in_days < criteria.older_than_days:
            return False
        if criteria.newer_than_days is not None and category.age_in_days > criteria.newer_than_days:
            return False

    if criteria.larger_than_mb is not None and category.size_bytes < criteria.larger_than_mb * 1024**2:
        return False
    if criteria.smaller_than_mb is not None and category.size_bytes > criteria.smaller_than_mb * 1024**2:
        return False

    if criteria.use_cases and category.use_case not in criteria.use_cases:
        return False
    if criteria.priorities and category.priority not in criteria.priorities:
        return False
    if criteria.project_specific is not None and category.is_project_specific != criteria.project_specific:
        return False
    if criteria.categories and category.id not in criteria.categories:
        return False

    return True


def filter_categories(
    categories: Iterable[CacheCategory],
    criteria: SelectionCriteria | None,
) -> list[CacheCategory]:
    """Keep the categories selected by the criteria."""
    return [c for c in categories if category_matches(c, criteria)]

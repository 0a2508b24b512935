"""Recommendations for unattended cleaning."""

import logging
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field

from devsweep.config import CachePolicyConfig
from devsweep.manager import CleanOptions
from devsweep.models import CacheInfo, CacheType, Recommendation, Urgency

log = logging.getLogger(__name__)

MB = 1024 * 1024

# Size above which a cache is always worth a look
LARGE_CACHE_BYTES = 100 * MB
MODERATE_CACHE_BYTES = 50 * MB

# IDE caches that only hold regenerable indexes and logs
SAFE_IDE_CACHES = frozenset({"xcode", "vscode", "cursor", "windsurf", "zed"})


class AutoMode(str, Enum):
    """How eager unattended cleaning is."""

    SAFE = "safe"
    AGGRESSIVE = "aggressive"


URGENCY_ORDER = {Urgency.HIGH: 0, Urgency.MEDIUM: 1, Urgency.LOW: 2}


class Thresholds(BaseModel):
    """Minimum size and age cutoff used by one mode."""

    model_config = ConfigDict(frozen=True)

    min_size_bytes: int
    max_age_days: int


THRESHOLDS = {
    AutoMode.SAFE: Thresholds(min_size_bytes=20 * MB, max_age_days=7),
    AutoMode.AGGRESSIVE: Thresholds(min_size_bytes=5 * MB, max_age_days=3),
}


class AutoCleanPlan(BaseModel):
    """Recommendations plus the clear that acts on them."""

    recommendations: list[Recommendation] = Field(default_factory=list)
    options: CleanOptions = Field(default_factory=CleanOptions)

    @property
    def selected(self) -> list[str]:
        return list(self.options.include)

    @property
    def selected_bytes(self) -> int:
        return sum(r.size_bytes for r in self.recommendations if r.name in self.options.include)


def is_safe_to_auto_clean(name: str, cache_type: CacheType) -> bool:
    """
    Whether a cache can be cleaned without the user reviewing it.

    Package manager and build tool caches are re-downloaded or rebuilt on
    demand. Browser caches may hold data the user cares about and always
    need review, as do IDE caches other than the known index-only ones.
    """
    if cache_type in (CacheType.PACKAGE_MANAGER, CacheType.BUILD_TOOL):
        return True
    if cache_type == CacheType.BROWSER:
        return False
    if cache_type == CacheType.IDE:
        return name in SAFE_IDE_CACHES
    return False


def _age_days(info: CacheInfo, now: datetime) -> Optional[int]:
    if info.last_modified is None:
        return None
    return max((now - info.last_modified).days, 0)


def _format_mb(size_bytes: int) -> str:
    return f"{size_bytes / MB:.1f} MB"


def recommend(
    infos: Iterable[CacheInfo],
    mode: AutoMode = AutoMode.SAFE,
    now: Optional[datetime] = None,
) -> list[Recommendation]:
    """
    Rank scanned caches by how much cleaning them is worth.

    Large caches are high urgency, as are caches untouched for longer than
    the mode's age cutoff that are above its minimum size. Moderately
    sized caches are medium urgency. Anything else above the minimum size
    is recommended at low urgency only when it is safe to auto-clean.

    Args:
        infos: Scan results; errored, missing and empty caches are ignored
        mode: Picks the size and age thresholds
        now: Reference time for ages (defaults to now)

    Returns:
        Recommendations, most urgent first and largest first within an urgency
    """
    now = now or datetime.now()
    thresholds = THRESHOLDS[mode]
    recommendations = []

    for info in infos:
        if info.error is not None or not info.is_installed or info.size_bytes <= 0:
            continue

        safe = is_safe_to_auto_clean(info.name, info.type)
        age = _age_days(info, now)
        size = info.size_bytes
        above_minimum = size > thresholds.min_size_bytes

        if size > LARGE_CACHE_BYTES:
            urgency, reason = Urgency.HIGH, f"Large cache ({_format_mb(size)})"
        elif age is not None and age > thresholds.max_age_days and above_minimum:
            urgency, reason = Urgency.HIGH, f"Old cache ({age} days)"
        elif size > MODERATE_CACHE_BYTES:
            urgency, reason = Urgency.MEDIUM, f"Moderate size ({_format_mb(size)})"
        elif above_minimum and safe:
            urgency, reason = Urgency.LOW, f"Safe cache ({_format_mb(size)})"
        else:
            continue

        recommendations.append(
            Recommendation(name=info.name, type=info.type, size_bytes=size, urgency=urgency, reason=reason, safe=safe)
        )

    recommendations.sort(key=lambda r: (URGENCY_ORDER[r.urgency], -r.size_bytes))
    log.debug("%d cache(s) recommended in %s mode", len(recommendations), mode.value)
    return recommendations


def plan_auto_clean(
    infos: Iterable[CacheInfo],
    mode: AutoMode = AutoMode.SAFE,
    policy: Optional[CachePolicyConfig] = None,
    dry_run: bool = False,
    now: Optional[datetime] = None,
) -> AutoCleanPlan:
    """
    Turn scan results into a clear.

    Aggressive mode clears every recommended cache; safe mode only those
    that are safe to auto-clean. The cache policy narrows which categories
    inside each selected cache are touched. An empty selection leaves
    ``include`` empty, which clean_all_caches reads as "everything", so
    callers check ``selected`` first.
    """
    recommendations = recommend(infos, mode, now)
    if mode == AutoMode.AGGRESSIVE:
        selected = [r.name for r in recommendations]
    else:
        selected = [r.name for r in recommendations if r.safe]

    policy = policy or CachePolicyConfig()
    options = CleanOptions(dry_run=dry_run, include=selected, criteria=policy.to_criteria())
    return AutoCleanPlan(recommendations=recommendations, options=options)

"""Data models for devsweep."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CacheType(str, Enum):
    """Kind of tool a cache source belongs to."""

    PACKAGE_MANAGER = "package-manager"
    BUILD_TOOL = "build-tool"
    BROWSER = "browser"
    IDE = "ide"
    SYSTEM = "system"
    OTHER = "other"


class Priority(str, Enum):
    """How valuable a cache category is to keep around."""

    CRITICAL = "critical"  # Used within the last day
    IMPORTANT = "important"  # Used within the last week
    NORMAL = "normal"
    LOW = "low"  # Untouched for a month or more


class UseCase(str, Enum):
    """What a cache category is used for."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"
    EXPERIMENTAL = "experimental"
    ARCHIVED = "archived"


class Urgency(str, Enum):
    """How strongly a cache is recommended for cleaning."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ScanStatus(str, Enum):
    """Lifecycle of a single scanner in the progress tracker."""

    PENDING = "pending"
    SCANNING = "scanning"
    COMPLETE = "complete"
    ERROR = "error"


class CacheCategory(BaseModel):
    """A named, independently sized subdivision of a source's cache."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Category identifier, unique within its source")
    name: str = Field(..., description="Human-readable name")
    description: str = Field("", description="What this category holds")
    paths: list[str] = Field(default_factory=list, description="Paths owned by the category")
    size_bytes: int = Field(0, ge=0, description="Total size in bytes")
    last_modified: Optional[datetime] = Field(None, description="Newest mtime of the paths")
    last_accessed: Optional[datetime] = Field(None, description="Newest atime of the paths")
    age_in_days: Optional[int] = Field(None, description="Days since last modification")
    priority: Priority = Field(Priority.NORMAL, description="Keep priority")
    use_case: UseCase = Field(UseCase.DEVELOPMENT, description="Use case tag")
    is_project_specific: bool = Field(False, description="Whether the cache belongs to one project")
    project_path: Optional[str] = Field(None, description="Project root for project caches")


class CacheInfo(BaseModel):
    """Snapshot of one cache source, produced fresh on every scan."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Source name")
    type: CacheType = Field(..., description="Source type")
    description: str = Field("", description="What the source caches")
    paths: list[str] = Field(default_factory=list, description="Existing cache paths")
    is_installed: bool = Field(False, description="Whether the tool or its cache is present")
    size_bytes: int = Field(0, ge=0, description="Aggregate size in bytes")
    size_estimated: bool = Field(False, description="Whether any path size was estimated")
    last_modified: Optional[datetime] = Field(None, description="Newest mtime across paths")
    categories: Optional[list[CacheCategory]] = Field(None, description="Category breakdown")
    path_sizes: dict[str, int] = Field(default_factory=dict, description="Bytes per path")
    error: Optional[str] = Field(None, description="Error message if the scan failed")

    @model_validator(mode="after")
    def _categories_within_total(self) -> "CacheInfo":
        if self.categories:
            category_total = sum(c.size_bytes for c in self.categories)
            if category_total > self.size_bytes:
                raise ValueError(
                    f"categories of '{self.name}' total {category_total} bytes, "
                    f"more than the source total of {self.size_bytes}"
                )
        return self

    @property
    def size_mb(self) -> float:
        """Size in mebibytes."""
        return self.size_bytes / (1024**2)

    def get_category(self, category_id: str) -> CacheCategory | None:
        """Return the category with the given id, if present."""
        for category in self.categories or []:
            if category.id == category_id:
                return category
        return None


class SelectionCriteria(BaseModel):
    """Filter that narrows which categories of a source are eligible for clearing."""

    model_config = ConfigDict(frozen=True)

    older_than_days: Optional[int] = Field(None, ge=0)
    newer_than_days: Optional[int] = Field(None, ge=0)
    larger_than_mb: Optional[float] = Field(None, ge=0)
    smaller_than_mb: Optional[float] = Field(None, ge=0)
    use_cases: list[UseCase] = Field(default_factory=list)
    priorities: list[Priority] = Field(default_factory=list)
    project_specific: Optional[bool] = None
    categories: list[str] = Field(default_factory=list, description="Explicit category ids")

    @property
    def is_empty(self) -> bool:
        """True when the criteria select everything."""
        return (
            self.older_than_days is None
            and self.newer_than_days is None
            and self.larger_than_mb is None
            and self.smaller_than_mb is None
            and not self.use_cases
            and not self.priorities
            and self.project_specific is None
            and not self.categories
        )


class ClearResult(BaseModel):
    """Outcome of clearing one source."""

    name: str = Field(..., description="Source name")
    success: bool = Field(True, description="Whether the clear succeeded")
    size_before: int = Field(0, ge=0, description="Bytes held by eligible paths before")
    size_after: int = Field(0, ge=0, description="Bytes still held afterwards")
    error: Optional[str] = Field(None, description="Error message if failed")
    cleared_paths: list[str] = Field(default_factory=list, description="Paths removed (or to remove)")
    cleared_categories: list[str] = Field(default_factory=list, description="Category ids affected")
    dry_run: bool = Field(False, description="Whether this was a dry run")

    @property
    def freed_bytes(self) -> int:
        """Bytes reclaimed, or that would be reclaimed in a dry run."""
        if self.dry_run:
            return self.size_before
        return max(self.size_before - self.size_after, 0)


class Recommendation(BaseModel):
    """A cache suggested for unattended cleaning and why."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: CacheType
    size_bytes: int = Field(0, ge=0)
    urgency: Urgency
    reason: str
    safe: bool = Field(..., description="Can be cleaned without review")


class ScannerState(BaseModel):
    """Transient state of one scanner inside a progress session."""

    name: str
    status: ScanStatus = ScanStatus.PENDING
    size_bytes: Optional[int] = None
    error: Optional[str] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def is_finished(self) -> bool:
        """Whether the scanner reached a terminal state."""
        return self.status in (ScanStatus.COMPLETE, ScanStatus.ERROR)


class ProgressSummary(BaseModel):
    """Aggregate counts for a progress session."""

    total: int
    complete: int
    errors: int
    total_size: int
    duration: float


class CacheSummary(BaseModel):
    """Totals across every enabled cache source."""

    total_size: int = 0
    total_sources: int = 0
    installed_sources: int = 0
    enabled_sources: int = 0
    error_count: int = 0
    sizes_by_type: dict[CacheType, int] = Field(default_factory=dict)

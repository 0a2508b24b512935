"""User configuration stored as JSON in ~/.devsweep/config.json."""

import json
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field, ValidationError

from devsweep.errors import ConfigError
from devsweep.models import CacheType, Priority, SelectionCriteria
from devsweep.scanner import expand_path

log = logging.getLogger(__name__)

CONFIG_ENV = "DEVSWEEP_CONFIG"
DEFAULT_CONFIG_DIR = "~/.devsweep"


class SafetyConfig(BaseModel):
    require_confirmation: bool = Field(True, description="Ask before deleting anything")
    dry_run_default: bool = Field(False, description="Treat every clean as a dry run")


class CachePolicyConfig(BaseModel):
    """Limits applied to unattended cleaning."""

    auto_clean_older_than: Optional[int] = Field(None, ge=0, description="Only clean categories older than N days")
    preserve_recently_used: Optional[int] = Field(None, ge=0, description="Keep categories used within N days")
    preserve_project_specific: bool = Field(False, description="Keep caches that belong to one project")
    preserve_critical_priority: bool = Field(True, description="Keep categories used within the last day")

    def to_criteria(self) -> Optional[SelectionCriteria]:
        """Category filter equivalent to the policy, or None when it keeps nothing back."""
        ages = [d for d in (self.auto_clean_older_than, self.preserve_recently_used) if d is not None]
        criteria = SelectionCriteria(
            older_than_days=max(ages) if ages else None,
            priorities=[p for p in Priority if p != Priority.CRITICAL] if self.preserve_critical_priority else [],
            project_specific=False if self.preserve_project_specific else None,
        )
        return None if criteria.is_empty else criteria


class OutputConfig(BaseModel):
    verbose: bool = False
    use_colors: bool = True
    show_categories: bool = Field(False, description="Show category breakdowns in size tables")


class Config(BaseModel):
    """Effective devsweep configuration."""

    tools: dict[str, bool] = Field(default_factory=dict, description="Per-source enable switches")
    enabled_types: dict[CacheType, bool] = Field(default_factory=dict, description="Per-type enable switches")
    protected_paths: list[str] = Field(default_factory=list, description="Paths and globs never cleared")
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    policies: CachePolicyConfig = Field(default_factory=CachePolicyConfig)
    project_roots: list[str] = Field(
        default_factory=list, description="Directories searched for project caches (default: home)"
    )

    def is_tool_enabled(self, name: str, cache_type: CacheType) -> bool:
        """
        Check whether a source is enabled.

        An explicit per-tool switch wins; otherwise the type switch applies.
        Anything not mentioned is enabled.
        """
        if name in self.tools:
            return self.tools[name]
        return self.enabled_types.get(cache_type, True)

    def enabled_map(self, sources: Iterable) -> dict[str, bool]:
        """Enabled flag for each source (anything with .name and .type)."""
        return {s.name: self.is_tool_enabled(s.name, s.type) for s in sources}


def config_file() -> Path:
    """Location of the config file (DEVSWEEP_CONFIG overrides)."""
    override = os.environ.get(CONFIG_ENV)
    if override:
        return expand_path(override)
    return expand_path(DEFAULT_CONFIG_DIR) / "config.json"


def parse_config(data: dict) -> Config:
    """
    Validate raw config data.

    Raises:
        ConfigError: If the data does not describe a valid config
    """
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(path: Path | None = None) -> Config:
    """
    Load configuration from disk.

    Missing, unreadable or invalid files fall back to the defaults.
    """
    path = path or config_file()
    if not path.exists():
        return Config()

    try:
        with open(path) as f:
            return parse_config(json.load(f))
    except (json.JSONDecodeError, OSError, ConfigError) as e:
        log.warning("Ignoring config file %s: %s", path, e)
        return Config()


def save_config(config: Config, path: Path | None = None) -> bool:
    """Save configuration to disk."""
    path = path or config_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(config.model_dump_json(indent=2))
        return True
    except OSError as e:
        log.error("Could not save config to %s: %s", path, e)
        return False


# =============================================================================
# Protected paths
# =============================================================================


def _is_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in "*?[")


def add_protected_path(path: str, config_path: Path | None = None) -> dict:
    """
    Add a path or glob to the protection list.

    Plain paths are stored expanded and must exist; globs are stored as
    given.

    Returns:
        Dict with success status and the current protected paths
    """
    config = load_config(config_path)
    entry = path if _is_glob(path) else str(expand_path(path).absolute())

    if not _is_glob(path) and not Path(entry).exists():
        return {"success": False, "error": f"Path does not exist: {path}"}

    if entry not in config.protected_paths:
        config.protected_paths.append(entry)

    if save_config(config, config_path):
        return {"success": True, "protected_paths": config.protected_paths}
    return {"success": False, "error": "Failed to save config"}


def remove_protected_path(path: str, config_path: Path | None = None) -> dict:
    """
    Remove a path or glob from the protection list.

    Returns:
        Dict with success status and the current protected paths
    """
    config = load_config(config_path)
    candidates = {path, str(expand_path(path).absolute())}
    remaining = [p for p in config.protected_paths if p not in candidates]

    if len(remaining) == len(config.protected_paths):
        return {"success": False, "error": f"Not protected: {path}"}

    config.protected_paths = remaining
    if save_config(config, config_path):
        return {"success": True, "protected_paths": config.protected_paths}
    return {"success": False, "error": "Failed to save config"}

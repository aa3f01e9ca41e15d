"""
Pydantic data models for the project config reconciler.

Defines settings, change sets and change events with validation rules.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


# Enumerations

class EventKind(str, Enum):
    """Kind of change dispatched for a config path."""
    ADD = "add"
    UPDATE = "update"
    REMOVE = "remove"


class ChangeCategory(str, Enum):
    """Change set category, in processing order."""
    REMOVED = "removed"
    CHANGED = "changed"
    ADDED = "added"


# Settings

class ProjectConfigSettings(BaseModel):
    """Runtime settings for a project config instance."""

    config_dir: Path = Field(..., description="Directory holding project.yaml and its imports")
    root_filename: str = Field("project.yaml", description="Root config document name")
    state_dir: Optional[Path] = Field(None, description="Where the stored snapshot and caches live")
    use_config_file: bool = Field(True, description="Back the desired tree with YAML files")
    strict_imports: bool = Field(False, description="Fail on imports escaping config_dir instead of skipping")
    cache_duration: int = Field(2592000, ge=1, description="Modified-times cache TTL in seconds")
    watch_debounce_ms: int = Field(500, ge=0, description="File watcher debounce delay")

    @field_validator('root_filename')
    @classmethod
    def validate_root_filename(cls, v: str) -> str:
        """Root filename must be a bare file name."""
        if not v.strip() or "/" in v or os.sep in v:
            raise ValueError(f"Root filename must be a plain file name: {v!r}")
        return v.strip()

    @field_validator('config_dir')
    @classmethod
    def validate_config_dir(cls, v: Path) -> Path:
        """Store the config directory as an absolute path."""
        return v.expanduser().absolute()

    @property
    def root_file(self) -> Path:
        return self.config_dir / self.root_filename

    @property
    def resolved_state_dir(self) -> Path:
        """State directory, defaulting to ``<config_dir>/.project-config``."""
        if self.state_dir is not None:
            return self.state_dir.expanduser().absolute()
        return self.config_dir / ".project-config"

    @classmethod
    def from_env(cls, config_dir: Optional[Path] = None, **overrides: Any) -> "ProjectConfigSettings":
        """
        Build settings from ``PROJECT_CONFIG_*`` environment variables.

        Explicit arguments take precedence over the environment.
        """
        values: Dict[str, Any] = {
            "config_dir": config_dir or Path(os.environ.get("PROJECT_CONFIG_DIR", Path.cwd() / "config")),
        }

        state_dir = os.environ.get("PROJECT_CONFIG_STATE_DIR")
        if state_dir:
            values["state_dir"] = Path(state_dir)

        use_file = os.environ.get("PROJECT_CONFIG_USE_FILE")
        if use_file is not None:
            values["use_config_file"] = _env_flag(use_file)

        strict = os.environ.get("PROJECT_CONFIG_STRICT_IMPORTS")
        if strict is not None:
            values["strict_imports"] = _env_flag(strict)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# Change tracking

class ChangeSet(BaseModel):
    """Pending changes, as immediate-parent paths sorted deepest first."""

    added: List[str] = Field(default_factory=list)
    changed: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.changed or self.removed)

    def by_category(self) -> Iterator[Tuple[ChangeCategory, List[str]]]:
        """Yield categories in processing order: removed, changed, added."""
        yield ChangeCategory.REMOVED, self.removed
        yield ChangeCategory.CHANGED, self.changed
        yield ChangeCategory.ADDED, self.added


class ConfigEvent(BaseModel):
    """
    Payload handed to change handlers.

    Handlers may replace ``new_value``; the replacement is what gets written
    into the stored snapshot.
    """

    kind: EventKind
    path: str
    old_value: Any = None
    new_value: Any = None
    token_matches: List[str] = Field(default_factory=list)
    data: Any = None

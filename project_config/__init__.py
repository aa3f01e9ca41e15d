"""
Project Config

Keeps a stored config snapshot in step with YAML config files and notifies
subsystems of every added, updated and removed config item.
"""

from .events import EventRegistry
from .models import ChangeSet, ConfigEvent, EventKind, ProjectConfigSettings
from .service import ProjectConfig

__version__ = "1.0.0"

__all__ = [
    "ChangeSet",
    "ConfigEvent",
    "EventKind",
    "EventRegistry",
    "ProjectConfig",
    "ProjectConfigSettings",
]

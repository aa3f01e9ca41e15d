"""
Pytest configuration and fixtures for project config tests.
"""

import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Tuple

import pytest
import yaml

from project_config.config.modification_cache import MemoryTTLCache
from project_config.models import ConfigEvent, ProjectConfigSettings
from project_config.service import ProjectConfig
from project_config.storage import MemoryRecordStore


@pytest.fixture
def temp_config_dir() -> Generator[Path, None, None]:
    """Create temporary configuration directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_dir = Path(tmpdir) / "config"
        config_dir.mkdir()
        yield config_dir


@pytest.fixture
def write_yaml(temp_config_dir) -> Callable[[str, Dict[str, Any]], Path]:
    """Write a YAML document relative to the config directory."""
    def _write(name: str, data: Dict[str, Any]) -> Path:
        path = temp_config_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(data, sort_keys=False))
        return path

    return _write


@pytest.fixture
def memory_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def memory_cache() -> MemoryTTLCache:
    return MemoryTTLCache()


@pytest.fixture
def make_service(temp_config_dir, memory_store, memory_cache) -> Callable[..., ProjectConfig]:
    """Factory for a ProjectConfig backed by in-memory store and cache."""
    def _make(**overrides: Any) -> ProjectConfig:
        settings_kwargs = {"config_dir": temp_config_dir}
        settings_kwargs.update({k: v for k, v in overrides.items() if k in ProjectConfigSettings.model_fields})
        service_kwargs = {k: v for k, v in overrides.items() if k not in ProjectConfigSettings.model_fields}

        return ProjectConfig(
            ProjectConfigSettings(**settings_kwargs),
            store=service_kwargs.pop("store", memory_store),
            cache=service_kwargs.pop("cache", memory_cache),
            clock=service_kwargs.pop("clock", lambda: 1700000000),
            **service_kwargs
        )

    return _make


class EventRecorder:
    """Collects every event a handler receives."""

    def __init__(self):
        self.calls: List[Tuple[str, str, Any, Any, List[str], Any]] = []

    def __call__(self, event: ConfigEvent) -> None:
        self.calls.append((
            event.kind.value,
            event.path,
            event.old_value,
            event.new_value,
            list(event.token_matches),
            event.data
        ))

    @property
    def paths(self) -> List[str]:
        return [call[1] for call in self.calls]


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()

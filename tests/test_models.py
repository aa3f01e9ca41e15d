"""
Settings and change model tests.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from project_config.models import ChangeCategory, ChangeSet, ProjectConfigSettings


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("PROJECT_CONFIG_DIR", "PROJECT_CONFIG_STATE_DIR", "PROJECT_CONFIG_USE_FILE",
                 "PROJECT_CONFIG_STRICT_IMPORTS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestProjectConfigSettings:
    """Settings validation."""

    def test_defaults(self, temp_config_dir):
        settings = ProjectConfigSettings(config_dir=temp_config_dir)

        assert settings.root_file == temp_config_dir / "project.yaml"
        assert settings.resolved_state_dir == temp_config_dir / ".project-config"
        assert settings.use_config_file
        assert not settings.strict_imports
        assert settings.cache_duration == 2592000

    def test_relative_config_dir_made_absolute(self):
        settings = ProjectConfigSettings(config_dir=Path("config"))

        assert settings.config_dir.is_absolute()
        assert settings.config_dir.name == "config"

    @pytest.mark.parametrize("name", ["", "  ", "sub/project.yaml"])
    def test_invalid_root_filename(self, temp_config_dir, name):
        with pytest.raises(ValidationError):
            ProjectConfigSettings(config_dir=temp_config_dir, root_filename=name)

    def test_invalid_cache_duration(self, temp_config_dir):
        with pytest.raises(ValidationError):
            ProjectConfigSettings(config_dir=temp_config_dir, cache_duration=0)

    def test_explicit_state_dir(self, temp_config_dir):
        settings = ProjectConfigSettings(config_dir=temp_config_dir, state_dir=temp_config_dir.parent / "state")

        assert settings.resolved_state_dir == temp_config_dir.parent / "state"


class TestFromEnv:
    """Environment-driven settings."""

    def test_reads_environment(self, clean_env, temp_config_dir):
        clean_env.setenv("PROJECT_CONFIG_DIR", str(temp_config_dir))
        clean_env.setenv("PROJECT_CONFIG_USE_FILE", "no")
        clean_env.setenv("PROJECT_CONFIG_STRICT_IMPORTS", "1")

        settings = ProjectConfigSettings.from_env()

        assert settings.config_dir == temp_config_dir
        assert not settings.use_config_file
        assert settings.strict_imports

    def test_arguments_override_environment(self, clean_env, temp_config_dir):
        clean_env.setenv("PROJECT_CONFIG_DIR", "/elsewhere")
        clean_env.setenv("PROJECT_CONFIG_STATE_DIR", "/elsewhere/state")

        settings = ProjectConfigSettings.from_env(
            config_dir=temp_config_dir,
            state_dir=temp_config_dir / "state",
            strict_imports=None
        )

        assert settings.config_dir == temp_config_dir
        assert settings.state_dir == temp_config_dir / "state"
        assert not settings.strict_imports


class TestChangeSet:
    """Change set helpers."""

    def test_empty(self):
        assert ChangeSet().is_empty
        assert not ChangeSet(added=["a"]).is_empty

    def test_processing_order(self):
        changes = ChangeSet(added=["a"], changed=["b"], removed=["c"])

        assert list(changes.by_category()) == [
            (ChangeCategory.REMOVED, ["c"]),
            (ChangeCategory.CHANGED, ["b"]),
            (ChangeCategory.ADDED, ["a"]),
        ]

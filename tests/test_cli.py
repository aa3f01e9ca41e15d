"""
CLI tests.

Commands run against a temporary config directory with file-backed state.
"""

import json

import pytest
import yaml

from project_config.cli import ProjectConfigCLI


@pytest.fixture
def run_cli(temp_config_dir, monkeypatch):
    """Run the CLI with the temp config and state directories."""
    for name in ("PROJECT_CONFIG_DIR", "PROJECT_CONFIG_STATE_DIR", "PROJECT_CONFIG_USE_FILE",
                 "PROJECT_CONFIG_STRICT_IMPORTS"):
        monkeypatch.delenv(name, raising=False)

    state_dir = temp_config_dir.parent / "state"

    def _run(*argv):
        return ProjectConfigCLI().run([
            "--config-dir", str(temp_config_dir),
            "--state-dir", str(state_dir),
            *argv
        ])

    return _run


@pytest.fixture
def project(write_yaml):
    return write_yaml("project.yaml", {
        "system": {"name": "Site"},
        "sections": {"news": {"handle": "news"}},
    })


class TestCommands:
    """Command routing and output."""

    def test_no_command_prints_help(self, run_cli):
        assert run_cli() == 1

    def test_status_reports_pending(self, run_cli, project, capsys):
        assert run_cli("status") == 0
        assert run_cli("status", "--exit-code") == 1

        out = capsys.readouterr().out
        assert "Pending config changes" in out
        assert "sections.news" in out

    def test_diff_json(self, run_cli, project, capsys):
        assert run_cli("diff", "--json") == 0

        data = json.loads(capsys.readouterr().out)
        assert set(data["added"]) == {"system", "sections.news"}
        assert data["removed"] == []

    def test_apply_then_up_to_date(self, run_cli, project, temp_config_dir, capsys):
        assert run_cli("apply") == 0
        assert run_cli("status", "--exit-code") == 0

        out = capsys.readouterr().out
        assert "Applied 0 removed, 0 changed, 2 added" in out
        assert "Stored config is up to date" in out

        snapshot = json.loads((temp_config_dir.parent / "state" / "stored-config.json").read_text())
        assert snapshot["sections"] == {"news": {"handle": "news"}}

    def test_get_values(self, run_cli, project, capsys):
        run_cli("apply")
        capsys.readouterr()

        assert run_cli("get", "sections.news.handle") == 0
        assert capsys.readouterr().out.strip() == "news"

        assert run_cli("get", "sections", "--json") == 0
        assert json.loads(capsys.readouterr().out) == {"news": {"handle": "news"}}

        assert run_cli("get", "missing.path") == 1

    def test_get_desired_before_apply(self, run_cli, project, capsys):
        assert run_cli("get", "system.name") == 1
        assert run_cli("get", "system.name", "--desired") == 0
        assert capsys.readouterr().out.strip().endswith("Site")

    def test_set_writes_file(self, run_cli, project, capsys):
        run_cli("apply")

        assert run_cli("set", "sections.news.enabled", "true") == 0

        assert yaml.safe_load(project.read_text())["sections"]["news"] == {"handle": "news", "enabled": True}
        capsys.readouterr()
        run_cli("get", "sections.news.enabled")
        assert capsys.readouterr().out.strip() == "True"

    def test_remove_writes_file(self, run_cli, project):
        run_cli("apply")

        assert run_cli("remove", "sections.news") == 0

        assert "sections" not in yaml.safe_load(project.read_text())

    def test_regenerate(self, run_cli, project):
        run_cli("apply")
        project.unlink()

        assert run_cli("regenerate") == 0
        assert yaml.safe_load(project.read_text())["system"] == {"name": "Site"}

    def test_config_error_reported(self, run_cli, project, temp_config_dir, capsys):
        state_dir = temp_config_dir.parent / "state"
        state_dir.mkdir()
        (state_dir / "stored-config.json").write_text("{broken")

        assert run_cli("get", "system") == 1
        assert "❌" in capsys.readouterr().out

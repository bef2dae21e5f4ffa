"""
Tests for CLI commands — install, recipes, status, history, host, config.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from setupctl.core.models.host import HostFacts
from setupctl.core.persistence.audit import AuditEntry, AuditWriter
from setupctl.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _fixed_host(monkeypatch: pytest.MonkeyPatch, root_host: HostFacts) -> None:
    """Commands see the same Ubuntu host whatever machine runs the tests."""
    monkeypatch.setattr("setupctl.core.use_cases.install.detect_host", lambda: root_host)
    monkeypatch.setattr("setupctl.core.detection.host.detect_host", lambda: root_host)


def _invoke(runner: CliRunner, config_file: Path, *args: str):
    return runner.invoke(cli, ["--config", str(config_file), *args])


class TestCLIGlobal:
    def test_help(self, runner: CliRunner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "install and configure server software" in result.output
        for command in ("install", "recipes", "status", "history", "host", "config"):
            assert command in result.output

    def test_version(self, runner: CliRunner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


# ── Recipes ──────────────────────────────────────────────────────────


class TestRecipesCommands:
    def test_list(self, runner: CliRunner):
        result = runner.invoke(cli, ["recipes", "list"])
        assert result.exit_code == 0
        assert "monitoring" in result.output
        assert "grafana-prometheus" in result.output
        assert "[user]" in result.output  # aws-cli and friends

    def test_list_json_by_category(self, runner: CliRunner):
        result = runner.invoke(cli, ["recipes", "list", "--category", "data", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert [r["id"] for r in data] == ["mysql", "redis"]

    def test_list_empty_category(self, runner: CliRunner):
        result = runner.invoke(cli, ["recipes", "list", "--category", "games"])
        assert result.exit_code == 0
        assert "No recipes in category 'games'" in result.output

    def test_show(self, runner: CliRunner):
        result = runner.invoke(cli, ["recipes", "show", "redis"])
        assert result.exit_code == 0
        assert "install_method" in result.output
        assert "[repo|source]" in result.output

    def test_show_by_legacy_name_json(self, runner: CliRunner):
        result = runner.invoke(cli, ["recipes", "show", "install_aws_cli.sh", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["id"] == "aws-cli"

    def test_show_unknown(self, runner: CliRunner):
        result = runner.invoke(cli, ["recipes", "show", "ngnix"])
        assert result.exit_code == 1
        assert "did you mean: nginx" in result.output

    def test_plan(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "recipes", "plan", "nginx", "--set", "port=8080")
        assert result.exit_code == 0
        assert "Plan for Nginx" in result.output
        assert "port = 8080" in result.output

    def test_plan_json(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "recipes", "plan", "redis", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["recipe"] == "redis"
        assert data["steps"]

    def test_plan_bad_override(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "recipes", "plan", "nginx", "--set", "port")
        assert result.exit_code == 1


# ── Install ──────────────────────────────────────────────────────────


class TestInstallCommand:
    def test_mock_install(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "install", "nginx", "--mock")
        assert result.exit_code == 0, result.output
        assert "[*] Updating package lists..." in result.output
        assert "[+] Nginx installed successfully! [mock]" in result.output
        assert "Nginx Setup Information:" in result.output
        assert not (config_file.parent / "state").exists()

    def test_quiet_hides_progress(self, runner: CliRunner, config_file: Path):
        result = runner.invoke(cli, ["-q", "--config", str(config_file), "install", "git", "--mock"])
        assert result.exit_code == 0, result.output
        assert "[*]" not in result.output
        assert "installed successfully" in result.output

    def test_dry_run(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "install", "nginx", "--dry-run", "--mock")
        assert result.exit_code == 0, result.output
        assert "Dry run of Nginx" in result.output
        assert not (config_file.parent / "state" / "state.json").exists()

    def test_json(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "install", "redis", "--mock", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["recipe"] == "redis"
        assert data["report"]["status"] == "ok"

    def test_bad_set(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "install", "nginx", "--mock", "--set", "=80")
        assert result.exit_code == 1
        assert "[!] Error:" in result.output

    def test_bad_set_json(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "install", "nginx", "--json", "--set", "nope")
        assert result.exit_code == 1
        assert "error" in json.loads(result.stdout)

    def test_unknown_variable(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "install", "nginx", "--mock", "--set", "colour=blue")
        assert result.exit_code == 1
        assert "colour" in result.output

    def test_unknown_recipe(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "install", "install_nothing.sh", "--mock")
        assert result.exit_code == 1
        assert "Unknown recipe" in result.output

    def test_sudo_password_prompt(self, runner: CliRunner, config_file: Path):
        result = runner.invoke(
            cli,
            ["--config", str(config_file), "install", "git", "--mock", "--ask-sudo-password"],
            input="s3cret\n",
        )
        assert result.exit_code == 0, result.output
        assert "s3cret" not in result.output


# ── Status / history ─────────────────────────────────────────────────


class TestStatusCommand:
    def test_nothing_installed(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "status")
        assert result.exit_code == 0
        assert "Nothing installed by setupctl yet." in result.output

    def test_json_empty(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "status", "--json")
        assert result.exit_code == 0
        assert json.loads(result.stdout)["recipes"] == []

    def test_bad_config(self, runner: CliRunner, tmp_path: Path):
        path = tmp_path / "broken.yml"
        path.write_text("firewall: [\n")
        result = runner.invoke(cli, ["--config", str(path), "status"])
        assert result.exit_code == 1


class TestHistoryCommand:
    def test_empty(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "history")
        assert result.exit_code == 0
        assert "No install history" in result.output

    def test_recorded_runs(self, runner: CliRunner, config_file: Path):
        ledger = AuditWriter(state_dir=config_file.parent / "state")
        ledger.write(AuditEntry(operation_id="op-1", recipe="git", status="ok"))
        ledger.write(AuditEntry(operation_id="op-2", recipe="rust", status="failed"))

        result = _invoke(runner, config_file, "history")
        assert result.exit_code == 0
        assert "Last 2 of 2 run(s)" in result.output

        result = _invoke(runner, config_file, "history", "--recipe", "install_git.sh", "--json")
        entries = json.loads(result.stdout)
        assert [e["recipe"] for e in entries] == ["git"]
        assert entries[0]["status"] == "ok"


# ── Host / config ────────────────────────────────────────────────────


class TestHostCommand:
    def test_json(self, runner: CliRunner):
        result = runner.invoke(cli, ["host", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        for key in ("distro", "arch", "is_root", "home", "nproc"):
            assert key in data


class TestConfigCheckCommand:
    def test_valid(self, runner: CliRunner, config_file: Path):
        result = _invoke(runner, config_file, "config", "check")
        assert result.exit_code == 0
        assert "✅ Configuration is valid" in result.output

    def test_defaults_without_file(self, runner: CliRunner):
        result = runner.invoke(cli, ["config", "check", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["valid"] is True
        assert data["config_path"] is None

    def test_invalid(self, runner: CliRunner, tmp_path: Path):
        path = tmp_path / "setupctl.yml"
        path.write_text("recipes:\n  nginx:\n    port: eighty\n")
        result = runner.invoke(cli, ["--config", str(path), "config", "check"])
        assert result.exit_code == 1
        assert "❌ Configuration errors:" in result.output
        assert "recipes.nginx" in result.output

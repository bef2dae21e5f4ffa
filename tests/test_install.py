"""
Tests for the use cases — install, plan, status and config check.

Every install here runs against the mock registry; nothing touches
the host.
"""

import json
import textwrap
from pathlib import Path

import pytest

from setupctl.core.models.settings import Settings
from setupctl.core.observability import logging_config
from setupctl.core.persistence.audit import AuditWriter
from setupctl.core.persistence.state_file import load_state
from setupctl.core.recipes import get_recipe
from setupctl.core.use_cases.config_check import check_config
from setupctl.core.use_cases.install import (
    PRIVILEGE_MESSAGE,
    VariableError,
    build_default_registry,
    install_recipe,
    parse_overrides,
    plan_recipe,
    resolve_variables,
)
from setupctl.core.use_cases.status import get_status


def _write_config(tmp_path: Path, extra: str) -> Path:
    path = tmp_path / "setupctl.yml"
    path.write_text(
        f"state_dir: {tmp_path / 'state'}\nwork_dir: {tmp_path / 'work'}\n" + textwrap.dedent(extra)
    )
    return path


# ── Variables ────────────────────────────────────────────────────────


class TestParseOverrides:
    def test_pairs(self):
        assert parse_overrides(["port=8080", "motd=a=b", "empty="]) == {
            "port": "8080", "motd": "a=b", "empty": "",
        }

    @pytest.mark.parametrize("bad", ["port", "=8080"])
    def test_rejects_malformed(self, bad):
        with pytest.raises(VariableError, match="--set expects key=value"):
            parse_overrides([bad])


class TestResolveVariables:
    def test_host_facts_and_defaults(self, root_host):
        variables = resolve_variables(get_recipe("nginx"), root_host, Settings())
        assert variables["port"] == 80
        assert variables["codename"] == "jammy"
        assert variables["home"] == "/home/alice"

    def test_precedence(self, root_host):
        settings = Settings(recipes={"nginx": {"port": "8081"}})
        recipe = get_recipe("nginx")
        assert resolve_variables(recipe, root_host, settings)["port"] == 8081
        assert resolve_variables(recipe, root_host, settings, {"port": "8082"})["port"] == 8082

    def test_user_vars_only_for_non_root(self, root_host, user_host):
        recipe = get_recipe("aws-cli")
        as_root = resolve_variables(recipe, root_host, Settings())
        as_user = resolve_variables(recipe, user_host, Settings())
        assert as_root["install_dir"] == "/usr/local/aws-cli"
        assert as_user["install_dir"] == "/home/alice/.aws-cli"
        assert as_user["bin_dir"] == "/home/alice/bin"

    def test_cli_beats_user_vars(self, user_host):
        variables = resolve_variables(get_recipe("aws-cli"), user_host, Settings(), {"bin_dir": "/opt/bin"})
        assert variables["bin_dir"] == "/opt/bin"

    def test_defaults_rendered_against_host(self, root_host):
        variables = resolve_variables(get_recipe("terraform"), root_host, Settings())
        assert variables["test_dir"] == "/home/alice/terraform-test"

    def test_unknown_variable(self, root_host):
        with pytest.raises(VariableError, match=r"--set: 'prot' is not a variable of nginx \(declared: port"):
            resolve_variables(get_recipe("nginx"), root_host, Settings(), {"prot": "8080"})

    def test_unknown_variable_in_config(self, root_host):
        settings = Settings(recipes={"nginx": {"prot": 8080}})
        with pytest.raises(VariableError, match="setupctl.yml: 'prot'"):
            resolve_variables(get_recipe("nginx"), root_host, settings)

    def test_bad_choice(self, root_host):
        with pytest.raises(VariableError, match="not one of: repo, source"):
            resolve_variables(get_recipe("redis"), root_host, Settings(), {"install_method": "snap"})

    def test_bad_type(self, root_host):
        with pytest.raises(VariableError, match="expected an integer"):
            resolve_variables(get_recipe("nginx"), root_host, Settings(), {"port": "eighty"})

    def test_extra_vars(self, root_host):
        variables = resolve_variables(
            get_recipe("nginx"), root_host, Settings(), extra={"work_dir": "/tmp/w", "operation_id": "op-1"},
        )
        assert variables["work_dir"] == "/tmp/w"


# ── Install ──────────────────────────────────────────────────────────


class TestInstallRecipe:
    def test_success_renders_usage(self, config_file, root_host, mock_registry, mock_adapter):
        result = install_recipe(
            "nginx", overrides={"port": "8080"}, config_path=config_file,
            mock_mode=True, registry=mock_registry, host=root_host,
        )
        assert result.ok, result.error
        assert result.usage[0] == "1. Access test page: http://localhost:8080 (or your server's IP)"
        assert result.recipe_vars() == {"port": 8080, "default_site": "/etc/nginx/sites-available/default"}
        assert mock_adapter.call_count == result.report.total

    def test_requires_root(self, config_file, user_host, mock_registry, mock_adapter):
        result = install_recipe("nginx", config_path=config_file, registry=mock_registry, host=user_host)
        assert result.error == PRIVILEGE_MESSAGE
        assert mock_adapter.call_count == 0
        assert not (config_file.parent / "state" / "state.json").exists()

    def test_mock_mode_skips_privilege_check(self, config_file, user_host, mock_registry):
        result = install_recipe(
            "nginx", config_path=config_file, mock_mode=True, registry=mock_registry, host=user_host,
        )
        assert result.ok

    def test_any_privilege_runs_as_user(self, config_file, user_host, mock_registry):
        result = install_recipe("aws-cli", config_path=config_file, registry=mock_registry, host=user_host)
        assert result.ok, result.error
        assert result.variables["install_dir"] == "/home/alice/.aws-cli"

    def test_user_recipe_as_root_warns(self, config_file, root_host, mock_registry):
        result = install_recipe("rust", config_path=config_file, registry=mock_registry, host=root_host)
        assert result.ok
        assert any("current user" in w for w in result.warnings)

    def test_other_distro_warns(self, config_file, root_host, mock_registry):
        debian = root_host.model_copy(update={"distro": "debian"})
        result = install_recipe("git", config_path=config_file, registry=mock_registry, host=debian)
        assert result.ok
        assert any("this host is debian" in w for w in result.warnings)

    def test_unknown_recipe(self, config_file, root_host):
        result = install_recipe("ngnix", config_path=config_file, host=root_host)
        assert "Unknown recipe: ngnix" in result.error
        assert result.recipe is None

    def test_bad_override(self, config_file, root_host, mock_registry, mock_adapter):
        result = install_recipe(
            "nginx", overrides={"prot": "1"}, config_path=config_file,
            registry=mock_registry, host=root_host,
        )
        assert "'prot' is not a variable of nginx" in result.error
        assert mock_adapter.call_count == 0

    def test_invalid_config(self, tmp_path, root_host):
        path = tmp_path / "broken.yml"
        path.write_text("firewall: [unclosed\n")
        result = install_recipe("nginx", config_path=path, host=root_host)
        assert "Invalid YAML" in result.error

    def test_failure_aborts_and_reports(self, config_file, root_host, mock_registry, mock_adapter):
        mock_adapter.set_failure("apt_install", "E: Unable to locate package nginx")

        result = install_recipe("nginx", config_path=config_file, registry=mock_registry, host=root_host)

        assert not result.ok
        assert result.error == "Failed to install Nginx: E: Unable to locate package nginx"
        assert result.usage == []
        assert mock_adapter.executed_kinds == ["apt_update", "apt_install"]

        state = load_state(config_file.parent / "state" / "state.json")
        record = state.recipes["nginx"]
        assert record.status == "partial"
        assert record.installed_at is None

    def test_state_and_audit_written(self, config_file, root_host, mock_registry):
        result = install_recipe("redis", config_path=config_file, registry=mock_registry, host=root_host)
        assert result.ok

        state_dir = config_file.parent / "state"
        state = load_state(state_dir / "state.json")
        assert state.hostname == "testhost"
        assert state.recipes["redis"].status == "ok"
        assert state.recipes["redis"].installed_at is not None
        assert state.recipes["redis"].vars["install_method"] == "repo"
        assert state.last_operation.recipe == "redis"
        assert state.last_operation.operation_id == result.report.operation_id

        entries = AuditWriter(state_dir=state_dir).read_all()
        assert len(entries) == 1
        assert entries[0].recipe == "redis"
        assert entries[0].user == "alice"
        assert entries[0].status == "ok"

    def test_second_run_updates_record(self, config_file, root_host, mock_registry):
        install_recipe("git", config_path=config_file, registry=mock_registry, host=root_host)
        install_recipe("git", config_path=config_file, registry=mock_registry, host=root_host)
        state_dir = config_file.parent / "state"
        assert list(load_state(state_dir / "state.json").recipes) == ["git"]
        assert AuditWriter(state_dir=state_dir).entry_count() == 2

    def test_secrets_masked_in_state_and_audit(self, config_file, root_host, mock_registry, mock_adapter):
        result = install_recipe(
            "mysql", overrides={"root_password": "Tr1cky-pass"},
            config_path=config_file, registry=mock_registry, host=root_host,
        )
        assert result.ok
        assert result.variables["root_password"] == "Tr1cky-pass"
        assert result.recipe_vars()["root_password"] == "***"

        state_dir = config_file.parent / "state"
        assert load_state(state_dir / "state.json").recipes["mysql"].vars["root_password"] == "***"
        assert "Tr1cky-pass" not in (state_dir / "audit.ndjson").read_text()
        assert "Tr1cky-pass" in logging_config._masker.secrets

    def test_secrets_masked_when_step_fails(self, config_file, root_host, mock_registry, mock_adapter):
        mock_adapter.set_failure(
            "command",
            "Command failed (exit 1): mysql -e \"ALTER USER 'root'@'localhost' BY 'Tr1cky-pass';\"",
        )
        result = install_recipe(
            "mysql", overrides={"root_password": "Tr1cky-pass"},
            config_path=config_file, registry=mock_registry, host=root_host,
        )
        assert not result.ok
        assert result.error.startswith("Failed to set MySQL root password: ")
        assert "BY '***'" in result.error
        assert "Tr1cky-pass" not in json.dumps(result.to_dict())
        assert all("Tr1cky-pass" not in e for e in result.report.errors())

        state_dir = config_file.parent / "state"
        assert "Tr1cky-pass" not in (state_dir / "state.json").read_text()
        ledger = state_dir / "audit.ndjson"
        assert "Tr1cky-pass" not in ledger.read_text()
        assert "BY '***'" in AuditWriter(state_dir=state_dir).read_all()[0].errors[0]
        assert oct(ledger.stat().st_mode & 0o777) == "0o600"

    def test_secret_facts_masked_outside_usage(self, config_file, root_host, mock_registry, mock_adapter):
        mock_adapter.set_facts("read_file", {"initial_password": "JenkinsAdminPw123"})
        result = install_recipe("jenkins", config_path=config_file, registry=mock_registry, host=root_host)
        assert result.ok
        # The operator still gets the generated password once
        assert "2. Initial Admin Password: JenkinsAdminPw123" in result.usage
        assert result.report.to_dict()["facts"]["initial_password"] == "***"

        state_dir = config_file.parent / "state"
        state = load_state(state_dir / "state.json")
        assert state.recipes["jenkins"].facts["initial_password"] == "***"
        assert "JenkinsAdminPw123" not in (state_dir / "audit.ndjson").read_text()
        assert "JenkinsAdminPw123" in logging_config._masker.secrets

    def test_dry_run_writes_nothing(self, config_file, user_host, mock_registry, mock_adapter):
        result = install_recipe(
            "nginx", config_path=config_file, dry_run=True, registry=mock_registry, host=user_host,
        )
        assert result.ok
        assert result.report.dry_run is True
        assert mock_adapter.call_count == 0
        assert not (config_file.parent / "state").exists()

    def test_mock_mode_writes_nothing(self, config_file, root_host, mock_registry, mock_adapter):
        result = install_recipe(
            "redis", config_path=config_file, mock_mode=True, registry=mock_registry, host=root_host,
        )
        assert result.ok
        assert mock_adapter.call_count == result.report.total
        assert not (config_file.parent / "state").exists()

    def test_work_dir_removed_after_run(self, config_file, root_host, mock_registry, mock_adapter):
        install_recipe("nginx", config_path=config_file, registry=mock_registry, host=root_host)

        used = Path(mock_adapter.call_log[0].work_dir)
        work_root = config_file.parent / "work"
        assert used.parent == work_root
        assert used.name.startswith("op-")
        assert not used.exists()
        assert list(work_root.iterdir()) == []

    def test_firewall_override(self, config_file, root_host, mock_registry, mock_adapter):
        install_recipe("nginx", config_path=config_file, registry=mock_registry, host=root_host, firewall=False)
        assert all(ctx.firewall_enabled is False for ctx in mock_adapter.call_log)

    def test_sudo_password_reaches_adapters(self, config_file, user_host, mock_registry, mock_adapter):
        install_recipe(
            "aws-cli", config_path=config_file, registry=mock_registry, host=user_host, sudo_password="pw",
        )
        assert mock_adapter.call_log[0].sudo_password == "pw"
        assert mock_adapter.call_log[0].is_root is False

    def test_progress_callback(self, config_file, root_host, mock_registry):
        events = []
        install_recipe(
            "git", config_path=config_file, registry=mock_registry, host=root_host,
            progress=lambda event, action, receipt: events.append(event),
        )
        assert events[0] == "start"
        assert events.count("done") >= events.count("start")

    def test_to_dict(self, config_file, root_host, mock_registry):
        data = install_recipe("nginx", config_path=config_file, registry=mock_registry, host=root_host).to_dict()
        assert data["recipe"] == "nginx"
        assert data["vars"]["port"] == 80
        assert data["report"]["status"] == "ok"
        assert "error" not in data


class TestDefaultRegistry:
    def test_registers_every_adapter(self):
        registry = build_default_registry()
        assert sorted(registry.list_adapters()) == [
            "apt", "download", "filesystem", "firewall", "shell", "systemd", "users",
        ]


# ── Plan preview ─────────────────────────────────────────────────────


class TestPlanRecipe:
    def test_rendered_steps(self, config_file, root_host):
        result = plan_recipe("nginx", overrides={"port": "8080"}, config_path=config_file, host=root_host)
        assert result.error is None
        assert result.steps[0]["kind"] == "apt_update"
        assert result.steps[0]["adapter"] == "apt"
        firewall = result.steps[-1]
        assert firewall["kind"] == "firewall"
        assert firewall["params"]["rules"] == ["8080"]
        assert "error" not in firewall["params"]

    def test_conditions_listed(self, config_file, root_host):
        result = plan_recipe("redis", config_path=config_file, host=root_host)
        release = next(s for s in result.steps if s["kind"] == "github_release")
        assert release["when"] == {"var_equals": {"install_method": "source", "version": "latest"}}

    def test_to_dict(self, config_file, root_host):
        data = plan_recipe("redis", config_path=config_file, host=root_host).to_dict()
        assert data["recipe"] == "redis"
        assert data["vars"]["install_method"] == "repo"

    def test_unknown_recipe(self, config_file, root_host):
        result = plan_recipe("nope-nope", config_path=config_file, host=root_host)
        assert result.to_dict() == {"error": result.error}
        assert "Unknown recipe" in result.error


# ── Status ───────────────────────────────────────────────────────────


class TestStatus:
    def test_no_state_yet(self, config_file):
        result = get_status(config_path=config_file)
        assert result.state is None
        assert result.to_dict()["recipes"] == []

    def test_services_checked(self, config_file, root_host, mock_registry):
        install_recipe("nginx", config_path=config_file, registry=mock_registry, host=root_host)
        install_recipe("git", config_path=config_file, registry=mock_registry, host=root_host)
        checked = []

        def fake_status(service):
            checked.append(service)
            return {"service": service, "active": True, "state": "active"}

        result = get_status(config_path=config_file, service_status=fake_status)

        assert checked == ["nginx"]
        data = result.to_dict()
        assert [r["recipe"] for r in data["recipes"]] == ["git", "nginx"]
        nginx = data["recipes"][1]
        assert nginx["services"]["nginx"]["active"] is True
        assert data["last_operation"]["recipe"] == "git"

    def test_config_error(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("- a list\n")
        result = get_status(config_path=path)
        assert result.to_dict() == {"error": result.error}


# ── Config check ─────────────────────────────────────────────────────


class TestCheckConfig:
    def test_no_config_file(self):
        result = check_config()
        assert result.valid
        assert result.warnings == ["No setupctl.yml found; using defaults."]

    def test_valid(self, tmp_path):
        path = _write_config(tmp_path, """\
            recipes:
              nginx:
                port: 8080
              redis:
                install_method: source
        """)
        result = check_config(path)
        assert result.valid, result.errors
        assert result.to_dict()["recipe_overrides"] == ["nginx", "redis"]

    def test_found_by_search(self, tmp_path):
        _write_config(tmp_path, "firewall: true\n")
        result = check_config()
        assert result.config_path == tmp_path / "setupctl.yml"

    def test_unknown_recipe_and_var(self, tmp_path):
        path = _write_config(tmp_path, """\
            recipes:
              ngnix:
                port: 8080
              redis:
                prot: 1
        """)
        result = check_config(path)
        assert not result.valid
        assert "recipes.ngnix: unknown recipe" in result.errors
        assert "recipes.redis.prot: not a variable of redis" in result.errors

    def test_bad_value(self, tmp_path):
        path = _write_config(tmp_path, """\
            recipes:
              redis:
                install_method: snap
        """)
        result = check_config(path)
        assert not result.valid
        assert "not one of" in result.errors[0]

    def test_schema_error(self, tmp_path):
        path = _write_config(tmp_path, "command_timeout: -5\n")
        result = check_config(path)
        assert not result.valid
        assert "Invalid configuration" in result.errors[0]

    def test_firewall_disabled_warns(self, tmp_path):
        path = _write_config(tmp_path, "firewall: false\n")
        result = check_config(path)
        assert result.valid
        assert any("firewall is disabled" in w for w in result.warnings)

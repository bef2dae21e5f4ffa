"""
Tests for configuration loading — setupctl.yml discovery, parsing and validation.
"""

import textwrap
from pathlib import Path

import pytest

from setupctl.core.config import loader
from setupctl.core.config.loader import ConfigError, find_config_file, load_settings, read_config
from setupctl.core.models.settings import Settings


@pytest.fixture
def valid_config(tmp_path: Path) -> Path:
    content = textwrap.dedent("""\
        state_dir: /srv/setupctl/state
        firewall: false
        command_timeout: 120
        recipes:
          nginx:
            port: 8080
          redis:
            install_method: source
            version: "7.2.4"
    """)
    path = tmp_path / "setupctl.yml"
    path.write_text(content)
    return path


# ── Discovery ────────────────────────────────────────────────────────


class TestFindConfigFile:
    def test_in_start_dir(self, valid_config: Path):
        assert find_config_file(valid_config.parent) == valid_config.resolve()

    def test_searches_upward(self, valid_config: Path):
        nested = valid_config.parent / "a" / "b" / "c"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == valid_config.resolve()

    def test_defaults_to_cwd(self, valid_config: Path):
        # conftest chdirs into tmp_path
        assert find_config_file() == valid_config.resolve()

    def test_env_var_wins(self, valid_config: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        other = tmp_path / "elsewhere.yml"
        monkeypatch.setenv("SETUPCTL_CONFIG", str(other))
        assert find_config_file(valid_config.parent) == other

    def test_system_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        system = tmp_path / "etc" / "setupctl.yml"
        system.parent.mkdir()
        system.write_text("firewall: true\n")
        monkeypatch.setattr(loader, "SYSTEM_CONFIG", system)

        empty = tmp_path / "empty"
        empty.mkdir()
        # tmp_path itself has no setupctl.yml, so the walk finds nothing
        assert find_config_file(empty) == system

    def test_nothing_found(self, tmp_path: Path):
        assert find_config_file(tmp_path) is None


# ── Reading ──────────────────────────────────────────────────────────


class TestReadConfig:
    def test_reads_mapping(self, valid_config: Path):
        data = read_config(valid_config)
        assert data["firewall"] is False
        assert data["recipes"]["redis"]["version"] == "7.2.4"

    def test_missing(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Config file not found"):
            read_config(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "setupctl.yml"
        path.write_text("recipes: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            read_config(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "setupctl.yml"
        path.write_text("- nginx\n- redis\n")
        with pytest.raises(ConfigError, match="got list"):
            read_config(path)

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "setupctl.yml"
        path.write_text("")
        assert read_config(path) == {}


# ── Settings ─────────────────────────────────────────────────────────


class TestLoadSettings:
    def test_defaults_without_file(self):
        settings = load_settings()
        assert settings == Settings()
        assert settings.firewall is True
        assert settings.command_timeout == 300

    def test_explicit_path(self, valid_config: Path):
        settings = load_settings(valid_config)
        assert settings.firewall is False
        assert settings.command_timeout == 120
        assert settings.state_path() == Path("/srv/setupctl/state")

    def test_discovered(self, valid_config: Path):
        assert load_settings().overrides_for("nginx") == {"port": 8080}

    def test_explicit_missing_raises(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "missing.yml")

    def test_unknown_key_rejected(self, tmp_path: Path):
        path = tmp_path / "setupctl.yml"
        path.write_text("firewal: false\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_settings(path)

    def test_bad_timeout_rejected(self, tmp_path: Path):
        path = tmp_path / "setupctl.yml"
        path.write_text("download_timeout: 0\n")
        with pytest.raises(ConfigError):
            load_settings(path)

    def test_overrides_copy(self, valid_config: Path):
        settings = load_settings(valid_config)
        overrides = settings.overrides_for("redis")
        overrides["version"] = "changed"
        assert settings.overrides_for("redis")["version"] == "7.2.4"
        assert settings.overrides_for("grafana") == {}


class TestSettingsPaths:
    def test_state_dir_by_privilege(self):
        settings = Settings()
        assert settings.state_path(is_root=True) == Path("/var/lib/setupctl")
        assert settings.state_path(is_root=False) == Path("~/.local/state/setupctl").expanduser()

    def test_state_dir_expanded(self):
        assert Settings(state_dir="~/st").state_path(True) == Path("~/st").expanduser()

    def test_work_dir(self, tmp_path: Path):
        assert Settings(work_dir=str(tmp_path)).work_path() == tmp_path
        assert Settings().work_path().name == "setupctl"

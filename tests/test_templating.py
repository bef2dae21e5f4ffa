"""
Tests for placeholder rendering and run-time step conditions.
"""

from pathlib import Path

import pytest

from setupctl.core.engine.conditions import evaluate
from setupctl.core.engine.templating import placeholders, render, render_text
from setupctl.core.models.recipe import Condition

# ── Rendering ────────────────────────────────────────────────────────


class TestRenderText:
    def test_known_keys(self):
        assert render_text("listen {port};", {"port": 8080}) == "listen 8080;"

    def test_unknown_keys_untouched(self):
        text = "CustomLog ${APACHE_LOG_DIR}/access.log {missing}"
        assert render_text(text, {"port": 80}) == text

    def test_shell_and_config_braces_survive(self):
        text = "location / {\n    try_files $uri $uri/ =404;\n}"
        assert render_text(text, {"uri": "nope"}) == text

    def test_booleans_render_lowercase(self):
        assert render_text("{a}/{b}", {"a": True, "b": False}) == "true/false"

    def test_none_leaves_placeholder(self):
        assert render_text("{version}", {"version": None}) == "{version}"

    def test_dollar_brace_known_key_is_rendered(self):
        # Known keys win even after a dollar sign
        assert render_text("${home}", {"home": "/root"}) == "$/root"


class TestRender:
    def test_recurses_into_lists_and_dicts(self):
        value = {
            "argv": ["{bin}", "--port", "{port}"],
            "env": {"HOME": "{home}"},
            "timeout": 30,
        }
        rendered = render(value, {"bin": "/usr/bin/redis-cli", "port": 6379, "home": "/root"})
        assert rendered == {
            "argv": ["/usr/bin/redis-cli", "--port", "6379"],
            "env": {"HOME": "/root"},
            "timeout": 30,
        }

    def test_dict_keys_rendered(self):
        value = {"prometheus-{version}.linux-{arch}/prometheus": "/usr/local/bin/"}
        rendered = render(value, {"version": "2.51.0", "arch": "amd64"})
        assert list(rendered) == ["prometheus-2.51.0.linux-amd64/prometheus"]

    def test_non_strings_unchanged(self):
        assert render(True, {"x": 1}) is True
        assert render(None, {}) is None


class TestPlaceholders:
    def test_collects_everywhere(self):
        value = {"{a}": ["{b}", {"c": "{c} and {a}"}], "n": 1}
        assert placeholders(value) == {"a", "b", "c"}

    def test_empty(self):
        assert placeholders("no braces here") == set()


# ── Conditions ───────────────────────────────────────────────────────


class TestEvaluate:
    def test_none_runs(self):
        assert evaluate(None, {}) == (True, "")

    def test_var_equals(self):
        cond = Condition(var_equals={"install_method": "source"})
        assert evaluate(cond, {"install_method": "source"})[0] is True
        ok, reason = evaluate(cond, {"install_method": "repo"})
        assert ok is False
        assert "install_method" in reason

    def test_loose_comparison(self):
        assert evaluate(Condition(var_equals={"port": 8080}), {"port": "8080"})[0]
        assert evaluate(Condition(var_equals={"use_nvm": True}), {"use_nvm": "true"})[0]
        assert evaluate(Condition(var_equals={"use_nvm": False}), {"use_nvm": "False"})[0]

    def test_var_not_equals(self):
        cond = Condition(var_not_equals={"version": "latest"})
        assert evaluate(cond, {"version": "1.2.3"})[0] is True
        assert evaluate(cond, {"version": "latest"})[0] is False

    def test_binary_checks(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(
            "setupctl.core.engine.conditions.shutil.which",
            lambda name: "/usr/bin/docker" if name == "docker" else None,
        )
        assert evaluate(Condition(if_binary="docker"), {})[0] is True
        assert evaluate(Condition(if_binary="kubectl"), {})[0] is False
        ok, reason = evaluate(Condition(unless_binary="docker"), {})
        assert ok is False
        assert reason == "docker is already installed"
        assert evaluate(Condition(unless_binary="kubectl"), {})[0] is True

    def test_path_checks_are_rendered(self, tmp_path: Path):
        (tmp_path / "grafana.ini").write_text("")
        variables = {"dir": str(tmp_path)}
        assert evaluate(Condition(if_path="{dir}/grafana.ini"), variables)[0] is True
        assert evaluate(Condition(if_path="{dir}/missing.ini"), variables)[0] is False
        ok, reason = evaluate(Condition(unless_path="{dir}/grafana.ini"), variables)
        assert ok is False
        assert reason.endswith("already exists")

    def test_as_root(self):
        assert evaluate(Condition(as_root=True), {"is_root": True})[0] is True
        assert evaluate(Condition(as_root=True), {"is_root": False}) == (False, "requires root")
        assert evaluate(Condition(as_root=False), {"is_root": False})[0] is True

    def test_all_fields_must_hold(self):
        cond = Condition(var_equals={"a": 1}, as_root=True)
        assert evaluate(cond, {"a": 1, "is_root": False})[0] is False

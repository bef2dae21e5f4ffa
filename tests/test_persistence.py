"""
Tests for persistence — install state and the audit ledger.
"""

import json
import stat
from pathlib import Path

from setupctl.core.models.state import InstallState
from setupctl.core.persistence.audit import AuditEntry, AuditWriter
from setupctl.core.persistence.state_file import default_state_path, load_state, save_state

# ── State ────────────────────────────────────────────────────────────


class TestInstallState:
    def test_record_run_creates(self):
        state = InstallState()
        record = state.record_run("nginx", status="ok", operation_id="op-1")
        assert state.recipes["nginx"] is record
        assert record.recipe == "nginx"
        assert record.installed_at is None

    def test_record_run_updates_in_place(self):
        state = InstallState()
        state.record_run("redis", status="failed", facts={"a": 1})
        record = state.record_run("redis", status="ok", installed_at="2026-01-01T00:00:00+00:00")

        assert len(state.recipes) == 1
        assert record.status == "ok"
        assert record.installed_at == "2026-01-01T00:00:00+00:00"
        assert record.facts == {"a": 1}


class TestStateFile:
    def test_default_path(self, tmp_state_dir: Path):
        assert default_state_path(tmp_state_dir) == tmp_state_dir / "state.json"

    def test_save_and_load(self, tmp_state_dir: Path):
        path = default_state_path(tmp_state_dir)
        state = InstallState(hostname="web-01")
        state.record_run("nginx", status="ok", facts={"nginx_version": "1.24.0"}, vars={"port": 80})
        state.last_operation.recipe = "nginx"
        state.last_operation.steps_total = 7

        save_state(state, path)
        loaded = load_state(path)

        assert loaded.hostname == "web-01"
        assert loaded.recipes["nginx"].facts == {"nginx_version": "1.24.0"}
        assert loaded.recipes["nginx"].vars == {"port": 80}
        assert loaded.last_operation.steps_total == 7

    def test_missing_file_gives_fresh_state(self, tmp_path: Path):
        state = load_state(tmp_path / "nope.json")
        assert state.recipes == {}
        assert state.hostname == ""

    def test_corrupt_json_gives_fresh_state(self, tmp_path: Path):
        path = tmp_path / "state.json"
        path.write_text("{ not json")
        assert load_state(path).recipes == {}

    def test_wrong_shape_gives_fresh_state(self, tmp_path: Path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps({"recipes": ["nginx"]}))
        assert load_state(path).recipes == {}

    def test_creates_parent_directories(self, tmp_path: Path):
        path = tmp_path / "var" / "lib" / "setupctl" / "state.json"
        save_state(InstallState(), path)
        assert path.is_file()

    def test_readable_json(self, tmp_state_dir: Path):
        path = default_state_path(tmp_state_dir)
        save_state(InstallState(hostname="db-01"), path)

        raw = path.read_text()
        assert raw.endswith("\n")
        assert json.loads(raw)["hostname"] == "db-01"
        assert json.loads(raw)["schema_version"] == 1

    def test_no_temp_files_left(self, tmp_state_dir: Path):
        save_state(InstallState(), default_state_path(tmp_state_dir))
        assert list(tmp_state_dir.glob(".state_*.tmp")) == []

    def test_owner_only_permissions(self, tmp_state_dir: Path):
        path = default_state_path(tmp_state_dir)
        save_state(InstallState(), path)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_save_touches_updated_at(self, tmp_state_dir: Path):
        path = default_state_path(tmp_state_dir)
        state = InstallState()
        state.updated_at = "2000-01-01T00:00:00+00:00"
        save_state(state, path)
        assert load_state(path).updated_at != "2000-01-01T00:00:00+00:00"

    def test_overwrite_keeps_latest(self, tmp_state_dir: Path):
        path = default_state_path(tmp_state_dir)
        state = InstallState()
        state.record_run("git", status="ok")
        save_state(state, path)
        state.record_run("maven", status="failed")
        save_state(state, path)

        assert sorted(load_state(path).recipes) == ["git", "maven"]


# ── Audit ────────────────────────────────────────────────────────────


def _entry(recipe: str, status: str = "ok", **kwargs) -> AuditEntry:
    return AuditEntry(operation_id=f"op-{recipe}", recipe=recipe, status=status, **kwargs)


class TestAuditWriter:
    def test_path_from_state_dir(self, tmp_state_dir: Path):
        assert AuditWriter(state_dir=tmp_state_dir).path == tmp_state_dir / "audit.ndjson"

    def test_explicit_path_wins(self, tmp_path: Path):
        path = tmp_path / "custom.ndjson"
        assert AuditWriter(path=path, state_dir=tmp_path / "x").path == path

    def test_write_and_read(self, tmp_state_dir: Path):
        writer = AuditWriter(state_dir=tmp_state_dir)
        writer.write(_entry("nginx", steps_total=7, steps_succeeded=7, vars={"port": 8080}))

        (entry,) = writer.read_all()
        assert entry.recipe == "nginx"
        assert entry.operation_type == "install"
        assert entry.steps_total == 7
        assert entry.vars == {"port": 8080}

    def test_append_only(self, tmp_state_dir: Path):
        writer = AuditWriter(state_dir=tmp_state_dir)
        for recipe in ("git", "python", "maven"):
            writer.write(_entry(recipe))

        assert [e.recipe for e in writer.read_all()] == ["git", "python", "maven"]
        assert writer.entry_count() == 3

    def test_one_json_object_per_line(self, tmp_state_dir: Path):
        writer = AuditWriter(state_dir=tmp_state_dir)
        writer.write(_entry("docker", status="failed", errors=["Installing Docker...: exit 100"]))
        writer.write(_entry("kind"))

        lines = writer.path.read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["status"] == "failed"
        assert first["errors"] == ["Installing Docker...: exit 100"]

    def test_read_recent(self, tmp_state_dir: Path):
        writer = AuditWriter(state_dir=tmp_state_dir)
        for i in range(5):
            writer.write(_entry(f"r{i}"))

        assert [e.recipe for e in writer.read_recent(2)] == ["r3", "r4"]
        assert writer.read_recent(0) == []

    def test_filter_by_recipe(self, tmp_state_dir: Path):
        writer = AuditWriter(state_dir=tmp_state_dir)
        writer.write(_entry("nginx", status="failed"))
        writer.write(_entry("redis"))
        writer.write(_entry("nginx"))

        assert [e.status for e in writer.read_all(recipe="nginx")] == ["failed", "ok"]
        assert [e.recipe for e in writer.read_recent(1, recipe="redis")] == ["redis"]

    def test_missing_ledger(self, tmp_path: Path):
        writer = AuditWriter(state_dir=tmp_path / "empty")
        assert writer.read_all() == []
        assert writer.entry_count() == 0

    def test_corrupt_lines_skipped(self, tmp_state_dir: Path):
        writer = AuditWriter(state_dir=tmp_state_dir)
        writer.write(_entry("git"))
        with writer.path.open("a") as f:
            f.write("garbage\n\n")
            f.write('{"steps_total": "many"}\n')
        writer.write(_entry("rust"))

        assert [e.recipe for e in writer.read_all()] == ["git", "rust"]

    def test_creates_parent_directories(self, tmp_path: Path):
        writer = AuditWriter(state_dir=tmp_path / "a" / "b")
        writer.write(_entry("trivy"))
        assert writer.path.is_file()

    def test_owner_only_permissions(self, tmp_state_dir: Path):
        writer = AuditWriter(state_dir=tmp_state_dir)
        writer.write(_entry("mysql", status="failed"))
        writer.write(_entry("mysql"))
        assert stat.S_IMODE(writer.path.stat().st_mode) == 0o600

    def test_unwritable_ledger_does_not_raise(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        writer = AuditWriter(state_dir=blocker)
        writer.write(_entry("vault"))
        assert writer.read_all() == []

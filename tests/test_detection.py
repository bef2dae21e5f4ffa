"""
Tests for host detection, version parsing and service status.
"""

import subprocess
from pathlib import Path

import pytest

from setupctl.core.detection import host as host_mod
from setupctl.core.detection import service_status
from setupctl.core.detection.host import detect_host, dpkg_arch, parse_os_release
from setupctl.core.detection.service_status import get_service_status
from setupctl.core.detection.versions import first_line, parse_version

# ── Versions ─────────────────────────────────────────────────────────


class TestParseVersion:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("nginx version: nginx/1.24.0", "1.24.0"),
            ("Server version: Apache/2.4.58 (Ubuntu)\nServer built: 2024", "2.4.58"),
            ("v0.23.0", "0.23.0"),
            ("SonarScanner 10.4.1.88267", "10.4.1.88267"),
            ("prometheus, version 2.51.0-rc.1 (branch: HEAD)", "2.51.0-rc.1"),
        ],
    )
    def test_default_pattern(self, text, expected):
        assert parse_version(text) == expected

    def test_pattern_with_group(self):
        out = "Apache Maven 3.9.9 (8e8579a9e76f7d015ee5ec7bfcdc97d260186937)"
        assert parse_version(out, r"Apache Maven (\S+)") == "3.9.9"

    def test_pattern_without_group(self):
        assert parse_version("redis-server v=7.2.4 sha=0", r"v=\S+") == "v=7.2.4"

    def test_optional_group_not_matched(self):
        assert parse_version("trivy dev build", r"Version: (\S+)|dev") == "dev"
        assert parse_version("Version: 0.50.1", r"Version: (\S+)|dev") == "0.50.1"

    def test_pattern_no_match(self):
        assert parse_version("command not found", r"Version: (\S+)") is None

    def test_empty_output(self):
        assert parse_version("") is None
        assert parse_version(None) is None

    def test_no_version_in_text(self):
        assert parse_version("hello world") is None


class TestFirstLine:
    def test_skips_blank_lines(self):
        assert first_line("\n\n  Docker version 24.0.7  \nmore") == "Docker version 24.0.7"

    def test_empty(self):
        assert first_line(None) == ""
        assert first_line("   \n") == ""


# ── Host ─────────────────────────────────────────────────────────────

_OS_RELEASE = """\
PRETTY_NAME="Ubuntu 22.04.4 LTS"
NAME="Ubuntu"
VERSION_ID="22.04"
VERSION_CODENAME=jammy
ID=ubuntu
# comment
UBUNTU_CODENAME=jammy
"""


class TestParseOsRelease:
    def test_parses_quoted_and_bare(self):
        info = parse_os_release(_OS_RELEASE)
        assert info["ID"] == "ubuntu"
        assert info["VERSION_ID"] == "22.04"
        assert info["VERSION_CODENAME"] == "jammy"
        assert info["PRETTY_NAME"] == "Ubuntu 22.04.4 LTS"

    def test_ignores_comments_and_garbage(self):
        info = parse_os_release("# x=y\nnot a pair\n\nID=debian\n")
        assert info == {"ID": "debian"}


class TestDpkgArch:
    @pytest.mark.parametrize(
        ("machine", "arch"),
        [("x86_64", "amd64"), ("aarch64", "arm64"), ("armv7l", "armhf"), ("i686", "i386")],
    )
    def test_known(self, machine, arch):
        assert dpkg_arch(machine) == arch

    def test_unknown_passes_through_lowercased(self):
        assert dpkg_arch("MIPS64") == "mips64"


class TestDetectHost:
    def test_reads_os_release(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        path = tmp_path / "os-release"
        path.write_text(_OS_RELEASE)
        monkeypatch.setattr(host_mod, "detect_init_system", lambda: "systemd")

        host = detect_host(os_release=path)

        assert host.distro == "ubuntu"
        assert host.release == "22.04"
        assert host.codename == "jammy"
        assert host.init_system == "systemd"
        assert host.arch
        assert host.nproc >= 1
        assert host.home

    def test_codename_falls_back_to_ubuntu_codename(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ):
        path = tmp_path / "os-release"
        path.write_text('ID=ubuntu\nVERSION_ID="24.04"\nUBUNTU_CODENAME=noble\n')
        monkeypatch.setattr(host_mod, "detect_init_system", lambda: "unknown")
        assert detect_host(os_release=path).codename == "noble"

    def test_missing_file_does_not_raise(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(host_mod, "detect_init_system", lambda: "unknown")
        monkeypatch.setattr(host_mod, "_lsb_release", lambda flag: "")
        host = detect_host(os_release=tmp_path / "missing")
        assert host.distro
        assert host.user is not None

    def test_sudo_user_becomes_invoking_user(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ):
        path = tmp_path / "os-release"
        path.write_text(_OS_RELEASE)
        monkeypatch.setattr(host_mod, "detect_init_system", lambda: "systemd")
        monkeypatch.setattr(host_mod.os, "geteuid", lambda: 0)
        monkeypatch.setattr(host_mod, "_home_of", lambda user: f"/home/{user}")
        monkeypatch.setenv("SUDO_USER", "alice")

        host = detect_host(os_release=path)

        assert host.is_root is True
        assert host.invoking_user == "alice"
        assert host.home == "/home/alice"


# ── Service status ───────────────────────────────────────────────────


class TestServiceStatus:
    def test_systemd_show_parsed(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(service_status, "detect_init_system", lambda: "systemd")

        def fake_run(cmd, **kwargs):
            assert cmd[:3] == ["systemctl", "show", "nginx"]
            return subprocess.CompletedProcess(
                cmd, 0, stdout="ActiveState=active\nSubState=running\nLoadState=loaded\n", stderr="",
            )

        monkeypatch.setattr(service_status.subprocess, "run", fake_run)
        status = get_service_status("nginx")
        assert status == {
            "service": "nginx",
            "init_system": "systemd",
            "active": True,
            "state": "active",
            "sub_state": "running",
            "loaded": True,
        }

    def test_systemd_inactive(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(service_status, "detect_init_system", lambda: "systemd")
        monkeypatch.setattr(
            service_status.subprocess,
            "run",
            lambda cmd, **kw: subprocess.CompletedProcess(
                cmd, 0, stdout="ActiveState=inactive\nSubState=dead\nLoadState=not-found\n", stderr="",
            ),
        )
        status = get_service_status("grafana-server")
        assert status["active"] is False
        assert status["loaded"] is False
        assert status["sub_state"] == "dead"

    def test_systemctl_missing(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(service_status, "detect_init_system", lambda: "systemd")

        def boom(cmd, **kwargs):
            raise FileNotFoundError("systemctl")

        monkeypatch.setattr(service_status.subprocess, "run", boom)
        status = get_service_status("nginx")
        assert status["active"] is False
        assert status["state"] == "unknown"

    def test_other_init_reports_unknown(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(service_status, "detect_init_system", lambda: "openrc")
        status = get_service_status("nginx")
        assert status["init_system"] == "openrc"
        assert status["active"] is None

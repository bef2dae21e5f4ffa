"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from setupctl.adapters.mock import MockAdapter
from setupctl.adapters.registry import AdapterRegistry
from setupctl.core.models.host import HostFacts
from setupctl.core.observability import logging_config


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep config discovery away from the developer's machine."""
    monkeypatch.delenv("SETUPCTL_CONFIG", raising=False)
    monkeypatch.delenv("SETUPCTL_LOG_FILE", raising=False)
    monkeypatch.delenv("SETUPCTL_LOG_LEVEL", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "setupctl.core.config.loader.SYSTEM_CONFIG", tmp_path / "no-system" / "setupctl.yml",
    )


@pytest.fixture(autouse=True)
def _forget_secrets():
    """Secrets registered by one test must not mask output in the next."""
    yield
    logging_config._masker.clear()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def tmp_state_dir(tmp_path: Path) -> Path:
    """Return a temporary directory for state files."""
    state_dir = tmp_path / "state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A setupctl.yml whose state and work dirs live under tmp_path."""
    content = textwrap.dedent(f"""\
        state_dir: {tmp_path / "state"}
        work_dir: {tmp_path / "work"}
        firewall: true
    """)
    path = tmp_path / "setupctl.yml"
    path.write_text(content)
    return path


@pytest.fixture
def root_host() -> HostFacts:
    """Ubuntu host, running as root via sudo from alice."""
    return HostFacts(
        distro="ubuntu",
        release="22.04",
        codename="jammy",
        arch="amd64",
        machine="x86_64",
        is_root=True,
        user="root",
        invoking_user="alice",
        home="/home/alice",
        nproc=4,
        hostname="testhost",
        init_system="systemd",
    )


@pytest.fixture
def user_host(root_host: HostFacts) -> HostFacts:
    """The same host, running as alice."""
    return root_host.model_copy(update={"is_root": False, "user": "alice"})


@pytest.fixture
def mock_adapter() -> MockAdapter:
    return MockAdapter()


@pytest.fixture
def mock_registry(mock_adapter: MockAdapter) -> AdapterRegistry:
    """Registry that routes every action to ``mock_adapter``."""
    registry = AdapterRegistry()
    registry.set_mock_mode(True, mock_adapter)
    return registry

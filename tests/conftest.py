"""
Shared test fixtures and configuration.
"""

import os
from pathlib import Path

import pytest

from sharespace_installer.adapters.mock import MockAdapter
from sharespace_installer.adapters.registry import AdapterRegistry
from sharespace_installer.adapters.shell.filesystem import FilesystemAdapter
from sharespace_installer.core.engine.executor import ProvisioningStep, StepRunner
from sharespace_installer.core.models.install import InstallConfig

APP_RUNNING = (
    '{"Service": "sharespace-app", "Name": "sharespace", "State": "running", '
    '"Health": "healthy", "Status": "Up 12 seconds (healthy)"}\n'
    '{"Service": "signal-api", "Name": "signal-api", "State": "running", '
    '"Health": "healthy", "Status": "Up 40 seconds (healthy)"}'
)


@pytest.fixture
def ps_running() -> str:
    """`docker compose ps --format json` output with a healthy app."""
    return APP_RUNNING


@pytest.fixture
def install_config(tmp_path: Path) -> InstallConfig:
    """Root-run config whose paths all live under tmp_path."""
    home = tmp_path / "home"
    home.mkdir()
    return InstallConfig(
        real_user="tester",
        real_home=home,
        uid=os.getuid(),
        gid=os.getgid(),
        euid=0,
        unit_dir=tmp_path / "systemd",
        readiness_delay=0,
        readiness_attempts=2,
        readiness_interval=0,
    )


@pytest.fixture
def mocks() -> dict[str, MockAdapter]:
    """Mock shell, docker, and systemd adapters."""
    return {name: MockAdapter(adapter_name=name) for name in ("shell", "docker", "systemd")}


@pytest.fixture
def registry(mocks: dict[str, MockAdapter]) -> AdapterRegistry:
    """Registry with a real filesystem adapter and mocked host tools."""
    reg = AdapterRegistry()
    reg.register(FilesystemAdapter())
    for mock in mocks.values():
        reg.register(mock)
    return reg


@pytest.fixture
def make_runner(registry: AdapterRegistry, install_config: InstallConfig):
    """Factory for a StepRunner already positioned on a named step."""

    def _make(step: str = "test", *, dry_run: bool = False, config: InstallConfig | None = None):
        runner = StepRunner(
            registry,
            config or install_config,
            operation_id="op-test",
            dry_run=dry_run,
            sleep=lambda seconds: None,
        )
        runner.begin(ProvisioningStep(step, step, lambda r: None))
        return runner

    return _make

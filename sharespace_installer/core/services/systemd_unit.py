"""
Service registrar — boot-time start of the stack through systemd.

The unit is a oneshot that runs ``docker compose up -d`` from the
install root and ``docker compose down`` on stop. It is enabled for
``multi-user.target`` but not started: the stack is already up.
"""

from __future__ import annotations

import logging
from typing import Any

from sharespace_installer.core.engine.executor import StepRunner
from sharespace_installer.core.models.install import InstallConfig

logger = logging.getLogger(__name__)


def render_unit(config: InstallConfig) -> str:
    """Render the systemd unit for the stack."""
    docker = config.docker_binary
    lines = [
        "[Unit]",
        "Description=SharedSpace Chore Management",
        "Requires=docker.service",
        "After=docker.service",
        "",
        "[Service]",
        "Type=oneshot",
        "RemainAfterExit=yes",
        f"WorkingDirectory={config.install_root}",
        f"ExecStart={docker} compose up -d",
        f"ExecStop={docker} compose down",
        "TimeoutStartSec=0",
        "",
        "[Install]",
        "WantedBy=multi-user.target",
    ]
    return "\n".join(lines) + "\n"


def register_service(runner: StepRunner) -> dict[str, Any]:
    """Provisioning step: write, reload, and enable the unit."""
    config = runner.config
    path = config.unit_path
    unit = config.unit_name
    previous = runner.read_existing("read-unit", path)

    was_enabled = runner.probe("systemd", "was-enabled", name=f"systemctl is-enabled {unit}",
                               operation="is_enabled", unit=unit)
    already_enabled = was_enabled.ok and was_enabled.output.strip() == "enabled"

    runner.require("filesystem", "write-unit", name=f"write {path}",
                   operation="write", path=str(path), content=render_unit(config), mode=0o644)
    runner.compensate("systemd", "daemon-reload", name="systemctl daemon-reload",
                      operation="daemon_reload")
    if previous is None:
        runner.compensate("filesystem", "write-unit", name=f"remove {path}",
                          operation="remove", path=str(path))
    else:
        runner.compensate("filesystem", "write-unit", name=f"restore {path}",
                          operation="write", path=str(path), content=previous)

    runner.require("systemd", "daemon-reload", name="systemctl daemon-reload",
                   operation="daemon_reload")
    runner.require("systemd", "enable", name=f"systemctl enable {unit}",
                   operation="enable", unit=unit)
    if not already_enabled:
        runner.compensate("systemd", "enable", name=f"systemctl disable {unit}",
                          operation="disable", unit=unit)

    logger.info("Systemd service created and enabled")
    return {"unit_path": str(path), "unit_enabled": True}

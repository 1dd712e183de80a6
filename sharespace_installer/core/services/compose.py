"""
Compose renderer — the five-service ShareSpace topology.

The descriptor is rebuilt from scratch on every run and written over
any previous version; there is no merge with local edits.

Services:
    signal-api      messaging gateway (Signal REST API)
    sharespace-app  the application, gated on signal-api being healthy
    watchtower      auto-update watcher for containers labelled for it
    mdns            avahi, advertising <hostname>.local on the host network
    autoheal        restarts any container reported unhealthy

Watchtower must stay off the application network: sharing it has been
seen to drop connectivity of the containers it updates. It only needs
the Docker socket.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from sharespace_installer.core.engine.executor import StepRunner
from sharespace_installer.core.models.install import InstallConfig

logger = logging.getLogger(__name__)

APP_NETWORK = "sharespace-network"
DOCKER_SOCKET = "/var/run/docker.sock:/var/run/docker.sock"
WATCHTOWER_LABEL = "com.centurylinklabs.watchtower.enable=true"
RESTART_POLICY = "unless-stopped"

# Anything else the probe prints (daemon errors, mock output) is not a version.
_API_VERSION_RE = re.compile(r"^\d+\.\d+$")

_HEADER = (
    "# ShareSpace stack, generated by sharespace-install.\n"
    "# This file is rewritten on every install; local edits are lost.\n"
)


def _healthcheck(test: list[str], timeout: str, start_period: str) -> dict[str, Any]:
    return {
        "test": test,
        "interval": "30s",
        "timeout": timeout,
        "retries": 3,
        "start_period": start_period,
    }


def build_compose(config: InstallConfig, api_version: str) -> dict[str, Any]:
    """Build the compose document as a plain dict.

    ``api_version`` is substituted verbatim into the watchtower
    environment and appears nowhere else.
    """
    services: dict[str, Any] = {
        "signal-api": {
            "image": "bbernhard/signal-cli-rest-api:latest",
            "container_name": "signal-api",
            "restart": RESTART_POLICY,
            "ports": ["8080:8080"],
            "volumes": ["./data/signal-cli:/home/.local/share/signal-cli"],
            "environment": ["MODE=normal"],
            "healthcheck": _healthcheck(
                ["CMD-SHELL", "curl -f http://localhost:8080/v1/about || exit 1"],
                timeout="10s",
                start_period="10s",
            ),
            "networks": [APP_NETWORK],
        },
        config.app_service: {
            "image": config.app_image,
            "container_name": config.app_container,
            "restart": RESTART_POLICY,
            "depends_on": {
                "signal-api": {"condition": "service_healthy"},
            },
            "environment": [
                "SIGNAL_API_BASE=http://signal-api:8080",
                "EXTERNAL_PORT=80",
            ],
            "ports": ["80:5000"],
            "volumes": ["./data:/app/data"],
            "networks": [APP_NETWORK],
            "healthcheck": _healthcheck(
                ["CMD", "curl", "-f", "http://localhost:5000/health"],
                timeout="10s",
                start_period="30s",
            ),
            "labels": [WATCHTOWER_LABEL],
        },
        "watchtower": {
            "image": "containrrr/watchtower",
            "container_name": "watchtower",
            "restart": RESTART_POLICY,
            "network_mode": "none",
            "volumes": [DOCKER_SOCKET],
            "environment": [
                "WATCHTOWER_CLEANUP=true",
                f"WATCHTOWER_POLL_INTERVAL={config.watchtower_poll_interval}",
                "WATCHTOWER_INCLUDE_STOPPED=false",
                "WATCHTOWER_LABEL_ENABLE=true",
                f"DOCKER_API_VERSION={api_version}",
            ],
        },
        "mdns": {
            "image": "flungo/avahi",
            "container_name": "sharespace-mdns",
            "restart": RESTART_POLICY,
            "network_mode": "host",
            "environment": [f"SERVER_HOST_NAME={config.mdns_hostname}"],
            "healthcheck": _healthcheck(
                ["CMD-SHELL", "pgrep avahi-daemon > /dev/null"],
                timeout="5s",
                start_period="10s",
            ),
        },
        "autoheal": {
            "image": "willfarrell/autoheal",
            "container_name": "autoheal",
            "restart": RESTART_POLICY,
            "volumes": [DOCKER_SOCKET],
            "environment": ["AUTOHEAL_CONTAINER_LABEL=all"],
        },
    }

    return {
        "services": services,
        "networks": {APP_NETWORK: {"driver": "bridge"}},
    }


def render_compose(config: InstallConfig, api_version: str) -> str:
    """Render the compose descriptor as YAML text."""
    body = yaml.safe_dump(
        build_compose(config, api_version),
        sort_keys=False,
        default_flow_style=False,
    )
    return _HEADER + body


def detect_api_version(runner: StepRunner) -> str:
    """Ask the daemon for its API version, falling back to the default."""
    default = runner.config.default_api_version
    receipt = runner.probe(
        "docker",
        "api-version",
        name="detect Docker API version",
        operation="api_version",
    )
    version = receipt.output.strip() if receipt.ok else ""
    if not _API_VERSION_RE.match(version):
        logger.info("Docker API version unavailable, using %s", default)
        return default
    logger.info("Detected Docker API version: %s", version)
    return version


def write_compose(runner: StepRunner, api_version: str) -> Path:
    """Write the descriptor, registering the undo for this run's change."""
    config = runner.config
    path = config.compose_file
    previous = runner.read_existing("read-compose", path)

    runner.require(
        "filesystem",
        "write-compose",
        name=f"write {path}",
        operation="write",
        path=str(path),
        content=render_compose(config, api_version),
    )

    if previous is None:
        runner.compensate("filesystem", "write-compose", name=f"remove {path}",
                          operation="remove", path=str(path))
    else:
        runner.compensate("filesystem", "write-compose", name=f"restore {path}",
                          operation="write", path=str(path), content=previous)

    if config.owns_files:
        runner.require("filesystem", "chown-compose", name=f"chown {path}",
                       operation="chown", path=str(path), uid=config.uid, gid=config.gid)
    return path


def render_step(runner: StepRunner) -> dict[str, Any]:
    """Provisioning step: detect the API version and write the descriptor."""
    api_version = detect_api_version(runner)
    path = write_compose(runner, api_version)
    logger.info("%s created", path.name)
    runner.note(f"Docker API version {api_version}")
    return {"api_version": api_version, "compose_file": str(path)}

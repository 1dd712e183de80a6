"""
Runtime installer — make sure Docker Engine and the compose plugin exist.

Idempotent: when ``docker --version`` answers, the engine is left alone.
Otherwise Docker's apt repository is registered and the engine is
installed, started, and enabled. The compose plugin is checked on its
own, since a pre-existing engine may lack it.

Installed packages get no compensation: a rollback leaves Docker in
place, as removing a runtime other software may now rely on is worse
than leaving it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sharespace_installer.core.engine.executor import ProvisioningError, StepRunner

logger = logging.getLogger(__name__)

PREREQUISITES = [
    "apt-transport-https",
    "ca-certificates",
    "curl",
    "gnupg",
    "lsb-release",
]

ENGINE_PACKAGES = [
    "docker-ce",
    "docker-ce-cli",
    "containerd.io",
    "docker-buildx-plugin",
    "docker-compose-plugin",
]

COMPOSE_PACKAGE = "docker-compose-plugin"

KEYRING_DIR = "/etc/apt/keyrings"
KEY_URL = "https://download.docker.com/linux/ubuntu/gpg"
KEY_PATH = f"{KEYRING_DIR}/docker.asc"
REPO_URL = "https://download.docker.com/linux/ubuntu"
SOURCES_PATH = "/etc/apt/sources.list.d/docker.list"
OS_RELEASE = Path("/etc/os-release")

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``/etc/os-release`` into a dict (quotes stripped)."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def read_codename(path: Path | None = None) -> str:
    """Distribution codename used in the apt source line."""
    path = path or OS_RELEASE
    try:
        values = parse_os_release(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise ProvisioningError("runtime", f"Cannot read {path}: {e}") from e
    codename = values.get("VERSION_CODENAME") or values.get("UBUNTU_CODENAME")
    if not codename:
        raise ProvisioningError("runtime", f"No VERSION_CODENAME in {path}")
    return codename


def apt_source_line(arch: str, codename: str) -> str:
    return f"deb [arch={arch} signed-by={KEY_PATH}] {REPO_URL} {codename} stable\n"


def _apt_install(runner: StepRunner, key: str, packages: list[str]) -> None:
    runner.require(
        "shell",
        key,
        name=f"apt-get install {' '.join(packages)}",
        argv=["apt-get", "install", "-y", *packages],
        env=_APT_ENV,
        timeout=1800,
    )


def install_engine(runner: StepRunner) -> None:
    """Register Docker's apt repository and install the engine."""
    config = runner.config

    runner.require("shell", "apt-update", name="apt-get update",
                   argv=["apt-get", "update"], env=_APT_ENV)
    _apt_install(runner, "apt-prereqs", PREREQUISITES)

    runner.require("shell", "keyring-dir", name="create keyring directory",
                   argv=["install", "-m", "0755", "-d", KEYRING_DIR])
    runner.require("shell", "fetch-key", name="download Docker signing key",
                   argv=["curl", "-fsSL", KEY_URL, "-o", KEY_PATH])
    runner.require("shell", "chmod-key", name="make signing key readable",
                   argv=["chmod", "a+r", KEY_PATH])

    arch = runner.probe("shell", "dpkg-arch", name="detect package architecture",
                        argv=["dpkg", "--print-architecture"]).output.strip()
    codename = read_codename()
    runner.require("filesystem", "apt-source", name="register Docker apt repository",
                   operation="write", path=SOURCES_PATH,
                   content=apt_source_line(arch or "amd64", codename))

    runner.require("shell", "apt-update-docker", name="apt-get update",
                   argv=["apt-get", "update"], env=_APT_ENV)
    _apt_install(runner, "apt-engine", ENGINE_PACKAGES)

    runner.require("systemd", "start-docker", name="start docker",
                   operation="start", unit="docker")
    runner.require("systemd", "enable-docker", name="enable docker",
                   operation="enable", unit="docker")

    if config.real_user and config.real_user != "root":
        runner.require("shell", "docker-group", name=f"add {config.real_user} to docker group",
                       argv=["usermod", "-aG", "docker", config.real_user])
        runner.note(
            f"Added {config.real_user} to docker group "
            "(logout/login required for non-sudo docker access)"
        )


def ensure_runtime(runner: StepRunner) -> dict[str, Any]:
    """Provisioning step: container runtime and compose plugin."""
    installed = False
    version = runner.probe("docker", "version", name="docker --version", operation="version")
    if version.ok:
        runner.note(f"Docker is already installed: {version.output.strip()}")
    else:
        logger.info("Installing Docker...")
        install_engine(runner)
        installed = True
        version = runner.probe("docker", "installed-version", name="docker --version",
                               operation="version")
        if version.ok:
            runner.note(f"Installed {version.output.strip()}")

    compose = runner.probe("docker", "compose-version", name="docker compose version",
                           operation="compose_version")
    compose_installed = False
    if compose.failed:
        logger.info("Installing Docker Compose plugin...")
        _apt_install(runner, "apt-compose", [COMPOSE_PACKAGE])
        compose_installed = True
        runner.note("Installed the Docker Compose plugin")

    return {
        "docker_version": version.output.strip() if version.ok else None,
        "docker_installed": installed,
        "compose_installed": compose_installed,
    }

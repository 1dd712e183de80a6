"""
InstallConfig — the immutable installer configuration.

Resolved once at startup (see ``core.config.loader.resolve_config``)
and passed to every provisioning step. Nothing downstream reads
``SUDO_USER`` or ``HOME`` again.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class InstallConfig(BaseModel):
    """Everything the provisioning flow needs to know about the host.

    Identity fields describe the *real* (non-elevated) user: when the
    installer runs through sudo, that is ``SUDO_USER``, not root.
    """

    model_config = ConfigDict(frozen=True)

    # ── Identity ─────────────────────────────────────────────────
    real_user: str
    real_home: Path
    uid: int
    gid: int
    euid: int
    delegated: bool = False          # invoked through sudo

    # ── Layout ───────────────────────────────────────────────────
    install_dir_name: str = "share-space"
    compose_file_name: str = "docker-compose.yml"
    unit_name: str = "sharespace.service"
    unit_dir: Path = Path("/etc/systemd/system")

    # ── Stack ────────────────────────────────────────────────────
    app_image: str = "yessir1232/sharespace:latest"
    app_service: str = "sharespace-app"
    app_container: str = "sharespace"
    mdns_hostname: str = "sharespace"
    default_api_version: str = "1.41"
    docker_binary: str = "/usr/bin/docker"
    watchtower_poll_interval: int = 180

    # ── Readiness ────────────────────────────────────────────────
    readiness_delay: float = Field(default=10.0, ge=0)
    readiness_attempts: int = Field(default=6, ge=1)
    readiness_interval: float = Field(default=5.0, ge=0)

    @property
    def elevated(self) -> bool:
        return self.euid == 0

    @property
    def owns_files(self) -> bool:
        """Whether created files must be handed to the real user."""
        return self.delegated and self.real_user != "root"

    @property
    def install_root(self) -> Path:
        return self.real_home / self.install_dir_name

    @property
    def data_dir(self) -> Path:
        return self.install_root / "data"

    @property
    def signal_dir(self) -> Path:
        return self.data_dir / "signal-cli"

    @property
    def compose_file(self) -> Path:
        return self.install_root / self.compose_file_name

    @property
    def installation_id_file(self) -> Path:
        return self.data_dir / "installation_id"

    @property
    def unit_path(self) -> Path:
        return self.unit_dir / self.unit_name

    @property
    def state_dir(self) -> Path:
        return self.install_root / ".state"

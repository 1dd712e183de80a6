"""
Status use case — last recorded install plus live container state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sharespace_installer.adapters import default_registry
from sharespace_installer.adapters.registry import AdapterRegistry
from sharespace_installer.core.models.action import Action
from sharespace_installer.core.models.install import InstallConfig
from sharespace_installer.core.models.readiness import ReadinessState, ServiceStatus
from sharespace_installer.core.models.state import InstallState
from sharespace_installer.core.persistence.state_file import DEFAULT_STATE_FILE, load_state
from sharespace_installer.core.services.stack import parse_compose_ps, service_readiness


@dataclass
class StatusResult:
    """Install record and live readiness for one host."""

    config: InstallConfig
    installed: bool = False
    state: InstallState | None = None
    services: list[ServiceStatus] = field(default_factory=list)
    readiness: ReadinessState = ReadinessState.MISSING
    error: str | None = None

    def to_dict(self) -> dict:
        result: dict = {
            "install_root": str(self.config.install_root),
            "installed": self.installed,
            "readiness": self.readiness.value,
            "services": [
                {"service": s.service, "name": s.name, "state": s.readiness.value, "status": s.status}
                for s in self.services
            ],
        }
        if self.state:
            result["last_install"] = {
                "operation_id": self.state.operation_id,
                "status": self.state.status,
                "ended_at": self.state.ended_at,
                "installation_id": self.state.installation_id,
                "api_version": self.state.api_version,
                "readiness": self.state.readiness,
            }
        if self.error:
            result["error"] = self.error
        return result


def get_status(config: InstallConfig, registry: AdapterRegistry | None = None) -> StatusResult:
    """Read the install record and ask compose for the live state.

    Args:
        config: Resolved installer configuration.
        registry: Optional pre-configured adapter registry.

    Returns:
        StatusResult; ``error`` is set when compose could not be queried.
    """
    result = StatusResult(config=config)
    result.installed = config.compose_file.is_file()
    result.state = load_state(config.state_dir / DEFAULT_STATE_FILE)

    if not result.installed:
        return result

    if registry is None:
        registry = default_registry()

    receipt = registry.execute_action(
        Action(
            id="status:ps",
            name="docker compose ps",
            adapter="docker",
            step="status",
            params={"operation": "ps", "compose_file": str(config.compose_file)},
        ),
        project_root=str(config.install_root),
    )
    if receipt.failed:
        result.error = receipt.error
        return result

    result.services = parse_compose_ps(receipt.output)
    result.readiness = service_readiness(result.services, config)
    return result

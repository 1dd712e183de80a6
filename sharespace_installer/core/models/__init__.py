"""Domain models — re-exported for convenience."""

from sharespace_installer.core.models.action import Action, Receipt
from sharespace_installer.core.models.install import InstallConfig
from sharespace_installer.core.models.readiness import ReadinessState, ServiceStatus
from sharespace_installer.core.models.state import InstallState, StepRecord

__all__ = [
    "Action",
    "InstallConfig",
    "InstallState",
    "ReadinessState",
    "Receipt",
    "ServiceStatus",
    "StepRecord",
]

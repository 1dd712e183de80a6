"""
Install use case — the whole provisioning flow.

This is the top-level orchestrator: it checks privileges, runs the
provisioning steps in order through one StepRunner, and persists the
outcome. A failed step rolls back what this run created. The install
record and audit entry are written only by a real run (neither dry-run
nor mock) and only if the install root survives.
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from sharespace_installer import __version__
from sharespace_installer.adapters import default_registry
from sharespace_installer.adapters.registry import AdapterRegistry
from sharespace_installer.core.engine.executor import (
    ProvisioningReport,
    ProvisioningStep,
    StepOutcome,
    StepRunner,
    execute_steps,
    generate_operation_id,
    write_audit_entries,
)
from sharespace_installer.core.models.install import InstallConfig
from sharespace_installer.core.models.state import InstallState, StepRecord
from sharespace_installer.core.persistence.audit import DEFAULT_AUDIT_FILE, AuditWriter
from sharespace_installer.core.persistence.state_file import DEFAULT_STATE_FILE, save_state
from sharespace_installer.core.services.compose import render_step
from sharespace_installer.core.services.completion import report_completion
from sharespace_installer.core.services.directories import provision_directories
from sharespace_installer.core.services.identity import record_identity
from sharespace_installer.core.services.privilege import PrivilegeError, check_privileges
from sharespace_installer.core.services.runtime_installer import ensure_runtime
from sharespace_installer.core.services.stack import launch_stack
from sharespace_installer.core.services.systemd_unit import register_service

logger = logging.getLogger(__name__)


def provisioning_steps(*, regenerate_id: bool = False) -> list[ProvisioningStep]:
    """The provisioning flow, in execution order."""
    return [
        ProvisioningStep("runtime", "Container runtime", ensure_runtime),
        ProvisioningStep("directories", "Install directories", provision_directories),
        ProvisioningStep("compose", "Compose descriptor", render_step),
        ProvisioningStep(
            "identity",
            "Installation identifier",
            functools.partial(record_identity, regenerate=regenerate_id),
        ),
        ProvisioningStep("stack", "Start containers", launch_stack),
        ProvisioningStep("service", "Boot-time service", register_service),
        ProvisioningStep("completion", "Summary", report_completion),
    ]


@dataclass
class InstallResult:
    """Result of an install run."""

    config: InstallConfig
    report: ProvisioningReport | None = None
    dry_run: bool = False
    mock_mode: bool = False
    state_saved: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and (self.report is None or self.report.ok)

    @property
    def message(self) -> str:
        return self.report.data("message", "") if self.report else ""

    def to_dict(self) -> dict:
        result: dict = {
            "ok": self.ok,
            "install_root": str(self.config.install_root),
            "dry_run": self.dry_run,
            "mock": self.mock_mode,
        }
        if self.error:
            result["error"] = self.error
        if self.report:
            result["report"] = self.report.to_dict()
            result["api_version"] = self.report.data("api_version")
            result["installation_id"] = self.report.data("installation_id")
            result["readiness"] = self.report.data("readiness")
            result["ip"] = self.report.data("ip")
        result["state_saved"] = self.state_saved
        return result


def run_install(
    config: InstallConfig,
    *,
    dry_run: bool = False,
    mock_mode: bool = False,
    regenerate_id: bool = False,
    registry: AdapterRegistry | None = None,
    sleep: Callable[[float], None] | None = None,
    on_step: Callable[[StepOutcome], None] | None = None,
) -> InstallResult:
    """Provision the host.

    Args:
        config: Resolved installer configuration.
        dry_run: Validate and report every action without executing it.
        mock_mode: Dispatch every action to a mock that always succeeds.
        regenerate_id: Replace an existing installation identifier.
        registry: Optional pre-configured adapter registry.
        sleep: Optional replacement for ``time.sleep`` (readiness waits).
        on_step: Optional callback invoked after each step finishes.

    Returns:
        InstallResult with the provisioning report.
    """
    result = InstallResult(config=config, dry_run=dry_run, mock_mode=mock_mode)

    # ── Privilege guard ──────────────────────────────────────────
    if not (dry_run or mock_mode):
        try:
            check_privileges(config)
        except PrivilegeError as e:
            result.error = str(e)
            return result

    if registry is None:
        registry = default_registry(mock_mode=mock_mode)

    # ── Provision ────────────────────────────────────────────────
    started_at = datetime.now(UTC).isoformat()
    start = time.monotonic()
    runner = StepRunner(
        registry,
        config,
        operation_id=generate_operation_id(),
        dry_run=dry_run,
        sleep=sleep,
    )
    report = execute_steps(provisioning_steps(regenerate_id=regenerate_id), runner, on_step)
    duration_ms = int((time.monotonic() - start) * 1000)
    result.report = report
    if not report.ok:
        result.error = report.error

    # ── Persist ──────────────────────────────────────────────────
    if dry_run or mock_mode:
        return result
    if not config.install_root.is_dir():
        logger.debug("Install root absent, not recording state")
        return result

    state = InstallState(
        operation_id=report.operation_id,
        status=report.status,
        started_at=started_at,
        ended_at=datetime.now(UTC).isoformat(),
        installer_version=__version__,
        install_root=str(config.install_root),
        api_version=report.data("api_version"),
        installation_id=report.data("installation_id"),
        readiness=report.data("readiness"),
        steps=[StepRecord(name=o.name, status=o.status, message=o.message) for o in report.outcomes],
        warnings=report.warnings,
        metadata={"failed_step": report.failed_step} if report.failed_step else {},
    )
    try:
        save_state(state, config.state_dir / DEFAULT_STATE_FILE)
        result.state_saved = True
    except OSError as e:
        logger.warning("Could not record install state: %s", e)

    write_audit_entries(report, AuditWriter(config.state_dir / DEFAULT_AUDIT_FILE),
                        duration_ms=duration_ms)
    return result

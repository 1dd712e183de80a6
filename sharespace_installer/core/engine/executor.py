"""
Engine executor — the provisioning loop.

Runs the provisioning steps once, in fixed order. Every side effect
is an Action dispatched through the adapter registry; every Receipt
is kept on the step's outcome. Steps register a compensating Action
for each side effect they actually caused, so a failure part-way
through unwinds what this run created instead of leaving it behind.

Flow:
    step → actions → receipts → (failure?) → compensations in reverse
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sharespace_installer.adapters.registry import AdapterRegistry
from sharespace_installer.core.models.action import Action, Receipt
from sharespace_installer.core.models.install import InstallConfig
from sharespace_installer.core.persistence.audit import AuditEntry, AuditWriter

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """A required action failed; the run must stop."""

    def __init__(self, step: str, message: str, receipt: Receipt | None = None):
        super().__init__(message)
        self.step = step
        self.receipt = receipt


@dataclass
class StepOutcome:
    """What one provisioning step did."""

    name: str
    title: str = ""
    status: str = "ok"  # ok, failed
    message: str = ""
    notes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    receipts: list[Receipt] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "status": self.status,
            "message": self.message,
            "notes": self.notes,
            "warnings": self.warnings,
            "data": self.data,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass(frozen=True)
class ProvisioningStep:
    """A named component of the provisioning flow."""

    name: str
    title: str
    func: Callable[[StepRunner], dict[str, Any] | None]


@dataclass
class ProvisioningReport:
    """Result of a provisioning run."""

    operation_id: str = ""
    outcomes: list[StepOutcome] = field(default_factory=list)
    rollback_receipts: list[Receipt] = field(default_factory=list)
    error: str | None = None
    failed_step: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        if self.error is None:
            return "ok"
        if any(r.failed for r in self.rollback_receipts):
            return "failed"
        return "rolled_back"

    @property
    def warnings(self) -> list[str]:
        return [w for o in self.outcomes for w in o.warnings]

    @property
    def completed_steps(self) -> list[str]:
        return [o.name for o in self.outcomes if o.ok]

    def data(self, key: str, default: Any = None) -> Any:
        """Look up a value any step reported."""
        for outcome in self.outcomes:
            if key in outcome.data:
                return outcome.data[key]
        return default

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "error": self.error,
            "failed_step": self.failed_step,
            "warnings": self.warnings,
            "steps": [o.to_dict() for o in self.outcomes],
            "rollback": [r.model_dump(mode="json") for r in self.rollback_receipts],
        }


class StepRunner:
    """Dispatches a step's actions and keeps the compensation stack.

    One runner serves a whole provisioning run. Action IDs take the form
    ``<operation_id>:<step>:<key>``; compensations use
    ``<operation_id>:<step>:undo-<key>``.
    """

    def __init__(
        self,
        registry: AdapterRegistry,
        config: InstallConfig,
        *,
        operation_id: str = "",
        dry_run: bool = False,
        sleep: Callable[[float], None] | None = None,
    ):
        self.registry = registry
        self.config = config
        self.operation_id = operation_id or generate_operation_id()
        self.dry_run = dry_run
        self._sleep = sleep
        self._compensations: list[Action] = []
        self._outcome = StepOutcome(name="")

    @property
    def step(self) -> str:
        return self._outcome.name

    @property
    def outcome(self) -> StepOutcome:
        return self._outcome

    def begin(self, step: ProvisioningStep) -> StepOutcome:
        self._outcome = StepOutcome(name=step.name, title=step.title)
        return self._outcome

    def sleep(self, seconds: float) -> None:
        if self.dry_run or self.registry.mock_mode or seconds <= 0:
            return
        (self._sleep or time.sleep)(seconds)

    # ── Dispatch ────────────────────────────────────────────────

    def run(self, adapter: str, key: str, *, name: str = "", **params: Any) -> Receipt:
        """Execute an action; a failed receipt is returned, not raised."""
        return self._run(adapter, key, name, params, dry_run=self.dry_run)

    def probe(self, adapter: str, key: str, *, name: str = "", **params: Any) -> Receipt:
        """Execute a read-only action, even during a dry run."""
        return self._run(adapter, key, name, params, dry_run=False)

    def require(self, adapter: str, key: str, *, name: str = "", **params: Any) -> Receipt:
        """Execute an action; raise ProvisioningError if it fails."""
        receipt = self.run(adapter, key, name=name, **params)
        if receipt.failed:
            raise ProvisioningError(
                self.step,
                f"{name or key} failed: {receipt.error}",
                receipt,
            )
        return receipt

    def compensate(self, adapter: str, key: str, *, name: str = "", **params: Any) -> None:
        """Register the undo for a side effect the current step caused."""
        self._compensations.append(
            Action(
                id=f"{self.operation_id}:{self.step}:undo-{key}",
                name=name or f"undo {key}",
                adapter=adapter,
                step=self.step,
                params=params,
            )
        )

    def read_existing(self, key: str, path: Path) -> str | None:
        """Current content of *path*, or ``None`` when there is no such file.

        Runs during a dry run. A file that exists but cannot be read
        stops the run.
        """
        receipt = self.probe("filesystem", key, name=f"read {path}",
                             operation="read", path=str(path))
        if receipt.skipped or receipt.metadata.get("mock"):
            return None
        if receipt.failed:
            raise ProvisioningError(self.step, f"Cannot read {path}: {receipt.error}", receipt)
        return receipt.output

    def note(self, message: str) -> None:
        """Something the operator should see even at the default log level."""
        logger.info(message)
        self._outcome.notes.append(message)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self._outcome.warnings.append(message)

    # ── Rollback ────────────────────────────────────────────────

    def rollback_plan(self) -> list[Action]:
        """Compensations in reverse order of registration."""
        return list(reversed(self._compensations))

    def rollback(self) -> list[Receipt]:
        """Run every compensation, best effort.

        A failing compensation is logged and the rest still run.
        """
        receipts: list[Receipt] = []
        for action in self.rollback_plan():
            receipt = self._dispatch(action)
            if receipt.failed:
                logger.error("Rollback %s failed: %s", action.name, receipt.error)
            receipts.append(receipt)
        self._compensations.clear()
        return receipts

    def _run(
        self,
        adapter: str,
        key: str,
        name: str,
        params: dict[str, Any],
        *,
        dry_run: bool,
    ) -> Receipt:
        action = Action(
            id=f"{self.operation_id}:{self.step}:{key}",
            name=name or key,
            adapter=adapter,
            step=self.step,
            params=params,
        )
        receipt = self._dispatch(action, dry_run=dry_run)
        self._outcome.receipts.append(receipt)
        return receipt

    def _dispatch(self, action: Action, *, dry_run: bool | None = None) -> Receipt:
        receipt = self.registry.execute_action(
            action=action,
            project_root=str(self.config.install_root),
            dry_run=self.dry_run if dry_run is None else dry_run,
        )
        marker = "✓" if receipt.ok else "✗" if receipt.failed else "⊘"
        logger.info("%s %s → %s", marker, action.id, receipt.status)
        return receipt


def execute_steps(
    steps: list[ProvisioningStep],
    runner: StepRunner,
    on_step: Callable[[StepOutcome], None] | None = None,
) -> ProvisioningReport:
    """Run provisioning steps in order, rolling back on the first failure.

    Args:
        steps: The steps, in execution order.
        runner: Dispatcher shared by all steps.
        on_step: Optional callback invoked after each step finishes.

    Returns:
        ProvisioningReport with every outcome and rollback receipt.
    """
    report = ProvisioningReport(operation_id=runner.operation_id)

    for step in steps:
        outcome = runner.begin(step)
        logger.info("Step %s: %s", step.name, step.title)
        try:
            data = step.func(runner)
        except ProvisioningError as e:
            return _fail(report, runner, outcome, str(e), on_step)
        except Exception as e:
            logger.exception("Step %s raised unexpectedly", step.name)
            return _fail(report, runner, outcome, f"{type(e).__name__}: {e}", on_step)

        outcome.data.update(data or {})
        report.outcomes.append(outcome)
        if on_step:
            on_step(outcome)

    return report


def _fail(
    report: ProvisioningReport,
    runner: StepRunner,
    outcome: StepOutcome,
    error: str,
    on_step: Callable[[StepOutcome], None] | None,
) -> ProvisioningReport:
    """Record the failed step and unwind everything registered so far."""
    outcome.status = "failed"
    outcome.message = error
    report.outcomes.append(outcome)
    report.error = error
    report.failed_step = outcome.name
    if on_step:
        on_step(outcome)
    logger.error("Step %s failed, rolling back: %s", outcome.name, error)
    report.rollback_receipts = runner.rollback()
    return report


def write_audit_entries(
    report: ProvisioningReport,
    audit_writer: AuditWriter,
    *,
    duration_ms: int = 0,
) -> None:
    """Write a provisioning run to the audit ledger."""
    receipts = [r for o in report.outcomes for r in o.receipts]
    entry = AuditEntry(
        operation_id=report.operation_id,
        operation_type="install",
        status=report.status,
        steps_completed=report.completed_steps,
        actions_total=len(receipts),
        actions_succeeded=sum(1 for r in receipts if r.ok),
        actions_failed=sum(1 for r in receipts if r.failed),
        duration_ms=duration_ms,
        errors=[report.error] if report.error else [],
        context={"warnings": report.warnings, "failed_step": report.failed_step},
    )
    audit_writer.write(entry)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"

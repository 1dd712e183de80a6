"""
Systemd adapter — unit management through ``systemctl``.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from sharespace_installer.adapters.base import Adapter, ExecutionContext
from sharespace_installer.core.models.action import Receipt

logger = logging.getLogger(__name__)


class SystemdAdapter(Adapter):
    """Manage systemd units.

    Action params:
        operation (str): One of 'daemon_reload', 'enable', 'disable',
                         'start', 'stop', 'is_enabled', 'is_active'.
        unit (str): Unit name (required for everything but daemon_reload).
    """

    _UNIT_OPS = {"enable", "disable", "start", "stop", "is_enabled", "is_active"}

    @property
    def name(self) -> str:
        return "systemd"

    def is_available(self) -> bool:
        return shutil.which("systemctl") is not None and Path("/run/systemd/system").exists()

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        if operation != "daemon_reload" and operation not in self._UNIT_OPS:
            valid = ", ".join(sorted(self._UNIT_OPS | {"daemon_reload"}))
            return False, f"Unknown operation '{operation}'. Valid: {valid}"
        if operation in self._UNIT_OPS and not context.action.params.get("unit"):
            return False, "Missing required param: 'unit'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        unit = context.action.params.get("unit", "")
        verb = operation.replace("_", "-")
        cmd = ["systemctl", verb] + ([unit] if unit else [])

        logger.debug("systemd: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=60)
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"systemctl error: {e}",
                metadata={"operation": operation, "unit": unit},
            )

        if result.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=result.stderr.strip() or result.stdout.strip() or f"systemctl {verb} failed",
                metadata={"operation": operation, "unit": unit, "return_code": result.returncode},
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=result.stdout.strip(),
            metadata={"operation": operation, "unit": unit},
        )

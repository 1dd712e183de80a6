"""
Docker adapter — runtime and compose operations.

Provides Docker and Docker Compose operations through the adapter protocol.
Uses the docker CLI — never the Docker API directly.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from sharespace_installer.adapters.base import Adapter, ExecutionContext
from sharespace_installer.core.models.action import Receipt

logger = logging.getLogger(__name__)


class DockerAdapter(Adapter):
    """Docker and Docker Compose operations.

    Action params:
        operation (str): One of 'version', 'api_version', 'compose_version',
                         'pull', 'up', 'down', 'ps'.
        compose_file (str): Optional ``-f`` argument for compose operations.
        timeout (int): Timeout in seconds.
    """

    # operation → (args, compose?, default timeout)
    _OPERATIONS: dict[str, tuple[list[str], bool, int]] = {
        "version": (["--version"], False, 15),
        "api_version": (["version", "--format", "{{.Server.APIVersion}}"], False, 15),
        "compose_version": (["version"], True, 15),
        "pull": (["pull"], True, 1800),
        "up": (["up", "-d"], True, 600),
        "down": (["down"], True, 300),
        "ps": (["ps", "--all", "--format", "json"], True, 30),
    }

    @property
    def name(self) -> str:
        return "docker"

    def is_available(self) -> bool:
        return shutil.which("docker") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"
        if operation not in self._OPERATIONS:
            valid = ", ".join(sorted(self._OPERATIONS))
            return False, f"Unknown operation '{operation}'. Valid: {valid}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        args, compose, default_timeout = self._OPERATIONS[operation]
        timeout = context.action.params.get("timeout", default_timeout)

        cmd = ["docker"]
        if compose:
            cmd.append("compose")
            compose_file = context.action.params.get("compose_file")
            if compose_file:
                cmd += ["-f", str(compose_file)]
        cmd += args

        cwd = context.working_dir if Path(context.working_dir).is_dir() else None
        logger.debug("Docker: %s (cwd=%s)", " ".join(cmd), cwd)
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"docker {operation} timed out after {timeout}s",
                metadata={"operation": operation},
            )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Docker error: {e}",
                metadata={"operation": operation},
            )

        if result.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=result.stderr.strip() or f"docker {operation} failed",
                metadata={"operation": operation, "return_code": result.returncode},
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=result.stdout.strip(),
            metadata={"operation": operation, "command": " ".join(cmd)},
        )

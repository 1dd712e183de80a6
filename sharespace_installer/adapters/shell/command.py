"""
Shell command adapter — execute host commands.

This is the most fundamental adapter: it runs commands (apt-get,
install, curl, usermod, ...) and captures their output. Commands are
passed as argv lists; a plain string is run through ``sh``.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from sharespace_installer.adapters.base import Adapter, ExecutionContext
from sharespace_installer.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Tail of stderr/stdout kept in receipts
_OUTPUT_LIMIT = 4000


class ShellCommandAdapter(Adapter):
    """Execute shell commands and capture output.

    Action params:
        argv (list[str]): Command and arguments (preferred).
        command (str): Shell string, run through ``sh -c``.
        timeout (int): Timeout in seconds (default: 600).
        cwd (str): Override working directory (default: context.working_dir).
        env (dict): Extra environment variables.
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        argv = params.get("argv")
        command = params.get("command", "")
        if not argv and not command:
            return False, "Missing required param: 'argv' or 'command'"
        if argv is not None and not isinstance(argv, list):
            return False, "Param 'argv' must be a list"

        cwd = params.get("cwd")
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        argv = params.get("argv")
        command = argv if argv else params["command"]
        use_shell = not argv
        timeout = params.get("timeout", 600)
        cwd = context.working_dir if Path(context.working_dir).is_dir() else None
        display = " ".join(argv) if argv else command

        env = None
        if params.get("env"):
            env = {**os.environ, **{k: str(v) for k, v in params["env"].items()}}

        logger.debug("Executing: %s (cwd=%s)", display, cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                shell=use_shell,
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                metadata={"command": display, "timeout": timeout},
            )
        except FileNotFoundError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command not found: {e.filename or display}",
                metadata={"command": display, "return_code": 127},
            )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                metadata={"command": display},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = result.stdout.strip()[-_OUTPUT_LIMIT:]
        stderr = result.stderr.strip()[-_OUTPUT_LIMIT:]

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                duration_ms=elapsed_ms,
                metadata={
                    "command": display,
                    "return_code": result.returncode,
                    "stderr": stderr,
                },
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={
                "command": display,
                "return_code": result.returncode,
                "stdout": output,
            },
        )

"""
Identity recorder — the per-host installation identifier.

The identifier is derived from the first source that yields a value:

    1. ``/etc/machine-id`` (when present and non-empty)
    2. a random UUID
    3. the MD5 hex digest of the hostname

It is written as a single line to ``data/installation_id``. An existing
non-empty identifier is kept across re-runs so the host keeps the same
identity; ``regenerate=True`` derives a fresh one.
"""

from __future__ import annotations

import hashlib
import logging
import socket
import uuid
from pathlib import Path
from typing import Any

from sharespace_installer.core.engine.executor import StepRunner

logger = logging.getLogger(__name__)

MACHINE_ID = Path("/etc/machine-id")


def read_machine_id(path: Path | None = None) -> str | None:
    """Return the machine id, or ``None`` if unreadable or empty."""
    try:
        value = (path or MACHINE_ID).read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None
    return value or None


def hostname_digest(hostname: str | None = None) -> str:
    name = hostname if hostname is not None else socket.gethostname()
    return hashlib.md5(f"{name}\n".encode()).hexdigest()


def derive_installation_id(machine_id_path: Path | None = None) -> str:
    """Pick an identifier from the first source that yields one."""
    machine_id = read_machine_id(machine_id_path)
    if machine_id:
        return machine_id
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        logger.debug("No randomness source, hashing hostname")
        return hostname_digest()


def record_identity(runner: StepRunner, *, regenerate: bool = False) -> dict[str, Any]:
    """Provisioning step: write the installation identifier file."""
    config = runner.config
    path = config.installation_id_file
    existing = (runner.read_existing("read-id", path) or "").strip() or None

    if existing and not regenerate:
        logger.info("Keeping installation id %s", existing)
        return {"installation_id": existing, "id_preserved": True}

    installation_id = derive_installation_id()
    runner.require(
        "filesystem",
        "write-id",
        name=f"write {path}",
        operation="write",
        path=str(path),
        content=f"{installation_id}\n",
    )
    if existing is None:
        runner.compensate("filesystem", "write-id", name=f"remove {path}",
                          operation="remove", path=str(path))
    else:
        runner.compensate("filesystem", "write-id", name=f"restore {path}",
                          operation="write", path=str(path), content=f"{existing}\n")

    if config.owns_files:
        runner.require("filesystem", "chown-id", name=f"chown {path}",
                       operation="chown", path=str(path), uid=config.uid, gid=config.gid)

    logger.info("Installation info saved")
    return {"installation_id": installation_id, "id_preserved": False}

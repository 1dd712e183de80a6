"""
Filesystem provisioner — install root and data directories.

Creating a directory that already exists is a no-op; only directories
this run actually created are removed on rollback.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sharespace_installer.core.engine.executor import StepRunner

logger = logging.getLogger(__name__)


def provision_directories(runner: StepRunner) -> dict[str, Any]:
    """Provisioning step: create the install tree and hand it to the real user."""
    config = runner.config
    targets: list[tuple[str, Path]] = [
        ("mkdir-root", config.install_root),
        ("mkdir-data", config.data_dir),
        ("mkdir-signal", config.signal_dir),
    ]

    created: list[str] = []
    for key, path in targets:
        receipt = runner.require("filesystem", key, name=f"create {path}",
                                 operation="mkdir", path=str(path))
        if receipt.metadata.get("created"):
            created.append(str(path))
            runner.compensate("filesystem", key, name=f"remove {path}",
                              operation="remove", path=str(path))

    if config.owns_files:
        runner.require(
            "filesystem",
            "chown-root",
            name=f"chown {config.real_user} {config.install_root}",
            operation="chown",
            path=str(config.install_root),
            uid=config.uid,
            gid=config.gid,
            recursive=True,
        )

    logger.info("Directories ready at %s", config.install_root)
    return {"install_root": str(config.install_root), "created_dirs": created}

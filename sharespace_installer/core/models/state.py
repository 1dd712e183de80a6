"""
InstallState — the record of the last provisioning run.

Serialized to ``<install_root>/.state/install.json`` after each run
so ``sharespace-install status`` can report what was done. It is
disposable: delete it and the next install writes a fresh one.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepRecord(BaseModel):
    """Outcome of one provisioning step."""

    name: str
    status: str = ""  # ok, failed, skipped
    message: str = ""


class InstallState(BaseModel):
    """Root state model — serialized to .state/install.json."""

    # ── Schema ───────────────────────────────────────────────────
    schema_version: int = 1

    # ── Last run ─────────────────────────────────────────────────
    operation_id: str = ""
    status: str = ""  # ok, failed, rolled_back
    started_at: str = ""
    ended_at: str = ""
    installer_version: str = ""

    # ── Timestamps ───────────────────────────────────────────────
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)

    # ── Results ──────────────────────────────────────────────────
    install_root: str = ""
    api_version: str | None = None
    installation_id: str | None = None
    readiness: str | None = None
    steps: list[StepRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    # ── Extensible metadata ──────────────────────────────────────
    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

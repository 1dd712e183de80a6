"""
Tests for persistence — install state file and audit ledger.
"""

import json
from pathlib import Path

from sharespace_installer.core.models.state import InstallState, StepRecord
from sharespace_installer.core.persistence.audit import AuditEntry, AuditWriter
from sharespace_installer.core.persistence.state_file import load_state, save_state

# ── State File Tests ─────────────────────────────────────────────────


class TestStateFile:
    def test_load_missing(self, tmp_path: Path):
        assert load_state(tmp_path / "install.json") is None

    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / ".state" / "install.json"
        state = InstallState(
            operation_id="op-1",
            status="ok",
            installation_id="abc",
            readiness="running",
            steps=[StepRecord(name="runtime", status="ok")],
        )
        save_state(state, path)

        loaded = load_state(path)
        assert loaded is not None
        assert loaded.operation_id == "op-1"
        assert loaded.installation_id == "abc"
        assert loaded.steps[0].name == "runtime"

    def test_save_is_valid_json(self, tmp_path: Path):
        path = tmp_path / "install.json"
        save_state(InstallState(status="ok"), path)
        assert json.loads(path.read_text())["status"] == "ok"
        assert not list(tmp_path.glob(".state_*.tmp"))

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "install.json"
        path.write_text("{not json")
        assert load_state(path) is None

    def test_touch_updates_timestamp(self, tmp_path: Path):
        state = InstallState(updated_at="2000-01-01T00:00:00+00:00")
        save_state(state, tmp_path / "install.json")
        assert state.updated_at != "2000-01-01T00:00:00+00:00"


# ── Audit Ledger Tests ───────────────────────────────────────────────


class TestAuditWriter:
    def test_append_only(self, tmp_path: Path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        writer.write(AuditEntry(operation_id="op-1", status="ok"))
        writer.write(AuditEntry(operation_id="op-2", status="rolled_back"))

        lines = (tmp_path / "audit.ndjson").read_text().splitlines()
        assert len(lines) == 2
        assert [e.operation_id for e in writer.read_all()] == ["op-1", "op-2"]

    def test_read_recent(self, tmp_path: Path):
        writer = AuditWriter(tmp_path / "audit.ndjson")
        for i in range(5):
            writer.write(AuditEntry(operation_id=f"op-{i}"))
        assert [e.operation_id for e in writer.read_recent(2)] == ["op-3", "op-4"]

    def test_corrupt_line_skipped(self, tmp_path: Path):
        path = tmp_path / "audit.ndjson"
        writer = AuditWriter(path)
        writer.write(AuditEntry(operation_id="op-1"))
        with path.open("a") as f:
            f.write("garbage\n")
        writer.write(AuditEntry(operation_id="op-2"))
        assert [e.operation_id for e in writer.read_all()] == ["op-1", "op-2"]

    def test_missing_ledger(self, tmp_path: Path):
        assert AuditWriter(tmp_path / "absent.ndjson").read_all() == []

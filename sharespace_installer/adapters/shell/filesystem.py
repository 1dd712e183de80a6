"""
Filesystem adapter — file and directory operations.

Provides a safe, receipt-returning interface for filesystem operations
that the engine can audit, dry-run, and roll back.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from sharespace_installer.adapters.base import Adapter, ExecutionContext
from sharespace_installer.core.models.action import Receipt

logger = logging.getLogger(__name__)


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts.

    Action params:
        operation (str): One of 'read', 'write', 'mkdir', 'remove', 'chown'.
        path (str): Target path (relative to working_dir or absolute).
        content (str): Content to write (for 'write').
        mode (int): Optional file mode (for 'write').
        uid, gid (int): Owner (for 'chown').
        recursive (bool): Apply chown to the whole tree (default: False).
    """

    _VALID_OPS = {"read", "write", "mkdir", "remove", "chown"}

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        operation = params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in self._VALID_OPS:
            valid = ", ".join(sorted(self._VALID_OPS))
            return False, f"Unknown operation '{operation}'. Valid: {valid}"

        if not params.get("path"):
            return False, "Missing required param: 'path'"

        if operation == "write" and "content" not in params:
            return False, "Missing required param: 'content' for write operation"

        if operation == "chown" and ("uid" not in params or "gid" not in params):
            return False, "Missing required params: 'uid' and 'gid' for chown operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        target = Path(context.action.params["path"])
        if not target.is_absolute():
            target = Path(context.working_dir) / target

        handler = getattr(self, f"_{operation}")
        try:
            return handler(context, target)
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation, "path": str(target)},
            )

    def _read(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if not target.exists():
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"File not found: {target}",
                metadata={"path": str(target)},
            )
        content = target.read_text(encoding="utf-8")
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=content,
            metadata={"path": str(target), "size": len(content)},
        )

    def _write(self, ctx: ExecutionContext, target: Path) -> Receipt:
        content = ctx.action.params["content"]
        existed = target.is_file()
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        mode = ctx.action.params.get("mode")
        if mode is not None:
            target.chmod(mode)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Written {len(content)} bytes to {target}",
            metadata={"path": str(target), "size": len(content), "existed": existed},
        )

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        existed = target.is_dir()
        target.mkdir(parents=True, exist_ok=True)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Directory {'exists' if existed else 'created'}: {target}",
            metadata={"path": str(target), "created": not existed},
        )

    def _remove(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        else:
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"Nothing to remove: {target}",
            )
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Removed: {target}",
            metadata={"path": str(target)},
        )

    def _chown(self, ctx: ExecutionContext, target: Path) -> Receipt:
        uid = int(ctx.action.params["uid"])
        gid = int(ctx.action.params["gid"])
        count = 1
        os.chown(target, uid, gid)
        if ctx.action.params.get("recursive") and target.is_dir():
            for root, dirs, files in os.walk(target):
                for entry in dirs + files:
                    os.chown(os.path.join(root, entry), uid, gid, follow_symlinks=False)
                    count += 1
        logger.debug("chown %s:%s %s (%d entries)", uid, gid, target, count)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Ownership set to {uid}:{gid} on {target}",
            metadata={"path": str(target), "entries": count},
        )

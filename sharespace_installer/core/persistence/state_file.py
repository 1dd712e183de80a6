"""
State file persistence — atomic read/write for InstallState.

State is stored as JSON in ``<install_root>/.state/install.json``.
Writes are atomic (write to temp file, then rename) so a crash
mid-write never leaves a truncated record.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path

from sharespace_installer.core.models.state import InstallState

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = "install.json"


def load_state(path: Path) -> InstallState | None:
    """Load the install record.

    Returns:
        InstallState, or None if there is no (readable) record.
    """
    if not path.is_file():
        logger.debug("No install state at %s", path)
        return None

    try:
        state = InstallState.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except json.JSONDecodeError as e:
        logger.warning("Corrupt state file %s: %s", path, e)
        return None
    except Exception as e:
        logger.warning("Cannot load state from %s: %s", path, e)
        return None

    logger.debug("Loaded state from %s (updated_at=%s)", path, state.updated_at)
    return state


def save_state(state: InstallState, path: Path) -> None:
    """Save the install record (atomic write).

    Raises:
        OSError: If the file cannot be written.
    """
    state.touch()
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".state_", suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with open(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
    except Exception:
        tmp.unlink(missing_ok=True)
        logger.error("Failed to save state to %s", path)
        raise
    logger.debug("State saved to %s", path)

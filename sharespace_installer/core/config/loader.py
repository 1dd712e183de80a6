"""
Configuration loader — resolves the installer's InstallConfig.

The real (non-elevated) user is recovered from ``SUDO_USER`` when the
installer runs through sudo; otherwise the current user and ``HOME``
are used. An optional YAML file may override the stack settings.
"""

from __future__ import annotations

import getpass
import logging
import os
import pwd
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from sharespace_installer.core.models.install import InstallConfig

logger = logging.getLogger(__name__)

# Keys an override file may set
OVERRIDABLE_KEYS = frozenset({
    "install_dir_name",
    "app_image",
    "mdns_hostname",
    "default_api_version",
    "docker_binary",
    "watchtower_poll_interval",
    "readiness_delay",
    "readiness_attempts",
    "readiness_interval",
})


class ConfigError(Exception):
    """Raised when the installer configuration is invalid or unresolvable."""


def load_overrides(path: Path) -> dict[str, Any]:
    """Read an override YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Mapping of InstallConfig fields to override.

    Raises:
        ConfigError: If the file is missing, unparseable, or sets
            keys that cannot be overridden.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    unknown = sorted(set(data) - OVERRIDABLE_KEYS)
    if unknown:
        raise ConfigError(f"Unknown config key(s) in {path}: {', '.join(unknown)}")

    logger.debug("Loaded %d override(s) from %s", len(data), path)
    return data


def resolve_config(
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
    euid: int | None = None,
) -> InstallConfig:
    """Resolve the immutable installer configuration.

    Args:
        environ: Environment to read (default: ``os.environ``).
        overrides: Extra InstallConfig fields (from ``load_overrides``).
        euid: Effective uid (default: ``os.geteuid()``).

    Raises:
        ConfigError: If the sudo user is unknown or a value is invalid.
    """
    env = os.environ if environ is None else environ
    sudo_user = env.get("SUDO_USER", "").strip()

    if sudo_user:
        try:
            entry = pwd.getpwnam(sudo_user)
        except KeyError as e:
            raise ConfigError(f"SUDO_USER '{sudo_user}' not found in passwd database") from e
        real_user = sudo_user
        real_home = Path(entry.pw_dir)
        uid, gid = entry.pw_uid, entry.pw_gid
    else:
        real_user = env.get("USER") or getpass.getuser()
        real_home = Path(env.get("HOME") or Path.home())
        uid, gid = os.getuid(), os.getgid()

    try:
        config = InstallConfig(
            real_user=real_user,
            real_home=real_home,
            uid=uid,
            gid=gid,
            euid=os.geteuid() if euid is None else euid,
            delegated=bool(sudo_user),
            **dict(overrides or {}),
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid installer configuration: {e}") from e

    logger.info(
        "Resolved install root %s for user %s%s",
        config.install_root,
        config.real_user,
        " (via sudo)" if config.delegated else "",
    )
    return config

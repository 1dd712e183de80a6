"""Privilege guard — refuse to run unelevated."""

from __future__ import annotations

import logging

from sharespace_installer.core.models.install import InstallConfig

logger = logging.getLogger(__name__)


class PrivilegeError(Exception):
    """The installer is not running as root."""


def check_privileges(config: InstallConfig) -> None:
    """Raise PrivilegeError unless the effective uid is root.

    Must run before any action is dispatched: on failure nothing
    has been touched.
    """
    if not config.elevated:
        raise PrivilegeError("This installer must be run as root (use sudo)")
    logger.debug("Running as root (real user: %s)", config.real_user)
